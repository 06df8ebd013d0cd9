"""Tests for AlertSettings, AlertSettingsStore and AlertSettingsProvider."""

from unittest.mock import MagicMock

import pytest

from alerts import AlertSettings, AlertSettingsProvider
from core import InvalidSettingsError


class TestAlertSettings:
    def test_defaults(self):
        s = AlertSettings()
        assert s.consecutive_count == 3
        assert s.cooldown_minutes == 10
        assert s.network_error_rate_warning == 0.1
        assert s.network_error_rate_critical == 1.0
        assert s.network_drop_rate_warning == 0.1
        assert s.network_drop_rate_critical == 1.0
        assert s.updated_at is None

    @pytest.mark.parametrize(
        "changes",
        [
            {"consecutive_count": 0},
            {"cooldown_minutes": -1},
            {"network_drop_rate_warning": -0.5},
        ],
    )
    def test_rejects_invalid_values(self, changes):
        with pytest.raises(InvalidSettingsError):
            AlertSettings(**changes)

    def test_zero_cooldown_is_allowed(self):
        assert AlertSettings(cooldown_minutes=0).cooldown_minutes == 0

    def test_with_changes_rejects_unknown_field(self):
        with pytest.raises(InvalidSettingsError):
            AlertSettings().with_changes(nonsense=1)


class TestAlertSettingsStore:
    def test_load_without_row_returns_none(self, settings_store):
        assert settings_store.load() is None

    def test_save_then_load(self, settings_store):
        saved = settings_store.save(AlertSettings(consecutive_count=5, cooldown_minutes=2))
        assert saved.updated_at is not None

        loaded = settings_store.load()
        assert loaded.consecutive_count == 5
        assert loaded.cooldown_minutes == 2
        assert loaded.updated_at == saved.updated_at

    def test_save_keeps_single_row(self, settings_store, storage):
        settings_store.save(AlertSettings(consecutive_count=2))
        settings_store.save(AlertSettings(consecutive_count=4))

        with storage.connect() as conn:
            assert conn.execute("SELECT COUNT(*) FROM alert_settings").fetchone()[0] == 1
        assert settings_store.load().consecutive_count == 4


class TestAlertSettingsProvider:
    def test_defaults_when_no_row(self, settings_provider):
        settings = settings_provider.get()
        assert settings.consecutive_count == 3
        assert settings.cooldown_minutes == 10
        assert settings.updated_at is None

    def test_update_persists_and_caches(self, settings_provider, settings_store):
        updated = settings_provider.update(consecutive_count=5, cooldown_minutes=None)

        assert updated.consecutive_count == 5
        assert updated.cooldown_minutes == 10
        assert settings_provider.get() is updated
        assert settings_store.load().consecutive_count == 5

    def test_invalid_update_changes_nothing(self, settings_provider, settings_store):
        with pytest.raises(InvalidSettingsError):
            settings_provider.update(consecutive_count=0)

        assert settings_provider.get().consecutive_count == 3
        assert settings_store.load() is None

    def test_reload_picks_up_external_change(self, settings_provider, settings_store):
        assert settings_provider.get().cooldown_minutes == 10
        settings_store.save(AlertSettings(cooldown_minutes=1))

        assert settings_provider.get().cooldown_minutes == 10
        assert settings_provider.reload().cooldown_minutes == 1

    def test_invalidate_forces_read(self, settings_provider, settings_store):
        settings_provider.get()
        settings_store.save(AlertSettings(consecutive_count=7))
        settings_provider.invalidate()
        assert settings_provider.get().consecutive_count == 7

    def test_read_failure_falls_back_to_defaults(self):
        store = MagicMock()
        store.load.side_effect = RuntimeError("database is locked")
        provider = AlertSettingsProvider(store, defaults=AlertSettings(consecutive_count=2))

        assert provider.get().consecutive_count == 2
        assert provider.get().consecutive_count == 2
        # Failures are not cached: every get retries
        assert store.load.call_count == 2

    def test_without_store(self):
        provider = AlertSettingsProvider()
        assert provider.get() == AlertSettings()
        assert provider.update(cooldown_minutes=3).cooldown_minutes == 3
