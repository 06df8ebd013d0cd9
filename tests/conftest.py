"""
Shared pytest fixtures for the alert engine tests.

Every test gets its own SQLite file under tmp_path, so nothing leaks
between tests and no fixture touches data/alerts.db.
"""

import sys
from datetime import datetime, timedelta
from pathlib import Path

import pytest

# Ensure the backend packages are importable without installing
sys.path.insert(0, str(Path(__file__).parent.parent / "backend"))

from alerts import AlertEngine, AlertDispatcher, AlertSettings, AlertSettingsProvider
from core import (
    TargetRef,
    TargetType,
    MonitoredTarget,
    ThresholdPair,
    TargetDirectory,
)
from db import SQLiteStorage, ViolationTrackerStore, AlertRecordStore, AlertSettingsStore
from services import AlertNotifier


T0 = datetime(2025, 1, 1, 12, 0, 0)
NOW = datetime(2025, 1, 1, 13, 0, 0)


def minutes(n: float) -> timedelta:
    return timedelta(minutes=n)


def make_target(
    target_type: TargetType = TargetType.EQUIPMENT,
    target_id: int = 7,
    name: str = "web-01",
    monitoring_enabled: bool = True,
    **thresholds: ThresholdPair,
) -> MonitoredTarget:
    return MonitoredTarget(
        ref=TargetRef(target_type, target_id),
        name=name,
        monitoring_enabled=monitoring_enabled,
        thresholds=thresholds,
    )


@pytest.fixture
def storage(tmp_path) -> SQLiteStorage:
    return SQLiteStorage(str(tmp_path / "alerts.db"))


@pytest.fixture
def trackers(storage) -> ViolationTrackerStore:
    return ViolationTrackerStore(storage)


@pytest.fixture
def alert_store(storage, trackers) -> AlertRecordStore:
    return AlertRecordStore(storage, trackers)


@pytest.fixture
def settings_store(storage) -> AlertSettingsStore:
    return AlertSettingsStore(storage)


@pytest.fixture
def settings_provider(settings_store) -> AlertSettingsProvider:
    return AlertSettingsProvider(
        settings_store,
        defaults=AlertSettings(consecutive_count=3, cooldown_minutes=10),
    )


@pytest.fixture
def notifier() -> AlertNotifier:
    notifier = AlertNotifier(max_pending=100)
    yield notifier
    notifier.close()


@pytest.fixture
def engine(trackers, alert_store, settings_provider, notifier) -> AlertEngine:
    return AlertEngine(
        trackers=trackers,
        alerts=alert_store,
        settings=settings_provider,
        notifier=notifier,
        clock=lambda: NOW,
    )


@pytest.fixture
def directory() -> TargetDirectory:
    return TargetDirectory()


@pytest.fixture
def dispatcher(engine, directory) -> AlertDispatcher:
    dispatcher = AlertDispatcher(engine, directory, workers=4)
    yield dispatcher
    dispatcher.shutdown()


@pytest.fixture
def equipment() -> MonitoredTarget:
    return make_target(
        cpu_usage_percent=ThresholdPair(warning=70, critical=90),
        memory_usage_percent=ThresholdPair(warning=80, critical=95),
        disk_usage_percent=ThresholdPair(warning=85),
    )
