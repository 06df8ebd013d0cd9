"""
Alert Settings Store
The single configuration row holding the global alert tunables.
"""

from datetime import datetime
from typing import Optional

from alerts.models import AlertSettings

from .sqlite import SQLiteStorage


_COLUMNS = (
    "consecutive_count",
    "cooldown_minutes",
    "network_error_rate_warning",
    "network_error_rate_critical",
    "network_drop_rate_warning",
    "network_drop_rate_critical",
)


class AlertSettingsStore:
    """Reads and writes the first (and only) alert_settings row"""

    def __init__(self, storage: SQLiteStorage):
        self._storage = storage

    def load(self) -> Optional[AlertSettings]:
        """The stored settings, or None when no row exists yet"""
        with self._storage.connect() as conn:
            row = conn.execute("SELECT * FROM alert_settings ORDER BY id LIMIT 1").fetchone()
        if row is None:
            return None
        return AlertSettings(
            consecutive_count=row["consecutive_count"],
            cooldown_minutes=row["cooldown_minutes"],
            network_error_rate_warning=row["network_error_rate_warning"],
            network_error_rate_critical=row["network_error_rate_critical"],
            network_drop_rate_warning=row["network_drop_rate_warning"],
            network_drop_rate_critical=row["network_drop_rate_critical"],
            updated_at=datetime.fromisoformat(row["updated_at"]),
        )

    def save(self, settings: AlertSettings) -> AlertSettings:
        """Upsert the row; returns the settings stamped with updated_at"""
        updated_at = datetime.now()
        values = [getattr(settings, c) for c in _COLUMNS] + [updated_at.isoformat()]

        with self._storage.transaction() as conn:
            row = conn.execute("SELECT id FROM alert_settings ORDER BY id LIMIT 1").fetchone()
            if row is None:
                conn.execute(
                    f"""INSERT INTO alert_settings ({', '.join(_COLUMNS)}, updated_at)
                        VALUES ({', '.join('?' for _ in range(len(_COLUMNS) + 1))})""",
                    values,
                )
            else:
                assignments = ", ".join(f"{c} = ?" for c in _COLUMNS)
                conn.execute(
                    f"UPDATE alert_settings SET {assignments}, updated_at = ? WHERE id = ?",
                    values + [row["id"]],
                )

        return settings.with_changes(updated_at=updated_at)
