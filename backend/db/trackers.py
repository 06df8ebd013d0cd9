"""
Violation Tracker Store
Durable per-stream consecutive-violation counters.
"""

import sqlite3
from datetime import datetime
from typing import List, Optional

from core import TargetRef, TargetType, MetricType
from alerts.models import ViolationTracker

from .sqlite import SQLiteStorage


def _dt(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def _row_to_tracker(row: sqlite3.Row) -> ViolationTracker:
    return ViolationTracker(
        id=row["id"],
        target=TargetRef(TargetType(row["target_type"]), row["target_id"]),
        metric_type=MetricType(row["metric_type"]),
        metric_name=row["metric_name"],
        consecutive_violations=row["consecutive_violations"],
        last_violation_time=_dt(row["last_violation_time"]),
        last_measured_value=row["last_measured_value"],
        last_alert_sent_at=_dt(row["last_alert_sent_at"]),
        created_at=_dt(row["created_at"]),
        updated_at=_dt(row["updated_at"]),
    )


_SELECT_BY_KEY = """SELECT * FROM violation_trackers
                    WHERE target_type = ? AND target_id = ?
                      AND metric_type = ? AND metric_name = ?"""


class ViolationTrackerStore:
    """
    Tracker persistence.

    get_or_create relies on the table's UNIQUE key: concurrent first
    evaluations of the same stream all end up reading the one row.
    """

    def __init__(self, storage: SQLiteStorage):
        self._storage = storage

    def get(
        self,
        target: TargetRef,
        metric_type: MetricType,
        metric_name: str,
    ) -> Optional[ViolationTracker]:
        with self._storage.connect() as conn:
            row = conn.execute(
                _SELECT_BY_KEY,
                [target.target_type.value, target.target_id, metric_type.value, metric_name],
            ).fetchone()
        return _row_to_tracker(row) if row else None

    def get_or_create(
        self,
        target: TargetRef,
        metric_type: MetricType,
        metric_name: str,
        now: datetime = None,
    ) -> ViolationTracker:
        now = now or datetime.now()
        params = [target.target_type.value, target.target_id, metric_type.value, metric_name]

        with self._storage.connect() as conn:
            conn.execute(
                """INSERT OR IGNORE INTO violation_trackers
                   (target_type, target_id, metric_type, metric_name,
                    consecutive_violations, last_violation_time, created_at, updated_at)
                   VALUES (?, ?, ?, ?, 0, ?, ?, ?)""",
                params + [now.isoformat(), now.isoformat(), now.isoformat()],
            )
            row = conn.execute(_SELECT_BY_KEY, params).fetchone()

        return _row_to_tracker(row)

    def save(self, tracker: ViolationTracker, conn: sqlite3.Connection = None) -> ViolationTracker:
        """Persist counter state. Pass ``conn`` to join an open transaction."""
        tracker.updated_at = datetime.now()
        params = [
            tracker.consecutive_violations,
            _iso(tracker.last_violation_time),
            tracker.last_measured_value,
            _iso(tracker.last_alert_sent_at),
            _iso(tracker.updated_at),
            tracker.target.target_type.value,
            tracker.target.target_id,
            tracker.metric_type.value,
            tracker.metric_name,
        ]
        sql = """UPDATE violation_trackers
                 SET consecutive_violations = ?, last_violation_time = ?,
                     last_measured_value = ?, last_alert_sent_at = ?, updated_at = ?
                 WHERE target_type = ? AND target_id = ?
                   AND metric_type = ? AND metric_name = ?"""

        if conn is not None:
            conn.execute(sql, params)
        else:
            with self._storage.connect() as own:
                own.execute(sql, params)
        return tracker

    def list_for_target(self, target: TargetRef) -> List[ViolationTracker]:
        with self._storage.connect() as conn:
            rows = conn.execute(
                """SELECT * FROM violation_trackers
                   WHERE target_type = ? AND target_id = ?
                   ORDER BY metric_type, metric_name""",
                [target.target_type.value, target.target_id],
            ).fetchall()
        return [_row_to_tracker(r) for r in rows]

    def count(self) -> int:
        with self._storage.connect() as conn:
            return conn.execute("SELECT COUNT(*) FROM violation_trackers").fetchone()[0]
