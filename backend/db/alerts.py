"""
Alert Record Store
Alert occurrences and their TRIGGERED → ACKNOWLEDGED → RESOLVED lifecycle.
"""

import sqlite3
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

from core import (
    TargetRef,
    TargetType,
    MetricType,
    AlertLevel,
    AlertStatus,
    AlertNotFoundError,
)
from alerts.models import AlertRecord, ViolationTracker

from .sqlite import SQLiteStorage
from .trackers import ViolationTrackerStore


def _dt(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def _row_to_record(row: sqlite3.Row) -> AlertRecord:
    return AlertRecord(
        id=row["id"],
        target=TargetRef(TargetType(row["target_type"]), row["target_id"]),
        target_name=row["target_name"] or "",
        metric_type=MetricType(row["metric_type"]),
        metric_name=row["metric_name"],
        level=AlertLevel(row["level"]),
        measured_value=row["measured_value"],
        threshold_value=row["threshold_value"],
        status=AlertStatus(row["status"]),
        triggered_at=_dt(row["triggered_at"]),
        resolved_at=_dt(row["resolved_at"]),
        resolved_by=row["resolved_by"],
        acknowledged_at=_dt(row["acknowledged_at"]),
        acknowledged_by=row["acknowledged_by"],
        is_read=bool(row["is_read"]),
        read_at=_dt(row["read_at"]),
        message=row["message"] or "",
        created_at=_dt(row["created_at"]),
    )


class AlertRecordStore:
    """
    Alert history persistence.

    Records are never deleted by the engine; only the explicit
    delete() housekeeping call removes rows.
    """

    def __init__(self, storage: SQLiteStorage, trackers: ViolationTrackerStore = None):
        self._storage = storage
        self._trackers = trackers or ViolationTrackerStore(storage)

    # =========================================================================
    # Write Operations
    # =========================================================================

    def _insert(self, conn: sqlite3.Connection, record: AlertRecord) -> int:
        cursor = conn.execute(
            """INSERT INTO alert_history
               (target_type, target_id, target_name, metric_type, metric_name,
                level, measured_value, threshold_value, status, triggered_at,
                message, created_at)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
            [
                record.target.target_type.value,
                record.target.target_id,
                record.target_name,
                record.metric_type.value,
                record.metric_name,
                record.level.value,
                record.measured_value,
                record.threshold_value,
                record.status.value,
                _iso(record.triggered_at),
                record.message,
                _iso(record.created_at),
            ],
        )
        record.id = cursor.lastrowid
        return record.id

    def create(self, record: AlertRecord) -> int:
        """Insert a record. Returns the new id."""
        with self._storage.connect() as conn:
            return self._insert(conn, record)

    def record_alert(self, record: AlertRecord, tracker: ViolationTracker) -> int:
        """
        Insert the alert and persist the tracker's last_alert_sent_at together.

        This pair is what the cooldown gate reads, so either both land or
        neither does.
        """
        with self._storage.transaction() as conn:
            alert_id = self._insert(conn, record)
            self._trackers.save(tracker, conn=conn)
        return alert_id

    def resolve(
        self,
        record: AlertRecord,
        resolved_by: str = None,
        now: datetime = None,
    ) -> AlertRecord:
        """Mark RESOLVED. Already-resolved records are left untouched."""
        if record.status == AlertStatus.RESOLVED:
            return record

        resolved_at = now or datetime.now()
        with self._storage.connect() as conn:
            cursor = conn.execute(
                """UPDATE alert_history
                   SET status = ?, resolved_at = ?, resolved_by = ?
                   WHERE id = ? AND status != ?""",
                [AlertStatus.RESOLVED.value, _iso(resolved_at), resolved_by,
                 record.id, AlertStatus.RESOLVED.value],
            )
        if cursor.rowcount:
            record.status = AlertStatus.RESOLVED
            record.resolved_at = resolved_at
            record.resolved_by = resolved_by
        return record

    def acknowledge(
        self,
        record: AlertRecord,
        acknowledged_by: str = None,
        now: datetime = None,
    ) -> AlertRecord:
        """TRIGGERED → ACKNOWLEDGED. Other states are left untouched."""
        if record.status != AlertStatus.TRIGGERED:
            return record

        acknowledged_at = now or datetime.now()
        with self._storage.connect() as conn:
            cursor = conn.execute(
                """UPDATE alert_history
                   SET status = ?, acknowledged_at = ?, acknowledged_by = ?
                   WHERE id = ? AND status = ?""",
                [AlertStatus.ACKNOWLEDGED.value, _iso(acknowledged_at), acknowledged_by,
                 record.id, AlertStatus.TRIGGERED.value],
            )
        if cursor.rowcount:
            record.status = AlertStatus.ACKNOWLEDGED
            record.acknowledged_at = acknowledged_at
            record.acknowledged_by = acknowledged_by
        return record

    def mark_as_read(self, alert_ids: Sequence[int], now: datetime = None) -> int:
        if not alert_ids:
            return 0
        placeholders = ",".join("?" for _ in alert_ids)
        with self._storage.connect() as conn:
            cursor = conn.execute(
                f"""UPDATE alert_history SET is_read = 1, read_at = ?
                    WHERE id IN ({placeholders}) AND is_read = 0""",
                [_iso(now or datetime.now())] + list(alert_ids),
            )
            return cursor.rowcount

    def mark_all_as_read(self, now: datetime = None) -> int:
        with self._storage.connect() as conn:
            cursor = conn.execute(
                "UPDATE alert_history SET is_read = 1, read_at = ? WHERE is_read = 0",
                [_iso(now or datetime.now())],
            )
            return cursor.rowcount

    def delete(self, alert_ids: Sequence[int] = None) -> int:
        """Delete the given records, or all of them when no ids are given"""
        with self._storage.connect() as conn:
            if alert_ids is None:
                return conn.execute("DELETE FROM alert_history").rowcount
            if not alert_ids:
                return 0
            placeholders = ",".join("?" for _ in alert_ids)
            return conn.execute(
                f"DELETE FROM alert_history WHERE id IN ({placeholders})",
                list(alert_ids),
            ).rowcount

    # =========================================================================
    # Read Operations
    # =========================================================================

    def get(self, alert_id: int) -> AlertRecord:
        with self._storage.connect() as conn:
            row = conn.execute("SELECT * FROM alert_history WHERE id = ?", [alert_id]).fetchone()
        if row is None:
            raise AlertNotFoundError(alert_id)
        return _row_to_record(row)

    def find_active(
        self,
        target: TargetRef,
        metric_type: MetricType,
        metric_name: str,
    ) -> List[AlertRecord]:
        """Unresolved records for exactly this target instance and metric"""
        with self._storage.connect() as conn:
            rows = conn.execute(
                """SELECT * FROM alert_history
                   WHERE target_type = ? AND target_id = ?
                     AND metric_type = ? AND metric_name = ?
                     AND status != ?
                   ORDER BY triggered_at, id""",
                [target.target_type.value, target.target_id, metric_type.value,
                 metric_name, AlertStatus.RESOLVED.value],
            ).fetchall()
        return [_row_to_record(r) for r in rows]

    def list_alerts(
        self,
        target: TargetRef = None,
        target_type: TargetType = None,
        level: AlertLevel = None,
        status: AlertStatus = None,
        since: datetime = None,
        limit: int = 100,
        offset: int = 0,
    ) -> List[AlertRecord]:
        """Most recent first"""
        clauses, params = [], []
        if target is not None:
            clauses.append("target_type = ? AND target_id = ?")
            params += [target.target_type.value, target.target_id]
        elif target_type is not None:
            clauses.append("target_type = ?")
            params.append(target_type.value)
        if level is not None:
            clauses.append("level = ?")
            params.append(level.value)
        if status is not None:
            clauses.append("status = ?")
            params.append(status.value)
        if since is not None:
            clauses.append("triggered_at >= ?")
            params.append(since.isoformat())

        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        with self._storage.connect() as conn:
            rows = conn.execute(
                f"""SELECT * FROM alert_history {where}
                    ORDER BY triggered_at DESC, id DESC LIMIT ? OFFSET ?""",
                params + [limit, offset],
            ).fetchall()
        return [_row_to_record(r) for r in rows]

    def count_unread(self) -> int:
        with self._storage.connect() as conn:
            return conn.execute("SELECT COUNT(*) FROM alert_history WHERE is_read = 0").fetchone()[0]

    def statistics(self, since: datetime = None) -> Dict[str, Any]:
        """Counts by status, level and target type"""
        query = "SELECT target_type, level, status FROM alert_history"
        params = []
        if since is not None:
            query += " WHERE triggered_at >= ?"
            params.append(since.isoformat())
        df = self._storage.read_df(query, params)

        def _counts(column: str, values) -> Dict[str, int]:
            counts = df[column].value_counts() if not df.empty else {}
            return {v.value: int(counts.get(v.value, 0)) for v in values}

        by_status = _counts("status", AlertStatus)
        return {
            "total_alerts": int(len(df)),
            "active_alerts": by_status[AlertStatus.TRIGGERED.value]
                             + by_status[AlertStatus.ACKNOWLEDGED.value],
            "by_status": by_status,
            "by_level": _counts("level", AlertLevel),
            "by_target_type": _counts("target_type", TargetType),
        }
