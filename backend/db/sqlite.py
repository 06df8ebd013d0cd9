"""
SQLite Storage
Persistent storage layer for the alert engine.

Responsibilities:
- Own the database file and schema
- Hand out short-lived connections and transactions
- Load query results as DataFrames for reporting

NOT responsible for:
- Threshold evaluation (alerts.evaluator)
- Gating and lifecycle decisions (alerts.engine)
"""

import logging
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional, Sequence

import pandas as pd

logger = logging.getLogger(__name__)


SCHEMA = """
    CREATE TABLE IF NOT EXISTS violation_trackers (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        target_type TEXT NOT NULL,
        target_id INTEGER NOT NULL,
        metric_type TEXT NOT NULL,
        metric_name TEXT NOT NULL,
        consecutive_violations INTEGER NOT NULL DEFAULT 0,
        last_violation_time TEXT NOT NULL,
        last_measured_value REAL,
        last_alert_sent_at TEXT,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL,
        UNIQUE(target_type, target_id, metric_type, metric_name)
    );

    CREATE TABLE IF NOT EXISTS alert_history (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        target_type TEXT NOT NULL,
        target_id INTEGER NOT NULL,
        target_name TEXT,
        metric_type TEXT NOT NULL,
        metric_name TEXT NOT NULL,
        level TEXT NOT NULL,
        measured_value REAL NOT NULL,
        threshold_value REAL NOT NULL,
        status TEXT NOT NULL DEFAULT 'TRIGGERED',
        triggered_at TEXT NOT NULL,
        resolved_at TEXT,
        resolved_by TEXT,
        acknowledged_at TEXT,
        acknowledged_by TEXT,
        is_read INTEGER NOT NULL DEFAULT 0,
        read_at TEXT,
        message TEXT,
        created_at TEXT NOT NULL
    );

    CREATE INDEX IF NOT EXISTS idx_alert_history_stream
    ON alert_history(target_type, target_id, metric_type, metric_name, status);

    CREATE INDEX IF NOT EXISTS idx_alert_history_triggered
    ON alert_history(triggered_at);

    CREATE TABLE IF NOT EXISTS alert_settings (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        consecutive_count INTEGER NOT NULL,
        cooldown_minutes INTEGER NOT NULL,
        network_error_rate_warning REAL NOT NULL,
        network_error_rate_critical REAL NOT NULL,
        network_drop_rate_warning REAL NOT NULL,
        network_drop_rate_critical REAL NOT NULL,
        updated_at TEXT NOT NULL
    );
"""


class SQLiteStorage:
    """
    SQLite persistence for the alert engine.

    Tables:
        - violation_trackers: per-stream consecutive violation state
        - alert_history: alert records and their lifecycle
        - alert_settings: single row of global tunables
    """

    def __init__(self, db_path: str = "data/alerts.db", timeout: float = 30.0):
        self.db_path = db_path
        self.timeout = timeout
        self._ensure_directory()
        self._init_schema()

    def _ensure_directory(self):
        """Create data directory"""
        Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)

    def _init_schema(self):
        """Initialize database schema"""
        with self.connect() as conn:
            conn.execute("PRAGMA journal_mode=WAL")
            conn.executescript(SCHEMA)
        logger.debug("Schema ready at %s", self.db_path)

    # =========================================================================
    # Connections
    # =========================================================================

    @contextmanager
    def connect(self) -> Iterator[sqlite3.Connection]:
        """Connection that commits on success, rolls back on error, always closes"""
        conn = sqlite3.connect(self.db_path, timeout=self.timeout)
        conn.row_factory = sqlite3.Row
        try:
            with conn:
                yield conn
        finally:
            conn.close()

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """
        Write transaction that takes the database lock up front.

        Used where two writes must land together or not at all.
        """
        conn = sqlite3.connect(self.db_path, timeout=self.timeout, isolation_level=None)
        conn.row_factory = sqlite3.Row
        try:
            conn.execute("BEGIN IMMEDIATE")
            try:
                yield conn
            except BaseException:
                conn.execute("ROLLBACK")
                raise
            conn.execute("COMMIT")
        finally:
            conn.close()

    # =========================================================================
    # Reporting
    # =========================================================================

    def read_df(self, query: str, params: Optional[Sequence] = None) -> pd.DataFrame:
        """Run a read query into a DataFrame"""
        with self.connect() as conn:
            return pd.read_sql_query(query, conn, params=list(params or []))

    def get_stats(self) -> dict:
        """Get storage statistics"""
        with self.connect() as conn:
            tracker_count = conn.execute("SELECT COUNT(*) FROM violation_trackers").fetchone()[0]
            alert_count = conn.execute("SELECT COUNT(*) FROM alert_history").fetchone()[0]

        return {
            "tracker_count": tracker_count,
            "alert_count": alert_count,
            "db_path": self.db_path,
        }


# =============================================================================
# Singleton
# =============================================================================

_storage: Optional[SQLiteStorage] = None


def get_storage(db_path: str = None) -> SQLiteStorage:
    """Get singleton storage instance"""
    global _storage
    if _storage is None:
        _storage = SQLiteStorage(db_path) if db_path else SQLiteStorage()
    return _storage
