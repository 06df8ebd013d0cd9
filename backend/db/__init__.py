"""
Database Layer
Persistence for trackers, alert records and alert settings.
"""

from .sqlite import SQLiteStorage, get_storage
from .trackers import ViolationTrackerStore
from .alerts import AlertRecordStore
from .settings import AlertSettingsStore

__all__ = [
    "SQLiteStorage",
    "get_storage",
    "ViolationTrackerStore",
    "AlertRecordStore",
    "AlertSettingsStore",
]
