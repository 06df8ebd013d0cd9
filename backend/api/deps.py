"""
Service wiring for the routers.

Each getter builds its component once from config.get_settings() and
returns the same instance afterwards. Routers take them through
``Depends`` so tests can swap them via ``app.dependency_overrides``.
"""

from typing import Optional

from fastapi import HTTPException

from alerts import AlertEngine, AlertDispatcher, AlertSettings, AlertSettingsProvider
from config import get_settings
from core import TargetDirectory, TargetType
from db import (
    get_storage as _get_storage,
    SQLiteStorage,
    ViolationTrackerStore,
    AlertRecordStore,
    AlertSettingsStore,
)
from services import AlertNotifier, get_notifier as _get_notifier

_directory: Optional[TargetDirectory] = None
_settings_provider: Optional[AlertSettingsProvider] = None
_engine: Optional[AlertEngine] = None
_dispatcher: Optional[AlertDispatcher] = None


def get_storage() -> SQLiteStorage:
    return _get_storage(get_settings().db_path)


def get_notifier() -> AlertNotifier:
    return _get_notifier(max_pending=get_settings().subscriber_queue_size)


def get_target_directory() -> TargetDirectory:
    global _directory
    if _directory is None:
        _directory = TargetDirectory()
    return _directory


def get_settings_provider() -> AlertSettingsProvider:
    global _settings_provider
    if _settings_provider is None:
        config = get_settings()
        _settings_provider = AlertSettingsProvider(
            AlertSettingsStore(get_storage()),
            defaults=AlertSettings(
                consecutive_count=config.default_consecutive_count,
                cooldown_minutes=config.default_cooldown_minutes,
            ),
        )
    return _settings_provider


def get_alert_engine() -> AlertEngine:
    global _engine
    if _engine is None:
        storage = get_storage()
        trackers = ViolationTrackerStore(storage)
        _engine = AlertEngine(
            trackers=trackers,
            alerts=AlertRecordStore(storage, trackers),
            settings=get_settings_provider(),
            notifier=get_notifier(),
        )
    return _engine


def get_dispatcher() -> AlertDispatcher:
    global _dispatcher
    if _dispatcher is None:
        _dispatcher = AlertDispatcher(
            get_alert_engine(),
            get_target_directory(),
            workers=get_settings().worker_count,
        )
    return _dispatcher


def shutdown() -> None:
    """Drain the worker pool and disconnect subscribers"""
    global _dispatcher
    if _dispatcher is not None:
        _dispatcher.shutdown()
        _dispatcher = None
    get_notifier().close()


def parse_target_type(value: str) -> TargetType:
    """Path/query target type → TargetType, 400 on anything else"""
    try:
        return TargetType.parse(value)
    except ValueError:
        raise HTTPException(400, f"Invalid target type: {value}. Use: equipment, rack, serverroom, datacenter")
