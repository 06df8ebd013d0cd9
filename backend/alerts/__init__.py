"""
Alert System
Threshold alerts with debounce, cooldown and auto-resolution.

Structure:
    alerts/
    ├── models.py     → ViolationTracker, AlertRecord, AlertSettings
    ├── evaluator.py  → classify (pure threshold check)
    ├── settings.py   → AlertSettingsProvider (cached tunables)
    ├── engine.py     → AlertEngine (tracker updates, gating, resolution)
    └── dispatch.py   → AlertDispatcher (sample → evaluations, worker pool)

Usage:
    from alerts import AlertEngine, AlertDispatcher

    engine = AlertEngine(trackers, alerts, settings_provider, notifier)
    dispatcher = AlertDispatcher(engine, directory)

    # Called by the metric producers
    dispatcher.submit(SystemMetric(equipment_id=7, cpu_idle=3.5))

    # Or directly, for one stream
    result = engine.evaluate(target, MetricType.CPU, "cpu_usage_percent", 95.0, 70.0, 90.0)
"""

from .models import (
    TrackerKey,
    ViolationTracker,
    AlertRecord,
    AlertSettings,
)

from .evaluator import Bound, classify, breached_threshold

from .settings import AlertSettingsProvider

from .engine import (
    AlertEngine,
    EvaluationResult,
    KeyedLocks,
    build_message,
)

from .dispatch import AlertDispatcher

__all__ = [
    # Models
    "TrackerKey",
    "ViolationTracker",
    "AlertRecord",
    "AlertSettings",
    # Evaluator
    "Bound",
    "classify",
    "breached_threshold",
    # Settings
    "AlertSettingsProvider",
    # Engine
    "AlertEngine",
    "EvaluationResult",
    "KeyedLocks",
    "build_message",
    # Dispatch
    "AlertDispatcher",
]
