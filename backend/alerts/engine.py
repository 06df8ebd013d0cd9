"""
Alert Engine
Turns one measurement into a debounced, rate-limited alert.

Per metric stream (target, metric type, metric name):
    violation  → streak += 1; alert once streak >= consecutive_count and the
                 cooldown since the last alert has passed
    recovery   → streak reset; every active alert for the stream is resolved

Evaluations of the same stream are serialized; different streams run in
parallel. An evaluation that fails is logged and dropped, never raised.
"""

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Optional

from core import (
    MetricType,
    AlertLevel,
    TargetType,
    MonitoredTarget,
)

from .evaluator import Bound, classify, breached_threshold
from .models import AlertRecord, AlertSettings, TrackerKey, ViolationTracker
from .settings import AlertSettingsProvider

logger = logging.getLogger(__name__)


SUPPRESSED_CONSECUTIVE = "below_consecutive_count"
SUPPRESSED_COOLDOWN = "cooldown"


class KeyedLocks:
    """One lock per tracker key, created on first use"""

    def __init__(self):
        self._locks: Dict[TrackerKey, threading.Lock] = {}
        self._guard = threading.Lock()

    def get(self, key: TrackerKey) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = self._locks[key] = threading.Lock()
            return lock

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)


@dataclass
class EvaluationResult:
    """What one evaluation did to its stream"""
    key: TrackerKey
    level: Optional[AlertLevel]
    consecutive_violations: int
    alert: Optional[AlertRecord] = None
    resolved: List[AlertRecord] = field(default_factory=list)
    suppressed: Optional[str] = None

    @property
    def is_violation(self) -> bool:
        return self.level is not None

    @property
    def triggered(self) -> bool:
        return self.alert is not None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "key": str(self.key),
            "level": self.level.value if self.level else None,
            "consecutive_violations": self.consecutive_violations,
            "alert": self.alert.to_dict() if self.alert else None,
            "resolved": [r.id for r in self.resolved],
            "suppressed": self.suppressed,
        }


def build_message(
    target_type: TargetType,
    target_name: str,
    level: AlertLevel,
    metric_type: MetricType,
    measured_value: float,
    threshold_value: float,
    bound: Bound = Bound.UPPER,
) -> str:
    verb = "fell below" if bound == Bound.LOWER else "exceeded"
    return (
        f"[{target_type.label}] {target_name} {metric_type.label} {verb} "
        f"{level.value.lower()} threshold {threshold_value:g} (current: {measured_value:.1f})"
    )


class AlertEngine:
    """
    Evaluation orchestrator.

    Collaborators are injected:
        trackers  ViolationTrackerStore (get_or_create, save)
        alerts    AlertRecordStore (record_alert, find_active, resolve, ...)
        settings  AlertSettingsProvider
        notifier  AlertNotifier, optional
        clock     source of "now" for resolution/acknowledgement stamps
    """

    def __init__(
        self,
        trackers,
        alerts,
        settings: AlertSettingsProvider = None,
        notifier=None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self._trackers = trackers
        self._alerts = alerts
        self._settings = settings or AlertSettingsProvider()
        self._notifier = notifier
        self._clock = clock
        self._locks = KeyedLocks()
        self._stats_lock = threading.Lock()
        self._stats = {
            "evaluations": 0,
            "violations": 0,
            "triggers": 0,
            "suppressed": 0,
            "resolved": 0,
            "errors": 0,
            "start_time": datetime.now(),
        }

    @property
    def alerts(self):
        return self._alerts

    @property
    def trackers(self):
        return self._trackers

    @property
    def settings(self) -> AlertSettingsProvider:
        return self._settings

    def _count(self, name: str, n: int = 1) -> None:
        with self._stats_lock:
            self._stats[name] += n

    # =========================================================================
    # Evaluation
    # =========================================================================

    def evaluate(
        self,
        target: MonitoredTarget,
        metric_type: MetricType,
        metric_name: str,
        measured_value: Optional[float],
        warning_threshold: Optional[float],
        critical_threshold: Optional[float] = None,
        sample_time: datetime = None,
        bound: Bound = Bound.UPPER,
    ) -> Optional[EvaluationResult]:
        """
        Evaluate one sample for one stream.

        Returns None when skipped (monitoring disabled, no value or no warning
        threshold) or when the evaluation failed.
        """
        if not target.monitoring_enabled:
            return None
        if measured_value is None or warning_threshold is None:
            return None

        sample_time = sample_time or self._clock()
        key = TrackerKey(target.ref, metric_type, metric_name)

        try:
            with self._locks.get(key):
                return self._evaluate_locked(
                    target, key, float(measured_value), float(warning_threshold),
                    None if critical_threshold is None else float(critical_threshold),
                    sample_time, bound,
                )
        except Exception:
            self._count("errors")
            logger.exception("Alert evaluation failed: %s value=%s", key, measured_value)
            return None

    def _evaluate_locked(
        self,
        target: MonitoredTarget,
        key: TrackerKey,
        measured_value: float,
        warning_threshold: float,
        critical_threshold: Optional[float],
        sample_time: datetime,
        bound: Bound,
    ) -> EvaluationResult:
        self._count("evaluations")
        level = classify(measured_value, warning_threshold, critical_threshold, bound)
        tracker = self._trackers.get_or_create(key.target, key.metric_type, key.metric_name)

        if level is None:
            return self._handle_recovery(key, tracker)

        return self._handle_violation(
            target, key, tracker, level, measured_value,
            breached_threshold(level, warning_threshold, critical_threshold),
            sample_time, bound,
        )

    def _handle_violation(
        self,
        target: MonitoredTarget,
        key: TrackerKey,
        tracker: ViolationTracker,
        level: AlertLevel,
        measured_value: float,
        threshold_value: float,
        sample_time: datetime,
        bound: Bound,
    ) -> EvaluationResult:
        self._count("violations")
        streak = tracker.record_violation(measured_value, sample_time)
        self._trackers.save(tracker)

        result = EvaluationResult(key=key, level=level, consecutive_violations=streak)
        settings = self._settings.get()

        if streak < settings.consecutive_count:
            result.suppressed = SUPPRESSED_CONSECUTIVE
        elif not self._cooldown_elapsed(tracker, settings, sample_time):
            result.suppressed = SUPPRESSED_COOLDOWN
        if result.suppressed:
            self._count("suppressed")
            logger.debug("Alert suppressed (%s): %s streak=%d", result.suppressed, key, streak)
            return result

        alert = AlertRecord(
            target=key.target,
            target_name=target.name,
            metric_type=key.metric_type,
            metric_name=key.metric_name,
            level=level,
            measured_value=measured_value,
            threshold_value=threshold_value,
            triggered_at=sample_time,
            message=build_message(
                key.target.target_type, target.name, level, key.metric_type,
                measured_value, threshold_value, bound,
            ),
        )
        tracker.last_alert_sent_at = sample_time
        self._alerts.record_alert(alert, tracker)
        self._count("triggers")
        result.alert = alert

        logger.warning(
            "Alert triggered - %s [%s] %s:%s (measured: %.1f, threshold: %g)",
            level.value, key.metric_type.value, target.name, key.metric_name,
            measured_value, threshold_value,
        )
        self._notify("send_alert_triggered", alert)
        return result

    @staticmethod
    def _cooldown_elapsed(
        tracker: ViolationTracker,
        settings: AlertSettings,
        sample_time: datetime,
    ) -> bool:
        if tracker.last_alert_sent_at is None:
            return True
        cooldown_end = tracker.last_alert_sent_at + timedelta(minutes=settings.cooldown_minutes)
        return sample_time > cooldown_end

    def _handle_recovery(self, key: TrackerKey, tracker: ViolationTracker) -> EvaluationResult:
        result = EvaluationResult(key=key, level=None, consecutive_violations=0)
        if tracker.consecutive_violations == 0:
            return result

        # Resolve before resetting: if we stop in between, the next recovery
        # sample still sees a streak and repeats the (idempotent) resolution.
        now = self._clock()
        for record in self._alerts.find_active(key.target, key.metric_type, key.metric_name):
            self._alerts.resolve(record, now=now)
            result.resolved.append(record)
            self._notify("send_alert_resolved", record)

        tracker.reset()
        self._trackers.save(tracker)

        if result.resolved:
            self._count("resolved", len(result.resolved))
            logger.info("Auto-resolved %d alert(s): %s", len(result.resolved), key)
        return result

    def _notify(self, method: str, alert: AlertRecord) -> None:
        if self._notifier is None:
            return
        try:
            getattr(self._notifier, method)(alert)
        except Exception:
            logger.exception("Notification failed: %s alert_id=%s", method, alert.id)

    # =========================================================================
    # External lifecycle actions
    # =========================================================================

    def acknowledge(self, alert_id: int, acknowledged_by: str = None) -> AlertRecord:
        """Operator acknowledgement. Raises AlertNotFoundError."""
        record = self._alerts.get(alert_id)
        before = record.status
        self._alerts.acknowledge(record, acknowledged_by, now=self._clock())
        if record.status != before:
            logger.info("Alert acknowledged: id=%s by=%s", alert_id, acknowledged_by)
            self._notify("send_alert_acknowledged", record)
        return record

    def resolve(self, alert_id: int, resolved_by: str = None) -> AlertRecord:
        """Manual resolution. Raises AlertNotFoundError."""
        record = self._alerts.get(alert_id)
        before = record.status
        self._alerts.resolve(record, resolved_by, now=self._clock())
        if record.status != before:
            self._count("resolved")
            logger.info("Alert resolved: id=%s by=%s", alert_id, resolved_by)
            self._notify("send_alert_resolved", record)
        return record

    def stats(self) -> Dict[str, Any]:
        with self._stats_lock:
            stats = dict(self._stats)
        uptime = (datetime.now() - stats["start_time"]).total_seconds()
        stats["start_time"] = stats["start_time"].isoformat()
        return {
            **stats,
            "uptime_seconds": round(uptime, 2),
            "tracked_streams": len(self._locks),
        }
