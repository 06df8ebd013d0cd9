"""
Alert Models
Data structures for violation tracking, alert records and alert settings.
"""

from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Optional, Dict, Any

from core import (
    TargetRef,
    MetricType,
    AlertLevel,
    AlertStatus,
    InvalidSettingsError,
)


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


@dataclass(frozen=True)
class TrackerKey:
    """One monitored metric stream: (target, metric type, metric name)"""
    target: TargetRef
    metric_type: MetricType
    metric_name: str

    def __str__(self) -> str:
        return f"{self.target}/{self.metric_type.value}/{self.metric_name}"


@dataclass
class ViolationTracker:
    """
    Consecutive-violation state for one metric stream.

    Created lazily on first evaluation and never deleted. Only the
    evaluation engine writes it.
    """
    target: TargetRef
    metric_type: MetricType
    metric_name: str
    consecutive_violations: int = 0
    last_violation_time: datetime = field(default_factory=datetime.now)
    last_measured_value: Optional[float] = None
    last_alert_sent_at: Optional[datetime] = None
    id: Optional[int] = None
    created_at: datetime = field(default_factory=datetime.now)
    updated_at: datetime = field(default_factory=datetime.now)

    @property
    def key(self) -> TrackerKey:
        return TrackerKey(self.target, self.metric_type, self.metric_name)

    def record_violation(self, value: float, at: datetime) -> int:
        """Count one breaching sample. Returns the new streak length."""
        self.consecutive_violations += 1
        self.last_violation_time = at
        self.last_measured_value = value
        self.updated_at = datetime.now()
        return self.consecutive_violations

    def reset(self) -> None:
        """Recovery: the streak is broken"""
        self.consecutive_violations = 0
        self.updated_at = datetime.now()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "target_type": self.target.target_type.value,
            "target_id": self.target.target_id,
            "metric_type": self.metric_type.value,
            "metric_name": self.metric_name,
            "consecutive_violations": self.consecutive_violations,
            "last_violation_time": _iso(self.last_violation_time),
            "last_measured_value": self.last_measured_value,
            "last_alert_sent_at": _iso(self.last_alert_sent_at),
            "updated_at": _iso(self.updated_at),
        }


@dataclass
class AlertRecord:
    """
    A persisted alert occurrence.

    This is what gets pushed to dashboard subscribers and listed by the API.
    "Active" means any status other than RESOLVED.
    """
    target: TargetRef
    target_name: str
    metric_type: MetricType
    metric_name: str
    level: AlertLevel
    measured_value: float
    threshold_value: float
    triggered_at: datetime
    message: str = ""
    status: AlertStatus = AlertStatus.TRIGGERED
    id: Optional[int] = None
    resolved_at: Optional[datetime] = None
    resolved_by: Optional[str] = None
    acknowledged_at: Optional[datetime] = None
    acknowledged_by: Optional[str] = None
    is_read: bool = False
    read_at: Optional[datetime] = None
    created_at: datetime = field(default_factory=datetime.now)

    @property
    def is_active(self) -> bool:
        return self.status != AlertStatus.RESOLVED

    @property
    def key(self) -> TrackerKey:
        return TrackerKey(self.target, self.metric_type, self.metric_name)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "target_type": self.target.target_type.value,
            "target_id": self.target.target_id,
            "target_name": self.target_name,
            "metric_type": self.metric_type.value,
            "metric_name": self.metric_name,
            "level": self.level.value,
            "measured_value": round(self.measured_value, 4),
            "threshold_value": self.threshold_value,
            "status": self.status.value,
            "triggered_at": _iso(self.triggered_at),
            "resolved_at": _iso(self.resolved_at),
            "resolved_by": self.resolved_by,
            "acknowledged_at": _iso(self.acknowledged_at),
            "acknowledged_by": self.acknowledged_by,
            "is_read": self.is_read,
            "read_at": _iso(self.read_at),
            "message": self.message,
        }


@dataclass(frozen=True)
class AlertSettings:
    """
    Global alert tunables.

    consecutive_count: breaching samples in a row before the first alert
    cooldown_minutes: minimum gap between two alerts for the same stream
    network_*: percent-of-packets thresholds for NIC error and drop rates
    """
    consecutive_count: int = 3
    cooldown_minutes: int = 10
    network_error_rate_warning: float = 0.1
    network_error_rate_critical: float = 1.0
    network_drop_rate_warning: float = 0.1
    network_drop_rate_critical: float = 1.0
    updated_at: Optional[datetime] = None

    def __post_init__(self):
        if int(self.consecutive_count) < 1:
            raise InvalidSettingsError("consecutive_count must be >= 1")
        if int(self.cooldown_minutes) < 0:
            raise InvalidSettingsError("cooldown_minutes must be >= 0")
        for name in (
            "network_error_rate_warning",
            "network_error_rate_critical",
            "network_drop_rate_warning",
            "network_drop_rate_critical",
        ):
            if getattr(self, name) < 0:
                raise InvalidSettingsError(f"{name} must be >= 0")

    def with_changes(self, **changes) -> "AlertSettings":
        unknown = set(changes) - set(self.to_dict())
        if unknown:
            raise InvalidSettingsError(f"Unknown settings: {', '.join(sorted(unknown))}")
        return replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "consecutive_count": self.consecutive_count,
            "cooldown_minutes": self.cooldown_minutes,
            "network_error_rate_warning": self.network_error_rate_warning,
            "network_error_rate_critical": self.network_error_rate_critical,
            "network_drop_rate_warning": self.network_drop_rate_warning,
            "network_drop_rate_critical": self.network_drop_rate_critical,
            "updated_at": _iso(self.updated_at),
        }
