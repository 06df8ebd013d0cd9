"""
Target Directory
In-memory registry of monitored entities and their thresholds.

The entity records themselves (equipment, racks, rooms, data centers) are
owned elsewhere. The alert layer only needs the name, the monitoring flag
and the per-metric warning/critical thresholds, so that is all this holds.

Usage:
    directory = TargetDirectory()
    directory.register(MonitoredTarget(
        ref=TargetRef(TargetType.EQUIPMENT, 7),
        name="web-01",
        thresholds={"cpu_usage_percent": ThresholdPair(warning=70, critical=90)},
    ))
    target = directory.get(TargetType.EQUIPMENT, 7)
"""

import threading
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Any

from .errors import TargetNotFoundError
from .models import TargetRef, TargetType


@dataclass(frozen=True)
class ThresholdPair:
    """Warning/critical pair for one metric; critical is optional"""
    warning: Optional[float] = None
    critical: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return {"warning": self.warning, "critical": self.critical}


@dataclass
class MonitoredTarget:
    """
    What the alert engine knows about one target.

    Threshold keys are metric names, e.g. ``cpu_usage_percent``,
    ``humidity_min``, ``avg_temperature``.
    """
    ref: TargetRef
    name: str
    monitoring_enabled: bool = True
    thresholds: Dict[str, ThresholdPair] = field(default_factory=dict)

    @property
    def target_type(self) -> TargetType:
        return self.ref.target_type

    @property
    def target_id(self) -> int:
        return self.ref.target_id

    def threshold(self, metric_name: str) -> ThresholdPair:
        return self.thresholds.get(metric_name) or ThresholdPair()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "target_type": self.ref.target_type.value,
            "target_id": self.ref.target_id,
            "name": self.name,
            "monitoring_enabled": self.monitoring_enabled,
            "thresholds": {k: v.to_dict() for k, v in self.thresholds.items()},
        }


class TargetDirectory:
    """Thread-safe target lookup shared by the API and the worker pool"""

    def __init__(self):
        self._targets: Dict[TargetRef, MonitoredTarget] = {}
        self._lock = threading.Lock()

    def register(self, target: MonitoredTarget) -> MonitoredTarget:
        with self._lock:
            self._targets[target.ref] = target
        return target

    def get(self, target_type: TargetType, target_id: int) -> Optional[MonitoredTarget]:
        with self._lock:
            return self._targets.get(TargetRef(target_type, target_id))

    def require(self, target_type: TargetType, target_id: int) -> MonitoredTarget:
        target = self.get(target_type, target_id)
        if target is None:
            raise TargetNotFoundError(TargetRef(target_type, target_id))
        return target

    def remove(self, target_type: TargetType, target_id: int) -> MonitoredTarget:
        """Unregister a target; TargetNotFoundError if it was never registered"""
        ref = TargetRef(target_type, target_id)
        with self._lock:
            target = self._targets.pop(ref, None)
        if target is None:
            raise TargetNotFoundError(ref)
        return target

    def all(self, target_type: TargetType = None) -> List[MonitoredTarget]:
        with self._lock:
            targets = list(self._targets.values())
        if target_type:
            targets = [t for t in targets if t.target_type == target_type]
        return sorted(targets, key=lambda t: (t.target_type.value, t.target_id))

    def __len__(self) -> int:
        with self._lock:
            return len(self._targets)
