"""
Threshold Evaluator
Pure classification of one measurement against a warning/critical pair.
"""

from enum import Enum
from typing import Optional

from core import AlertLevel


class Bound(str, Enum):
    """Which side of the threshold is the bad side"""
    UPPER = "upper"  # ceiling: breach when value >= threshold
    LOWER = "lower"  # floor: breach when value < threshold


def _breaches(value: float, threshold: float, bound: Bound) -> bool:
    if bound == Bound.LOWER:
        return value < threshold
    return value >= threshold


def classify(
    measured: float,
    warning: float,
    critical: Optional[float] = None,
    bound: Bound = Bound.UPPER,
) -> Optional[AlertLevel]:
    """
    Classify a measurement.

    CRITICAL wins when a critical threshold is set and breached, otherwise
    WARNING when the warning threshold is breached, otherwise None.
    """
    if critical is not None and _breaches(measured, critical, bound):
        return AlertLevel.CRITICAL
    if _breaches(measured, warning, bound):
        return AlertLevel.WARNING
    return None


def breached_threshold(
    level: AlertLevel,
    warning: float,
    critical: Optional[float] = None,
) -> float:
    """The threshold value an alert of ``level`` actually crossed"""
    if level == AlertLevel.CRITICAL and critical is not None:
        return critical
    return warning
