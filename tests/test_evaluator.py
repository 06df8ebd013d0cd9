"""Tests for threshold classification."""

import pytest

from alerts import Bound, classify, breached_threshold
from core import AlertLevel


# ---------------------------------------------------------------------------
# Ceilings
# ---------------------------------------------------------------------------


class TestUpperBound:
    @pytest.mark.parametrize(
        "value,expected",
        [
            (0.0, None),
            (69.9, None),
            (70.0, AlertLevel.WARNING),
            (89.99, AlertLevel.WARNING),
            (90.0, AlertLevel.CRITICAL),
            (150.0, AlertLevel.CRITICAL),
        ],
    )
    def test_warning_and_critical(self, value, expected):
        assert classify(value, 70, 90) == expected

    def test_absent_critical_never_escalates(self):
        assert classify(1000.0, 70) == AlertLevel.WARNING
        assert classify(1000.0, 70, None) == AlertLevel.WARNING

    def test_below_warning_is_normal(self):
        assert classify(10.0, 70) is None

    def test_critical_wins_even_below_warning(self):
        # Misordered pair: critical is checked first
        assert classify(60.0, 70, 50) == AlertLevel.CRITICAL

    @pytest.mark.parametrize("value", [x / 2 for x in range(0, 240)])
    def test_level_is_monotonic_in_value(self, value):
        level = classify(value, 70, 90)
        if value >= 90:
            assert level == AlertLevel.CRITICAL
        elif value >= 70:
            assert level == AlertLevel.WARNING
        else:
            assert level is None


# ---------------------------------------------------------------------------
# Floors
# ---------------------------------------------------------------------------


class TestLowerBound:
    @pytest.mark.parametrize(
        "value,expected",
        [
            (50.0, None),
            (30.0, None),
            (29.9, AlertLevel.WARNING),
            (20.0, AlertLevel.WARNING),
            (19.9, AlertLevel.CRITICAL),
            (0.0, AlertLevel.CRITICAL),
        ],
    )
    def test_floor_breach_is_strictly_below(self, value, expected):
        assert classify(value, 30, 20, Bound.LOWER) == expected

    def test_floor_without_critical(self):
        assert classify(5.0, 30, bound=Bound.LOWER) == AlertLevel.WARNING
        assert classify(30.0, 30, bound=Bound.LOWER) is None


# ---------------------------------------------------------------------------
# Threshold selection
# ---------------------------------------------------------------------------


class TestBreachedThreshold:
    def test_critical_reports_critical_value(self):
        assert breached_threshold(AlertLevel.CRITICAL, 70, 90) == 90

    def test_warning_reports_warning_value(self):
        assert breached_threshold(AlertLevel.WARNING, 70, 90) == 70

    def test_critical_without_critical_threshold_falls_back(self):
        assert breached_threshold(AlertLevel.CRITICAL, 70) == 70
