"""Tests for ViolationTrackerStore."""

from concurrent.futures import ThreadPoolExecutor

from core import TargetRef, TargetType, MetricType

from conftest import T0, minutes


REF = TargetRef(TargetType.EQUIPMENT, 7)


class TestGetOrCreate:
    def test_creates_zeroed_tracker(self, trackers):
        tracker = trackers.get_or_create(REF, MetricType.CPU, "cpu_usage_percent", now=T0)

        assert tracker.id is not None
        assert tracker.consecutive_violations == 0
        assert tracker.last_alert_sent_at is None
        assert tracker.last_measured_value is None
        assert tracker.created_at == T0

    def test_returns_existing_row(self, trackers):
        first = trackers.get_or_create(REF, MetricType.CPU, "cpu_usage_percent")
        first.record_violation(95.0, T0)
        trackers.save(first)

        second = trackers.get_or_create(REF, MetricType.CPU, "cpu_usage_percent")
        assert second.id == first.id
        assert second.consecutive_violations == 1
        assert second.last_measured_value == 95.0

    def test_metric_name_distinguishes_streams(self, trackers):
        low = trackers.get_or_create(REF, MetricType.HUMIDITY, "humidity_min")
        high = trackers.get_or_create(REF, MetricType.HUMIDITY, "humidity_max")
        assert low.id != high.id
        assert trackers.count() == 2

    def test_target_instance_distinguishes_streams(self, trackers):
        a = trackers.get_or_create(REF, MetricType.CPU, "cpu_usage_percent")
        b = trackers.get_or_create(TargetRef(TargetType.RACK, 7), MetricType.CPU, "cpu_usage_percent")
        assert a.id != b.id

    def test_concurrent_creation_yields_one_row(self, trackers):
        def create(_):
            return trackers.get_or_create(REF, MetricType.DISK, "disk_usage_percent").id

        with ThreadPoolExecutor(max_workers=8) as pool:
            ids = set(pool.map(create, range(32)))

        assert len(ids) == 1
        assert trackers.count() == 1


class TestSave:
    def test_round_trips_counter_state(self, trackers):
        tracker = trackers.get_or_create(REF, MetricType.CPU, "cpu_usage_percent")
        tracker.record_violation(91.0, T0)
        tracker.record_violation(92.0, T0 + minutes(1))
        tracker.last_alert_sent_at = T0 + minutes(1)
        trackers.save(tracker)

        stored = trackers.get(REF, MetricType.CPU, "cpu_usage_percent")
        assert stored.consecutive_violations == 2
        assert stored.last_measured_value == 92.0
        assert stored.last_violation_time == T0 + minutes(1)
        assert stored.last_alert_sent_at == T0 + minutes(1)

    def test_reset_keeps_last_alert_time(self, trackers):
        tracker = trackers.get_or_create(REF, MetricType.CPU, "cpu_usage_percent")
        tracker.record_violation(95.0, T0)
        tracker.last_alert_sent_at = T0
        tracker.reset()
        trackers.save(tracker)

        stored = trackers.get(REF, MetricType.CPU, "cpu_usage_percent")
        assert stored.consecutive_violations == 0
        assert stored.last_alert_sent_at == T0

    def test_get_missing_returns_none(self, trackers):
        assert trackers.get(REF, MetricType.CPU, "nope") is None


class TestListing:
    def test_list_for_target_is_scoped(self, trackers):
        trackers.get_or_create(REF, MetricType.CPU, "cpu_usage_percent")
        trackers.get_or_create(REF, MetricType.MEMORY, "memory_usage_percent")
        trackers.get_or_create(TargetRef(TargetType.EQUIPMENT, 8), MetricType.CPU, "cpu_usage_percent")

        listed = trackers.list_for_target(REF)
        assert [t.metric_name for t in listed] == ["cpu_usage_percent", "memory_usage_percent"]
        assert all(t.target == REF for t in listed)
