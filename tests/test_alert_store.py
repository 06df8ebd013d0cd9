"""Tests for AlertRecordStore."""

import sqlite3

import pytest

from alerts import AlertRecord
from core import (
    TargetRef,
    TargetType,
    MetricType,
    AlertLevel,
    AlertStatus,
    AlertNotFoundError,
)

from conftest import T0, NOW, minutes


REF = TargetRef(TargetType.EQUIPMENT, 7)


def make_record(
    target: TargetRef = REF,
    metric_type: MetricType = MetricType.CPU,
    metric_name: str = "cpu_usage_percent",
    level: AlertLevel = AlertLevel.CRITICAL,
    triggered_at=T0,
) -> AlertRecord:
    return AlertRecord(
        target=target,
        target_name="web-01",
        metric_type=metric_type,
        metric_name=metric_name,
        level=level,
        measured_value=95.0,
        threshold_value=90.0,
        triggered_at=triggered_at,
        message="test",
    )


# ---------------------------------------------------------------------------
# Create / get
# ---------------------------------------------------------------------------


class TestCreate:
    def test_create_assigns_id(self, alert_store):
        record = make_record()
        alert_id = alert_store.create(record)

        assert alert_id == record.id
        stored = alert_store.get(alert_id)
        assert stored.status == AlertStatus.TRIGGERED
        assert stored.level == AlertLevel.CRITICAL
        assert stored.target == REF
        assert stored.triggered_at == T0
        assert stored.is_read is False

    def test_get_missing_raises(self, alert_store):
        with pytest.raises(AlertNotFoundError):
            alert_store.get(999)

    def test_record_alert_persists_tracker_too(self, alert_store, trackers):
        tracker = trackers.get_or_create(REF, MetricType.CPU, "cpu_usage_percent")
        tracker.record_violation(95.0, T0)
        tracker.last_alert_sent_at = T0

        alert_id = alert_store.record_alert(make_record(), tracker)

        assert alert_store.get(alert_id).id == alert_id
        stored = trackers.get(REF, MetricType.CPU, "cpu_usage_percent")
        assert stored.last_alert_sent_at == T0

    def test_record_alert_rolls_back_on_failure(self, alert_store, trackers):
        tracker = trackers.get_or_create(REF, MetricType.CPU, "cpu_usage_percent")
        tracker.last_alert_sent_at = T0
        broken = make_record()
        broken.metric_name = None  # NOT NULL column

        with pytest.raises(sqlite3.IntegrityError):
            alert_store.record_alert(broken, tracker)

        assert alert_store.list_alerts() == []
        assert trackers.get(REF, MetricType.CPU, "cpu_usage_percent").last_alert_sent_at is None


# ---------------------------------------------------------------------------
# Lifecycle
# ---------------------------------------------------------------------------


class TestLifecycle:
    def test_resolve_sets_fields(self, alert_store):
        record = make_record()
        alert_store.create(record)

        alert_store.resolve(record, "ops", now=NOW)

        stored = alert_store.get(record.id)
        assert stored.status == AlertStatus.RESOLVED
        assert stored.resolved_at == NOW
        assert stored.resolved_by == "ops"

    def test_resolve_is_idempotent(self, alert_store):
        record = make_record()
        alert_store.create(record)
        alert_store.resolve(record, now=NOW)

        # A stale copy must not overwrite the first resolution
        stale = alert_store.get(record.id)
        stale.status = AlertStatus.TRIGGERED
        alert_store.resolve(stale, "someone-else", now=NOW + minutes(5))

        stored = alert_store.get(record.id)
        assert stored.resolved_at == NOW
        assert stored.resolved_by is None
        assert stale.resolved_by is None

    def test_acknowledge_only_from_triggered(self, alert_store):
        record = make_record()
        alert_store.create(record)

        alert_store.acknowledge(record, "alice", now=NOW)
        assert alert_store.get(record.id).status == AlertStatus.ACKNOWLEDGED
        assert alert_store.get(record.id).acknowledged_by == "alice"

        alert_store.resolve(record, now=NOW)
        alert_store.acknowledge(record, "bob", now=NOW)
        stored = alert_store.get(record.id)
        assert stored.status == AlertStatus.RESOLVED
        assert stored.acknowledged_by == "alice"


# ---------------------------------------------------------------------------
# find_active scoping
# ---------------------------------------------------------------------------


class TestFindActive:
    def test_scoped_to_exact_stream(self, alert_store):
        mine = make_record()
        acked = make_record(triggered_at=T0 + minutes(15))
        other_metric = make_record(metric_type=MetricType.MEMORY, metric_name="memory_usage_percent")
        other_target = make_record(target=TargetRef(TargetType.EQUIPMENT, 8))
        other_type = make_record(target=TargetRef(TargetType.RACK, 7))
        resolved = make_record()
        for r in (mine, acked, other_metric, other_target, other_type, resolved):
            alert_store.create(r)
        alert_store.acknowledge(acked)
        alert_store.resolve(resolved)

        active = alert_store.find_active(REF, MetricType.CPU, "cpu_usage_percent")

        assert [r.id for r in active] == [mine.id, acked.id]

    def test_metric_name_separates_humidity_streams(self, alert_store):
        rack = TargetRef(TargetType.RACK, 3)
        low = make_record(target=rack, metric_type=MetricType.HUMIDITY, metric_name="humidity_min")
        high = make_record(target=rack, metric_type=MetricType.HUMIDITY, metric_name="humidity_max")
        alert_store.create(low)
        alert_store.create(high)

        active = alert_store.find_active(rack, MetricType.HUMIDITY, "humidity_min")
        assert [r.id for r in active] == [low.id]


# ---------------------------------------------------------------------------
# Listing, read state, deletion, statistics
# ---------------------------------------------------------------------------


class TestQueries:
    def test_list_most_recent_first_with_filters(self, alert_store):
        first = make_record(level=AlertLevel.WARNING, triggered_at=T0)
        second = make_record(triggered_at=T0 + minutes(20))
        rack = make_record(target=TargetRef(TargetType.RACK, 1), triggered_at=T0 + minutes(40))
        for r in (first, second, rack):
            alert_store.create(r)

        assert [r.id for r in alert_store.list_alerts()] == [rack.id, second.id, first.id]
        assert [r.id for r in alert_store.list_alerts(target=REF)] == [second.id, first.id]
        assert [r.id for r in alert_store.list_alerts(target_type=TargetType.RACK)] == [rack.id]
        assert [r.id for r in alert_store.list_alerts(level=AlertLevel.WARNING)] == [first.id]
        assert [r.id for r in alert_store.list_alerts(since=T0 + minutes(10))] == [rack.id, second.id]
        assert [r.id for r in alert_store.list_alerts(limit=1, offset=1)] == [second.id]

    def test_mark_as_read_and_unread_count(self, alert_store):
        records = [make_record() for _ in range(3)]
        for r in records:
            alert_store.create(r)
        assert alert_store.count_unread() == 3

        assert alert_store.mark_as_read([records[0].id, records[1].id], now=NOW) == 2
        assert alert_store.mark_as_read([records[0].id]) == 0
        assert alert_store.count_unread() == 1
        assert alert_store.get(records[0].id).read_at == NOW

        assert alert_store.mark_all_as_read() == 1
        assert alert_store.count_unread() == 0

    def test_delete(self, alert_store):
        records = [make_record() for _ in range(3)]
        for r in records:
            alert_store.create(r)

        assert alert_store.delete([]) == 0
        assert alert_store.delete([records[0].id]) == 1
        assert len(alert_store.list_alerts()) == 2
        assert alert_store.delete() == 2
        assert alert_store.list_alerts() == []

    def test_statistics(self, alert_store):
        a = make_record(level=AlertLevel.WARNING)
        b = make_record()
        c = make_record(target=TargetRef(TargetType.SERVER_ROOM, 2))
        for r in (a, b, c):
            alert_store.create(r)
        alert_store.acknowledge(b)
        alert_store.resolve(c)

        stats = alert_store.statistics()

        assert stats["total_alerts"] == 3
        assert stats["active_alerts"] == 2
        assert stats["by_status"] == {"TRIGGERED": 1, "ACKNOWLEDGED": 1, "RESOLVED": 1}
        assert stats["by_level"] == {"WARNING": 1, "CRITICAL": 2}
        assert stats["by_target_type"] == {
            "EQUIPMENT": 2,
            "RACK": 0,
            "SERVER_ROOM": 1,
            "DATA_CENTER": 0,
        }

    def test_statistics_empty(self, alert_store):
        stats = alert_store.statistics()
        assert stats["total_alerts"] == 0
        assert stats["active_alerts"] == 0
        assert set(stats["by_status"].values()) == {0}
