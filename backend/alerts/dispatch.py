"""
Alert Dispatch
Maps incoming metric samples to per-stream evaluations on a bounded worker pool.

Each entry point looks its target up, skips unknown or unmonitored targets
before touching any tracker, skips metrics without a value or warning
threshold, and logs rather than raises on failure.

Usage:
    dispatcher = AlertDispatcher(engine, directory, workers=8)
    dispatcher.submit(SystemMetric(equipment_id=7, cpu_idle=4.0))
    dispatcher.shutdown()
"""

import logging
from concurrent.futures import Future, ThreadPoolExecutor
from datetime import datetime
from typing import List, Optional

from core import (
    TargetType,
    MetricType,
    MonitoredTarget,
    TargetDirectory,
    MetricSample,
    SystemMetric,
    DiskMetric,
    NetworkMetric,
    EnvironmentMetric,
    ServerRoomStatistics,
    DataCenterStatistics,
)

from .engine import AlertEngine, EvaluationResult
from .evaluator import Bound

logger = logging.getLogger(__name__)


# Statistics metric name → (metric type, sample attribute)
STATISTICS_METRICS = (
    ("avg_cpu", MetricType.CPU, "avg_cpu_usage"),
    ("avg_memory", MetricType.MEMORY, "avg_memory_usage"),
    ("avg_disk", MetricType.DISK, "avg_disk_usage"),
    ("avg_temperature", MetricType.TEMPERATURE, "avg_temperature"),
)


def _rate(part: Optional[int], total: Optional[int]) -> Optional[float]:
    """Percent of packets; None when the counters can't give a rate"""
    if part is None or total is None or total <= 0:
        return None
    return part / total * 100.0


class AlertDispatcher:
    def __init__(
        self,
        engine: AlertEngine,
        directory: TargetDirectory,
        workers: int = 8,
    ):
        self._engine = engine
        self._directory = directory
        self._workers = workers
        self._executor = ThreadPoolExecutor(max_workers=workers, thread_name_prefix="alert-eval")
        self._submitted = 0

    @property
    def engine(self) -> AlertEngine:
        return self._engine

    # =========================================================================
    # Worker pool
    # =========================================================================

    def submit(self, sample: MetricSample) -> Future:
        """Queue a sample for evaluation. The future resolves to its results."""
        handler = self._handler_for(sample)
        self._submitted += 1
        return self._executor.submit(handler, sample)

    def _handler_for(self, sample: MetricSample):
        handlers = {
            SystemMetric: self.evaluate_system_metric,
            DiskMetric: self.evaluate_disk_metric,
            NetworkMetric: self.evaluate_network_metric,
            EnvironmentMetric: self.evaluate_environment_metric,
            ServerRoomStatistics: self.evaluate_server_room_statistics,
            DataCenterStatistics: self.evaluate_data_center_statistics,
        }
        for sample_type, handler in handlers.items():
            if isinstance(sample, sample_type):
                return handler
        raise TypeError(f"Unsupported sample type: {type(sample).__name__}")

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)

    def stats(self) -> dict:
        return {"workers": self._workers, "submitted": self._submitted}

    # =========================================================================
    # Helpers
    # =========================================================================

    def _lookup(self, target_type: TargetType, target_id: Optional[int]) -> Optional[MonitoredTarget]:
        if target_id is None:
            return None
        target = self._directory.get(target_type, target_id)
        if target is None:
            logger.debug("Unknown target, skipping: %s:%s", target_type.value, target_id)
            return None
        if not target.monitoring_enabled:
            return None
        return target

    def _evaluate_threshold(
        self,
        target: MonitoredTarget,
        metric_type: MetricType,
        metric_name: str,
        value: Optional[float],
        sample_time: datetime,
        bound: Bound = Bound.UPPER,
    ) -> Optional[EvaluationResult]:
        thresholds = target.threshold(metric_name)
        if value is None or thresholds.warning is None:
            return None
        return self._engine.evaluate(
            target, metric_type, metric_name, value,
            thresholds.warning, thresholds.critical, sample_time, bound,
        )

    @staticmethod
    def _collect(*results: Optional[EvaluationResult]) -> List[EvaluationResult]:
        return [r for r in results if r is not None]

    # =========================================================================
    # Equipment
    # =========================================================================

    def evaluate_system_metric(self, metric: SystemMetric) -> List[EvaluationResult]:
        """CPU (100 - idle) and memory usage"""
        try:
            target = self._lookup(TargetType.EQUIPMENT, metric.equipment_id)
            if target is None:
                return []

            cpu_usage = None if metric.cpu_idle is None else 100.0 - metric.cpu_idle
            return self._collect(
                self._evaluate_threshold(
                    target, MetricType.CPU, "cpu_usage_percent",
                    cpu_usage, metric.generate_time,
                ),
                self._evaluate_threshold(
                    target, MetricType.MEMORY, "memory_usage_percent",
                    metric.used_memory_percentage, metric.generate_time,
                ),
            )
        except Exception:
            logger.exception("System metric evaluation failed: equipment_id=%s", metric.equipment_id)
            return []

    def evaluate_disk_metric(self, metric: DiskMetric) -> List[EvaluationResult]:
        try:
            target = self._lookup(TargetType.EQUIPMENT, metric.equipment_id)
            if target is None:
                return []

            return self._collect(
                self._evaluate_threshold(
                    target, MetricType.DISK, "disk_usage_percent",
                    metric.used_percentage, metric.generate_time,
                ),
            )
        except Exception:
            logger.exception("Disk metric evaluation failed: equipment_id=%s", metric.equipment_id)
            return []

    def evaluate_network_metric(self, metric: NetworkMetric) -> List[EvaluationResult]:
        """
        RX/TX error and drop rates for one NIC.

        Thresholds come from the global alert settings, not the equipment.
        Each rate is its own stream, e.g. ``rx_error_rate_eth0``.
        """
        try:
            target = self._lookup(TargetType.EQUIPMENT, metric.equipment_id)
            if target is None:
                return []

            settings = self._engine.settings.get()
            nic_target = MonitoredTarget(
                ref=target.ref,
                name=f"{target.name} [{metric.nic_name}]",
                monitoring_enabled=True,
            )
            rates = (
                ("rx_error_rate", _rate(metric.in_error_pkts_tot, metric.in_pkts_tot),
                 settings.network_error_rate_warning, settings.network_error_rate_critical),
                ("tx_error_rate", _rate(metric.out_error_pkts_tot, metric.out_pkts_tot),
                 settings.network_error_rate_warning, settings.network_error_rate_critical),
                ("rx_drop_rate", _rate(metric.in_discard_pkts_tot, metric.in_pkts_tot),
                 settings.network_drop_rate_warning, settings.network_drop_rate_critical),
                ("tx_drop_rate", _rate(metric.out_discard_pkts_tot, metric.out_pkts_tot),
                 settings.network_drop_rate_warning, settings.network_drop_rate_critical),
            )

            results = []
            for base_name, rate, warning, critical in rates:
                if rate is None:
                    continue
                results.append(self._engine.evaluate(
                    nic_target, MetricType.NETWORK, f"{base_name}_{metric.nic_name}",
                    rate, warning, critical, metric.generate_time,
                ))
            return self._collect(*results)
        except Exception:
            logger.exception("Network metric evaluation failed: equipment_id=%s", metric.equipment_id)
            return []

    # =========================================================================
    # Rack
    # =========================================================================

    def evaluate_environment_metric(self, metric: EnvironmentMetric) -> List[EvaluationResult]:
        """Temperature ceiling plus independent humidity floor and ceiling"""
        try:
            target = self._lookup(TargetType.RACK, metric.rack_id)
            if target is None:
                return []

            return self._collect(
                self._evaluate_threshold(
                    target, MetricType.TEMPERATURE, "temperature",
                    metric.temperature, metric.generate_time,
                ),
                self._evaluate_threshold(
                    target, MetricType.HUMIDITY, "humidity_min",
                    metric.humidity, metric.generate_time, Bound.LOWER,
                ),
                self._evaluate_threshold(
                    target, MetricType.HUMIDITY, "humidity_max",
                    metric.humidity, metric.generate_time, Bound.UPPER,
                ),
            )
        except Exception:
            logger.exception("Environment metric evaluation failed: rack_id=%s", metric.rack_id)
            return []

    # =========================================================================
    # Aggregates
    # =========================================================================

    def _evaluate_statistics(self, target: MonitoredTarget, stats) -> List[EvaluationResult]:
        # generate_time defaults to arrival time for snapshots
        return self._collect(*(
            self._evaluate_threshold(target, metric_type, name, getattr(stats, attr), stats.generate_time)
            for name, metric_type, attr in STATISTICS_METRICS
        ))

    def evaluate_server_room_statistics(self, stats: ServerRoomStatistics) -> List[EvaluationResult]:
        try:
            target = self._lookup(TargetType.SERVER_ROOM, stats.server_room_id)
            if target is None:
                return []
            return self._evaluate_statistics(target, stats)
        except Exception:
            logger.exception("Server room statistics evaluation failed: server_room_id=%s",
                             stats.server_room_id)
            return []

    def evaluate_data_center_statistics(self, stats: DataCenterStatistics) -> List[EvaluationResult]:
        try:
            target = self._lookup(TargetType.DATA_CENTER, stats.data_center_id)
            if target is None:
                return []
            return self._evaluate_statistics(target, stats)
        except Exception:
            logger.exception("Data center statistics evaluation failed: data_center_id=%s",
                             stats.data_center_id)
            return []
