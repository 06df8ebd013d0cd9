"""
Core Module
Domain types shared by persistence, alerting and the API.

Exports:
    Enums: TargetType, MetricType, AlertLevel, AlertStatus
    Identity: TargetRef, MonitoredTarget, ThresholdPair, TargetDirectory
    Samples: SystemMetric, DiskMetric, NetworkMetric, EnvironmentMetric,
             ServerRoomStatistics, DataCenterStatistics
    Errors: MonitoringError, AlertNotFoundError, TargetNotFoundError,
            InvalidSettingsError, DeliveryError
"""

from .models import (
    TargetType,
    MetricType,
    AlertLevel,
    AlertStatus,
    TargetRef,
    MetricSample,
    SystemMetric,
    DiskMetric,
    NetworkMetric,
    EnvironmentMetric,
    ServerRoomStatistics,
    DataCenterStatistics,
)

from .targets import MonitoredTarget, ThresholdPair, TargetDirectory

from .errors import (
    MonitoringError,
    AlertNotFoundError,
    TargetNotFoundError,
    InvalidSettingsError,
    DeliveryError,
)

__all__ = [
    # Enums
    "TargetType",
    "MetricType",
    "AlertLevel",
    "AlertStatus",
    # Identity
    "TargetRef",
    "MonitoredTarget",
    "ThresholdPair",
    "TargetDirectory",
    # Samples
    "MetricSample",
    "SystemMetric",
    "DiskMetric",
    "NetworkMetric",
    "EnvironmentMetric",
    "ServerRoomStatistics",
    "DataCenterStatistics",
    # Errors
    "MonitoringError",
    "AlertNotFoundError",
    "TargetNotFoundError",
    "InvalidSettingsError",
    "DeliveryError",
]
