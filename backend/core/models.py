"""
Domain Models
Shared enums, target identity and the metric sample contracts.

Samples arrive from the metric producers already parsed into these types.
The alert layer never sees raw exporter payloads.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_validator


# =============================================================================
# Enums
# =============================================================================

class TargetType(str, Enum):
    """Kind of monitored entity an alert refers to"""
    EQUIPMENT = "EQUIPMENT"
    RACK = "RACK"
    SERVER_ROOM = "SERVER_ROOM"
    DATA_CENTER = "DATA_CENTER"

    @property
    def label(self) -> str:
        return _TARGET_LABELS[self]

    @property
    def topic_prefix(self) -> str:
        return _TARGET_TOPICS[self]

    @classmethod
    def parse(cls, value: str) -> "TargetType":
        """Accepts enum names (SERVER_ROOM) and topic prefixes (serverroom)"""
        normalized = value.strip().lower()
        for target_type, topic in _TARGET_TOPICS.items():
            if normalized in (topic, target_type.value.lower()):
                return target_type
        raise ValueError(f"Unknown target type: {value}")


_TARGET_LABELS = {
    TargetType.EQUIPMENT: "Equipment",
    TargetType.RACK: "Rack",
    TargetType.SERVER_ROOM: "Server Room",
    TargetType.DATA_CENTER: "Data Center",
}

_TARGET_TOPICS = {
    TargetType.EQUIPMENT: "equipment",
    TargetType.RACK: "rack",
    TargetType.SERVER_ROOM: "serverroom",
    TargetType.DATA_CENTER: "datacenter",
}


class MetricType(str, Enum):
    """Monitored metric families"""
    CPU = "CPU"
    MEMORY = "MEMORY"
    DISK = "DISK"
    TEMPERATURE = "TEMPERATURE"
    HUMIDITY = "HUMIDITY"
    NETWORK = "NETWORK"

    @property
    def label(self) -> str:
        return "CPU" if self is MetricType.CPU else self.value.capitalize()


class AlertLevel(str, Enum):
    """Alert severity levels"""
    WARNING = "WARNING"
    CRITICAL = "CRITICAL"


class AlertStatus(str, Enum):
    """Alert record lifecycle"""
    TRIGGERED = "TRIGGERED"
    ACKNOWLEDGED = "ACKNOWLEDGED"
    RESOLVED = "RESOLVED"


# =============================================================================
# Target identity
# =============================================================================

@dataclass(frozen=True)
class TargetRef:
    """
    Identity of a monitored entity.

    One value object instead of a nullable id column per target type.
    """
    target_type: TargetType
    target_id: int

    @property
    def topic(self) -> str:
        """Fan-out topic scoped to this target, e.g. ``equipment-7``"""
        return f"{self.target_type.topic_prefix}-{self.target_id}"

    def __str__(self) -> str:
        return f"{self.target_type.value}:{self.target_id}"


# =============================================================================
# Metric samples
# =============================================================================

def _parse_time(v):
    """Every sample time ends up naive local time, like datetime.now()"""
    if isinstance(v, str):
        v = datetime.fromisoformat(v.replace('Z', '+00:00'))
    elif isinstance(v, (int, float)):
        # Unix timestamp (seconds or milliseconds)
        if v > 1e12:
            return datetime.fromtimestamp(v / 1000)
        return datetime.fromtimestamp(v)
    if isinstance(v, datetime) and v.tzinfo is not None:
        v = v.astimezone().replace(tzinfo=None)
    return v


class MetricSample(BaseModel):
    """Base for every sample shape; carries the sample time"""
    generate_time: datetime = Field(default_factory=datetime.now)

    @field_validator('generate_time', mode='before')
    @classmethod
    def parse_generate_time(cls, v):
        """Handle ISO strings and unix timestamps"""
        return _parse_time(v)


class SystemMetric(MetricSample):
    """CPU and memory sample for one piece of equipment"""
    equipment_id: int
    cpu_idle: Optional[float] = Field(default=None, ge=0, le=100)
    used_memory_percentage: Optional[float] = Field(default=None, ge=0)


class DiskMetric(MetricSample):
    """Disk usage sample for one piece of equipment"""
    equipment_id: int
    used_percentage: Optional[float] = Field(default=None, ge=0)


class NetworkMetric(MetricSample):
    """Cumulative packet counters for one NIC"""
    equipment_id: int
    nic_name: str = Field(..., min_length=1)
    in_pkts_tot: Optional[int] = Field(default=None, ge=0)
    out_pkts_tot: Optional[int] = Field(default=None, ge=0)
    in_error_pkts_tot: Optional[int] = Field(default=None, ge=0)
    out_error_pkts_tot: Optional[int] = Field(default=None, ge=0)
    in_discard_pkts_tot: Optional[int] = Field(default=None, ge=0)
    out_discard_pkts_tot: Optional[int] = Field(default=None, ge=0)


class EnvironmentMetric(MetricSample):
    """Temperature and humidity sample for one rack"""
    rack_id: int
    temperature: Optional[float] = None
    humidity: Optional[float] = None


class ServerRoomStatistics(MetricSample):
    """Periodic averages across a server room"""
    server_room_id: int
    avg_cpu_usage: Optional[float] = None
    avg_memory_usage: Optional[float] = None
    avg_disk_usage: Optional[float] = None
    avg_temperature: Optional[float] = None


class DataCenterStatistics(MetricSample):
    """Periodic averages across a data center"""
    data_center_id: int
    avg_cpu_usage: Optional[float] = None
    avg_memory_usage: Optional[float] = None
    avg_disk_usage: Optional[float] = None
    avg_temperature: Optional[float] = None
