"""
Services
Live push of alert lifecycle events to dashboard clients.
"""

from .notifier import (
    AlertNotifier,
    Subscription,
    ChannelEvent,
    get_notifier,
    target_topic,
    ALL_TOPIC,
    CONNECTED,
    ALERT_TRIGGERED,
    ALERT_ACKNOWLEDGED,
    ALERT_RESOLVED,
)

__all__ = [
    "AlertNotifier",
    "Subscription",
    "ChannelEvent",
    "get_notifier",
    "target_topic",
    "ALL_TOPIC",
    "CONNECTED",
    "ALERT_TRIGGERED",
    "ALERT_ACKNOWLEDGED",
    "ALERT_RESOLVED",
]
