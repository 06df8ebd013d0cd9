"""
Domain Errors
Raised by the stores and services, translated to HTTP errors by the routers.
"""


class MonitoringError(Exception):
    """Base class for alert engine errors"""


class AlertNotFoundError(MonitoringError):
    def __init__(self, alert_id: int):
        super().__init__(f"Alert not found: {alert_id}")
        self.alert_id = alert_id


class TargetNotFoundError(MonitoringError):
    def __init__(self, target):
        super().__init__(f"Target not found: {target}")
        self.target = target


class InvalidSettingsError(MonitoringError, ValueError):
    """Alert settings failed validation"""


class DeliveryError(MonitoringError):
    """A subscriber channel refused an event"""
