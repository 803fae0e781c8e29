"""
Exception types raised by Pod Watchdog
"""


class WatchdogError(Exception):
    """Base class for watchdog errors"""


class ConfigurationError(WatchdogError):
    """Raised when the configuration cannot be loaded or is invalid"""


class TTLParseError(WatchdogError):
    """Raised when a pod's TTL label does not hold a numeric Unix timestamp"""

    def __init__(self, namespace, pod_name, label, value):
        self.namespace = namespace
        self.pod_name = pod_name
        self.label = label
        self.value = value
        super().__init__(
            f"Pod {namespace}/{pod_name} has non-numeric value {value!r} for TTL label {label!r}"
        )


class SchedulerError(WatchdogError):
    """Raised on an invalid scheduler state transition"""
