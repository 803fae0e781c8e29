"""
Aging policies deciding whether a pod has outlived its allowed lifetime.

Two policies exist:

* ``CreationPolicy`` measures age from the pod's creation timestamp.
* ``LabeledPolicy`` honours an expiry timestamp stored in a pod label, and
  still applies the creation age limit first so pods without the label, or
  with a label set too far in the future, are eventually removed.

A single policy is chosen per monitoring cycle with ``policy_from_config``.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timedelta
from typing import Optional

from .config import WatchdogConfig
from .exceptions import TTLParseError
from .logger import get_logger
from .models import PodSnapshot

logger = get_logger(__name__)


def parse_kill_time(value: str) -> Optional[float]:
    """Parse a Unix timestamp label value, or return None when malformed.

    Digit grouping with ``_`` and surrounding whitespace, which ``float()``
    tolerates, are rejected.
    """
    if "_" in value or any(ch.isspace() for ch in value):
        return None
    try:
        return float(value)
    except ValueError:
        return None


class AgingPolicy(ABC):
    name = "abstract"

    def __init__(self, max_lifetime: timedelta):
        self.max_lifetime = max_lifetime

    @abstractmethod
    def is_old(self, pod: PodSnapshot, now: datetime) -> bool:
        """Return True when the pod should be terminated.

        Raises:
            TTLParseError: the pod carries a TTL label that is not a number
        """

    def exceeds_lifetime(self, pod: PodSnapshot, now: datetime) -> bool:
        return (now - pod.creation_timestamp) > self.max_lifetime

    def __repr__(self):
        return f"{type(self).__name__}(max_lifetime={self.max_lifetime})"


class CreationPolicy(AgingPolicy):
    """Pods are old once they have existed longer than ``max_lifetime``"""

    name = "creation"

    def is_old(self, pod: PodSnapshot, now: datetime) -> bool:
        log = logger.bind(policy=self.name, namespace=pod.namespace, pod=pod.name)
        age = now - pod.creation_timestamp
        log.debug("Evaluating pod age", age=str(age), max_age=str(self.max_lifetime))

        if not self.exceeds_lifetime(pod, now):
            return False

        log.info("Pod exceeds maximum lifetime", age=str(age), max_age=str(self.max_lifetime))
        return True


class LabeledPolicy(AgingPolicy):
    """Pods are old once the Unix timestamp in ``ttl_label`` has passed"""

    name = "creation+label"

    def __init__(self, ttl_label: str, max_lifetime: timedelta):
        super().__init__(max_lifetime)
        self.ttl_label = ttl_label

    def is_old(self, pod: PodSnapshot, now: datetime) -> bool:
        log = logger.bind(
            policy=self.name, label=self.ttl_label, namespace=pod.namespace, pod=pod.name
        )
        age = now - pod.creation_timestamp
        log.debug(
            "Evaluating pod age",
            age=str(age),
            max_age=str(self.max_lifetime),
            labels=dict(pod.labels),
        )

        if self.exceeds_lifetime(pod, now):
            log.warning("Terminating pod by creation time", age=str(age))
            return True

        raw_kill_time = pod.labels.get(self.ttl_label)
        if raw_kill_time is None:
            log.warning("No TTL label on pod")
            return False

        kill_time = parse_kill_time(raw_kill_time)
        if kill_time is None:
            raise TTLParseError(pod.namespace, pod.name, self.ttl_label, raw_kill_time)

        if kill_time <= now.timestamp():
            log.info("Killing pod by TTL", kill_time=kill_time)
            return True
        return False

    def __repr__(self):
        return f"LabeledPolicy(ttl_label={self.ttl_label!r}, max_lifetime={self.max_lifetime})"


def policy_from_config(config: WatchdogConfig) -> AgingPolicy:
    if config.ttl_label == "":
        return CreationPolicy(config.max_pod_lifetime)
    return LabeledPolicy(config.ttl_label, config.max_pod_lifetime)
