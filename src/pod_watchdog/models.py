"""
Data types shared between the cluster client and the monitor
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict


@dataclass(frozen=True)
class PodSnapshot:
    """Point-in-time view of a pod, fetched fresh every cycle"""

    name: str
    namespace: str
    creation_timestamp: datetime
    labels: Dict[str, str] = field(default_factory=dict)

    @property
    def key(self) -> str:
        return f"{self.namespace}/{self.name}"

    @classmethod
    def from_k8s(cls, pod) -> "PodSnapshot":
        """Build a snapshot from a kubernetes V1Pod"""
        created = pod.metadata.creation_timestamp
        if created.tzinfo is None:
            created = created.replace(tzinfo=timezone.utc)
        return cls(
            name=pod.metadata.name,
            namespace=pod.metadata.namespace,
            creation_timestamp=created,
            labels=dict(pod.metadata.labels or {}),
        )
