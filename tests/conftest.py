from datetime import datetime, timedelta, timezone

import pytest
from prometheus_client import REGISTRY

from pod_watchdog.models import PodSnapshot

NOW = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


def make_pod(name="pod", namespace="default", age=timedelta(), labels=None, now=NOW):
    return PodSnapshot(
        name=name,
        namespace=namespace,
        creation_timestamp=now - age,
        labels=labels or {},
    )


def metric_value(name, labels=None):
    return REGISTRY.get_sample_value(name, labels or {}) or 0.0


class FakeKubernetesClient:
    """In-memory stand-in for KubernetesClient"""

    def __init__(self, pods=None, list_errors=None, delete_errors=None):
        self.pods = pods or {}
        self.list_errors = list_errors or {}
        self.delete_errors = delete_errors or {}
        self.list_calls = []
        self.deleted = []

    def list_pods(self, namespace, label_selector=""):
        self.list_calls.append((namespace, label_selector))
        if namespace in self.list_errors:
            raise self.list_errors[namespace]
        return list(self.pods.get(namespace, []))

    def delete_pod(self, namespace, name):
        if (namespace, name) in self.delete_errors:
            raise self.delete_errors[(namespace, name)]
        self.deleted.append((namespace, name))


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def clock():
    return lambda: NOW
