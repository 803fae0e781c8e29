import socket
import urllib.error
import urllib.request
from datetime import timedelta

import pytest
from prometheus_client import CollectorRegistry, Counter

from pod_watchdog import metrics
from pod_watchdog.config import HttpConfig
from pod_watchdog.http_server import HealthServer


@pytest.fixture
def registry():
    registry = CollectorRegistry()
    Counter("pods_examined_total", "Total number of pods examined", registry=registry).inc(3)
    return registry


@pytest.fixture
def server(registry):
    server = HealthServer(HttpConfig(host="127.0.0.1", port=0), registry=registry)
    server.start()
    yield server
    server.shutdown()


def get(server, path):
    return urllib.request.urlopen(f"http://127.0.0.1:{server.port}{path}", timeout=5)


@pytest.mark.parametrize("path", ["/healthz", "/readyz"])
def test_health_endpoints_return_ok(server, path):
    with get(server, path) as response:
        assert response.status == 200
        assert response.headers["Content-Type"] == "text/plain"
        assert response.read() == b"OK"


def test_metrics_endpoint(server):
    with get(server, "/metrics") as response:
        body = response.read().decode()

    assert response.status == 200
    assert "pods_examined_total 3.0" in body


def test_unknown_path_is_not_found(server):
    with pytest.raises(urllib.error.HTTPError) as excinfo:
        get(server, "/nope")

    assert excinfo.value.code == 404


def test_shutdown_is_idempotent(registry):
    server = HealthServer(HttpConfig(host="127.0.0.1", port=0), registry=registry)
    server.start()
    assert server.port

    server.shutdown()
    server.shutdown()
    assert server.port is None


def test_idle_connection_does_not_block_health(server):
    with socket.create_connection(("127.0.0.1", server.port)):
        with get(server, "/healthz") as response:
            assert response.status == 200
            assert response.read() == b"OK"


def test_idle_connection_is_closed_after_read_timeout(registry):
    config = HttpConfig(host="127.0.0.1", port=0, read_timeout=timedelta(milliseconds=200))
    server = HealthServer(config, registry=registry)
    server.start()
    try:
        with socket.create_connection(("127.0.0.1", server.port), timeout=5) as idle:
            assert idle.recv(1) == b""
    finally:
        server.shutdown()


def test_default_registry_exposes_watchdog_metrics():
    metrics.pods_examined_total.inc(0)
    metrics.pods_terminated_total.labels(namespace="exposition", dry_run="true").inc()
    metrics.pods_terminated_by_age_total.labels(namespace="exposition").inc()
    metrics.monitoring_duration_seconds.observe(0.2)

    server = HealthServer(HttpConfig(host="127.0.0.1", port=0))
    server.start()
    try:
        with get(server, "/metrics") as response:
            body = response.read().decode()
    finally:
        server.shutdown()

    for name in (
        "pods_terminated_total",
        "pods_examined_total",
        "pods_terminated_by_age_total",
        "monitoring_duration_seconds_bucket",
    ):
        assert name in body
    assert 'monitoring_duration_seconds_bucket{le="30.0"}' in body
