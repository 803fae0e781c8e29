"""
Health and metrics endpoints

``/healthz`` and ``/readyz`` always answer ``OK``; no dependencies are probed.
``/metrics`` serves the Prometheus exposition of the default registry.
"""

import threading
from typing import Optional
from wsgiref.simple_server import WSGIRequestHandler, make_server

from prometheus_client import REGISTRY, make_wsgi_app
from prometheus_client.exposition import ThreadingWSGIServer

from .config import HttpConfig
from .logger import get_logger

logger = get_logger(__name__)

HEALTH_PATHS = ("/healthz", "/readyz")


class _HealthWSGIServer(ThreadingWSGIServer):
    """One daemon thread per connection; idle clients time out"""

    request_timeout: Optional[float] = None

    def handle_error(self, request, client_address):
        logger.debug("HTTP connection dropped", client=client_address[0], exc_info=True)


class _SilentHandler(WSGIRequestHandler):
    def setup(self):
        self.timeout = self.server.request_timeout
        super().setup()

    def log_message(self, format, *args):
        logger.debug("HTTP request", request=format % args)


def make_app(registry=REGISTRY):
    """Build the WSGI application serving health and metrics routes"""
    metrics_app = make_wsgi_app(registry)

    def app(environ, start_response):
        path = environ.get("PATH_INFO", "")
        if path in HEALTH_PATHS:
            start_response("200 OK", [("Content-Type", "text/plain")])
            return [b"OK"]
        if path == "/metrics":
            return metrics_app(environ, start_response)
        start_response("404 Not Found", [("Content-Type", "text/plain")])
        return [b"Not Found"]

    return app


class HealthServer:
    def __init__(self, config: HttpConfig, registry=REGISTRY):
        self.config = config
        self.app = make_app(registry)
        self._server: Optional[_HealthWSGIServer] = None
        self._thread: Optional[threading.Thread] = None

    @property
    def port(self) -> Optional[int]:
        if self._server is None:
            return None
        return self._server.server_port

    def start(self) -> None:
        self._server = make_server(
            self.config.host,
            self.config.port,
            self.app,
            server_class=_HealthWSGIServer,
            handler_class=_SilentHandler,
        )
        self._server.request_timeout = self.config.read_timeout.total_seconds()
        self._thread = threading.Thread(
            target=self._server.serve_forever, name="pod-watchdog-http", daemon=True
        )
        self._thread.start()
        logger.info("Starting HTTP server", host=self.config.host, port=self.port)

    def shutdown(self) -> None:
        if self._server is None:
            return
        logger.info("Shutting down HTTP server")
        self._server.shutdown()
        self._server.server_close()
        self._server = None
