#!/usr/bin/env python3
"""
Pod Watchdog - Main Application
"""

import signal
import sys
import threading

from .config import load_config
from .exceptions import ConfigurationError
from .http_server import HealthServer
from .kubernetes_client import KubernetesClient
from .logger import get_logger, setup_logging
from .monitor import PodMonitor
from .scheduler import Scheduler

SHUTDOWN_TIMEOUT_SECONDS = 15


def wait_for_signal(stop_event: threading.Event) -> None:
    """Block until SIGINT or SIGTERM is received"""

    def handle(signum, _frame):
        stop_event.set()

    signal.signal(signal.SIGINT, handle)
    signal.signal(signal.SIGTERM, handle)

    while not stop_event.wait(1.0):
        pass


def main() -> int:
    """Main application entry point"""
    logger = get_logger("main")

    try:
        config = load_config()
    except ConfigurationError as e:
        logger.error("Invalid configuration", error=str(e))
        return 1

    setup_logging(config.logging)
    logger.info("Pod Watchdog starting up", config=config.to_dict())

    try:
        k8s_client = KubernetesClient(kube_config_path=config.kube_config_path)
    except ConfigurationError as e:
        logger.error("Application failed to start", error=str(e))
        return 1

    if not k8s_client.test_connection():
        logger.warning("Continuing with limited functionality...")

    monitor = PodMonitor(k8s_client, config.watchdog)

    # Run once and exit (for local testing or a CronJob)
    if config.run_once:
        logger.info("Running in single execution mode")
        monitor.run()
        return 0

    http_server = HealthServer(config.http)
    scheduler = Scheduler(monitor, config.watchdog.schedule_interval)

    try:
        http_server.start()
    except OSError as e:
        logger.error("Failed to start HTTP server", error=str(e))
        return 1

    scheduler.start()

    try:
        wait_for_signal(threading.Event())
        logger.info("Received shutdown signal, shutting down...")
    finally:
        scheduler.shutdown()
        http_server.shutdown()
        if not scheduler.join(SHUTDOWN_TIMEOUT_SECONDS):
            logger.warning("Monitoring cycle still in progress at exit")

    return 0


if __name__ == "__main__":
    sys.exit(main())
