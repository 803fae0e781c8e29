"""
Periodic driver for the pod monitor
"""

import enum
import threading
import time
from datetime import timedelta
from typing import Optional

from .exceptions import SchedulerError
from .logger import get_logger

logger = get_logger(__name__)


class SchedulerState(enum.Enum):
    CREATED = "created"
    RUNNING = "running"
    STOPPED = "stopped"


class Scheduler:
    """Runs ``monitor.run()`` every ``interval`` on a single background thread.

    Cycles never overlap: a cycle runs to completion before the next tick is
    considered, and ticks missed while a slow cycle runs are dropped.
    ``shutdown()`` may be called any number of times.
    """

    def __init__(self, monitor, interval: timedelta):
        if interval <= timedelta():
            raise SchedulerError("Schedule interval must be greater than zero")

        self.monitor = monitor
        self.interval = interval.total_seconds()
        self.state = SchedulerState.CREATED
        self.cycles_completed = 0

        self._stop_event = threading.Event()
        self._lock = threading.Lock()
        self._thread: Optional[threading.Thread] = None

    def start(self) -> None:
        with self._lock:
            if self.state is not SchedulerState.CREATED:
                raise SchedulerError(f"Cannot start scheduler in state {self.state.value}")
            self.state = SchedulerState.RUNNING
            self._thread = threading.Thread(target=self._loop, name="pod-watchdog-scheduler", daemon=True)
            self._thread.start()

        logger.info("Starting periodic monitoring", interval_seconds=self.interval)

    def shutdown(self) -> None:
        """Raise the stop signal and return without waiting for the loop"""
        with self._lock:
            if self.state is SchedulerState.STOPPED:
                return
            self.state = SchedulerState.STOPPED
            self._stop_event.set()

        logger.info("Monitoring stopped")

    def join(self, timeout: Optional[float] = None) -> bool:
        """Wait for the background thread; returns True once it has exited"""
        if self._thread is None:
            return True
        self._thread.join(timeout)
        return not self._thread.is_alive()

    @property
    def is_running(self) -> bool:
        return self.state is SchedulerState.RUNNING

    def _loop(self):
        next_tick = time.monotonic() + self.interval

        while not self._stop_event.wait(max(0.0, next_tick - time.monotonic())):
            # A shutdown that lands between the timer firing and the cycle
            # starting must win, so the check and the start share the lock
            with self._lock:
                if self._stop_event.is_set():
                    break
                logger.info("Starting scheduled monitoring check")

            self._run_cycle()

            next_tick += self.interval
            now = time.monotonic()
            if next_tick <= now:
                skipped = int((now - next_tick) // self.interval) + 1
                next_tick += skipped * self.interval
                logger.warning("Monitoring cycle overran the schedule interval", skipped_ticks=skipped)

        logger.info("Stopping monitoring")

    def _run_cycle(self):
        try:
            self.monitor.run()
        except Exception as e:
            logger.error("Scheduled monitoring run failed", error=str(e), exc_info=True)
        finally:
            self.cycles_completed += 1
