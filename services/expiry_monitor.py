"""
Expiry monitor: periodic background sweep.

Runs a callable on a fixed interval in a daemon thread until stopped.
The TicketStore owns one of these and points it at expire_overdue().

Usage:
    monitor = ExpiryMonitor(store.expire_overdue, interval_seconds=1.0)
    monitor.start()
    ...
    monitor.stop()   # joins the thread; no callbacks run after this returns
"""

from __future__ import annotations

import threading
from typing import Callable, Optional

from logging_config import get_logger, set_thread_name


logger = get_logger(__name__)


class ExpiryMonitor:
    """
    Ticker thread with a stop event as its cancellation token.

    Attributes:
        interval_seconds: Time between sweeps
        is_running: Whether the background thread is active
    """

    def __init__(self, sweep: Callable[[], object], interval_seconds: float = 1.0):
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")

        self._sweep = sweep
        self._interval = interval_seconds

        self._thread: Optional[threading.Thread] = None
        self._stop_event = threading.Event()
        self._is_running = False
        self._state_lock = threading.Lock()

        self._consecutive_failures = 0

    @property
    def is_running(self) -> bool:
        return self._is_running

    @property
    def interval_seconds(self) -> float:
        return self._interval

    def start(self) -> None:
        """
        Start the sweep thread.

        Safe to call multiple times - only starts if not already running.
        """
        with self._state_lock:
            if self._is_running:
                logger.warning("ExpiryMonitor already running")
                return

            self._stop_event.clear()
            self._thread = threading.Thread(
                target=self._run,
                name="ExpiryMonitor",
                daemon=True
            )
            self._is_running = True
            self._thread.start()

        logger.info(f"Expiry monitor started (interval: {self._interval}s)")

    def stop(self, timeout: float = 5.0) -> None:
        """
        Signal the thread to stop and wait for it.

        Safe to call multiple times.
        """
        with self._state_lock:
            if not self._is_running:
                return

            self._stop_event.set()
            thread = self._thread

            if thread and thread.is_alive() and thread is not threading.current_thread():
                thread.join(timeout=timeout)
                if thread.is_alive():
                    logger.warning("Expiry monitor thread did not stop cleanly")

            self._is_running = False
            self._thread = None

        logger.info("Expiry monitor stopped")

    def _run(self) -> None:
        set_thread_name("ExpiryMonitor")

        while not self._stop_event.wait(timeout=self._interval):
            self._tick()

    def _tick(self) -> None:
        try:
            self._sweep()
        except Exception as e:
            self._consecutive_failures += 1
            # First failure and then every 60th, to keep a 1s ticker from flooding the log
            if self._consecutive_failures == 1 or self._consecutive_failures % 60 == 0:
                logger.error(
                    f"Expiry sweep failed ({self._consecutive_failures} consecutive): {e}",
                    exc_info=True
                )
            return

        if self._consecutive_failures:
            logger.info(f"Expiry sweep recovered after {self._consecutive_failures} failures")
        self._consecutive_failures = 0
