"""Daemon-thread timing backend.

The thread owns one event loop (``asyncio.Runner``) for its whole life
and runs the tick callback on it every ``interval_seconds``.  Ticks never
overlap: the next wait starts when the previous tick returns, so a slow
tick shifts the schedule instead of piling runs up.

┌──────────────────────────────────────────────────────────────────────────────┐
│   start(tick, interval)                                                      │
│      └── thread "content-spine-scheduler"                                    │
│             with asyncio.Runner() as runner:                                 │
│                 while not stop.wait(interval):                               │
│                     runner.run(tick())      errors logged, loop continues    │
│                     tick_count, last_tick, last_tick_seconds updated         │
│                                                                              │
│   stop()  →  stop.set(); join(join_timeout)                                  │
└──────────────────────────────────────────────────────────────────────────────┘

``register`` and the CLI call stores from other threads and loops, which is
why stores and the event bus guard state with ``threading`` locks.
"""

from __future__ import annotations

import asyncio
import logging
import threading
import time
from datetime import datetime

from content_spine.core.timestamps import utc_now

from .protocol import BackendHealth, TickCallback

logger = logging.getLogger(__name__)


class ThreadSchedulerBackend:
    """Runs the scheduler tick on a daemon thread.

    Example:
        >>> backend = ThreadSchedulerBackend()
        >>> backend.start(scheduler.tick, interval_seconds=5.0)
        >>> # ...
        >>> backend.stop()
    """

    name = "thread"

    def __init__(self, join_timeout: float = 5.0) -> None:
        self.join_timeout = join_timeout
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None
        self._interval = 5.0
        self._lock = threading.Lock()
        self._tick_count = 0
        self._failed_ticks = 0
        self._last_tick: datetime | None = None
        self._last_tick_seconds: float | None = None

    def start(self, tick_callback: TickCallback, interval_seconds: float = 5.0) -> None:
        if self._thread is not None and self._thread.is_alive():
            logger.warning("Thread backend already running")
            return

        self._interval = interval_seconds
        self._stop.clear()
        self._thread = threading.Thread(
            target=self._run,
            args=(tick_callback, interval_seconds),
            daemon=True,
            name="content-spine-scheduler",
        )
        self._thread.start()

    def _run(self, tick_callback: TickCallback, interval_seconds: float) -> None:
        logger.info(f"Thread backend started (interval={interval_seconds}s)")
        with asyncio.Runner() as runner:
            while not self._stop.wait(interval_seconds):
                started = time.monotonic()
                failed = False
                try:
                    runner.run(tick_callback())
                except Exception as e:
                    failed = True
                    logger.exception(f"Tick failed: {e}")
                with self._lock:
                    self._tick_count += 1
                    self._failed_ticks += failed
                    self._last_tick = utc_now()
                    self._last_tick_seconds = time.monotonic() - started
        logger.info("Thread backend stopped")

    def stop(self) -> None:
        """Signal the thread and wait up to ``join_timeout`` for the running tick."""
        if self._thread is None:
            return
        self._stop.set()
        self._thread.join(timeout=self.join_timeout)
        if self._thread.is_alive():
            logger.warning(f"Scheduler thread still busy after {self.join_timeout}s")

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive() and not self._stop.is_set()

    @property
    def tick_count(self) -> int:
        return self._tick_count

    def health(self) -> dict:
        return self.get_health().to_dict()

    def get_health(self) -> BackendHealth:
        with self._lock:
            return BackendHealth(
                healthy=self.is_running,
                backend=self.name,
                tick_count=self._tick_count,
                last_tick=self._last_tick,
                extra={
                    "interval_seconds": self._interval,
                    "failed_ticks": self._failed_ticks,
                    "last_tick_seconds": self._last_tick_seconds,
                },
            )
