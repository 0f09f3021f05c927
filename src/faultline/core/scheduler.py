# src/faultline/core/scheduler.py
"""Explicit task scheduler for background work.

Every piece of background work in faultline (connection attempts, queue
drains, reconnection back-off, periodic batch flushes) is submitted to a
Scheduler instead of spawning ad-hoc timers. This gives one place that
owns cancellation and lets tests drive time deterministically with
faultline.testing.ManualScheduler.

ThreadScheduler runs all callbacks on a single worker thread, one at a
time, ordered by due time and then submission order. That worker is the
"single logical thread" the transport and performance monitor are written
against; application threads only enqueue work and touch shared state under
each component's lock.
"""

from __future__ import annotations

import heapq
import itertools
import threading
import time
from collections.abc import Callable
from typing import Protocol, runtime_checkable

import structlog

logger = structlog.get_logger(__name__)


class TaskHandle:
    """Handle returned for every scheduled callback.

    Cancelling is idempotent and takes effect before the next run; a
    callback that is already executing is not interrupted.
    """

    __slots__ = ("_cancelled", "callback", "interval_ms")

    def __init__(self, callback: Callable[[], None], interval_ms: float | None = None) -> None:
        self.callback = callback
        self.interval_ms = interval_ms
        self._cancelled = False

    def cancel(self) -> None:
        """Prevent any future run of this task."""
        self._cancelled = True

    @property
    def cancelled(self) -> bool:
        return self._cancelled


@runtime_checkable
class Scheduler(Protocol):
    """Protocol for faultline schedulers.

    Delays and intervals are in milliseconds. Callbacks take no arguments;
    bind arguments with functools.partial.
    """

    def call_soon(self, callback: Callable[[], None]) -> TaskHandle:
        """Run callback as soon as possible, after already-due work."""
        ...

    def call_later(self, delay_ms: float, callback: Callable[[], None]) -> TaskHandle:
        """Run callback once after delay_ms."""
        ...

    def call_every(self, interval_ms: float, callback: Callable[[], None]) -> TaskHandle:
        """Run callback every interval_ms until cancelled."""
        ...

    def close(self, timeout_seconds: float = 2.0) -> None:
        """Run work that is already due, drop future timers, stop."""
        ...


class ThreadScheduler:
    """Scheduler backed by one daemon worker thread.

    The worker is started lazily on first submission. It is a daemon so an
    instrumented application can always exit; shutdown flushing goes
    through close(), which the client calls from its atexit hook.

    Thread Safety:
        Submission methods are safe to call from any thread. Callbacks never
        run concurrently with each other. Callback exceptions are logged and
        swallowed; a failing periodic task keeps its schedule.
    """

    def __init__(self, *, name: str = "faultline-scheduler") -> None:
        self._name = name
        self._heap: list[tuple[float, int, TaskHandle]] = []
        self._sequence = itertools.count()
        self._condition = threading.Condition()
        self._thread: threading.Thread | None = None
        self._closing = False
        self._stopped = False

    @staticmethod
    def _now_ms() -> float:
        return time.monotonic() * 1000.0

    def call_soon(self, callback: Callable[[], None]) -> TaskHandle:
        return self._schedule(0.0, callback, None)

    def call_later(self, delay_ms: float, callback: Callable[[], None]) -> TaskHandle:
        return self._schedule(delay_ms, callback, None)

    def call_every(self, interval_ms: float, callback: Callable[[], None]) -> TaskHandle:
        if interval_ms <= 0:
            raise ValueError(f"interval_ms must be > 0, got {interval_ms}")
        return self._schedule(interval_ms, callback, interval_ms)

    def _schedule(self, delay_ms: float, callback: Callable[[], None], interval_ms: float | None) -> TaskHandle:
        handle = TaskHandle(callback, interval_ms)
        with self._condition:
            # While closing only immediate work is still accepted.
            if self._stopped or (self._closing and (delay_ms > 0 or interval_ms is not None)):
                logger.debug("Scheduler closed - task dropped", scheduler=self._name, delay_ms=delay_ms)
                handle.cancel()
                return handle
            due = self._now_ms() + max(0.0, delay_ms)
            heapq.heappush(self._heap, (due, next(self._sequence), handle))
            self._ensure_started()
            self._condition.notify()
        return handle

    def _ensure_started(self) -> None:
        """Start the worker thread. Caller must hold _condition."""
        if self._thread is None:
            self._thread = threading.Thread(target=self._run, name=self._name, daemon=True)
            self._thread.start()

    def _next_due_task(self) -> TaskHandle | None:
        """Block until a task is due; None means the worker should exit."""
        with self._condition:
            while True:
                if self._stopped:
                    return None
                if not self._heap:
                    if self._closing:
                        return None
                    self._condition.wait()
                    continue

                due, _, handle = self._heap[0]
                if handle.cancelled:
                    heapq.heappop(self._heap)
                    continue

                remaining = due - self._now_ms()
                if remaining <= 0:
                    heapq.heappop(self._heap)
                    return handle
                if self._closing:
                    # Only already-due work runs during close()
                    return None
                self._condition.wait(remaining / 1000.0)

    def _run(self) -> None:
        while True:
            handle = self._next_due_task()
            if handle is None:
                break
            try:
                handle.callback()
            except Exception as e:
                # Background work must never take the worker down
                logger.error(
                    "Scheduled task failed",
                    scheduler=self._name,
                    task=getattr(handle.callback, "__qualname__", repr(handle.callback)),
                    error=str(e),
                    exc_info=True,
                )
            finally:
                with self._condition:
                    if handle.interval_ms is not None and not handle.cancelled and not self._closing:
                        heapq.heappush(
                            self._heap,
                            (self._now_ms() + handle.interval_ms, next(self._sequence), handle),
                        )
                    self._condition.notify_all()

        with self._condition:
            self._stopped = True
            self._heap.clear()
            self._condition.notify_all()

    def close(self, timeout_seconds: float = 2.0) -> None:
        """Run already-due work, drop timers and stop the worker.

        Safe to call more than once and from inside a scheduled callback
        (in which case it does not wait for the worker).
        """
        with self._condition:
            self._closing = True
            thread = self._thread
            if thread is None:
                self._stopped = True
                self._heap.clear()
            self._condition.notify_all()

        if thread is None or thread is threading.current_thread():
            return

        thread.join(timeout=timeout_seconds)
        if thread.is_alive():
            logger.warning("Scheduler worker did not stop within timeout", scheduler=self._name, timeout_seconds=timeout_seconds)
