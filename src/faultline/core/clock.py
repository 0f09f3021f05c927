# src/faultline/core/clock.py
"""Clock and identifier sources.

Breadcrumb timestamps use wall-clock epoch milliseconds; span and
transaction durations use a monotonic clock so they are immune to system
clock adjustments.
"""

from __future__ import annotations

import time
import uuid
from typing import Protocol, runtime_checkable


@runtime_checkable
class Clock(Protocol):
    """Time source used by breadcrumbs, spans and transactions."""

    def now_ms(self) -> float:
        """Wall-clock time in epoch milliseconds."""
        ...

    def monotonic_ms(self) -> float:
        """Monotonic time in milliseconds (arbitrary origin)."""
        ...


class SystemClock:
    """Clock backed by time.time() and time.perf_counter()."""

    def now_ms(self) -> float:
        return time.time() * 1000.0

    def monotonic_ms(self) -> float:
        return time.perf_counter() * 1000.0


def generate_id() -> str:
    """Return a random 32-character hex identifier."""
    return uuid.uuid4().hex
