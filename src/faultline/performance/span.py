# src/faultline/performance/span.py
"""Span: a timed sub-operation of a Transaction."""

from __future__ import annotations

import threading
from collections.abc import Mapping
from typing import Any

import structlog

from faultline.contracts import FinishStatus
from faultline.core.clock import Clock, generate_id

logger = structlog.get_logger(__name__)


class Span:
    """Timed child operation. Created only through Transaction.start_span().

    Times are epoch milliseconds; the duration is measured on the monotonic
    clock and end_time is derived from it, so end_time - start_time always
    equals duration.

    Attributes:
        id: Random 32-hex identifier
        transaction_id: Owning transaction
        name: Operation name (aggregation key)
        start_time: Epoch ms at creation
        end_time: Epoch ms at finish, None while open
        duration: Milliseconds, None while open
        status: Finish status, None while open
        metadata: Caller-supplied context (not sent in aggregates)
    """

    def __init__(
        self,
        transaction_id: str,
        name: str,
        *,
        clock: Clock,
        metadata: Mapping[str, Any] | None = None,
    ) -> None:
        self.id = generate_id()
        self.transaction_id = transaction_id
        self.name = name
        self.metadata = dict(metadata) if metadata else None
        self._clock = clock
        self.start_time = clock.now_ms()
        self._start_monotonic = clock.monotonic_ms()
        self.end_time: float | None = None
        self.duration: float | None = None
        self.status: FinishStatus | None = None
        self._lock = threading.Lock()

    @property
    def finished(self) -> bool:
        return self.end_time is not None

    def finish(self, status: FinishStatus | str = FinishStatus.SUCCESS) -> None:
        """Record the end of the span. A second call is a no-op."""
        status = FinishStatus(status)
        with self._lock:
            if self.end_time is not None:
                logger.debug("Span already finished", span=self.name, span_id=self.id)
                return
            self.duration = max(0.0, self._clock.monotonic_ms() - self._start_monotonic)
            self.end_time = self.start_time + self.duration
            self.status = status

    def finish_at(self, end_time: float, status: FinishStatus = FinishStatus.SUCCESS) -> bool:
        """Finish with an explicit end time. Returns False if already finished."""
        with self._lock:
            if self.end_time is not None:
                return False
            self.end_time = end_time
            self.duration = max(0.0, end_time - self.start_time)
            self.status = status
            return True

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "transactionId": self.transaction_id,
            "name": self.name,
            "startTime": self.start_time,
            "endTime": self.end_time,
            "duration": self.duration,
            "status": self.status.value if self.status is not None else None,
            "metadata": self.metadata,
        }

    def __repr__(self) -> str:
        return f"Span(name={self.name!r}, id={self.id!r}, duration={self.duration!r}, status={self.status!r})"
