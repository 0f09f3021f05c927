# src/faultline/performance/transaction.py
"""Transaction: a named, timed unit of work that owns its spans."""

from __future__ import annotations

import threading
from collections.abc import Callable, Mapping
from typing import Any

import structlog

from faultline.contracts import FinishStatus, TransactionSeverity
from faultline.core.clock import Clock, generate_id
from faultline.errors import TransactionNotFoundError
from faultline.performance.span import Span

logger = structlog.get_logger(__name__)


class Transaction:
    """Open -> finished once. Spans still open at finish are auto-finished.

    The PerformanceMonitor creates transactions and is notified through
    ``on_finish`` exactly once, after the transaction and all its spans
    are finished.

    Attributes:
        id: Random 32-hex identifier
        name: Aggregation key
        severity: CRITICAL bypasses threshold filtering and sampling
        start_time / end_time / duration: Epoch ms / epoch ms / ms
        status: Finish status, None while open
        spans: Child spans in creation order
    """

    def __init__(
        self,
        name: str,
        severity: TransactionSeverity | str = TransactionSeverity.DEFAULT,
        *,
        clock: Clock,
        on_finish: Callable[[Transaction], None] | None = None,
        debug: bool = False,
    ) -> None:
        self.id = generate_id()
        self.name = name
        self.severity = TransactionSeverity(severity)
        self._clock = clock
        self._on_finish = on_finish
        self._debug = debug
        self.start_time = clock.now_ms()
        self._start_monotonic = clock.monotonic_ms()
        self.end_time: float | None = None
        self.duration: float | None = None
        self.status: FinishStatus | None = None
        self.spans: list[Span] = []
        self._lock = threading.Lock()

    @property
    def finished(self) -> bool:
        return self.end_time is not None

    def start_span(self, name: str, metadata: Mapping[str, Any] | None = None) -> Span:
        """Open a child span.

        Raises:
            TransactionNotFoundError: If this transaction is already finished
        """
        with self._lock:
            if self.end_time is not None:
                raise TransactionNotFoundError(self.id)
            span = Span(self.id, name, clock=self._clock, metadata=metadata)
            self.spans.append(span)
        return span

    def finish(self, status: FinishStatus | str = FinishStatus.SUCCESS) -> None:
        """Finish the transaction and hand it to the monitor.

        Open spans get this transaction's end time and SUCCESS. A second
        call is a no-op.
        """
        status = FinishStatus(status)
        with self._lock:
            if self.end_time is not None:
                logger.debug("Transaction already finished", transaction=self.name, transaction_id=self.id)
                return
            self.duration = max(0.0, self._clock.monotonic_ms() - self._start_monotonic)
            self.end_time = self.start_time + self.duration
            self.status = status
            spans = list(self.spans)

        for span in spans:
            if span.finish_at(self.end_time) and self._debug:
                logger.warning(
                    "Span auto-finished with its transaction",
                    transaction=self.name,
                    span=span.name,
                    span_id=span.id,
                )

        if self._on_finish is not None:
            self._on_finish(self)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "severity": self.severity.value,
            "startTime": self.start_time,
            "endTime": self.end_time,
            "duration": self.duration,
            "status": self.status.value if self.status is not None else None,
            "spans": [span.to_dict() for span in self.spans],
        }

    def __repr__(self) -> str:
        return f"Transaction(name={self.name!r}, id={self.id!r}, duration={self.duration!r}, status={self.status!r})"
