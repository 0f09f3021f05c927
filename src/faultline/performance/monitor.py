# src/faultline/performance/monitor.py
"""PerformanceMonitor: transactions, the finish-time policy and batching.

Flow:
1. start_transaction() registers an open Transaction in the active index
2. Transaction.finish() removes it and applies the sampling policy
3. Sent transactions go to the send queue; dropped ones are counted
4. A periodic scheduler task flushes the whole queue as one batch message
5. A batch the transport rejects, or that fails to aggregate, is put back
   in front of the queue so it is retried before newer transactions

Thread Safety:
    Transactions may be started and finished on any thread. The active
    index, send queue and counters are guarded by _lock. Flushes run on the
    scheduler thread (or the caller of flush()/destroy()) and never overlap.
"""

from __future__ import annotations

import random as _random
import threading
from collections import Counter
from collections.abc import Callable, Mapping
from typing import Any, Protocol

import structlog

from faultline.contracts import FinishStatus, SendOutcome, TransactionSeverity
from faultline.core.clock import Clock, SystemClock
from faultline.core.scheduler import Scheduler
from faultline.errors import TransactionNotFoundError
from faultline.performance.aggregation import aggregate_transactions
from faultline.performance.sampling import SamplingPolicy, decide, normalize_sample_rate
from faultline.performance.span import Span
from faultline.performance.transaction import Transaction

logger = structlog.get_logger(__name__)

CATCHER_TYPE = "performance"


class MessageSender(Protocol):
    """What the monitor needs from the Transport."""

    def send(self, message: Any) -> SendOutcome: ...


class PerformanceMonitor:
    """Tracks transactions and delivers sampled ones in periodic batches.

    Example:
        >>> monitor = PerformanceMonitor(transport, token=token, scheduler=scheduler)
        >>> txn = monitor.start_transaction("checkout")
        >>> span = txn.start_span("db.query")
        >>> span.finish()
        >>> txn.finish()
        >>> monitor.destroy()
    """

    def __init__(
        self,
        transport: MessageSender,
        *,
        token: str,
        scheduler: Scheduler,
        clock: Clock | None = None,
        sample_rate: float = 1.0,
        threshold_ms: float = 20.0,
        critical_duration_threshold_ms: float = 1000.0,
        batch_interval_ms: float = 3000.0,
        debug: bool = False,
        random: Callable[[], float] | None = None,
    ) -> None:
        """Create the monitor and start the periodic flush task.

        Args:
            transport: Receives one message per batch
            token: Integration token included in every batch
            scheduler: Runs the periodic flush
            clock: Time source for transactions and aggregation ids
            sample_rate: Probability of sending in the sampled band; invalid
                values are corrected to 1.0
            threshold_ms: Shorter successful, non-critical transactions are dropped
            critical_duration_threshold_ms: Longer transactions are always sent
            batch_interval_ms: Flush period
            debug: Log auto-finished spans and policy drops
            random: Uniform [0, 1) source for sampling (random.random by default)
        """
        self._transport = transport
        self._token = token
        self._scheduler = scheduler
        self._clock = clock or SystemClock()
        self._debug = debug
        self._random = random or _random.random
        self._policy = SamplingPolicy(
            sample_rate=normalize_sample_rate(sample_rate),
            threshold_ms=threshold_ms,
            critical_duration_threshold_ms=critical_duration_threshold_ms,
        )

        self._lock = threading.Lock()
        self._active: dict[str, Transaction] = {}
        self._send_queue: list[Transaction] = []
        self._flushing = False
        self._destroyed = False
        # Transactions destroy() finishes still go through the policy
        self._finishing_on_destroy: set[str] = set()

        # Health metrics
        self._transactions_started = 0
        self._transactions_sent = 0
        self._transactions_discarded = 0
        self._decisions: Counter[str] = Counter()
        self._batches_sent = 0
        self._batches_failed = 0

        self._flush_handle = scheduler.call_every(batch_interval_ms, self.flush)

    @property
    def policy(self) -> SamplingPolicy:
        return self._policy

    @property
    def active_transactions(self) -> Mapping[str, Transaction]:
        """Open transactions by id (copy)."""
        with self._lock:
            return dict(self._active)

    @property
    def queued_transactions(self) -> list[Transaction]:
        """Transactions waiting for the next flush (copy, queue order)."""
        with self._lock:
            return list(self._send_queue)

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    def start_transaction(
        self,
        name: str,
        severity: TransactionSeverity | str = TransactionSeverity.DEFAULT,
    ) -> Transaction:
        """Open a transaction and register it in the active index."""
        transaction = Transaction(
            name,
            severity,
            clock=self._clock,
            on_finish=self._on_transaction_finished,
            debug=self._debug,
        )
        with self._lock:
            self._transactions_started += 1
            # After destroy() nothing would ever finish it
            if not self._destroyed:
                self._active[transaction.id] = transaction
        return transaction

    def start_span(self, transaction_id: str, name: str, metadata: Mapping[str, Any] | None = None) -> Span:
        """Open a span on an active transaction.

        Raises:
            TransactionNotFoundError: If the id is unknown or already finished
        """
        with self._lock:
            transaction = self._active.get(transaction_id)
        if transaction is None:
            raise TransactionNotFoundError(transaction_id)
        return transaction.start_span(name, metadata)

    def finish_transaction(self, transaction_id: str, status: FinishStatus | str = FinishStatus.SUCCESS) -> None:
        """Finish an active transaction by id. Unknown ids are ignored."""
        with self._lock:
            transaction = self._active.get(transaction_id)
        if transaction is None:
            logger.debug("finish_transaction for unknown or finished transaction", transaction_id=transaction_id)
            return
        transaction.finish(status)

    def _on_transaction_finished(self, transaction: Transaction) -> None:
        with self._lock:
            self._active.pop(transaction.id, None)
            if self._destroyed and transaction.id not in self._finishing_on_destroy:
                self._transactions_discarded += 1
                destroyed = True
            else:
                destroyed = False

        if destroyed:
            logger.debug("Transaction finished after destroy - discarded", transaction=transaction.name)
            return

        decision = decide(transaction, self._policy, self._random)
        with self._lock:
            self._decisions[decision.value] += 1
            if decision.send:
                self._send_queue.append(transaction)

        if self._debug and not decision.send:
            logger.debug(
                "Transaction dropped by sampling policy",
                transaction=transaction.name,
                duration_ms=transaction.duration,
                decision=decision.value,
            )

    # ------------------------------------------------------------------
    # Batching
    # ------------------------------------------------------------------

    def flush(self) -> SendOutcome | None:
        """Send every queued transaction as one batch.

        Returns:
            The transport outcome, or None if there was nothing to send, a
            flush was already running, or aggregation failed
        """
        with self._lock:
            if self._flushing or not self._send_queue:
                return None
            self._flushing = True
            batch = self._send_queue
            self._send_queue = []

        try:
            try:
                message = {
                    "token": self._token,
                    "catcherType": CATCHER_TYPE,
                    "payload": {"transactions": aggregate_transactions(batch, self._clock.now_ms())},
                }
            except Exception as e:
                self._requeue(batch)
                logger.error(
                    "Failed to aggregate performance batch - will retry",
                    transactions=len(batch),
                    error=str(e),
                    exc_info=True,
                )
                return None

            outcome = self._transport.send(message)
            if outcome is SendOutcome.REJECTED:
                self._requeue(batch)
                logger.warning("Performance batch rejected by transport - will retry", transactions=len(batch))
            else:
                with self._lock:
                    self._batches_sent += 1
                    self._transactions_sent += len(batch)
            return outcome
        finally:
            with self._lock:
                self._flushing = False

    def _requeue(self, batch: list[Transaction]) -> None:
        # Failed items go before anything queued during the attempt
        with self._lock:
            self._send_queue[:0] = batch
            self._batches_failed += 1

    def destroy(self) -> None:
        """Finish open transactions, stop the periodic task and flush once.

        Idempotent. Transactions finished afterwards are discarded.
        """
        with self._lock:
            if self._destroyed:
                return
            self._destroyed = True
            active = list(self._active.values())
            self._finishing_on_destroy = {transaction.id for transaction in active}

        # Unfinished work goes through the same policy as everything else
        for transaction in active:
            transaction.finish(FinishStatus.SUCCESS)

        with self._lock:
            self._finishing_on_destroy.clear()
        self._flush_handle.cancel()
        self.flush()

        with self._lock:
            leftover = len(self._send_queue)
        if leftover:
            logger.warning("Performance monitor destroyed with unsent transactions", transactions=leftover)
        logger.debug("Performance monitor destroyed", transactions_finished_on_destroy=len(active))

    @property
    def health_metrics(self) -> dict[str, Any]:
        """Snapshot of monitor health.

        Returns:
            Dictionary containing:
            - active: Open transactions
            - queued: Transactions awaiting flush
            - transactions_started / transactions_sent / transactions_discarded
            - decisions: Count per SamplingDecision value
            - batches_sent / batches_failed
            - destroyed: Whether destroy() has run
        """
        with self._lock:
            return {
                "active": len(self._active),
                "queued": len(self._send_queue),
                "transactions_started": self._transactions_started,
                "transactions_sent": self._transactions_sent,
                "transactions_discarded": self._transactions_discarded,
                "decisions": dict(self._decisions),
                "batches_sent": self._batches_sent,
                "batches_failed": self._batches_failed,
                "destroyed": self._destroyed,
            }
