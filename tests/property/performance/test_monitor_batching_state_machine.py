# tests/property/performance/test_monitor_batching_state_machine.py
"""Property-based stateful tests for PerformanceMonitor batching.

BATCHING STATE MACHINE:
Transactions finish while the transport alternately accepts and rejects
batches. A model queue of transaction ids tracks what should be pending.

Key Invariants:
1. The send queue always matches the model, in order: a rejected batch
   sits in front of everything finished after it
2. Every accepted batch carries exactly the transactions that were queued
   (sum of per-name counts), and no transaction is sent twice
3. The periodic flush and explicit flush() behave the same
"""

from __future__ import annotations

from typing import Any

import hypothesis.strategies as st
from hypothesis import settings
from hypothesis.stateful import RuleBasedStateMachine, invariant, rule

from faultline.contracts import FinishStatus, SendOutcome
from faultline.performance import PerformanceMonitor
from faultline.testing import FakeClock, ManualScheduler

BATCH_INTERVAL_MS = 3_000.0


class _Sender:
    def __init__(self) -> None:
        self.messages: list[Any] = []
        self.outcome = SendOutcome.SCHEDULED

    def send(self, message: Any) -> SendOutcome:
        if self.outcome is not SendOutcome.REJECTED:
            self.messages.append(message)
        return self.outcome


class MonitorBatchingMachine(RuleBasedStateMachine):
    def __init__(self) -> None:
        super().__init__()
        self.clock = FakeClock()
        self.scheduler = ManualScheduler(clock=self.clock)
        self.sender = _Sender()
        self.monitor = PerformanceMonitor(
            self.sender,
            token="test-token",
            scheduler=self.scheduler,
            clock=self.clock,
            batch_interval_ms=BATCH_INTERVAL_MS,
            random=lambda: 0.0,
        )
        self.pending: list[str] = []
        self.sent_count = 0

    def _on_flush(self) -> None:
        if not self.pending:
            return
        if self.sender.outcome is not SendOutcome.REJECTED:
            self.sent_count += len(self.pending)
            self.pending = []

    @rule(
        name=st.sampled_from(["checkout", "search", "login"]),
        duration_ms=st.integers(min_value=20, max_value=2_000),
        status=st.sampled_from(FinishStatus),
    )
    def finish_transaction(self, name: str, duration_ms: int, status: FinishStatus) -> None:
        transaction = self.monitor.start_transaction(name)
        self.clock.advance(float(duration_ms))
        transaction.finish(status)
        self.pending.append(transaction.id)

    @rule(rejected=st.booleans())
    def transport_mood(self, rejected: bool) -> None:
        self.sender.outcome = SendOutcome.REJECTED if rejected else SendOutcome.SCHEDULED

    @rule()
    def explicit_flush(self) -> None:
        self.monitor.flush()
        self._on_flush()

    @rule()
    def periodic_flush(self) -> None:
        self.scheduler.advance(BATCH_INTERVAL_MS)
        self._on_flush()

    @invariant()
    def queue_matches_model(self) -> None:
        assert [t.id for t in self.monitor.queued_transactions] == self.pending

    @invariant()
    def accepted_batches_carry_every_transaction_once(self) -> None:
        total = sum(
            record["count"] for message in self.sender.messages for record in message["payload"]["transactions"]
        )
        assert total == self.sent_count

    def teardown(self) -> None:
        self.sender.outcome = SendOutcome.SCHEDULED
        self.monitor.destroy()
        assert self.monitor.queued_transactions == []


MonitorBatchingMachine.TestCase.settings = settings(max_examples=200, stateful_step_count=30)
TestMonitorBatching = MonitorBatchingMachine.TestCase
