# src/faultline/performance/sampling.py
"""Finish-time sampling policy for performance transactions.

Single source of truth for the send/drop decision, evaluated in this
exact precedence:

1. status FAILURE or severity CRITICAL: always send
2. duration >= critical_duration_threshold_ms: always send (slow outliers)
3. duration < threshold_ms: always drop (trivial operations)
4. otherwise send when a uniform draw in [0, 1) is below sample_rate
"""

from __future__ import annotations

import math
from collections.abc import Callable
from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING, Any

import structlog

from faultline.contracts import FinishStatus, TransactionSeverity

if TYPE_CHECKING:
    from faultline.performance.transaction import Transaction

logger = structlog.get_logger(__name__)

DEFAULT_SAMPLE_RATE = 1.0


class SamplingDecision(StrEnum):
    """Outcome of decide(), named after the rule that produced it."""

    FAILURE = "failure"
    CRITICAL = "critical"
    SLOW = "slow"
    BELOW_THRESHOLD = "below_threshold"
    SAMPLED = "sampled"
    NOT_SAMPLED = "not_sampled"

    @property
    def send(self) -> bool:
        return self not in (SamplingDecision.BELOW_THRESHOLD, SamplingDecision.NOT_SAMPLED)


def normalize_sample_rate(value: Any) -> float:
    """Return value as a sample rate in [0, 1], or 1.0 if it is invalid.

    Invalid rates are a configuration error that is corrected, not raised.
    """
    if isinstance(value, bool):
        rate = math.nan
    else:
        try:
            rate = float(value)
        except (TypeError, ValueError):
            rate = math.nan

    if math.isnan(rate) or rate < 0.0 or rate > 1.0:
        logger.error(
            "Performance sample rate must be between 0 and 1 - using default",
            sample_rate=repr(value),
            default=DEFAULT_SAMPLE_RATE,
        )
        return DEFAULT_SAMPLE_RATE
    return rate


@dataclass(frozen=True, slots=True)
class SamplingPolicy:
    """Thresholds and rate used by decide().

    Attributes:
        sample_rate: Probability of sending a transaction in the sampled band
        threshold_ms: Shorter transactions are dropped
        critical_duration_threshold_ms: Transactions at least this long are sent
    """

    sample_rate: float = DEFAULT_SAMPLE_RATE
    threshold_ms: float = 20.0
    critical_duration_threshold_ms: float = 1000.0


def decide(transaction: Transaction, policy: SamplingPolicy, draw: Callable[[], float]) -> SamplingDecision:
    """Decide whether a finished transaction is sent.

    Args:
        transaction: Finished transaction (duration set)
        policy: Thresholds and sample rate
        draw: Uniform random source in [0, 1); only called in the sampled band

    Returns:
        The rule that applied

    Example:
        >>> decide(failed_txn, SamplingPolicy(sample_rate=0.0), random.random)
        <SamplingDecision.FAILURE: 'failure'>
    """
    if transaction.status is FinishStatus.FAILURE:
        return SamplingDecision.FAILURE
    if transaction.severity is TransactionSeverity.CRITICAL:
        return SamplingDecision.CRITICAL

    duration = transaction.duration or 0.0
    if duration >= policy.critical_duration_threshold_ms:
        return SamplingDecision.SLOW
    if duration < policy.threshold_ms:
        return SamplingDecision.BELOW_THRESHOLD

    # draw() is in [0, 1): rate 0 never sends, rate 1 always sends
    return SamplingDecision.SAMPLED if draw() < policy.sample_rate else SamplingDecision.NOT_SAMPLED
