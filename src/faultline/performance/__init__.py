# src/faultline/performance/__init__.py
"""Performance monitoring: transactions, spans, sampling and batched delivery.

Components:
- transaction / span: timed units of work
- sampling: decide() and SamplingPolicy, the finish-time send/drop policy
- aggregation: per-name statistics sent in each batch
- monitor: PerformanceMonitor, the active index, send queue and flush task
"""

from faultline.performance.aggregation import aggregate_transactions, percentile
from faultline.performance.monitor import PerformanceMonitor
from faultline.performance.sampling import SamplingDecision, SamplingPolicy, decide, normalize_sample_rate
from faultline.performance.span import Span
from faultline.performance.transaction import Transaction

__all__ = [
    "PerformanceMonitor",
    "SamplingDecision",
    "SamplingPolicy",
    "Span",
    "Transaction",
    "aggregate_transactions",
    "decide",
    "normalize_sample_rate",
    "percentile",
]
