# src/faultline/performance/aggregation.py
"""Statistical summaries of finished transactions for batch delivery.

A batch is grouped by transaction name; each group becomes one aggregated
record, and spans are grouped by name across the group's transactions.
Groups keep the order in which their name first appears in the batch.
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Sequence
from typing import Any

from faultline.contracts import FinishStatus
from faultline.performance.span import Span
from faultline.performance.transaction import Transaction


def percentile(sorted_values: Sequence[float], p: float) -> float:
    """Nearest-rank percentile: element ``ceil(p/100 * n) - 1`` of sorted values.

    Raises:
        ValueError: If sorted_values is empty
    """
    if not sorted_values:
        raise ValueError("percentile of empty sequence")
    index = max(0, math.ceil((p / 100.0) * len(sorted_values)) - 1)
    return sorted_values[index]


def _group_by_name(items: Iterable[Any]) -> dict[str, list[Any]]:
    groups: dict[str, list[Any]] = {}
    for item in items:
        groups.setdefault(item.name, []).append(item)
    return groups


def _summarize(name: str, items: Sequence[Transaction | Span], now_ms: float) -> dict[str, Any]:
    """Statistics shared by transaction and span aggregates."""
    durations = sorted(item.duration or 0.0 for item in items)
    start_times = [item.start_time for item in items]
    end_times = [item.end_time if item.end_time is not None else item.start_time for item in items]
    failures = sum(1 for item in items if item.status is FinishStatus.FAILURE)

    return {
        "aggregationId": f"{name}-{int(now_ms)}",
        "name": name,
        "avgStartTime": sum(start_times) / len(start_times),
        "minStartTime": min(start_times),
        "maxEndTime": max(end_times),
        "p50duration": percentile(durations, 50),
        "p95duration": percentile(durations, 95),
        "maxDuration": durations[-1],
        "count": len(items),
        "failureRate": failures / len(items) * 100.0,
    }


def aggregate_spans(transactions: Iterable[Transaction], now_ms: float) -> list[dict[str, Any]]:
    spans = (span for transaction in transactions for span in transaction.spans)
    return [_summarize(name, group, now_ms) for name, group in _group_by_name(spans).items()]


def aggregate_transactions(transactions: Sequence[Transaction], now_ms: float) -> list[dict[str, Any]]:
    """Aggregate a batch into one record per transaction name.

    Args:
        transactions: Finished transactions, in queue order
        now_ms: Epoch ms used for aggregationId

    Returns:
        JSON-serializable aggregated transactions. failureRate is a
        percentage (0-100).
    """
    aggregated = []
    for name, group in _group_by_name(transactions).items():
        record = _summarize(name, group, now_ms)
        record["aggregatedSpans"] = aggregate_spans(group, now_ms)
        aggregated.append(record)
    return aggregated
