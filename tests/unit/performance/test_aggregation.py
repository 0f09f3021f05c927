# tests/unit/performance/test_aggregation.py
"""Tests for batch aggregation.

Tests cover:
- Nearest-rank percentile
- Grouping by name in first-appearance order
- Statistics for transactions and spans
- failureRate as a percentage
"""

import json

import pytest
from hypothesis import given
from hypothesis import strategies as st

from faultline.contracts import FinishStatus
from faultline.performance import Transaction, aggregate_transactions, percentile
from faultline.testing import FakeClock

NOW_MS = 1_700_000_123_456.7


class TestPercentile:
    @pytest.mark.parametrize(
        ("values", "p", "expected"),
        [
            ([1.0], 50, 1.0),
            ([1.0], 95, 1.0),
            ([1.0, 2.0], 50, 1.0),
            ([1.0, 2.0], 95, 2.0),
            ([1.0, 2.0, 3.0, 4.0], 50, 2.0),
            ([float(i) for i in range(1, 21)], 95, 19.0),
            ([float(i) for i in range(1, 101)], 95, 95.0),
            ([5.0, 6.0], 0, 5.0),
        ],
    )
    def test_nearest_rank(self, values: list[float], p: float, expected: float) -> None:
        assert percentile(values, p) == expected

    def test_empty(self) -> None:
        with pytest.raises(ValueError, match="empty"):
            percentile([], 50)

    @given(st.lists(st.floats(min_value=0, max_value=1e6), min_size=1), st.floats(min_value=0, max_value=100))
    def test_result_is_an_element(self, values: list[float], p: float) -> None:
        ordered = sorted(values)
        assert percentile(ordered, p) in ordered


def _transaction(
    clock: FakeClock,
    name: str,
    duration_ms: float,
    *,
    status: FinishStatus = FinishStatus.SUCCESS,
    spans: tuple[tuple[str, float], ...] = (),
) -> Transaction:
    transaction = Transaction(name, clock=clock)
    for span_name, span_duration in spans:
        span = transaction.start_span(span_name)
        clock.advance(span_duration)
        span.finish()
    clock.advance(duration_ms - sum(d for _, d in spans))
    transaction.finish(status)
    return transaction


class TestAggregateTransactions:
    def test_groups_in_first_appearance_order(self, fake_clock: FakeClock) -> None:
        batch = [
            _transaction(fake_clock, "b", 30),
            _transaction(fake_clock, "a", 30),
            _transaction(fake_clock, "b", 30),
        ]

        result = aggregate_transactions(batch, NOW_MS)

        assert [record["name"] for record in result] == ["b", "a"]
        assert [record["count"] for record in result] == [2, 1]

    def test_statistics(self, fake_clock: FakeClock) -> None:
        start = fake_clock.now_ms()
        batch = [
            _transaction(fake_clock, "checkout", 100),
            _transaction(fake_clock, "checkout", 300, status=FinishStatus.FAILURE),
            _transaction(fake_clock, "checkout", 200),
            _transaction(fake_clock, "checkout", 400),
        ]

        record = aggregate_transactions(batch, NOW_MS)[0]

        assert record["aggregationId"] == "checkout-1700000123456"
        assert record["minStartTime"] == start
        assert record["maxEndTime"] == start + 1000
        assert record["avgStartTime"] == start + (0 + 100 + 400 + 600) / 4
        assert record["p50duration"] == 200
        assert record["p95duration"] == 400
        assert record["maxDuration"] == 400
        assert record["failureRate"] == 25.0
        assert record["aggregatedSpans"] == []

    def test_spans_grouped_across_transactions(self, fake_clock: FakeClock) -> None:
        batch = [
            _transaction(fake_clock, "checkout", 100, spans=(("db", 10), ("render", 20))),
            _transaction(fake_clock, "checkout", 100, spans=(("db", 30),)),
        ]

        spans = aggregate_transactions(batch, NOW_MS)[0]["aggregatedSpans"]

        assert [s["name"] for s in spans] == ["db", "render"]
        db = spans[0]
        assert db["count"] == 2
        assert db["p50duration"] == 10
        assert db["maxDuration"] == 30
        assert db["aggregationId"] == "db-1700000123456"
        assert db["failureRate"] == 0.0

    def test_json_serializable(self, fake_clock: FakeClock) -> None:
        batch = [_transaction(fake_clock, "checkout", 50, spans=(("db", 5),))]
        json.dumps(aggregate_transactions(batch, NOW_MS), allow_nan=False)

    def test_empty_batch(self) -> None:
        assert aggregate_transactions([], NOW_MS) == []
