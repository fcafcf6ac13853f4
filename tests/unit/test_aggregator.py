"""Tests for candidate aggregation."""

from __future__ import annotations

import asyncio

import pytest

from animap.core.exceptions import SourceUnavailableError
from animap.core.models import Candidate
from animap.core.resolution import CandidateAggregator


def _c(source_id: str, title: str = "Title") -> Candidate:
    return Candidate(source_id=source_id, title=title)


@pytest.mark.asyncio
async def test_failures_are_isolated_per_query(make_source) -> None:
    source = make_source(
        {
            "q1": [_c("a"), _c("b")],
            "q2": SourceUnavailableError("fake", "boom", query="q2"),
            "q3": 5.0,  # hangs past the timeout
            "q4": [_c("c")],
        }
    )
    aggregator = CandidateAggregator(source, max_concurrency=4, timeout=0.2)

    candidates = await aggregator.gather(["q1", "q2", "q3", "q4"])

    assert [c.source_id for c in candidates] == ["a", "b", "c"]
    assert sorted(source.search_calls) == ["q1", "q2", "q3", "q4"]
    await source.aclose()


@pytest.mark.asyncio
async def test_unexpected_exceptions_are_isolated(make_source) -> None:
    source = make_source({"q1": RuntimeError("parser exploded"), "q2": [_c("x")]})
    aggregator = CandidateAggregator(source, timeout=1.0)

    candidates = await aggregator.gather(["q1", "q2"])

    assert [c.source_id for c in candidates] == ["x"]
    await source.aclose()


@pytest.mark.asyncio
async def test_dedup_keeps_first_occurrence(make_source) -> None:
    source = make_source(
        {
            "first": [_c("s1", "From first"), _c("s2", "Two")],
            "second": [_c("s1", "From second"), _c("s3", "Three")],
        }
    )
    aggregator = CandidateAggregator(source, timeout=1.0)

    candidates = await aggregator.gather(["first", "second"])

    assert [c.source_id for c in candidates] == ["s1", "s2", "s3"]
    assert candidates[0].title == "From first"
    await source.aclose()


@pytest.mark.asyncio
async def test_all_failures_return_empty(make_source) -> None:
    source = make_source(
        {
            "a": SourceUnavailableError("fake", "down"),
            "b": SourceUnavailableError("fake", "down"),
        }
    )
    aggregator = CandidateAggregator(source, timeout=1.0)

    assert await aggregator.gather(["a", "b"]) == []
    assert await aggregator.gather([]) == []
    await source.aclose()


@pytest.mark.asyncio
async def test_queries_run_concurrently_with_bound(make_source) -> None:
    source = make_source({f"q{i}": 0.05 for i in range(6)})
    aggregator = CandidateAggregator(source, max_concurrency=2, timeout=1.0)

    await aggregator.gather([f"q{i}" for i in range(6)])

    assert source.max_in_flight == 2
    await source.aclose()


@pytest.mark.asyncio
async def test_caller_cancellation_propagates(make_source) -> None:
    source = make_source({"slow": 5.0})
    aggregator = CandidateAggregator(source, timeout=10.0)

    task = asyncio.create_task(aggregator.gather(["slow"]))
    await asyncio.sleep(0.05)
    task.cancel()

    with pytest.raises(asyncio.CancelledError):
        await task
    await source.aclose()
