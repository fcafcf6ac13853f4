"""Tests for resolution metrics."""

from __future__ import annotations

import pytest
from prometheus_client import REGISTRY, generate_latest

from animap.core.exceptions import SourceUnavailableError
from animap.core.models import Candidate, TargetRecord
from animap.core.resolution import InMemoryMappingStore, ResolutionCache, ResolutionService

TARGET = TargetRecord(canonical_id=20, title="Naruto", year=2002)


def _sample(name: str, labels: dict[str, str]) -> float:
    return REGISTRY.get_sample_value(name, labels) or 0.0


def test_metrics_are_registered() -> None:
    """Test that resolution metrics appear in the Prometheus exposition."""
    content = generate_latest(REGISTRY).decode()

    assert "animap_resolutions_total" in content
    assert "animap_candidate_queries_total" in content
    assert "animap_resolution_cache_lookups_total" in content
    assert "HELP" in content
    assert "TYPE" in content


@pytest.mark.asyncio
async def test_resolution_outcomes_are_counted(make_source) -> None:
    """Test outcome, query status and cache layer counters for one source."""
    source = make_source(
        {
            "Naruto": [Candidate(source_id="s1", title="Naruto", year=2002)],
        },
        name="metrics-ok",
    )
    service = ResolutionService(source, ResolutionCache(InMemoryMappingStore(), source.name))

    await service.resolve(TARGET)
    await service.resolve(TARGET)
    await service.aclose()

    labels = {"source": "metrics-ok"}
    assert _sample("animap_resolutions_total", {**labels, "outcome": "resolved"}) == 1
    assert _sample("animap_resolutions_total", {**labels, "outcome": "cache_hit"}) == 1
    assert _sample("animap_candidate_queries_total", {**labels, "status": "ok"}) == 1
    assert (
        _sample("animap_resolution_cache_lookups_total", {**labels, "layer": "memory", "result": "hit"})
        == 1
    )
    assert _sample("animap_resolution_duration_seconds_count", labels) == 1
    await source.aclose()


@pytest.mark.asyncio
async def test_failed_queries_are_counted(make_source) -> None:
    """Test failed queries and unresolved outcomes are counted."""
    source = make_source({"Naruto": SourceUnavailableError("metrics-down", "503")}, name="metrics-down")
    service = ResolutionService(source, ResolutionCache(InMemoryMappingStore(), source.name))

    await service.resolve(TARGET)

    labels = {"source": "metrics-down"}
    assert _sample("animap_candidate_queries_total", {**labels, "status": "failed"}) == 1
    assert _sample("animap_resolutions_total", {**labels, "outcome": "unresolved"}) == 1
    await source.aclose()
