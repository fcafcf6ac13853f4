"""Tests for reverse identification of source entries."""

from __future__ import annotations

import pytest

from animap.core.exceptions import MetadataProviderError
from animap.core.matching import MatchingConfig
from animap.core.models import Candidate, TargetRecord
from animap.core.resolution import CanonicalIdentifier, InMemoryMappingStore, ResolutionCache
from animap.core.resolution.identify import best_similarity, title_similarity

CHAINSAW_MAN = TargetRecord(
    canonical_id=105778,
    title="Chainsaw Man",
    title_native="チェンソーマン",
    content_type="MANGA",
)
FIRE_PUNCH = TargetRecord(canonical_id=98331, title="Fire Punch", content_type="MANGA")


def _identifier(provider, store=None) -> CanonicalIdentifier:
    cache = ResolutionCache(store if store is not None else InMemoryMappingStore(), "mangakatana")
    return CanonicalIdentifier(provider, cache, MatchingConfig())


def test_title_similarity() -> None:
    assert title_similarity("Chainsaw Man", "chainsaw  man") == 100
    assert title_similarity("Kaisen Jujutsu", "Jujutsu Kaisen") == 100
    assert title_similarity("Chainsaw Man", "") == 0
    assert title_similarity("Chainsaw Man", "Fire Punch") < 50


def test_best_similarity_uses_every_name() -> None:
    assert best_similarity("チェンソーマン", CHAINSAW_MAN) == 100


@pytest.mark.asyncio
async def test_identify_picks_most_similar_record(make_provider) -> None:
    provider = make_provider([FIRE_PUNCH, CHAINSAW_MAN])
    store = InMemoryMappingStore()
    identifier = _identifier(provider, store)

    canonical_id = await identifier.identify("chainsaw-man.21890", "Chainsaw Man (Vol.3)")

    assert canonical_id == "105778"
    assert provider.search_calls == ["Chainsaw Man"]
    mapping = await store.get("mangakatana", "105778")
    assert mapping is not None
    assert mapping.source_id == "chainsaw-man.21890"


@pytest.mark.asyncio
async def test_identification_is_cached(make_provider) -> None:
    provider = make_provider([CHAINSAW_MAN])
    identifier = _identifier(provider)

    await identifier.identify("chainsaw-man.21890", "Chainsaw Man")
    again = await identifier.identify("chainsaw-man.21890", "Chainsaw Man")

    assert again == "105778"
    assert len(provider.search_calls) == 1


@pytest.mark.asyncio
async def test_forward_resolution_warms_identification(make_provider) -> None:
    provider = make_provider([CHAINSAW_MAN])
    identifier = _identifier(provider)
    identifier.cache.remember("105778", "chainsaw-man.21890")

    assert await identifier.identify("chainsaw-man.21890", "anything") == "105778"
    assert provider.search_calls == []


@pytest.mark.asyncio
async def test_low_similarity_is_not_identified(make_provider) -> None:
    store = InMemoryMappingStore()
    identifier = _identifier(make_provider([FIRE_PUNCH]), store)

    assert await identifier.identify("chainsaw-man.21890", "Chainsaw Man") is None
    assert len(store) == 0


@pytest.mark.asyncio
async def test_provider_errors_are_not_raised(make_provider) -> None:
    identifier = _identifier(make_provider(MetadataProviderError("fake", "down")))

    assert await identifier.identify("chainsaw-man.21890", "Chainsaw Man") is None


@pytest.mark.asyncio
async def test_blank_title_is_not_searched(make_provider) -> None:
    provider = make_provider([CHAINSAW_MAN])
    identifier = _identifier(provider)

    assert await identifier.identify("x", "(Vol.1)") is None
    assert provider.search_calls == []


@pytest.mark.asyncio
async def test_similar_title_of_another_season_is_not_identified(make_provider) -> None:
    provider = make_provider(
        [TargetRecord(canonical_id=145064, title="Jujutsu Kaisen Season 2", year=2023)]
    )
    store = InMemoryMappingStore()
    identifier = _identifier(provider, store)

    assert await identifier.identify("jujutsu-kaisen.1", "Jujutsu Kaisen") is None
    assert len(store) == 0
    assert await identifier.cache.lookup("145064") is None


@pytest.mark.asyncio
async def test_identify_scores_with_year_and_content_type(make_provider) -> None:
    sequel = TargetRecord(canonical_id=145064, title="Jujutsu Kaisen Season 2", year=2023)
    first = TargetRecord(canonical_id=113415, title="Jujutsu Kaisen", year=2020, content_type="TV")
    identifier = _identifier(make_provider([sequel, first]))

    canonical_id = await identifier.identify(
        "jujutsu-kaisen.1", "Jujutsu Kaisen", year=2020, content_type="TV"
    )

    assert canonical_id == "113415"
    assert await identifier.cache.lookup("145064") is None


def test_verify_rejects_season_disagreement() -> None:
    identifier = _identifier(None)
    record = TargetRecord(canonical_id=1, title="Hunter x Hunter", year=2011)

    assert identifier.verify(Candidate(source_id="a", title="Hunter x Hunter", year=2011), record) is not None
    assert identifier.verify(Candidate(source_id="b", title="Hunter x Hunter Season 2", year=2011), record) is None
