"""Tests for bootstrap and the runtime container."""

from __future__ import annotations

from pathlib import Path

import pytest

from animap.core.bootstrap import Animap, bootstrap
from animap.core.config import Settings
from animap.core.metadata import AniListClient, JikanClient
from animap.core.models import Candidate, TargetRecord
from animap.core.resolution import InMemoryMappingStore, SqlMappingStore
from animap.core.sources import AnimePaheSource

NARUTO = TargetRecord(canonical_id=20, title="Naruto", year=2002, content_type="TV")


@pytest.mark.asyncio
async def test_bootstrap_creates_database(tmp_path: Path, make_source) -> None:
    """Test bootstrap wires a SQLite store and persists resolutions across runs."""
    settings = Settings(data_dir=tmp_path / "data")

    async with await bootstrap(settings, configure_logging=False) as app:
        assert isinstance(app.store, SqlMappingStore)
        assert settings.database_file.exists()

        source = make_source(
            {"Naruto": [Candidate(source_id="s1", title="Naruto", year=2002, content_type="TV")]},
            name="animepahe",
        )
        resolution = await app.resolver("animepahe", source).resolve(NARUTO)
        assert resolution.source_id == "s1"

    # aclose drained the background persist before disposing the engine
    async with await bootstrap(settings, configure_logging=False) as app:
        mapping = await app.cache("animepahe").lookup(NARUTO.key)
        assert mapping is not None
        assert mapping.source_id == "s1"


@pytest.mark.asyncio
async def test_resolver_is_created_once_per_source(tmp_path: Path) -> None:
    """Test the container reuses services, caches and builds sources from settings."""
    settings = Settings(data_dir=tmp_path / "data", max_queries=2, request_timeout=3)

    async with Animap(settings, InMemoryMappingStore()) as app:
        service = app.resolver("animepahe")

        assert app.resolver("animepahe") is service
        assert isinstance(service.source, AnimePaheSource)
        assert service.max_queries == 2
        assert service.aggregator.timeout == 3
        assert app.cache("animepahe") is service.cache


@pytest.mark.asyncio
async def test_metadata_providers(tmp_path: Path) -> None:
    """Test provider selection and media type."""
    settings = Settings(data_dir=tmp_path / "data", metadata_cache_ttl=0)

    async with Animap(settings, InMemoryMappingStore()) as app:
        anilist = app.metadata_provider("anilist", media_type="manga")
        jikan = app.metadata_provider("jikan")
        identifier = app.identifier("mangakatana", anilist)

        assert isinstance(anilist, AniListClient)
        assert anilist.media_type == "MANGA"
        assert isinstance(jikan, JikanClient)
        assert identifier.cache is app.cache("mangakatana")


@pytest.mark.asyncio
async def test_custom_source_is_keyed_by_its_own_name(tmp_path: Path, make_source) -> None:
    """Test a custom source instance shares its name with its service and cache namespace."""
    settings = Settings(data_dir=tmp_path / "data")

    async with Animap(settings, InMemoryMappingStore()) as app:
        source = make_source(
            {"Naruto": [Candidate(source_id="s1", title="Naruto", year=2002, content_type="TV")]},
            name="mirror",
        )
        service = app.resolver("animepahe", source)
        await service.resolve(NARUTO)

        assert app.resolver("mirror") is service
        assert service.cache is app.cache("mirror")
        assert service.cache.source == "mirror"
        assert (await app.cache("mirror").lookup(NARUTO.key)).source_id == "s1"  # type: ignore[union-attr]


@pytest.mark.asyncio
async def test_metadata_providers_are_reused(tmp_path: Path) -> None:
    """Test one client is kept per provider and media type."""
    settings = Settings(data_dir=tmp_path / "data", metadata_cache_ttl=0)

    async with Animap(settings, InMemoryMappingStore()) as app:
        manga = app.metadata_provider("anilist", media_type="manga")
        anime = app.metadata_provider("anilist")

        assert app.metadata_provider("anilist", media_type="MANGA") is manga
        assert app.metadata_provider("anilist", media_type="ANIME") is anime
        assert manga is not anime
        assert app.metadata_provider("jikan") is app.metadata_provider("jikan")
