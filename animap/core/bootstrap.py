"""Bootstrap logic: wire settings, logging, the mapping store and per-source services."""

from __future__ import annotations

from typing import Literal

import structlog
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker
from sqlmodel.ext.asyncio.session import AsyncSession as SQLModelAsyncSession

from animap.core.config import Settings, get_settings
from animap.core.database import create_database_engine, create_session_factory, init_database
from animap.core.logging import setup_logging
from animap.core.matching import MatchingConfig, get_matching_config
from animap.core.metadata import AniListClient, JikanClient, MetadataProvider, ResponseCache
from animap.core.resolution import (
    CanonicalIdentifier,
    MappingStore,
    ResolutionCache,
    ResolutionService,
    SqlMappingStore,
)
from animap.core.sources import ContentSource, create_source

logger = structlog.get_logger("animap.bootstrap")


class Animap:
    """Runtime container for one process.

    Owns the database engine, the shared mapping store and one resolution
    service per content source. Services and caches are created on first use
    and live until `aclose`.
    """

    def __init__(
        self,
        settings: Settings,
        store: MappingStore,
        engine: AsyncEngine | None = None,
        matching_config: MatchingConfig | None = None,
    ) -> None:
        self.settings = settings
        self.store = store
        self.engine = engine
        self.matching_config = matching_config or get_matching_config()
        self._caches: dict[str, ResolutionCache] = {}
        self._services: dict[str, ResolutionService] = {}
        self._providers: dict[tuple[str, str], MetadataProvider] = {}

    def cache(self, source_name: str) -> ResolutionCache:
        if source_name not in self._caches:
            self._caches[source_name] = ResolutionCache(self.store, source_name)
        return self._caches[source_name]

    def resolver(self, source_name: str, source: ContentSource | None = None) -> ResolutionService:
        """Get (or create) the resolution service for a content source.

        Services and caches are keyed by the source's own name, so a custom
        source instance is reachable under that name afterwards.

        Args:
            source_name: Built-in source name such as "animepahe"
            source: Optional source instance to use instead of the built-in one
        """
        name = source.name if source is not None else source_name
        if name not in self._services:
            source = source or create_source(source_name, self.settings)
            self._services[name] = ResolutionService(
                source,
                self.cache(name),
                config=self.matching_config,
                max_queries=self.settings.max_queries,
                max_concurrency=self.settings.max_concurrent_queries,
                timeout=self.settings.request_timeout,
            )
            logger.debug("Created resolution service", source=name)
        return self._services[name]

    def metadata_provider(
        self, provider: Literal["anilist", "jikan"] = "anilist", media_type: str = "ANIME"
    ) -> MetadataProvider:
        """Get (or create) a metadata client, one per provider and media type."""
        media: Literal["ANIME", "MANGA"] = "MANGA" if media_type.upper() == "MANGA" else "ANIME"
        key = (provider, media)
        if key in self._providers:
            return self._providers[key]

        cache = ResponseCache(
            self.settings.cache_dir / "metadata", ttl=self.settings.metadata_cache_ttl
        )
        client: MetadataProvider
        if provider == "jikan":
            client = JikanClient(
                self.settings.jikan_url, timeout=self.settings.request_timeout, cache=cache
            )
        else:
            client = AniListClient(
                self.settings.anilist_url,
                media_type=media,
                timeout=self.settings.request_timeout,
                cache=cache,
            )
        self._providers[key] = client
        return client

    def identifier(self, source_name: str, provider: MetadataProvider) -> CanonicalIdentifier:
        return CanonicalIdentifier(provider, self.cache(source_name), config=self.matching_config)

    async def aclose(self) -> None:
        """Drain background writes, close network clients and dispose the engine."""
        for service in self._services.values():
            await service.aclose()
            await service.source.aclose()
        for provider in self._providers.values():
            await provider.aclose()
        if self.engine is not None:
            await self.engine.dispose()
            logger.info("Database engine disposed")

    async def __aenter__(self) -> Animap:
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()


async def bootstrap(settings: Settings | None = None, configure_logging: bool = True) -> Animap:
    """Set up logging and the database, and return the runtime container.

    Args:
        settings: Settings to use (if None, loads the cached settings)
        configure_logging: Whether to configure logging handlers
    """
    settings = settings or get_settings()
    if configure_logging:
        setup_logging(debug=settings.is_debug, logs_dir=settings.logs_dir)

    engine = create_database_engine(settings.database_file, echo=False)
    await init_database(engine)
    session_factory: async_sessionmaker[SQLModelAsyncSession] = create_session_factory(engine)
    logger.info("Database engine and session factory created", database=str(settings.database_file))

    return Animap(settings, SqlMappingStore(session_factory), engine=engine)
