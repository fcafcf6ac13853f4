"""Base abstract class for metadata providers."""

from __future__ import annotations

from abc import ABC, abstractmethod

import structlog

from animap.core.models import TargetRecord


class MetadataProvider(ABC):
    """Abstract base class for canonical metadata providers (AniList, MyAnimeList)."""

    def __init__(self, name: str) -> None:
        """Initialize metadata provider.

        Args:
            name: Name of the provider (for logging)
        """
        self.name = name
        self.logger = structlog.get_logger(f"animap.metadata.{name.lower()}")

    async def __aenter__(self) -> MetadataProvider:
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Release network resources."""

    @abstractmethod
    async def get_details(self, canonical_id: int | str) -> TargetRecord:
        """Fetch one record by id.

        Raises:
            MetadataProviderError: If the record cannot be fetched or parsed
        """

    @abstractmethod
    async def search(self, title: str, limit: int = 5) -> list[TargetRecord]:
        """Search records by title, best match first.

        Raises:
            MetadataProviderError: If the search fails
        """
