"""Metadata providers: canonical anime/manga records."""

from animap.core.metadata.anilist import AniListClient
from animap.core.metadata.base import MetadataProvider
from animap.core.metadata.cache import ResponseCache
from animap.core.metadata.jikan import JikanClient

__all__ = [
    "AniListClient",
    "JikanClient",
    "MetadataProvider",
    "ResponseCache",
]
