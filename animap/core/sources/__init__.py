"""Content sources: third-party sites searched for candidates and content."""

from __future__ import annotations

from typing import TYPE_CHECKING

from animap.core.sources.animepahe import AnimePaheSource
from animap.core.sources.base import ContentSource
from animap.core.sources.mangakatana import MangaKatanaSource

if TYPE_CHECKING:
    from animap.core.config import Settings

# Built-in source definitions
BUILTIN_SOURCES: dict[str, type[ContentSource]] = {
    "animepahe": AnimePaheSource,
    "mangakatana": MangaKatanaSource,
}


def create_source(name: str, settings: Settings | None = None) -> ContentSource:
    """Instantiate a built-in source configured from settings.

    Raises:
        KeyError: If the name is not a built-in source
    """
    if settings is None:
        from animap.core.config import get_settings

        settings = get_settings()

    source_cls = BUILTIN_SOURCES[name.lower()]
    return source_cls(
        base_url=getattr(settings, f"{name.lower()}_base_url"),
        timeout=settings.request_timeout,
        user_agent=settings.user_agent,
    )


__all__ = [
    "AnimePaheSource",
    "BUILTIN_SOURCES",
    "ContentSource",
    "MangaKatanaSource",
    "create_source",
]
