"""Shared utility functions for animap."""

from __future__ import annotations

import re
from typing import Any

_YEAR_RE = re.compile(r"(19|20)\d{2}")
_VOLUME_MARKER_RE = re.compile(r"\(\s*vol\.?\s*\d+\s*\)", re.IGNORECASE)
_WHITESPACE_RE = re.compile(r"\s+")


def extract_year(value: Any) -> int | None:
    """Extract a 4-digit year from a value.

    Accepts ints and strings such as "2020", "Spring 2020" or "2020-04-03".

    Args:
        value: Value to extract year from

    Returns:
        Year as int or None if not found
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value if 1900 <= value <= 2099 else None
    match = _YEAR_RE.search(str(value))
    if match:
        return int(match.group(0))
    return None


def collapse_whitespace(value: str | None) -> str:
    """Trim and collapse internal whitespace runs to single spaces."""
    if not value:
        return ""
    return _WHITESPACE_RE.sub(" ", value).strip()


def query_key(value: str | None) -> str:
    """Case- and whitespace-insensitive key used to deduplicate search strings."""
    return collapse_whitespace(value).casefold()


def clean_search_title(value: str | None) -> str:
    """Remove volume markers like "(Vol.3)" that reader sites append to titles."""
    return collapse_whitespace(_VOLUME_MARKER_RE.sub(" ", value or ""))


def extract_slug(url: str, marker: str) -> str:
    """Extract the path segment following marker from a URL.

    Example: extract_slug("https://site/manga/one-piece.2040/", "/manga/")
    returns "one-piece.2040".
    """
    if marker not in url:
        return url.strip("/").rsplit("/", 1)[-1]
    return url.split(marker, 1)[1].strip("/").split("/", 1)[0]
