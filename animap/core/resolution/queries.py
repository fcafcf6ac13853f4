"""Search query construction for resolutions."""

from __future__ import annotations

from animap.core.models import TargetRecord
from animap.core.utils import collapse_whitespace, query_key

DEFAULT_MAX_QUERIES = 4


def build_queries(target: TargetRecord, limit: int = DEFAULT_MAX_QUERIES) -> list[str]:
    """Build the ordered search strings for a target.

    Order: primary title, English title, romaji title, then synonyms in their
    given order. Blank strings are skipped and duplicates are dropped
    case- and whitespace-insensitively; the first spelling seen is kept.

    Args:
        target: Record being resolved
        limit: Maximum number of queries to return

    Returns:
        At most `limit` distinct queries, most valuable first
    """
    if limit < 1:
        return []

    queries: list[str] = []
    seen: set[str] = set()
    for value in (target.primary_title, target.title_english, target.title_romaji, *target.synonyms):
        cleaned = collapse_whitespace(value)
        key = query_key(cleaned)
        if not key or key in seen:
            continue
        seen.add(key)
        queries.append(cleaned)
        if len(queries) >= limit:
            break

    return queries
