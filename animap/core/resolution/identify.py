"""Reverse identification: find the canonical id of a content-source entry."""

from __future__ import annotations

import structlog
from rapidfuzz import fuzz

from animap.core.exceptions import MetadataProviderError
from animap.core.matching import MatchingConfig, get_matching_config, pick_best
from animap.core.metadata.base import MetadataProvider
from animap.core.models import Candidate, ScoredCandidate, TargetRecord
from animap.core.resolution.cache import ResolutionCache
from animap.core.utils import clean_search_title, collapse_whitespace

logger = structlog.get_logger("animap.resolution.identify")


def title_similarity(left: str, right: str) -> float:
    """Similarity of two titles on a 0-100 scale.

    The best of plain ratio and token-sort ratio, so reordered words
    ("Kaisen Jujutsu") still score high.
    """
    a = collapse_whitespace(left).lower()
    b = collapse_whitespace(right).lower()
    if not a or not b:
        return 0.0
    return max(fuzz.ratio(a, b), fuzz.token_sort_ratio(a, b))


def best_similarity(title: str, record: TargetRecord) -> float:
    return max((title_similarity(title, name) for name in record.names), default=0.0)


class CanonicalIdentifier:
    """Identifies which metadata record a content-source entry belongs to.

    Learned identifications are stored in the same resolution cache used for
    forward resolution, so each direction warms the other.
    """

    def __init__(
        self,
        provider: MetadataProvider,
        cache: ResolutionCache,
        config: MatchingConfig | None = None,
    ) -> None:
        self.provider = provider
        self.cache = cache
        self.config = config or get_matching_config()

    def verify(self, candidate: Candidate, record: TargetRecord) -> ScoredCandidate | None:
        """Score a source entry against a record with the forward-resolution rules.

        Returns the scored entry only when it is accepted and high confidence,
        so season and year disagreements reject a similar-looking title.
        """
        scored = pick_best([candidate], record, self.config)
        if scored is None or not scored.high_confidence:
            return None
        return scored

    async def identify(
        self,
        source_id: str,
        title: str,
        year: int | None = None,
        content_type: str | None = None,
    ) -> str | None:
        """Return the canonical id for a source entry, or None if it cannot be verified.

        Args:
            source_id: Source-local id of the entry
            title: Title the source lists the entry under
            year: Release year, when the source lists one
            content_type: Format reported by the source
        """
        cached = await self.cache.reverse_lookup(source_id)
        if cached is not None:
            logger.debug("Identified from cache", source_id=source_id, canonical_id=cached.canonical_id)
            return cached.canonical_id

        query = clean_search_title(title)
        if not query:
            return None

        try:
            records = await self.provider.search(query, limit=self.config.identify_search_limit)
        except MetadataProviderError as exc:
            logger.warning(
                "Metadata search failed during identification",
                source_id=source_id,
                query=query,
                error=str(exc),
            )
            return None

        similar: list[tuple[float, TargetRecord]] = []
        for record in records:
            similarity = best_similarity(query, record)
            if similarity >= self.config.identify_min_similarity:
                similar.append((similarity, record))
        # Most similar first; the sort is stable so provider order breaks ties
        similar.sort(key=lambda item: item[0], reverse=True)

        candidate = Candidate(source_id=source_id, title=query, year=year, content_type=content_type)
        for similarity, record in similar:
            scored = self.verify(candidate, record)
            if scored is None:
                logger.debug(
                    "Similar record rejected by scoring",
                    source_id=source_id,
                    canonical_id=record.key,
                    similarity=round(similarity, 1),
                )
                continue

            await self.cache.store_mapping(record.key, source_id, title)
            logger.info(
                "Identified source entry",
                source_id=source_id,
                canonical_id=record.key,
                similarity=round(similarity, 1),
                score=scored.score,
            )
            return record.key

        logger.info(
            "No verified identification",
            source_id=source_id,
            query=query,
            similar=len(similar),
            candidates=len(records),
        )
        return None
