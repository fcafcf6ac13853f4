"""Candidate aggregation across search queries."""

from __future__ import annotations

import asyncio
from collections.abc import Sequence

import structlog

from animap.core.metrics import candidate_queries_total
from animap.core.models import Candidate
from animap.core.sources.base import ContentSource

logger = structlog.get_logger("animap.resolution.aggregator")


class CandidateAggregator:
    """Runs one search per query against a content source and merges the results.

    Queries run concurrently under a semaphore. A query that raises or times
    out contributes no candidates; it never fails the aggregation.
    """

    def __init__(
        self,
        source: ContentSource,
        max_concurrency: int = 4,
        timeout: float = 10.0,
    ) -> None:
        """Initialize aggregator.

        Args:
            source: Content source to search
            max_concurrency: Maximum number of searches in flight at once
            timeout: Per-query timeout in seconds
        """
        self.source = source
        self.timeout = timeout
        self._semaphore = asyncio.Semaphore(max(1, max_concurrency))

    async def _search(self, query: str) -> list[Candidate]:
        async with self._semaphore:
            return await asyncio.wait_for(self.source.search(query), timeout=self.timeout)

    async def gather(self, queries: Sequence[str]) -> list[Candidate]:
        """Search every query and return candidates deduplicated by source id.

        The first occurrence of a source id wins, in query order then result
        order. Returns an empty list when every query failed or found nothing.
        """
        if not queries:
            return []

        results = await asyncio.gather(
            *(self._search(query) for query in queries),
            return_exceptions=True,
        )

        candidates: list[Candidate] = []
        seen: set[str] = set()
        for query, result in zip(queries, results, strict=True):
            if isinstance(result, asyncio.TimeoutError):
                candidate_queries_total.labels(source=self.source.name, status="timeout").inc()
                logger.warning(
                    "Candidate query timed out",
                    source=self.source.name,
                    query=query,
                    timeout=self.timeout,
                )
                continue
            if isinstance(result, Exception):
                candidate_queries_total.labels(source=self.source.name, status="failed").inc()
                logger.warning(
                    "Candidate query failed",
                    source=self.source.name,
                    query=query,
                    error=str(result),
                    error_type=type(result).__name__,
                )
                continue
            if isinstance(result, BaseException):
                raise result

            status = "ok" if result else "empty"
            candidate_queries_total.labels(source=self.source.name, status=status).inc()
            for candidate in result:
                if candidate.source_id in seen:
                    continue
                seen.add(candidate.source_id)
                candidates.append(candidate)

        logger.debug(
            "Aggregated candidates",
            source=self.source.name,
            queries=len(queries),
            candidates=len(candidates),
        )
        return candidates
