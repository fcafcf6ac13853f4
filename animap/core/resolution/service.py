"""Resolution service: cache lookup, candidate search, scoring and write-through."""

from __future__ import annotations

import asyncio
import time

import structlog

from animap.core.exceptions import SourceUnavailableError, StaleMappingError
from animap.core.matching import MatchingConfig, get_matching_config, pick_best
from animap.core.metrics import (
    resolution_duration_seconds,
    resolutions_total,
    stale_mappings_total,
)
from animap.core.models import (
    ContentItem,
    ContentPage,
    Resolution,
    ResolutionMapping,
    StreamLink,
    TargetRecord,
)
from animap.core.resolution.aggregator import CandidateAggregator
from animap.core.resolution.cache import ResolutionCache
from animap.core.resolution.queries import DEFAULT_MAX_QUERIES, build_queries
from animap.core.sources.base import ContentSource
from animap.core.tracing import resolution_context

logger = structlog.get_logger("animap.resolution.service")


class ResolutionService:
    """Resolves canonical metadata records to ids on one content source.

    Control flow per resolution: cache lookup, then on a miss build queries,
    gather candidates and pick the best. Accepted matches are remembered in
    memory; high-confidence matches are also persisted in the background.
    """

    def __init__(
        self,
        source: ContentSource,
        cache: ResolutionCache,
        config: MatchingConfig | None = None,
        max_queries: int = DEFAULT_MAX_QUERIES,
        max_concurrency: int = 4,
        timeout: float = 10.0,
    ) -> None:
        """Initialize resolution service.

        Args:
            source: Content source to resolve against
            cache: Resolution cache namespaced to the same source
            config: Matching configuration (if None, loads from settings file)
            max_queries: Maximum number of search queries per resolution
            max_concurrency: Maximum number of concurrent searches
            timeout: Per-search timeout in seconds
        """
        self.source = source
        self.cache = cache
        self.config = config or get_matching_config()
        self.max_queries = max_queries
        self.aggregator = CandidateAggregator(source, max_concurrency=max_concurrency, timeout=timeout)
        self._pending_writes: set[asyncio.Task[bool]] = set()

    def _unresolved(self, target: TargetRecord) -> Resolution:
        return Resolution(target_key=target.key, source=self.source.name, status="unresolved")

    async def resolve(self, target: TargetRecord, use_cache: bool = True) -> Resolution:
        """Resolve a target to a source id.

        Args:
            target: Record to resolve
            use_cache: If False, skip the cache lookup (the result is still cached)

        Returns:
            Resolution with status "resolved" or "unresolved"
        """
        key = target.key
        with resolution_context(self.source.name, key):
            if use_cache:
                mapping = await self.cache.lookup(key)
                if mapping is not None:
                    resolutions_total.labels(source=self.source.name, outcome="cache_hit").inc()
                    logger.debug("Resolved from cache", source_id=mapping.source_id)
                    return Resolution(
                        target_key=key,
                        source=self.source.name,
                        status="resolved",
                        source_id=mapping.source_id,
                        matched_title=mapping.matched_title,
                        from_cache=True,
                    )

            with self.cache.resolving(key):
                started = time.perf_counter()
                queries = build_queries(target, self.max_queries)
                candidates = await self.aggregator.gather(queries)
                best = pick_best(candidates, target, self.config)
                resolution_duration_seconds.labels(source=self.source.name).observe(
                    time.perf_counter() - started
                )

                if best is None:
                    resolutions_total.labels(source=self.source.name, outcome="unresolved").inc()
                    logger.info(
                        "No candidate accepted",
                        title=target.primary_title,
                        queries=queries,
                        candidates=len(candidates),
                    )
                    return self._unresolved(target)

                mapping = self.cache.remember(key, best.candidate.source_id, best.candidate.title)
                if best.high_confidence:
                    self._schedule_persist(mapping)

            resolutions_total.labels(source=self.source.name, outcome="resolved").inc()
            logger.info(
                "Resolved",
                title=target.primary_title,
                source_id=best.candidate.source_id,
                matched_title=best.candidate.title,
                score=best.score,
                high_confidence=best.high_confidence,
            )
            return Resolution(
                target_key=key,
                source=self.source.name,
                status="resolved",
                source_id=best.candidate.source_id,
                matched_title=best.candidate.title,
                score=best.score,
            )

    def _schedule_persist(self, mapping: ResolutionMapping) -> None:
        # Fire-and-forget; the task is kept referenced until it finishes
        task = asyncio.create_task(self.cache.persist(mapping))
        self._pending_writes.add(task)
        task.add_done_callback(self._pending_writes.discard)

    async def wait_for_pending_writes(self) -> None:
        """Wait until every scheduled background persist has finished."""
        while self._pending_writes:
            results = await asyncio.gather(*list(self._pending_writes), return_exceptions=True)
            for result in results:
                if isinstance(result, Exception):
                    logger.error("Background persist crashed", error=str(result))

    async def aclose(self) -> None:
        await self.wait_for_pending_writes()

    async def _list_content(self, target: TargetRecord, source_id: str) -> list[ContentItem]:
        try:
            items = await self.source.list_content(source_id)
        except SourceUnavailableError as exc:
            raise StaleMappingError(self.source.name, target.key, source_id) from exc
        if not items:
            raise StaleMappingError(self.source.name, target.key, source_id)
        return items

    async def _invalidate_stale(self, error: StaleMappingError) -> None:
        stale_mappings_total.labels(source=self.source.name).inc()
        logger.warning(
            "Stale mapping, invalidating",
            canonical_id=error.canonical_id,
            source_id=error.source_id,
            cause=str(error.__cause__) if error.__cause__ else None,
        )
        # A persist still in flight would otherwise rewrite the stale mapping
        await self.wait_for_pending_writes()
        await self.cache.invalidate(error.canonical_id)

    async def fetch_content(self, target: TargetRecord) -> tuple[Resolution, list[ContentItem]]:
        """Resolve a target and list its episodes or chapters.

        A cached id that yields no content is invalidated and resolved once
        more from scratch. A freshly resolved id that yields nothing is
        invalidated without a second search, since the candidate queries would
        only repeat. Either way the target is then reported unresolved.
        """
        resolution = await self.resolve(target)
        if not resolution.resolved or resolution.source_id is None:
            return resolution, []

        try:
            return resolution, await self._list_content(target, resolution.source_id)
        except StaleMappingError as exc:
            await self._invalidate_stale(exc)

        if not resolution.from_cache:
            return self._unresolved(target), []

        resolution = await self.resolve(target, use_cache=False)
        if not resolution.resolved or resolution.source_id is None:
            return resolution, []

        try:
            return resolution, await self._list_content(target, resolution.source_id)
        except StaleMappingError as exc:
            await self._invalidate_stale(exc)

        return self._unresolved(target), []

    async def fetch_content_detail(self, content_id: str) -> list[ContentPage] | list[StreamLink]:
        """Fetch pages or stream links of one content item from the source."""
        return await self.source.get_content_detail(content_id)
