"""Two-level resolution cache: process memory in front of a durable mapping store."""

from __future__ import annotations

import enum
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Protocol, runtime_checkable

import structlog

from animap.core.exceptions import PersistenceError
from animap.core.metrics import mapping_persist_failures_total, resolution_cache_lookups_total
from animap.core.models import ResolutionMapping

logger = structlog.get_logger("animap.resolution.cache")


@runtime_checkable
class MappingStore(Protocol):
    """Durable store of resolution mappings keyed by (source, canonical_id).

    Implementations raise PersistenceError on failure. `set` is an idempotent
    upsert.
    """

    async def get(self, source: str, canonical_id: str) -> ResolutionMapping | None: ...

    async def find_by_source_id(self, source: str, source_id: str) -> ResolutionMapping | None: ...

    async def set(self, mapping: ResolutionMapping) -> None: ...

    async def delete(self, source: str, canonical_id: str) -> None: ...


class InMemoryMappingStore:
    """MappingStore kept in a dict; for tests and ephemeral use."""

    def __init__(self) -> None:
        self._mappings: dict[tuple[str, str], ResolutionMapping] = {}

    async def get(self, source: str, canonical_id: str) -> ResolutionMapping | None:
        return self._mappings.get((source, canonical_id))

    async def find_by_source_id(self, source: str, source_id: str) -> ResolutionMapping | None:
        for (mapping_source, _), mapping in self._mappings.items():
            if mapping_source == source and mapping.source_id == source_id:
                return mapping
        return None

    async def set(self, mapping: ResolutionMapping) -> None:
        self._mappings[(mapping.source, mapping.canonical_id)] = mapping

    async def delete(self, source: str, canonical_id: str) -> None:
        self._mappings.pop((source, canonical_id), None)

    def __len__(self) -> int:
        return len(self._mappings)


class ResolutionState(str, enum.Enum):
    UNRESOLVED = "unresolved"
    RESOLVING = "resolving"
    RESOLVED = "resolved"


class ResolutionCache:
    """Resolution cache for one content source.

    The memory layer lives for the lifetime of the cache object. Store errors
    never escape: a failed read is a miss, a failed write is logged and
    counted. Concurrent writes for the same canonical id are last-write-wins.
    """

    def __init__(self, store: MappingStore, source: str) -> None:
        """Initialize resolution cache.

        Args:
            store: Durable mapping store shared across sources
            source: Content-source name used as the key namespace
        """
        self.store = store
        self.source = source
        self._memory: dict[str, ResolutionMapping] = {}
        self._resolving: dict[str, int] = {}

    def _count(self, layer: str, result: str) -> None:
        resolution_cache_lookups_total.labels(source=self.source, layer=layer, result=result).inc()

    async def lookup(self, canonical_id: str) -> ResolutionMapping | None:
        """Find the mapping for a canonical id, memory first, then the store.

        A store hit is promoted into memory.
        """
        cached = self._memory.get(canonical_id)
        if cached is not None:
            self._count("memory", "hit")
            return cached
        self._count("memory", "miss")

        try:
            mapping = await self.store.get(self.source, canonical_id)
        except PersistenceError as exc:
            self._count("store", "error")
            logger.warning(
                "Mapping store read failed, treating as miss",
                source=self.source,
                canonical_id=canonical_id,
                error=str(exc),
            )
            return None

        if mapping is None:
            self._count("store", "miss")
            return None

        self._count("store", "hit")
        self._memory[canonical_id] = mapping
        return mapping

    def remember(self, canonical_id: str, source_id: str, title: str = "") -> ResolutionMapping:
        """Write a mapping to the memory layer only."""
        mapping = ResolutionMapping(
            source=self.source,
            canonical_id=canonical_id,
            source_id=source_id,
            matched_title=title,
        )
        self._memory[canonical_id] = mapping
        return mapping

    async def persist(self, mapping: ResolutionMapping) -> bool:
        """Write a mapping to the store. Returns False on failure instead of raising."""
        try:
            await self.store.set(mapping)
        except PersistenceError as exc:
            mapping_persist_failures_total.labels(source=self.source).inc()
            logger.warning(
                "Failed to persist resolution mapping",
                source=self.source,
                canonical_id=mapping.canonical_id,
                source_id=mapping.source_id,
                error=str(exc),
            )
            return False

        logger.debug(
            "Persisted resolution mapping",
            source=self.source,
            canonical_id=mapping.canonical_id,
            source_id=mapping.source_id,
        )
        return True

    async def store_mapping(
        self, canonical_id: str, source_id: str, title: str = ""
    ) -> ResolutionMapping:
        """Write through to both layers."""
        mapping = self.remember(canonical_id, source_id, title)
        await self.persist(mapping)
        return mapping

    async def invalidate(self, canonical_id: str) -> None:
        """Forget a mapping so the next lookup re-resolves.

        Drops the memory entry and deletes the persisted mapping; a failed
        delete is logged and counted.
        """
        self._memory.pop(canonical_id, None)
        try:
            await self.store.delete(self.source, canonical_id)
        except PersistenceError as exc:
            mapping_persist_failures_total.labels(source=self.source).inc()
            logger.warning(
                "Failed to delete resolution mapping",
                source=self.source,
                canonical_id=canonical_id,
                error=str(exc),
            )
        logger.info("Invalidated resolution mapping", source=self.source, canonical_id=canonical_id)

    @contextmanager
    def resolving(self, canonical_id: str) -> Iterator[None]:
        """Mark a canonical id as RESOLVING for the duration of the block."""
        self._resolving[canonical_id] = self._resolving.get(canonical_id, 0) + 1
        try:
            yield
        finally:
            remaining = self._resolving[canonical_id] - 1
            if remaining:
                self._resolving[canonical_id] = remaining
            else:
                del self._resolving[canonical_id]

    def state(self, canonical_id: str) -> ResolutionState:
        if canonical_id in self._resolving:
            return ResolutionState.RESOLVING
        if canonical_id in self._memory:
            return ResolutionState.RESOLVED
        return ResolutionState.UNRESOLVED

    async def reverse_lookup(self, source_id: str) -> ResolutionMapping | None:
        """Find the mapping whose source id is `source_id`, memory first."""
        for mapping in self._memory.values():
            if mapping.source_id == source_id:
                return mapping

        try:
            mapping = await self.store.find_by_source_id(self.source, source_id)
        except PersistenceError as exc:
            logger.warning(
                "Mapping store reverse lookup failed",
                source=self.source,
                source_id=source_id,
                error=str(exc),
            )
            return None

        if mapping is not None:
            self._memory[mapping.canonical_id] = mapping
        return mapping
