"""Cross-source resolution: queries, candidate aggregation, caching and orchestration."""

from animap.core.resolution.aggregator import CandidateAggregator
from animap.core.resolution.cache import (
    InMemoryMappingStore,
    MappingStore,
    ResolutionCache,
    ResolutionState,
)
from animap.core.resolution.identify import CanonicalIdentifier
from animap.core.resolution.queries import build_queries
from animap.core.resolution.service import ResolutionService
from animap.core.resolution.store import SqlMappingStore

__all__ = [
    "CandidateAggregator",
    "CanonicalIdentifier",
    "InMemoryMappingStore",
    "MappingStore",
    "ResolutionCache",
    "ResolutionService",
    "ResolutionState",
    "SqlMappingStore",
    "build_queries",
]
