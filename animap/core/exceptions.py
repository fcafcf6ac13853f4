"""Exception hierarchy for animap.

A resolution that finds nothing is not an error: it is returned as an
"unresolved" Resolution. These exceptions cover the failure modes that are
recovered at specific layers:

- SourceUnavailableError: raised by content sources, recovered per query by
  the candidate aggregator
- PersistenceError: raised by mapping stores, recovered by the resolution cache
- StaleMappingError: raised when a resolved id yields no content, recovered by
  the resolution service with one re-resolution
"""

from __future__ import annotations


class AnimapError(Exception):
    """Base class for all animap errors."""


class SourceUnavailableError(AnimapError):
    """A content-source call failed (network, timeout, HTTP status or parse error)."""

    def __init__(self, source: str, message: str, query: str | None = None) -> None:
        self.source = source
        self.query = query
        super().__init__(f"{source}: {message}")


class MetadataProviderError(AnimapError):
    """A metadata-provider call failed or returned an unusable payload."""

    def __init__(self, provider: str, message: str) -> None:
        self.provider = provider
        super().__init__(f"{provider}: {message}")


class PersistenceError(AnimapError):
    """Reading or writing the resolution mapping store failed."""


class StaleMappingError(AnimapError):
    """A resolved source id no longer yields content."""

    def __init__(self, source: str, canonical_id: str, source_id: str) -> None:
        self.source = source
        self.canonical_id = canonical_id
        self.source_id = source_id
        super().__init__(
            f"{source}: mapping {canonical_id} -> {source_id} yielded no content"
        )


class InvalidRecordError(AnimapError, ValueError):
    """A metadata record cannot be used as a resolution target."""
