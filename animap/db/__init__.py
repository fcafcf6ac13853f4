"""Database models and utilities."""

from __future__ import annotations

from animap.db.models import ResolutionMappingRecord, metadata

__all__ = [
    "metadata",
    "ResolutionMappingRecord",
]
