"""Database models for animap.

All SQLModel models should be defined here and imported in db/__init__.py.

Models follow these patterns:
- Use singular nouns for classes, plural snake_case table names
- Integer epoch timestamps
- Composite primary keys where the natural key is composite
"""

from __future__ import annotations

import time

from sqlalchemy import Index
from sqlmodel import Field, SQLModel

metadata = SQLModel.metadata


class ResolutionMappingRecord(SQLModel, table=True):
    """Persisted resolution: canonical id -> source-local id, per content source.

    Upserts are keyed by (source, canonical_id). The reverse index on
    (source, source_id) serves identification of source entries.
    """

    __tablename__ = "resolution_mappings"  # type: ignore[assignment]

    source: str = Field(primary_key=True)  # Content-source name, e.g. "animepahe"
    canonical_id: str = Field(primary_key=True)  # Metadata-provider id (stringified)
    source_id: str
    matched_title: str = Field(default="")
    resolved_at: int = Field(default_factory=lambda: int(time.time()))

    __table_args__ = (Index("idx_resolution_mappings_source_id", "source", "source_id"),)
