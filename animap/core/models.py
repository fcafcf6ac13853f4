"""Pydantic models for metadata records, candidates and resolutions."""

from __future__ import annotations

import time
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from animap.core.exceptions import InvalidRecordError
from animap.core.utils import collapse_whitespace, extract_year, query_key


class TargetRecord(BaseModel):
    """Canonical metadata record (AniList/MAL) being resolved against a content source."""

    model_config = ConfigDict(frozen=True)

    canonical_id: int | str = Field(..., description="Metadata-provider identifier")
    title: str = Field(default="", description="Primary title")
    title_english: str | None = Field(default=None, description="English title")
    title_romaji: str | None = Field(default=None, description="Romaji title")
    title_native: str | None = Field(default=None, description="Native (often CJK) title")
    synonyms: tuple[str, ...] = Field(default=(), description="Alternate titles, in provider order")
    year: int | None = Field(default=None, description="Release year")
    content_type: str | None = Field(
        default=None, description="Format such as 'TV', 'Movie', 'OVA', 'MANGA'"
    )
    season_hint: int | None = Field(
        default=None, ge=1, description="Explicit season number when known from metadata"
    )

    @field_validator("year", mode="before")
    @classmethod
    def _coerce_year(cls, value: Any) -> int | None:
        return extract_year(value)

    @field_validator("synonyms", mode="before")
    @classmethod
    def _coerce_synonyms(cls, value: Any) -> tuple[str, ...]:
        if value is None:
            return ()
        if isinstance(value, str):
            return (value,)
        return tuple(str(item) for item in value if item is not None)

    @model_validator(mode="after")
    def _require_a_title(self) -> TargetRecord:
        if not any(
            collapse_whitespace(value)
            for value in (self.title, self.title_english, self.title_romaji, self.title_native)
        ):
            raise InvalidRecordError(f"Record {self.canonical_id!r} has no title")
        return self

    @property
    def key(self) -> str:
        """String form of canonical_id used for cache and store keys."""
        return str(self.canonical_id)

    @property
    def primary_title(self) -> str:
        """First non-blank of title, English, romaji and native titles."""
        for value in (self.title, self.title_english, self.title_romaji, self.title_native):
            cleaned = collapse_whitespace(value)
            if cleaned:
                return cleaned
        return ""

    @property
    def names(self) -> list[str]:
        """Every non-blank title and synonym, deduplicated, in query order."""
        names: list[str] = []
        seen: set[str] = set()
        for value in (
            self.title,
            self.title_english,
            self.title_romaji,
            *self.synonyms,
            self.title_native,
        ):
            cleaned = collapse_whitespace(value)
            key = query_key(cleaned)
            if key and key not in seen:
                seen.add(key)
                names.append(cleaned)
        return names


class Candidate(BaseModel):
    """A search result from a content source."""

    model_config = ConfigDict(frozen=True)

    source_id: str = Field(..., description="Identifier unique within the content source")
    title: str = Field(..., description="Title as returned by the source")
    year: int | None = Field(default=None, description="Release year, when the source lists one")
    content_type: str | None = Field(default=None, description="Format reported by the source")
    url: str | None = Field(default=None, description="Page URL on the source site")
    thumbnail: str | None = Field(default=None, description="Poster/cover image URL")

    @field_validator("source_id", mode="before")
    @classmethod
    def _coerce_source_id(cls, value: Any) -> str:
        return str(value)

    @field_validator("year", mode="before")
    @classmethod
    def _coerce_year(cls, value: Any) -> int | None:
        return extract_year(value)


class ScoredCandidate(BaseModel):
    """A candidate with its score against one target.

    Scores are signed integers and only comparable within one scoring run.
    """

    candidate: Candidate
    score: int
    details: list[str] = Field(default_factory=list, description="Per-signal explanations")
    high_confidence: bool = Field(
        default=False, description="True if the match qualifies for automatic persistence"
    )


class ResolutionMapping(BaseModel):
    """A persisted resolution of one canonical id on one content source."""

    source: str = Field(..., description="Content-source name")
    canonical_id: str = Field(..., description="Metadata-provider id (stringified)")
    source_id: str = Field(..., description="Source-local id the canonical id resolved to")
    matched_title: str = Field(default="", description="Candidate title at resolution time")
    resolved_at: int = Field(default_factory=lambda: int(time.time()))

    @field_validator("canonical_id", "source_id", mode="before")
    @classmethod
    def _stringify(cls, value: Any) -> str:
        return str(value)


class Resolution(BaseModel):
    """Outcome of resolving a target against a content source."""

    target_key: str
    source: str
    status: Literal["resolved", "unresolved"]
    source_id: str | None = None
    matched_title: str | None = None
    score: int | None = Field(default=None, description="None when served from cache")
    from_cache: bool = False

    @property
    def resolved(self) -> bool:
        return self.status == "resolved"


class ContentItem(BaseModel):
    """An episode or chapter listed for a resolved source id."""

    content_id: str = Field(..., description="Identifier passed to get_content_detail")
    number: float | None = Field(default=None, description="Episode or chapter number")
    title: str | None = None
    url: str | None = None
    released: str | None = Field(default=None, description="Upload/air date as shown by the source")
    thumbnail: str | None = None


class ContentPage(BaseModel):
    """A single manga page image."""

    page_number: int
    image_url: str


class StreamLink(BaseModel):
    """An embed link for one episode quality/audio variant."""

    quality: str = ""
    audio: str = ""
    url: str
