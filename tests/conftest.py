"""Shared test fixtures."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from pathlib import Path

import pytest

from animap.core.config import reload_settings
from animap.core.exceptions import MetadataProviderError
from animap.core.matching import MatchingConfig, reload_matching_config
from animap.core.metadata.base import MetadataProvider
from animap.core.models import Candidate, ContentItem, ContentPage, TargetRecord
from animap.core.sources.base import ContentSource


@pytest.fixture(autouse=True)
def isolated_data_dir(monkeypatch, tmp_path: Path) -> Path:
    """Point settings at a per-test data directory so nothing touches ./data."""
    data_dir = tmp_path / "data"
    data_dir.mkdir()
    monkeypatch.setenv("ANIMAP_DATA_DIR", str(data_dir))
    reload_settings()
    reload_matching_config()
    return data_dir


@pytest.fixture
def matching_config() -> MatchingConfig:
    return MatchingConfig()


class FakeSource(ContentSource):
    """In-process content source with scripted search and content results.

    `results` maps a query to a list of candidates, an exception to raise,
    or a float number of seconds to hang before returning nothing.
    """

    def __init__(
        self,
        results: dict[str, list[Candidate] | Exception | float] | None = None,
        content: dict[str, list[ContentItem] | Exception] | None = None,
        name: str = "fake",
    ) -> None:
        super().__init__(name, "https://fake.test")
        self.results = results or {}
        self.content = content or {}
        self.search_calls: list[str] = []
        self.list_calls: list[str] = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def search(self, query: str) -> list[Candidate]:
        self.search_calls.append(query)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(0.01)
            result = self.results.get(query, [])
            if isinstance(result, Exception):
                raise result
            if isinstance(result, float):
                await asyncio.sleep(result)
                return []
            return list(result)
        finally:
            self.in_flight -= 1

    async def list_content(self, source_id: str) -> list[ContentItem]:
        self.list_calls.append(source_id)
        items = self.content.get(source_id, [])
        if isinstance(items, Exception):
            raise items
        return list(items)

    async def get_content_detail(self, content_id: str) -> list[ContentPage]:
        return [ContentPage(page_number=1, image_url=f"https://fake.test/{content_id}/1.jpg")]


class FakeProvider(MetadataProvider):
    """Metadata provider returning canned search results."""

    def __init__(self, records: list[TargetRecord] | Exception | None = None) -> None:
        super().__init__("fake")
        self.records = records if records is not None else []
        self.search_calls: list[str] = []

    async def get_details(self, canonical_id: int | str) -> TargetRecord:
        if isinstance(self.records, Exception):
            raise self.records
        for record in self.records:
            if record.key == str(canonical_id):
                return record
        raise MetadataProviderError(self.name, f"{canonical_id} not found")

    async def search(self, title: str, limit: int = 5) -> list[TargetRecord]:
        self.search_calls.append(title)
        if isinstance(self.records, Exception):
            raise self.records
        return self.records[:limit]


@pytest.fixture
def make_source() -> Callable[..., FakeSource]:
    return FakeSource


@pytest.fixture
def make_provider() -> Callable[..., FakeProvider]:
    return FakeProvider


def episodes(*numbers: int) -> list[ContentItem]:
    return [ContentItem(content_id=f"ep-{n}", number=float(n)) for n in numbers]


@pytest.fixture
def make_episodes() -> Callable[..., list[ContentItem]]:
    return episodes
