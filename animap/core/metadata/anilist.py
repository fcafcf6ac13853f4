"""AniList GraphQL client with request spacing, retry logic, and caching."""

from __future__ import annotations

import asyncio
import random
import time
from typing import Any, Literal

import httpx
import structlog
from pydantic import ValidationError

from animap.core.config import DEFAULT_USER_AGENT
from animap.core.exceptions import MetadataProviderError
from animap.core.metadata.base import MetadataProvider
from animap.core.metadata.cache import ResponseCache
from animap.core.models import TargetRecord

logger = structlog.get_logger("animap.metadata.anilist")

MEDIA_FIELDS = """
    id
    idMal
    title { romaji english native }
    synonyms
    format
    seasonYear
    startDate { year }
"""

DETAILS_QUERY = f"""
query ($id: Int, $type: MediaType) {{
  Media(id: $id, type: $type) {{{MEDIA_FIELDS}}}
}}
"""

SEARCH_QUERY = f"""
query ($search: String, $perPage: Int, $type: MediaType) {{
  Page(page: 1, perPage: $perPage) {{
    media(search: $search, type: $type, sort: SEARCH_MATCH) {{{MEDIA_FIELDS}}}
  }}
}}
"""


def media_to_record(media: dict[str, Any]) -> TargetRecord:
    """Map an AniList Media object to a TargetRecord.

    Raises:
        MetadataProviderError: If the object has no id or no usable title
    """
    titles = media.get("title") or {}
    start_date = media.get("startDate") or {}
    try:
        return TargetRecord(
            canonical_id=media["id"],
            title=titles.get("english") or titles.get("romaji") or titles.get("native") or "",
            title_english=titles.get("english"),
            title_romaji=titles.get("romaji"),
            title_native=titles.get("native"),
            synonyms=media.get("synonyms") or (),
            year=media.get("seasonYear") or start_date.get("year"),
            content_type=media.get("format"),
        )
    except (KeyError, ValidationError) as exc:
        raise MetadataProviderError("anilist", f"Unusable media object: {exc}") from exc


class AniListClient(MetadataProvider):
    """AniList GraphQL client.

    Features:
    - Minimum spacing between requests (AniList allows roughly 2 requests/second)
    - Exponential backoff retry on HTTP 429 and network errors
    - Response caching to disk
    """

    def __init__(
        self,
        url: str = "https://graphql.anilist.co",
        media_type: Literal["ANIME", "MANGA"] = "ANIME",
        timeout: float = 10.0,
        min_interval: float = 0.5,
        max_retries: int = 3,
        cache: ResponseCache | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize AniList client.

        Args:
            url: GraphQL endpoint
            media_type: Media type searched and fetched
            timeout: Per-request timeout in seconds
            min_interval: Minimum seconds between two requests
            max_retries: Maximum number of retries on rate limit and network errors
            cache: Optional response cache
            client: Optional preconfigured HTTP client
        """
        super().__init__("anilist")
        self.url = url
        self.media_type = media_type
        self.min_interval = min_interval
        self.max_retries = max_retries
        self.cache = cache
        self.client = client or httpx.AsyncClient(
            timeout=httpx.Timeout(timeout),
            headers={"User-Agent": DEFAULT_USER_AGENT, "Accept": "application/json"},
        )
        self._last_request = 0.0
        self._rate_limit_lock = asyncio.Lock()

    async def aclose(self) -> None:
        await self.client.aclose()

    async def _wait_for_rate_limit(self) -> None:
        """Serialize requests so consecutive calls are at least min_interval apart."""
        async with self._rate_limit_lock:
            elapsed = time.monotonic() - self._last_request
            if elapsed < self.min_interval:
                await asyncio.sleep(self.min_interval - elapsed)
            self._last_request = time.monotonic()

    async def execute(self, query: str, variables: dict[str, Any]) -> dict[str, Any]:
        """Run a GraphQL query with spacing, retry and caching.

        Returns:
            The "data" object of the response

        Raises:
            MetadataProviderError: For HTTP errors (after retries), network errors
                or GraphQL errors
        """
        request = {"query": query, "variables": variables}
        if self.cache is not None:
            cached = await self.cache.get(self.name, request)
            if cached is not None:
                return cached

        for attempt in range(self.max_retries + 1):
            await self._wait_for_rate_limit()
            try:
                response = await self.client.post(self.url, json=request)
                response.raise_for_status()
                payload = response.json()
                break
            except httpx.HTTPStatusError as e:
                if e.response.status_code == 429 and attempt < self.max_retries:
                    retry_after = e.response.headers.get("Retry-After")
                    base_wait = float(retry_after) if retry_after and retry_after.isdigit() else 2**attempt
                    wait_time = base_wait + random.uniform(0, base_wait * 0.5)
                    logger.warning(
                        "Rate limited by AniList, retrying",
                        attempt=attempt + 1,
                        wait_seconds=wait_time,
                    )
                    await asyncio.sleep(wait_time)
                    continue
                if e.response.status_code == 404:
                    raise MetadataProviderError(self.name, "Not found") from e
                raise MetadataProviderError(self.name, f"HTTP {e.response.status_code}") from e
            except httpx.RequestError as e:
                if attempt < self.max_retries:
                    wait_time = 2**attempt
                    logger.warning(
                        "Network error, retrying",
                        error=str(e),
                        attempt=attempt + 1,
                        wait_seconds=wait_time,
                    )
                    await asyncio.sleep(wait_time)
                    continue
                raise MetadataProviderError(self.name, f"Network error: {e}") from e
            except ValueError as e:
                raise MetadataProviderError(self.name, "Invalid JSON response") from e
        else:
            raise MetadataProviderError(self.name, "Retries exhausted")

        if not isinstance(payload, dict):
            raise MetadataProviderError(self.name, "Unexpected response payload")

        if payload.get("errors"):
            messages = "; ".join(str(err.get("message")) for err in payload["errors"])
            raise MetadataProviderError(self.name, f"GraphQL error: {messages}")

        data = payload.get("data") or {}
        if self.cache is not None:
            await self.cache.store(self.name, request, data)
        return data

    async def get_details(self, canonical_id: int | str) -> TargetRecord:
        try:
            media_id = int(canonical_id)
        except (TypeError, ValueError) as exc:
            raise MetadataProviderError(self.name, f"Invalid id {canonical_id!r}") from exc

        data = await self.execute(DETAILS_QUERY, {"id": media_id, "type": self.media_type})
        media = data.get("Media")
        if not media:
            raise MetadataProviderError(self.name, f"Media {media_id} not found")
        return media_to_record(media)

    async def search(self, title: str, limit: int = 5) -> list[TargetRecord]:
        data = await self.execute(
            SEARCH_QUERY, {"search": title, "perPage": limit, "type": self.media_type}
        )
        media_list = (data.get("Page") or {}).get("media") or []

        records: list[TargetRecord] = []
        for media in media_list:
            try:
                records.append(media_to_record(media))
            except MetadataProviderError as exc:
                self.logger.debug("Skipping unusable search result", error=str(exc))
        return records
