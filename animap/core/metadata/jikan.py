"""MyAnimeList metadata via the Jikan v4 REST API."""

from __future__ import annotations

from typing import Any

import httpx
from pydantic import ValidationError

from animap.core.config import DEFAULT_USER_AGENT
from animap.core.exceptions import MetadataProviderError
from animap.core.metadata.base import MetadataProvider
from animap.core.metadata.cache import ResponseCache
from animap.core.models import TargetRecord


def anime_to_record(anime: dict[str, Any]) -> TargetRecord:
    """Map a Jikan anime object to a TargetRecord.

    Raises:
        MetadataProviderError: If the object has no id or no usable title
    """
    aired = anime.get("aired") or {}
    try:
        return TargetRecord(
            canonical_id=anime["mal_id"],
            title=anime.get("title") or "",
            title_english=anime.get("title_english"),
            title_native=anime.get("title_japanese"),
            synonyms=anime.get("title_synonyms") or (),
            year=anime.get("year") or aired.get("from"),
            content_type=anime.get("type"),
        )
    except (KeyError, ValidationError) as exc:
        raise MetadataProviderError("jikan", f"Unusable anime object: {exc}") from exc


class JikanClient(MetadataProvider):
    """Jikan (MyAnimeList) client for anime records."""

    def __init__(
        self,
        base_url: str = "https://api.jikan.moe/v4",
        timeout: float = 10.0,
        cache: ResponseCache | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        super().__init__("jikan")
        self.base_url = base_url.rstrip("/")
        self.cache = cache
        self.client = client or httpx.AsyncClient(
            timeout=httpx.Timeout(timeout),
            headers={"User-Agent": DEFAULT_USER_AGENT, "Accept": "application/json"},
        )

    async def aclose(self) -> None:
        await self.client.aclose()

    async def _get(self, path: str, params: dict[str, Any] | None = None) -> dict[str, Any]:
        request = {"path": path, "params": params or {}}
        if self.cache is not None:
            cached = await self.cache.get(self.name, request)
            if cached is not None:
                return cached

        url = f"{self.base_url}/{path.lstrip('/')}"
        try:
            response = await self.client.get(url, params=params)
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPStatusError as exc:
            raise MetadataProviderError(self.name, f"HTTP {exc.response.status_code} for {path}") from exc
        except httpx.RequestError as exc:
            raise MetadataProviderError(self.name, f"Network error: {exc}") from exc
        except ValueError as exc:
            raise MetadataProviderError(self.name, "Invalid JSON response") from exc

        if not isinstance(payload, dict):
            raise MetadataProviderError(self.name, "Unexpected response payload")

        if self.cache is not None:
            await self.cache.store(self.name, request, payload)
        return payload

    async def get_details(self, canonical_id: int | str) -> TargetRecord:
        payload = await self._get(f"/anime/{canonical_id}")
        anime = payload.get("data")
        if not isinstance(anime, dict):
            raise MetadataProviderError(self.name, f"Anime {canonical_id} not found")
        return anime_to_record(anime)

    async def search(self, title: str, limit: int = 5) -> list[TargetRecord]:
        payload = await self._get("/anime", params={"q": title, "limit": limit})

        records: list[TargetRecord] = []
        for anime in payload.get("data") or []:
            try:
                records.append(anime_to_record(anime))
            except MetadataProviderError as exc:
                self.logger.debug("Skipping unusable search result", error=str(exc))
        return records
