"""AnimePahe content source (anime streaming index)."""

from __future__ import annotations

from typing import Any

import httpx
from bs4 import BeautifulSoup

from animap.core.config import DEFAULT_USER_AGENT
from animap.core.exceptions import SourceUnavailableError
from animap.core.models import Candidate, ContentItem, StreamLink
from animap.core.sources.base import ContentSource


class AnimePaheSource(ContentSource):
    """Content source for the AnimePahe JSON API.

    Source ids are anime session ids. Content ids are
    "<anime session>/<episode session>", which is also the play-page path.
    """

    def __init__(
        self,
        name: str = "animepahe",
        base_url: str = "https://animepahe.si",
        timeout: float = 10.0,
        user_agent: str = DEFAULT_USER_AGENT,
        client: httpx.AsyncClient | None = None,
        max_pages: int = 50,
    ) -> None:
        super().__init__(name, base_url, timeout=timeout, user_agent=user_agent, client=client)
        self.api_url = f"{self.base_url}/api"
        self.max_pages = max_pages

    async def search(self, query: str) -> list[Candidate]:
        self.logger.debug("Searching AnimePahe", query=query)
        payload = await self._get_json(self.api_url, params={"m": "search", "q": query}, query=query)

        candidates: list[Candidate] = []
        for item in payload.get("data") or []:
            session = item.get("session")
            title = item.get("title")
            if not session or not title:
                continue
            candidates.append(
                Candidate(
                    source_id=session,
                    title=title,
                    year=item.get("year"),
                    content_type=item.get("type"),
                    url=f"{self.base_url}/anime/{session}",
                    thumbnail=item.get("poster"),
                )
            )

        self.logger.debug("AnimePahe search completed", query=query, results_count=len(candidates))
        return candidates

    async def _episode_page(self, source_id: str, page: int) -> dict[str, Any]:
        return await self._get_json(
            self.api_url,
            params={"m": "release", "id": source_id, "sort": "episode_asc", "page": page},
        )

    async def list_content(self, source_id: str) -> list[ContentItem]:
        """List every episode, walking the paginated release API."""
        episodes: list[ContentItem] = []
        page = 1
        last_page = 1
        while page <= min(last_page, self.max_pages):
            payload = await self._episode_page(source_id, page)
            for item in payload.get("data") or []:
                session = item.get("session")
                if not session:
                    continue
                episode = item.get("episode")
                episodes.append(
                    ContentItem(
                        content_id=f"{source_id}/{session}",
                        number=float(episode) if episode is not None else None,
                        title=item.get("title") or None,
                        url=f"{self.base_url}/play/{source_id}/{session}",
                        released=item.get("created_at"),
                        thumbnail=item.get("snapshot"),
                    )
                )
            try:
                last_page = int(payload.get("last_page") or 1)
            except (TypeError, ValueError):
                last_page = 1
            page += 1

        self.logger.debug("Listed AnimePahe episodes", source_id=source_id, count=len(episodes))
        return episodes

    async def get_content_detail(self, content_id: str) -> list[StreamLink]:
        """Read the embed links offered on an episode's play page."""
        if "/" not in content_id:
            raise SourceUnavailableError(self.name, f"Malformed episode id: {content_id!r}")

        response = await self._get(f"{self.base_url}/play/{content_id}")
        soup = BeautifulSoup(response.text, "html.parser")

        links: list[StreamLink] = []
        for button in soup.select("#resolutionMenu button"):
            src = button.get("data-src")
            if not src:
                continue
            links.append(
                StreamLink(
                    quality=button.get("data-resolution") or "",
                    audio=button.get("data-audio") or "",
                    url=src,
                )
            )
        return links
