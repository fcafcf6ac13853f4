"""Base abstract class for content sources."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

import httpx
import structlog

from animap.core.config import DEFAULT_USER_AGENT
from animap.core.exceptions import SourceUnavailableError
from animap.core.models import Candidate, ContentItem, ContentPage, StreamLink


class ContentSource(ABC):
    """Abstract base class for content sources.

    A content source is a third-party streaming or reading site with its own
    search index and its own identifiers. Every network failure is raised as
    SourceUnavailableError so callers can recover per call.
    """

    def __init__(
        self,
        name: str,
        base_url: str,
        timeout: float = 10.0,
        user_agent: str = DEFAULT_USER_AGENT,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize content source.

        Args:
            name: Name of the source (used for logging, metrics and cache namespaces)
            base_url: Base URL of the site
            timeout: Per-request timeout in seconds
            user_agent: User-Agent header sent with every request
            client: Optional preconfigured HTTP client (tests pass one with a mock transport)
        """
        self.name = name
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.logger = structlog.get_logger(f"animap.sources.{name.lower()}")
        self.client = client or httpx.AsyncClient(
            timeout=httpx.Timeout(timeout),
            headers={"User-Agent": user_agent},
            follow_redirects=True,
        )

    async def __aenter__(self) -> ContentSource:
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self.client.aclose()

    async def _get(
        self,
        url: str,
        params: dict[str, Any] | None = None,
        query: str | None = None,
    ) -> httpx.Response:
        """GET a URL, converting transport and status errors to SourceUnavailableError."""
        try:
            response = await self.client.get(url, params=params)
            response.raise_for_status()
            return response
        except httpx.HTTPStatusError as exc:
            self.logger.warning(
                "Source returned error status",
                url=url,
                status_code=exc.response.status_code,
            )
            raise SourceUnavailableError(
                self.name, f"HTTP {exc.response.status_code} for {url}", query=query
            ) from exc
        except httpx.HTTPError as exc:
            self.logger.warning("Source request failed", url=url, error=str(exc))
            raise SourceUnavailableError(self.name, f"{type(exc).__name__}: {exc}", query=query) from exc

    async def _get_json(
        self,
        url: str,
        params: dict[str, Any] | None = None,
        query: str | None = None,
    ) -> dict[str, Any]:
        response = await self._get(url, params=params, query=query)
        try:
            payload = response.json()
        except ValueError as exc:
            raise SourceUnavailableError(self.name, f"Invalid JSON from {url}", query=query) from exc
        if not isinstance(payload, dict):
            raise SourceUnavailableError(self.name, f"Unexpected payload from {url}", query=query)
        return payload

    @abstractmethod
    async def search(self, query: str) -> list[Candidate]:
        """Search the source's index.

        Args:
            query: Free-text search string (may be short, noisy or CJK)

        Returns:
            Candidates in the order the source ranked them; possibly empty

        Raises:
            SourceUnavailableError: On network, status or parse failures
        """

    @abstractmethod
    async def list_content(self, source_id: str) -> list[ContentItem]:
        """List episodes or chapters for a resolved source id."""

    @abstractmethod
    async def get_content_detail(self, content_id: str) -> list[ContentPage] | list[StreamLink]:
        """Fetch the pages (manga) or stream links (anime) of one content item."""
