"""MangaKatana content source (manga reader index)."""

from __future__ import annotations

import re

import httpx
from bs4 import BeautifulSoup

from animap.core.config import DEFAULT_USER_AGENT
from animap.core.models import Candidate, ContentItem, ContentPage
from animap.core.sources.base import ContentSource
from animap.core.utils import collapse_whitespace, extract_slug

# Page-image arrays embedded in the reader page, in order of preference
KNOWN_IMAGE_ARRAYS = ("thzq", "ytaw", "htnc")
IMAGE_ARRAY_PATTERN = r"var\s+{name}\s*=\s*\[(.*?)\]"
GENERIC_IMAGE_ARRAY_RE = re.compile(r"var\s+\w+\s*=\s*\[(\s*['\"].*?['\"]\s*,?\s*)\]", re.DOTALL)
QUOTED_RE = re.compile(r"['\"]([^'\"]+)['\"]")
CHAPTER_NUMBER_RE = re.compile(r"chapter\s*([\d]+(?:\.\d+)?)", re.IGNORECASE)


def _absolute_image_url(url: str) -> str:
    return f"https:{url}" if url.startswith("//") else url


def _image_urls(array_body: str) -> list[str]:
    return [
        url
        for url in QUOTED_RE.findall(array_body)
        if url.startswith("//") or "http" in url
    ]


def extract_page_urls(html: str) -> list[str]:
    """Extract chapter page image URLs from a reader page.

    Looks for the known script arrays first, then any script array of
    URL strings, then falls back to the #imgs image tags.
    """
    for name in KNOWN_IMAGE_ARRAYS:
        match = re.search(IMAGE_ARRAY_PATTERN.format(name=name), html, re.DOTALL)
        if match:
            urls = _image_urls(match.group(1))
            if urls:
                return [_absolute_image_url(url) for url in urls]

    for match in GENERIC_IMAGE_ARRAY_RE.finditer(html):
        urls = _image_urls(match.group(1))
        if urls:
            return [_absolute_image_url(url) for url in urls]

    soup = BeautifulSoup(html, "html.parser")
    urls = []
    for img in soup.select("#imgs img"):
        src = img.get("data-src") or img.get("src") or ""
        if src.startswith("//") or "http" in src:
            urls.append(_absolute_image_url(src))
    return urls


def parse_chapter_number(title: str) -> float | None:
    match = CHAPTER_NUMBER_RE.search(title)
    if not match:
        return None
    return float(match.group(1))


class MangaKatanaSource(ContentSource):
    """Content source for MangaKatana HTML pages.

    Source ids are manga slugs such as "one-piece.2040". Content ids are
    "<manga slug>/<chapter slug>".
    """

    def __init__(
        self,
        name: str = "mangakatana",
        base_url: str = "https://mangakatana.com",
        timeout: float = 10.0,
        user_agent: str = DEFAULT_USER_AGENT,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        super().__init__(name, base_url, timeout=timeout, user_agent=user_agent, client=client)

    async def search(self, query: str) -> list[Candidate]:
        self.logger.debug("Searching MangaKatana", query=query)
        response = await self._get(
            f"{self.base_url}/",
            params={"search": query, "search_by": "book_name"},
            query=query,
        )
        soup = BeautifulSoup(response.text, "html.parser")

        candidates: list[Candidate] = []
        for item in soup.select("#book_list > div.item"):
            link = item.select_one("div.text > h3 > a")
            if link is None:
                continue
            title = collapse_whitespace(link.get_text())
            url = link.get("href") or ""
            if not title or not url:
                continue
            cover = item.select_one("div.cover img")
            candidates.append(
                Candidate(
                    source_id=extract_slug(url, "/manga/"),
                    title=title,
                    content_type="MANGA",
                    url=url,
                    thumbnail=cover.get("src") if cover else None,
                )
            )

        # Exact-title searches redirect straight to the manga's detail page
        if not candidates:
            heading = soup.select_one(".info .heading")
            final_url = str(response.url)
            if heading and "/manga/" in final_url:
                cover = soup.select_one("div.media div.cover img")
                candidates.append(
                    Candidate(
                        source_id=extract_slug(final_url, "/manga/"),
                        title=collapse_whitespace(heading.get_text()),
                        content_type="MANGA",
                        url=final_url,
                        thumbnail=cover.get("src") if cover else None,
                    )
                )

        self.logger.debug("MangaKatana search completed", query=query, results_count=len(candidates))
        return candidates

    async def list_content(self, source_id: str) -> list[ContentItem]:
        """List chapters in the order the site shows them (newest first)."""
        response = await self._get(f"{self.base_url}/manga/{source_id}")
        soup = BeautifulSoup(response.text, "html.parser")

        chapters: list[ContentItem] = []
        for row in soup.select("tr:has(.chapter)"):
            link = row.select_one("a")
            if link is None:
                continue
            title = collapse_whitespace(link.get_text())
            url = link.get("href") or ""
            if not title or not url:
                continue
            chapter_slug = url.rstrip("/").rsplit("/", 1)[-1]
            updated = row.select_one(".update_time")
            chapters.append(
                ContentItem(
                    content_id=f"{source_id}/{chapter_slug}",
                    number=parse_chapter_number(title),
                    title=title,
                    url=url,
                    released=collapse_whitespace(updated.get_text()) if updated else None,
                )
            )

        self.logger.debug("Listed MangaKatana chapters", source_id=source_id, count=len(chapters))
        return chapters

    async def get_content_detail(self, content_id: str) -> list[ContentPage]:
        """Fetch page image URLs for one chapter."""
        response = await self._get(f"{self.base_url}/manga/{content_id}")
        urls = extract_page_urls(response.text)
        return [ContentPage(page_number=index, image_url=url) for index, url in enumerate(urls, 1)]
