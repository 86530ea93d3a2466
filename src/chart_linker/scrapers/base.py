from __future__ import annotations

import logging
import re
from abc import ABC, abstractmethod
from typing import Any

import httpx

from chart_linker.charts import ChartEntry

logger = logging.getLogger(__name__)

USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)


class ScrapeError(Exception):
    """Raised when a chart page cannot be fetched or yields no chart rows."""


class ChartScraper(ABC):
    """
    Base class for chart scrapers.

    Provides the shared HTTP client and text helpers. Subclasses turn one
    chart page into an ordered list of ChartEntry rows.
    """

    source: str = ""

    def __init__(self, client: httpx.AsyncClient | None = None, timeout_s: float = 30.0):
        self._client = client
        self._owns_client = client is None
        self._timeout_s = timeout_s

    @property
    def client(self) -> httpx.AsyncClient:
        """Lazy-initialized HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self._timeout_s,
                follow_redirects=True,
                headers={"User-Agent": USER_AGENT},
            )
        return self._client

    async def aclose(self) -> None:
        """Close HTTP client if we created it."""
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> ChartScraper:
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.aclose()

    @abstractmethod
    async def scrape(self, url: str) -> list[ChartEntry]:
        """
        Scrape a chart page.

        Args:
            url: Chart page URL

        Returns:
            Chart entries in rank order

        Raises:
            ScrapeError: If the page cannot be fetched or has no chart rows
        """
        ...

    async def _fetch_url(self, url: str) -> str:
        """Fetch page content, raising ScrapeError on HTTP or transport errors."""
        try:
            response = await self.client.get(url)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise ScrapeError(f"HTTP error fetching {url}: {e}") from e
        except httpx.RequestError as e:
            raise ScrapeError(f"Request error fetching {url}: {e}") from e
        return response.text

    @staticmethod
    def _clean_text(text: str) -> str:
        """Collapse whitespace, including the line feeds chart markup is full of."""
        return re.sub(r"\s+", " ", text).strip()

    @staticmethod
    def _parse_int(text: str | int | None) -> int | None:
        """Parse a rank-like value; "-", blanks and junk become None."""
        if text is None:
            return None
        if isinstance(text, int):
            return text
        digits = text.strip()
        if not digits.isdigit():
            return None
        return int(digits)
