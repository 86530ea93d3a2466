"""
Audio preview lookup with bounded retry.

The lookup service answers with a JSON list whose first element carries a
``preview_url``. An exhausted lookup yields the ``NOT_FOUND`` sentinel, which
callers treat as an ordinary value.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

import httpx

logger = logging.getLogger(__name__)

NOT_FOUND = "Not found"


@dataclass(frozen=True)
class RetryPolicy:
    """Fixed-delay retry: up to `attempts` tries, `delay_s` seconds apart."""

    attempts: int = 3
    delay_s: float = 1.0

    def __post_init__(self) -> None:
        if self.attempts < 1:
            raise ValueError(f"attempts must be >= 1, got {self.attempts}")
        if self.delay_s < 0:
            raise ValueError(f"delay_s must be >= 0, got {self.delay_s}")


class PreviewLookup(ABC):
    """Interface the resolver uses to attach a preview URL."""

    @abstractmethod
    async def lookup_preview(self, title: str, artist: str) -> str:
        """Return a preview URL or NOT_FOUND."""


class PreviewLookupClient(PreviewLookup):
    """Resolves a (title, artist) pair to a short audio preview URL."""

    def __init__(
        self,
        base_url: str,
        policy: RetryPolicy | None = None,
        client: httpx.AsyncClient | None = None,
        timeout_s: float = 30.0,
    ):
        self.base_url = base_url
        self.policy = policy or RetryPolicy()
        self.timeout_s = timeout_s
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout_s)

    async def lookup_preview(self, title: str, artist: str) -> str:
        """
        Look up a preview URL, retrying while the service has no result.

        Transport errors and undecodable bodies count as a failed attempt.

        Returns:
            The preview URL, or NOT_FOUND once every attempt is spent
        """
        for attempt in range(1, self.policy.attempts + 1):
            preview_url = await self._fetch_once(title, artist)
            if preview_url:
                return preview_url

            if attempt < self.policy.attempts:
                logger.debug(
                    f"No preview for {title} by {artist} "
                    f"(attempt {attempt}/{self.policy.attempts}), retrying"
                )
                await asyncio.sleep(self.policy.delay_s)

        logger.info(f"No preview found for {title} by {artist}")
        return NOT_FOUND

    async def _fetch_once(self, title: str, artist: str) -> str | None:
        try:
            response = await self._client.get(
                self.base_url,
                params={"title": title, "artist": artist},
                timeout=self.timeout_s,
            )
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPError as e:
            logger.warning(f"Preview lookup failed for {title} by {artist}: {e}")
            return None
        except ValueError as e:
            logger.warning(f"Preview lookup returned invalid JSON for {title} by {artist}: {e}")
            return None

        return self._extract_preview(data)

    @staticmethod
    def _extract_preview(data: Any) -> str | None:
        if not isinstance(data, list) or not data:
            return None
        first = data[0]
        if not isinstance(first, dict):
            return None
        preview_url = first.get("preview_url")
        return preview_url if isinstance(preview_url, str) and preview_url else None

    async def aclose(self) -> None:
        """Close the HTTP client if we created it."""
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> PreviewLookupClient:
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.aclose()
