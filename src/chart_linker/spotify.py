"""
Spotify Web API client for chart resolution.

Acquires a client-credentials access token once per run and searches the
track index, mapping results to read-only candidate tracks.
"""

from __future__ import annotations

import base64
import logging
import os
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import date
from enum import StrEnum
from typing import Any

import httpx

from chart_linker.safe_logging import redact_dict

logger = logging.getLogger(__name__)


class CatalogError(Exception):
    """Raised when the catalog API returns a response we cannot use."""


class AlbumType(StrEnum):
    """Spotify album types."""

    ALBUM = "album"
    SINGLE = "single"
    COMPILATION = "compilation"


@dataclass(frozen=True)
class CandidateTrack:
    """One track returned by a catalog search."""

    id: str
    name: str
    artists: tuple[str, ...] = ()
    album_name: str = ""
    album_type: str = ""
    release_date: str = ""
    isrc: str | None = None
    album_image: str | None = None

    @property
    def is_album(self) -> bool:
        return self.album_type == AlbumType.ALBUM

    @property
    def is_complete(self) -> bool:
        """Whether the fields the matcher relies on are present."""
        return bool(self.artists) and bool(self.album_type)

    @property
    def released_on(self) -> date | None:
        """
        Release date as a date, honouring year/month precision.

        "2011" and "2011-03" resolve to the first day of the period.
        """
        parts = self.release_date.split("-") if self.release_date else []
        try:
            year = int(parts[0])
            month = int(parts[1]) if len(parts) > 1 else 1
            day = int(parts[2]) if len(parts) > 2 else 1
            return date(year, month, day)
        except (IndexError, ValueError):
            return None

    @classmethod
    def from_api(cls, item: dict[str, Any]) -> CandidateTrack | None:
        """
        Build a candidate from a search result item.

        Returns None when the item lacks an id or name. Missing or wrongly
        typed album and artist data is kept empty so the matcher rejects the
        candidate, and a release date that is not a string sorts as undated.
        """
        if not isinstance(item, dict):
            return None
        track_id = _text(item.get("id"))
        name = _text(item.get("name"))
        if not track_id or not name:
            return None

        artist_items = item.get("artists")
        if not isinstance(artist_items, list):
            artist_items = []
        artists = tuple(
            a["name"] for a in artist_items if isinstance(a, dict) and _text(a.get("name"))
        )

        album = item.get("album")
        if not isinstance(album, dict):
            album = {}
        images = album.get("images")
        first_image = images[0] if isinstance(images, list) and images else None
        album_image = _text(first_image.get("url")) if isinstance(first_image, dict) else ""

        external_ids = item.get("external_ids")
        if not isinstance(external_ids, dict):
            external_ids = {}

        return cls(
            id=track_id,
            name=name,
            artists=artists,
            album_name=_text(album.get("name")),
            album_type=_text(album.get("album_type")),
            release_date=_text(album.get("release_date")),
            isrc=_text(external_ids.get("isrc")) or None,
            album_image=album_image or None,
        )


def _text(value: Any) -> str:
    """String values pass through; anything else reads as empty."""
    return value if isinstance(value, str) else ""


def sort_by_release_date(tracks: list[CandidateTrack]) -> list[CandidateTrack]:
    """Sort candidates by release date ascending; undated tracks go last."""
    return sorted(tracks, key=lambda t: (t.released_on is None, t.released_on or date.min))


@dataclass(frozen=True)
class AccessToken:
    """Bearer token acquired once per run."""

    value: str = field(repr=False)
    token_type: str = "Bearer"
    expires_in: int | None = None

    @property
    def authorization(self) -> str:
        return f"Bearer {self.value}"


class SpotifyAuth:
    """Client credentials flow against the Spotify accounts service."""

    AUTH_URL = "https://accounts.spotify.com/api/token"

    def __init__(
        self,
        client_id: str | None = None,
        client_secret: str | None = None,
        client: httpx.AsyncClient | None = None,
        timeout_s: float = 30.0,
    ):
        """
        Initialize the auth helper.

        Args:
            client_id: Spotify client ID (env: SPOTIFY_CLIENT_ID)
            client_secret: Spotify client secret (env: SPOTIFY_CLIENT_SECRET)
            client: Optional shared async HTTP client
            timeout_s: Request timeout when no client is supplied
        """
        self.client_id = client_id or os.getenv("SPOTIFY_CLIENT_ID")
        self.client_secret = client_secret or os.getenv("SPOTIFY_CLIENT_SECRET")
        self._client = client
        self._timeout_s = timeout_s

    async def acquire_token(self) -> AccessToken:
        """
        Request a fresh access token.

        Raises:
            ValueError: If credentials are not configured
            CatalogError: If the token response is unusable
            httpx.HTTPError: On transport or HTTP status errors
        """
        if not self.client_id or not self.client_secret:
            raise ValueError(
                "Spotify client_id and client_secret required "
                "(set SPOTIFY_CLIENT_ID and SPOTIFY_CLIENT_SECRET env vars)"
            )

        credentials = f"{self.client_id}:{self.client_secret}"
        b64_credentials = base64.b64encode(credentials.encode()).decode()

        client = self._client or httpx.AsyncClient(timeout=self._timeout_s)
        try:
            response = await client.post(
                self.AUTH_URL,
                headers={
                    "Authorization": f"Basic {b64_credentials}",
                    "Content-Type": "application/x-www-form-urlencoded",
                },
                data={"grant_type": "client_credentials"},
            )
            response.raise_for_status()
            try:
                data = response.json()
            except ValueError as e:
                raise CatalogError(f"Token response is not JSON: {e}") from e
        finally:
            if self._client is None:
                await client.aclose()

        if not isinstance(data, dict) or not data.get("access_token"):
            raise CatalogError("Token response has no access_token")

        logger.debug(f"Token response: {redact_dict(data)}")
        return AccessToken(
            value=data["access_token"],
            token_type=data.get("token_type", "Bearer"),
            expires_in=data.get("expires_in"),
        )


class TrackSearch(ABC):
    """Interface the resolver uses to query a track index."""

    @abstractmethod
    async def search(self, query: str) -> list[CandidateTrack]:
        """Return candidate tracks for a free-form query, in index order."""


class SpotifySearchClient(TrackSearch):
    """
    Track search against the Spotify Web API.

    The access token is supplied by the caller and never refreshed here.
    """

    BASE_URL = "https://api.spotify.com/v1"

    def __init__(
        self,
        token: AccessToken,
        limit: int = 5,
        client: httpx.AsyncClient | None = None,
        timeout_s: float = 30.0,
    ):
        self.token = token
        self.limit = limit
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout_s)

    async def search(self, query: str) -> list[CandidateTrack]:
        """
        Search for tracks matching a free-form query.

        Args:
            query: Query string, e.g. "Fly Over States Jason Aldean"

        Returns:
            Candidates in the order the index returned them

        Raises:
            CatalogError: If the response body is not a track search result
            httpx.HTTPError: On transport or HTTP status errors
        """
        response = await self._client.get(
            f"{self.BASE_URL}/search",
            params={"q": query, "type": "track", "limit": str(self.limit)},
            headers={"Authorization": self.token.authorization},
        )
        response.raise_for_status()

        try:
            data = response.json()
        except ValueError as e:
            raise CatalogError(f"Search response is not JSON: {e}") from e

        tracks = data.get("tracks") if isinstance(data, dict) else None
        items = tracks.get("items") if isinstance(tracks, dict) else None
        if not isinstance(items, list):
            raise CatalogError(f"Search response has no track items for query: {query}")

        results = []
        for item in items:
            track = CandidateTrack.from_api(item)
            if track is None:
                logger.debug(f"Skipping malformed search item for query: {query}")
                continue
            results.append(track)

        logger.debug(f"Search '{query}' returned {len(results)} candidate(s)")
        return results

    async def aclose(self) -> None:
        """Close the HTTP client if we created it."""
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> SpotifySearchClient:
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.aclose()


## Tests


def test_candidate_from_api():
    track = CandidateTrack.from_api(
        {
            "id": "abc123",
            "name": "Fly Over States",
            "artists": [{"name": "Jason Aldean"}],
            "album": {
                "name": "My Kinda Party",
                "album_type": "album",
                "release_date": "2010-11-02",
                "images": [{"url": "https://i.scdn.co/image/cover"}],
            },
            "external_ids": {"isrc": "USBB41000485"},
        }
    )
    assert track is not None
    assert track.artists == ("Jason Aldean",)
    assert track.is_album
    assert track.is_complete
    assert track.released_on == date(2010, 11, 2)
    assert track.album_image == "https://i.scdn.co/image/cover"


def test_candidate_from_api_missing_fields():
    assert CandidateTrack.from_api({"name": "No Id"}) is None
    track = CandidateTrack.from_api({"id": "x", "name": "No Album"})
    assert track is not None
    assert not track.is_complete


def test_release_date_precision():
    assert CandidateTrack(id="a", name="a", release_date="1999").released_on == date(1999, 1, 1)
    assert CandidateTrack(id="a", name="a", release_date="1999-07").released_on == date(1999, 7, 1)
    assert CandidateTrack(id="a", name="a", release_date="").released_on is None


def test_sort_by_release_date():
    late = CandidateTrack(id="late", name="x", release_date="2020-01-01")
    early = CandidateTrack(id="early", name="x", release_date="2010")
    undated = CandidateTrack(id="undated", name="x")
    ordered = sort_by_release_date([undated, late, early])
    assert [t.id for t in ordered] == ["early", "late", "undated"]


def test_access_token_repr_hides_value():
    token = AccessToken(value="secret-token-value")
    assert "secret-token-value" not in repr(token)
    assert token.authorization == "Bearer secret-token-value"
