"""Shared test helpers: fixture loading and fake search/preview collaborators."""

from __future__ import annotations

from pathlib import Path
from typing import Any

from chart_linker.preview import NOT_FOUND, PreviewLookup
from chart_linker.spotify import CandidateTrack, TrackSearch

# =============================================================================
# Fixture Paths
# =============================================================================

FIXTURES_DIR = Path(__file__).parent / "fixtures"
CASSETTES_DIR = FIXTURES_DIR / "cassettes"


def load_fixture(scraper_type: str, fixture_name: str) -> str:
    """Load a fixture file as text."""
    fixture_path = CASSETTES_DIR / scraper_type / fixture_name
    if not fixture_path.exists():
        raise FileNotFoundError(f"Fixture not found: {fixture_path}")
    return fixture_path.read_text(encoding="utf-8")


# =============================================================================
# Fake collaborators
# =============================================================================


def make_track(
    name: str,
    artists: tuple[str, ...] | list[str] = ("Jason Aldean",),
    album_type: str = "album",
    release_date: str = "2010-11-02",
    track_id: str | None = None,
    **kwargs: Any,
) -> CandidateTrack:
    """Build a candidate track with sensible defaults."""
    return CandidateTrack(
        id=track_id or f"{name}-{album_type}-{release_date}".lower().replace(" ", "-"),
        name=name,
        artists=tuple(artists),
        album_name=kwargs.pop("album_name", f"{name} ({album_type})"),
        album_type=album_type,
        release_date=release_date,
        **kwargs,
    )


class FakeSearch(TrackSearch):
    """Returns canned candidates per query, or raises a canned error."""

    def __init__(
        self,
        results: dict[str, list[CandidateTrack]] | list[CandidateTrack] | None = None,
        errors: dict[str, Exception] | None = None,
    ):
        self.results = results if results is not None else []
        self.errors = errors or {}
        self.queries: list[str] = []

    async def search(self, query: str) -> list[CandidateTrack]:
        self.queries.append(query)
        if query in self.errors:
            raise self.errors[query]
        if isinstance(self.results, dict):
            return list(self.results.get(query, []))
        return list(self.results)


class FakePreviews(PreviewLookup):
    """Records lookups and answers from a canned mapping keyed by title."""

    def __init__(self, previews: dict[str, str] | None = None):
        self.previews = previews or {}
        self.calls: list[tuple[str, str]] = []

    async def lookup_preview(self, title: str, artist: str) -> str:
        self.calls.append((title, artist))
        return self.previews.get(title, NOT_FOUND)


