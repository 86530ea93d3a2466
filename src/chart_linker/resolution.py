"""
Resolution of one chart row to a catalog track.

Candidates are evaluated in release-date order. The first accepted album
track ends the scan; otherwise the first accepted single is kept as the
fallback and returned once every candidate has been seen.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

import httpx

from chart_linker.aliases import ArtistAliasTable
from chart_linker.matcher import CandidateMatcher, MatchTier
from chart_linker.normalize import NormalizedQuery, Normalizer
from chart_linker.preview import PreviewLookup
from chart_linker.spotify import (
    AccessToken,
    CandidateTrack,
    CatalogError,
    TrackSearch,
    sort_by_release_date,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RunContext:
    """
    Run-scoped collaborators shared by every entry of a run.

    The access token is acquired once before the first entry and never
    refreshed while the run is in progress.
    """

    access_token: AccessToken | None
    search: TrackSearch
    previews: PreviewLookup


@dataclass(frozen=True)
class Resolution:
    """Accepted candidate for one chart entry."""

    tier: MatchTier
    candidate: CandidateTrack
    artist_queried: str
    preview_url: str

    def to_dict(self) -> dict[str, Any]:
        """Serialize as the `spotifyData` block of a chart entry."""
        return {
            "artistQueried": self.artist_queried,
            "id": self.candidate.id,
            "name": self.candidate.name,
            "artists": list(self.candidate.artists),
            "albumName": self.candidate.album_name,
            "type": self.candidate.album_type,
            "artistMatch": self.tier.label,
            "isrc": self.candidate.isrc,
            "preview": self.preview_url,
        }


class ResolutionOrchestrator:
    """Picks the best candidate for a (title, artist) pair."""

    def __init__(
        self,
        context: RunContext,
        normalizer: Normalizer | None = None,
        aliases: ArtistAliasTable | None = None,
        matcher: CandidateMatcher | None = None,
    ):
        self.context = context
        self.normalizer = normalizer or Normalizer()
        self.aliases = aliases or ArtistAliasTable()
        self.matcher = matcher or CandidateMatcher(self.normalizer)

    async def resolve(self, title: str, artist: str) -> Resolution | None:
        """
        Resolve a chart row.

        Collaborator failures (network, HTTP status, malformed responses) are
        logged and reported as no match so one entry never stops a run.

        Returns:
            The chosen Resolution, or None when nothing was accepted
        """
        try:
            return await self._resolve(title, artist)
        except (httpx.HTTPError, CatalogError) as e:
            logger.warning(f"Resolution failed for {title} by {artist}: {e}")
            return None

    async def _resolve(self, title: str, artist: str) -> Resolution | None:
        query = self.normalizer.normalize_query(title, artist)
        candidates = sort_by_release_date(await self.context.search.search(query.search_text))

        current_artist = query.artist
        fallback: Resolution | None = None

        for candidate in candidates:
            # Truncation only ever shortens the artist
            current_artist = self.aliases.truncate_artist(current_artist)
            candidate_query = NormalizedQuery(title=query.title, artist=current_artist)

            tier = self.matcher.match(candidate_query, candidate, allow_single=fallback is None)
            if not tier.accepted:
                continue

            preview_url = await self.context.previews.lookup_preview(
                self.normalizer.preview_title(candidate.name), current_artist
            )
            resolution = Resolution(
                tier=tier,
                candidate=candidate,
                artist_queried=current_artist,
                preview_url=preview_url,
            )

            if tier.is_album:
                logger.debug(f"Matched {title} by {artist} as {tier.label}")
                return resolution

            if fallback is None:
                fallback = resolution

        if fallback is not None:
            logger.info(f"No album match for {title} by {artist}, using fallback")
            return fallback

        logger.info(f"No track found for {title} by {artist}")
        return None
