"""
Candidate acceptance for chart queries.

A candidate is tested in two passes:
1. Exact: quote-cleaned track name equals the query title and the query
   artist (or its "The" variants) appears in the candidate's artist credit.
2. Stripped: only when the exact pass fails, a trailing featured-artist
   credit is removed from the name and the test is repeated with the
   alphanumeric-folded artist.

The resulting tier is ordered: exact beats stripped, album beats single.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from enum import IntEnum

from chart_linker.normalize import NormalizedQuery, Normalizer
from chart_linker.spotify import CandidateTrack

logger = logging.getLogger(__name__)


class MatchTier(IntEnum):
    """Quality of a candidate match; lower values are better."""

    EXACT_ALBUM = 0
    EXACT_SINGLE = 1
    STRIPPED_ALBUM = 2
    STRIPPED_SINGLE = 3
    NONE = 4

    @property
    def accepted(self) -> bool:
        return self is not MatchTier.NONE

    @property
    def is_album(self) -> bool:
        return self in (MatchTier.EXACT_ALBUM, MatchTier.STRIPPED_ALBUM)

    @property
    def label(self) -> str:
        """Label written to the chart output as `artistMatch`."""
        return _TIER_LABELS[self]


_TIER_LABELS = {
    MatchTier.EXACT_ALBUM: "step1 (album)",
    MatchTier.EXACT_SINGLE: "step1 (single)",
    MatchTier.STRIPPED_ALBUM: "step2 (album)",
    MatchTier.STRIPPED_SINGLE: "step2 (single)",
    MatchTier.NONE: "none",
}


class CandidateMatcher:
    """Classifies one candidate track against a normalized query."""

    def __init__(self, normalizer: Normalizer | None = None):
        self.normalizer = normalizer or Normalizer()

    def match(
        self,
        query: NormalizedQuery,
        candidate: CandidateTrack,
        *,
        allow_single: bool = True,
    ) -> MatchTier:
        """
        Classify a candidate.

        Args:
            query: Query whose artist is already truncated for this candidate
            candidate: Search result to test
            allow_single: False once a fallback single has been recorded, so a
                later single never replaces it

        Returns:
            The match tier, NONE when the candidate is rejected
        """
        if not candidate.is_complete:
            logger.debug(f"Skipping incomplete candidate {candidate.id}")
            return MatchTier.NONE

        title = query.title.lower()
        name = self.normalizer.clean_track_name(candidate.name)

        if name.lower() == title and self._artist_credited(query.artist, candidate.artists):
            return self._classify(
                candidate, MatchTier.EXACT_ALBUM, MatchTier.EXACT_SINGLE, allow_single
            )

        stripped = self.normalizer.strip_feature_suffix(name)
        if stripped is None or stripped.lower() != title:
            return MatchTier.NONE

        folded_artist = self.normalizer.clean_names(query.artist)
        if not self._artist_credited(folded_artist, candidate.artists):
            return MatchTier.NONE

        return self._classify(
            candidate, MatchTier.STRIPPED_ALBUM, MatchTier.STRIPPED_SINGLE, allow_single
        )

    @staticmethod
    def _classify(
        candidate: CandidateTrack,
        album_tier: MatchTier,
        single_tier: MatchTier,
        allow_single: bool,
    ) -> MatchTier:
        if candidate.is_album:
            return album_tier
        return single_tier if allow_single else MatchTier.NONE

    @staticmethod
    def _artist_credited(artist: str, credits: Sequence[str]) -> bool:
        """
        Check whether artist appears in any credit, also trying "The " variants.

        An empty artist never matches, otherwise it would be found in every credit.
        """
        needle = artist.strip().lower()
        if not needle:
            return False

        variants = {needle, f"the {needle}", needle.removeprefix("the ").strip()}
        variants.discard("")

        for credit in credits:
            credit_lower = credit.lower()
            if any(variant in credit_lower for variant in variants):
                return True
        return False


## Tests


def _track(name: str, artists: tuple[str, ...], album_type: str = "album") -> CandidateTrack:
    return CandidateTrack(id=name, name=name, artists=artists, album_type=album_type)


def test_exact_album_match():
    matcher = CandidateMatcher()
    query = NormalizedQuery("Fly Over States", "Jason Aldean")
    tier = matcher.match(query, _track("Fly Over States", ("Jason Aldean",)))
    assert tier is MatchTier.EXACT_ALBUM
    assert tier.label == "step1 (album)"


def test_exact_match_with_curly_candidate_name():
    matcher = CandidateMatcher()
    query = NormalizedQuery("Don't Close Your Eyes", "Keith Whitley")
    track = _track("Don’t Close Your Eyes", ("Keith Whitley",), "single")
    assert matcher.match(query, track) is MatchTier.EXACT_SINGLE


def test_the_prefix_variants():
    matcher = CandidateMatcher()
    query = NormalizedQuery("Wagon Wheel", "Band Perry")
    assert matcher.match(query, _track("Wagon Wheel", ("The Band Perry",))) is MatchTier.EXACT_ALBUM

    query = NormalizedQuery("Need You Now", "The Lady A")
    assert matcher.match(query, _track("Need You Now", ("Lady A",))) is MatchTier.EXACT_ALBUM


def test_single_rejected_when_fallback_recorded():
    matcher = CandidateMatcher()
    query = NormalizedQuery("Fast Car", "Luke Combs")
    track = _track("Fast Car", ("Luke Combs",), "single")
    assert matcher.match(query, track, allow_single=False) is MatchTier.NONE


def test_incomplete_candidate_rejected():
    matcher = CandidateMatcher()
    query = NormalizedQuery("Fast Car", "Luke Combs")
    assert matcher.match(query, _track("Fast Car", ())) is MatchTier.NONE
    assert matcher.match(query, _track("Fast Car", ("Luke Combs",), "")) is MatchTier.NONE


def test_tier_ordering():
    assert MatchTier.EXACT_ALBUM < MatchTier.EXACT_SINGLE < MatchTier.STRIPPED_ALBUM
    assert MatchTier.STRIPPED_SINGLE < MatchTier.NONE
    assert not MatchTier.NONE.accepted
