"""Pytest configuration and shared fixtures for chart-linker tests."""

from __future__ import annotations

import pytest

from chart_linker.aliases import ArtistAliasTable
from chart_linker.matcher import CandidateMatcher
from chart_linker.normalize import Normalizer
from chart_linker.preview import PreviewLookup, RetryPolicy
from chart_linker.resolution import RunContext
from chart_linker.spotify import AccessToken, TrackSearch
from tests.helpers import FakePreviews

# =============================================================================
# Core fixtures
# =============================================================================


@pytest.fixture
def normalizer() -> Normalizer:
    return Normalizer()


@pytest.fixture
def aliases() -> ArtistAliasTable:
    return ArtistAliasTable()


@pytest.fixture
def matcher(normalizer: Normalizer) -> CandidateMatcher:
    return CandidateMatcher(normalizer)


@pytest.fixture
def no_delay() -> RetryPolicy:
    """Retry policy that never sleeps."""
    return RetryPolicy(attempts=3, delay_s=0.0)


@pytest.fixture
def fake_previews() -> FakePreviews:
    return FakePreviews()


@pytest.fixture
def make_context(fake_previews: FakePreviews):
    """Build a RunContext around a FakeSearch."""

    def _make(search: TrackSearch, previews: PreviewLookup | None = None) -> RunContext:
        return RunContext(
            access_token=AccessToken(value="test-token"),
            search=search,
            previews=previews or fake_previews,
        )

    return _make
