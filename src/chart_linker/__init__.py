__all__ = (
    "Config",
    "Normalizer",
    "NormalizedQuery",
    "ArtistAliasTable",
    "CandidateMatcher",
    "MatchTier",
    "Resolution",
    "ResolutionOrchestrator",
    "RunContext",
    # Collaborators
    "AccessToken",
    "CandidateTrack",
    "CatalogError",
    "SpotifyAuth",
    "SpotifySearchClient",
    "PreviewLookupClient",
    "RetryPolicy",
    "NOT_FOUND",
    # Charts
    "Chart",
    "ChartEntry",
    "ChartDefinition",
    "ChartStore",
    "CHART_REGISTRY",
    "ChartLinker",
)

from chart_linker.aliases import ArtistAliasTable
from chart_linker.charts import CHART_REGISTRY, Chart, ChartDefinition, ChartEntry, ChartStore
from chart_linker.config import Config
from chart_linker.linker import ChartLinker
from chart_linker.matcher import CandidateMatcher, MatchTier
from chart_linker.normalize import NormalizedQuery, Normalizer
from chart_linker.preview import NOT_FOUND, PreviewLookupClient, RetryPolicy
from chart_linker.resolution import Resolution, ResolutionOrchestrator, RunContext
from chart_linker.spotify import (
    AccessToken,
    CandidateTrack,
    CatalogError,
    SpotifyAuth,
    SpotifySearchClient,
)
