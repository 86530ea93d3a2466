"""
Run driver: scrape each chart, resolve its entries and save the result.

Entries are resolved strictly one at a time in rank order, so the rate-limited
search and preview services only ever see one request at a time.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator, Callable, Sequence
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import date
from pathlib import Path

import httpx

from chart_linker.aliases import ArtistAliasTable
from chart_linker.charts import (
    Chart,
    ChartDefinition,
    ChartEntry,
    ChartSource,
    ChartStore,
    current_chart_date,
)
from chart_linker.config import Config
from chart_linker.normalize import Normalizer
from chart_linker.preview import PreviewLookupClient, RetryPolicy
from chart_linker.resolution import ResolutionOrchestrator, RunContext
from chart_linker.scrapers import ChartScraper, ScrapeError, create_scraper
from chart_linker.spotify import SpotifyAuth, SpotifySearchClient

logger = logging.getLogger(__name__)

EntryCallback = Callable[[ChartEntry], None]


@asynccontextmanager
async def open_run_context(config: Config) -> AsyncIterator[RunContext]:
    """
    Acquire the access token and open the collaborators for one run.

    The token is fetched once here and shared read-only by every entry.

    Raises:
        ValueError: If Spotify credentials are not configured
        CatalogError: If the token response is unusable
        httpx.HTTPError: If the token request fails
    """
    async with httpx.AsyncClient(timeout=config.spotify.timeout_s) as client:
        auth = SpotifyAuth(
            client_id=config.spotify.client_id,
            client_secret=config.spotify.client_secret,
            client=client,
        )
        token = await auth.acquire_token()
        logger.debug("Acquired Spotify access token")

        search = SpotifySearchClient(token, limit=config.spotify.search_limit, client=client)
        previews = PreviewLookupClient(
            config.preview.base_url,
            policy=RetryPolicy(attempts=config.preview.attempts, delay_s=config.preview.delay_s),
            client=client,
            timeout_s=config.preview.timeout_s,
        )
        yield RunContext(access_token=token, search=search, previews=previews)


def build_orchestrator(config: Config, context: RunContext) -> ResolutionOrchestrator:
    """Orchestrator using the configured correction and alias tables."""
    return ResolutionOrchestrator(
        context,
        normalizer=Normalizer(config.normalization.diacritic_corrections),
        aliases=ArtistAliasTable(config.normalization.artist_aliases),
    )


@dataclass
class RunSummary:
    """Outcome of a run: saved file per chart id, error message per failed chart."""

    saved: dict[str, Path] = field(default_factory=dict)
    failed: dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.failed


class ChartLinker:
    """Scrapes, resolves and stores charts for one run."""

    def __init__(
        self,
        config: Config,
        context: RunContext,
        store: ChartStore | None = None,
        scraper_factory: Callable[[ChartSource], ChartScraper] = create_scraper,
    ):
        self.config = config
        self.orchestrator = build_orchestrator(config, context)
        self.store = store or ChartStore(config.output.directory)
        self.scraper_factory = scraper_factory

    async def resolve_entries(
        self,
        entries: Sequence[ChartEntry],
        default_image: str | None = None,
        on_entry: EntryCallback | None = None,
    ) -> list[ChartEntry]:
        """
        Attach a resolution to every entry, one entry at a time in order.

        Args:
            entries: Scraped chart rows in rank order
            default_image: When set, entry images come from the matched album
                art, falling back to this URL
            on_entry: Called with each resolved entry

        Returns:
            New entries carrying their resolution (None when unmatched)
        """
        resolved: list[ChartEntry] = []
        for entry in entries:
            resolution = await self.orchestrator.resolve(entry.title, entry.artist)
            result = entry.with_resolution(resolution)

            if default_image is not None:
                album_image = resolution.candidate.album_image if resolution else None
                result = result.with_image(album_image or default_image)

            resolved.append(result)
            logger.info(f"Pushed entry for {entry.title} by {entry.artist}")
            if on_entry is not None:
                on_entry(result)
        return resolved

    async def run_chart(
        self,
        definition: ChartDefinition,
        week: date | None = None,
        on_entry: EntryCallback | None = None,
    ) -> Path:
        """
        Scrape, resolve and save one chart.

        Args:
            definition: Chart to process
            week: Chart week to fetch instead of the current one (Billboard only)
            on_entry: Progress callback, see resolve_entries

        Raises:
            ScrapeError: If the chart page yields no rows
        """
        url = definition.url
        chart_week = current_chart_date(definition.date_rule, self.config.output.timezone)
        if week is not None:
            if definition.source is ChartSource.BILLBOARD:
                url = f"{definition.url}{week.isoformat()}"
                chart_week = week
            else:
                logger.warning(f"{definition.name} has no weekly archive, fetching current chart")

        async with self.scraper_factory(definition.source) as scraper:
            entries = await scraper.scrape(url)
        logger.info(f"Scraped {len(entries)} entries from {definition.name} ({chart_week})")

        resolved = await self.resolve_entries(
            entries, default_image=definition.default_image, on_entry=on_entry
        )
        return self.store.save(definition, Chart(date=chart_week, entries=resolved))

    async def run(
        self,
        definitions: Sequence[ChartDefinition],
        week: date | None = None,
        on_entry: EntryCallback | None = None,
    ) -> RunSummary:
        """Process charts in order; a failed chart is logged and the next one proceeds."""
        summary = RunSummary()
        for definition in definitions:
            try:
                path = await self.run_chart(definition, week=week, on_entry=on_entry)
            except (httpx.HTTPError, ScrapeError) as e:
                logger.error(f"Error getting chart data for {definition.name}: {e}")
                summary.failed[definition.chart_id] = str(e)
                continue
            summary.saved[definition.chart_id] = path
        return summary
