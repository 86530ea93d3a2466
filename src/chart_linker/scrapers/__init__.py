from __future__ import annotations

"""
Chart page scrapers.

Each scraper turns one chart page into an ordered list of ChartEntry rows.
"""

__all__ = [
    "ChartScraper",
    "ScrapeError",
    "BillboardScraper",
    "CountrytownScraper",
    "SCRAPER_REGISTRY",
    "create_scraper",
]

import httpx

from chart_linker.charts import ChartSource
from chart_linker.scrapers.base import ChartScraper, ScrapeError
from chart_linker.scrapers.billboard import BillboardScraper
from chart_linker.scrapers.countrytown import CountrytownScraper

# Registry mapping chart sources to scraper classes
SCRAPER_REGISTRY: dict[ChartSource, type[ChartScraper]] = {
    ChartSource.BILLBOARD: BillboardScraper,
    ChartSource.COUNTRYTOWN: CountrytownScraper,
}


def create_scraper(source: ChartSource, client: httpx.AsyncClient | None = None) -> ChartScraper:
    """Instantiate the scraper registered for a chart source."""
    return SCRAPER_REGISTRY[source](client=client)
