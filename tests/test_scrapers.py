"""Tests for the Billboard and Countrytown scrapers with HTTP mocking."""

from __future__ import annotations

import asyncio

import pytest

from chart_linker.charts import CHART_REGISTRY, ChartSource
from chart_linker.scrapers import (
    SCRAPER_REGISTRY,
    BillboardScraper,
    CountrytownScraper,
    ScrapeError,
    create_scraper,
)
from tests.helpers import load_fixture

BILLBOARD_URL = CHART_REGISTRY["country-songs"].url
COUNTRYTOWN_URL = CHART_REGISTRY["countrytown-hot-50"].url

BILLBOARD_HTML = load_fixture("billboard", "country-songs.html")
COUNTRYTOWN_HTML = load_fixture("countrytown", "hot-50.html")


def scrape(scraper, url: str):
    async def _run():
        async with scraper:
            return await scraper.scrape(url)

    return asyncio.run(_run())


class TestBillboardScraper:
    def test_scrape_parses_rows(self, httpx_mock):
        httpx_mock.add_response(url=BILLBOARD_URL, text=BILLBOARD_HTML)

        entries = scrape(BillboardScraper(), BILLBOARD_URL)

        assert [e.rank for e in entries] == [1, 2, 3]
        first = entries[0]
        assert first.title == "Fast Car"
        assert first.artist == "Luke Combs"
        assert first.last_week_rank == 2
        assert first.peak_rank == 1
        assert first.weeks_on_chart == 26
        assert first.image == (
            "https://charts-static.billboard.com/img/2023/04/luke-combs-fast-car.jpg"
        )

    def test_new_entry_has_no_last_week_rank(self, httpx_mock):
        httpx_mock.add_response(url=BILLBOARD_URL, text=BILLBOARD_HTML)

        second = scrape(BillboardScraper(), BILLBOARD_URL)[1]

        assert second.title == "Man Made A Bar"
        assert second.artist == "Morgan Wallen Featuring Eric Church"
        assert second.last_week_rank is None
        assert second.weeks_on_chart == 1

    def test_entities_decoded_and_missing_image(self, httpx_mock):
        httpx_mock.add_response(url=BILLBOARD_URL, text=BILLBOARD_HTML)

        third = scrape(BillboardScraper(), BILLBOARD_URL)[2]

        assert third.title == "Don’t Think Jesus"
        assert third.image is None
        assert third.last_week_rank == 5

    def test_empty_page_raises(self, httpx_mock):
        httpx_mock.add_response(url=BILLBOARD_URL, text=load_fixture("billboard", "empty.html"))

        with pytest.raises(ScrapeError, match="No chart rows"):
            scrape(BillboardScraper(), BILLBOARD_URL)

    def test_http_error_raises_scrape_error(self, httpx_mock):
        httpx_mock.add_response(url=BILLBOARD_URL, status_code=503)

        with pytest.raises(ScrapeError, match="HTTP error"):
            scrape(BillboardScraper(), BILLBOARD_URL)


class TestCountrytownScraper:
    def test_scrape_parses_chart_entries(self, httpx_mock):
        httpx_mock.add_response(url=COUNTRYTOWN_URL, text=COUNTRYTOWN_HTML)

        entries = scrape(CountrytownScraper(), COUNTRYTOWN_URL)

        assert len(entries) == 3
        first = entries[0]
        assert first.title == "Dusty"
        assert first.artist == "Lee Kernaghan"
        assert first.rank == 1
        assert first.last_week_rank == 2
        assert first.peak_rank == 1
        assert first.weeks_on_chart == 6
        assert first.country == "AU"
        assert first.label == "ABC Music"
        assert first.image is None

    def test_null_last_week(self, httpx_mock):
        httpx_mock.add_response(url=COUNTRYTOWN_URL, text=COUNTRYTOWN_HTML)

        second = scrape(CountrytownScraper(), COUNTRYTOWN_URL)[1]

        assert second.artist == "Morgan Wallen feat. Eric Church"
        assert second.last_week_rank is None

    def test_page_without_entries_raises(self, httpx_mock):
        httpx_mock.add_response(
            url=COUNTRYTOWN_URL, text=load_fixture("countrytown", "no-entries.html")
        )

        with pytest.raises(ScrapeError):
            scrape(CountrytownScraper(), COUNTRYTOWN_URL)

    def test_unparsable_literal_raises(self, httpx_mock):
        html = "<script>x = {chartEntries: [{trackTitle: 'single quoted'}]}</script>"
        httpx_mock.add_response(url=COUNTRYTOWN_URL, text=html)

        with pytest.raises(ScrapeError, match="Could not parse"):
            scrape(CountrytownScraper(), COUNTRYTOWN_URL)


def test_registry_covers_every_chart_source():
    assert set(SCRAPER_REGISTRY) == set(ChartSource)
    for definition in CHART_REGISTRY.values():
        assert isinstance(create_scraper(definition.source), SCRAPER_REGISTRY[definition.source])
