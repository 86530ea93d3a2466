"""Tests for the ChartLinker run driver."""

from __future__ import annotations

import asyncio
import json
from datetime import date

import httpx
from freezegun import freeze_time

from chart_linker.charts import CHART_REGISTRY, COUNTRYTOWN_DEFAULT_IMAGE, ChartEntry, ChartStore
from chart_linker.config import Config
from chart_linker.linker import ChartLinker, open_run_context
from chart_linker.scrapers import ChartScraper, ScrapeError
from chart_linker.spotify import AccessToken, SpotifyAuth
from tests.helpers import FakePreviews, FakeSearch, make_track


class StaticScraper(ChartScraper):
    """Serves canned entries, or fails, without touching the network."""

    def __init__(self, entries: list[ChartEntry] | None = None, error: Exception | None = None):
        super().__init__()
        self.entries = entries or []
        self.error = error
        self.urls: list[str] = []

    async def scrape(self, url: str) -> list[ChartEntry]:
        self.urls.append(url)
        if self.error is not None:
            raise self.error
        return list(self.entries)


BILLBOARD_ENTRIES = [
    ChartEntry(title="Fast Car", artist="Luke Combs", rank=1, peak_rank=1, weeks_on_chart=26),
    ChartEntry(title="Fly Over States", artist="Jason Aldean", rank=2, peak_rank=2),
    ChartEntry(title="Wild Ones", artist="Jessie Murph", rank=3, peak_rank=3),
]


def make_linker(tmp_path, context, scrapers: dict):
    config = Config()
    config.output.directory = tmp_path
    return ChartLinker(
        config,
        context,
        store=ChartStore(tmp_path),
        scraper_factory=lambda source: scrapers[source],
    )


class TestResolveEntries:
    def test_network_error_does_not_stop_later_entries(self, tmp_path, make_context):
        search = FakeSearch(
            {
                "Fly Over States Jason Aldean": [make_track("Fly Over States", ["Jason Aldean"])],
                "Wild Ones Jessie Murph": [
                    make_track("Wild Ones", ["Jessie Murph"], "single", "2023-01-01")
                ],
            },
            errors={"Fast Car Luke Combs": httpx.ReadTimeout("timed out")},
        )
        linker = make_linker(tmp_path, make_context(search), {})

        resolved = asyncio.run(linker.resolve_entries(BILLBOARD_ENTRIES))

        assert resolved[0].resolution is None
        assert resolved[0].to_dict()["spotifyData"] is None
        assert resolved[1].resolution is not None
        assert resolved[1].resolution.tier.label == "step1 (album)"
        assert resolved[2].resolution is not None
        assert resolved[2].resolution.tier.label == "step1 (single)"

    def test_entries_resolved_in_rank_order(self, tmp_path, make_context):
        search = FakeSearch([])
        linker = make_linker(tmp_path, make_context(search), {})
        seen: list[int] = []

        asyncio.run(
            linker.resolve_entries(BILLBOARD_ENTRIES, on_entry=lambda e: seen.append(e.rank))
        )

        assert seen == [1, 2, 3]
        assert search.queries == [
            "Fast Car Luke Combs",
            "Fly Over States Jason Aldean",
            "Wild Ones Jessie Murph",
        ]

    def test_default_image_uses_album_art(self, tmp_path, make_context):
        search = FakeSearch(
            {
                "Dusty Lee Kernaghan": [
                    make_track("Dusty", ["Lee Kernaghan"], album_image="https://i.scdn.co/dusty")
                ]
            }
        )
        entries = [
            ChartEntry(title="Dusty", artist="Lee Kernaghan", rank=1),
            ChartEntry(title="Unknown", artist="Nobody", rank=2),
        ]
        linker = make_linker(tmp_path, make_context(search), {})

        resolved = asyncio.run(
            linker.resolve_entries(entries, default_image=COUNTRYTOWN_DEFAULT_IMAGE)
        )

        assert resolved[0].image == "https://i.scdn.co/dusty"
        assert resolved[1].image == COUNTRYTOWN_DEFAULT_IMAGE


class TestRun:
    @freeze_time("2024-06-12 12:00:00")
    def test_run_writes_chart_files(self, tmp_path, make_context):
        search = FakeSearch(
            {"Fly Over States Jason Aldean": [make_track("Fly Over States", ["Jason Aldean"])]}
        )
        previews = FakePreviews({"Fly Over States": "https://audio.test/fos.m4a"})
        billboard = StaticScraper(BILLBOARD_ENTRIES)
        linker = make_linker(
            tmp_path, make_context(search, previews), {"billboard": billboard}
        )

        summary = asyncio.run(linker.run([CHART_REGISTRY["country-songs"]]))

        assert summary.ok
        data = json.loads((tmp_path / "latest.json").read_text(encoding="utf-8"))
        assert data["date"] == "2024-06-15"
        assert [e["rank"] for e in data["entries"]] == [1, 2, 3]
        spotify = data["entries"][1]["spotifyData"]
        assert spotify["artistMatch"] == "step1 (album)"
        assert spotify["preview"] == "https://audio.test/fos.m4a"
        assert data["entries"][0]["spotifyData"] is None

    def test_failed_chart_does_not_stop_next(self, tmp_path, make_context):
        failing = StaticScraper(error=ScrapeError("No chart rows found"))
        countrytown = StaticScraper([ChartEntry(title="Dusty", artist="Lee Kernaghan", rank=1)])
        linker = make_linker(
            tmp_path,
            make_context(FakeSearch([])),
            {"billboard": failing, "countrytown": countrytown},
        )

        summary = asyncio.run(
            linker.run([CHART_REGISTRY["country-songs"], CHART_REGISTRY["countrytown-hot-50"]])
        )

        assert not summary.ok
        assert summary.failed == {"country-songs": "No chart rows found"}
        assert summary.saved == {"countrytown-hot-50": tmp_path / "latest-au.json"}
        assert not (tmp_path / "latest.json").exists()
        data = json.loads((tmp_path / "latest-au.json").read_text(encoding="utf-8"))
        assert data["entries"][0]["image"] == COUNTRYTOWN_DEFAULT_IMAGE

    def test_week_appended_to_billboard_url(self, tmp_path, make_context):
        billboard = StaticScraper(BILLBOARD_ENTRIES)
        linker = make_linker(tmp_path, make_context(FakeSearch([])), {"billboard": billboard})

        asyncio.run(linker.run([CHART_REGISTRY["country-airplay"]], week=date(2024, 3, 2)))

        assert billboard.urls == ["https://www.billboard.com/charts/country-airplay/2024-03-02"]
        data = json.loads((tmp_path / "latest-airplay.json").read_text(encoding="utf-8"))
        assert data["date"] == "2024-03-02"


def test_run_context_uses_preview_timeout(monkeypatch):
    async def fake_acquire_token(self):
        return AccessToken("BQD-token")

    monkeypatch.setattr(SpotifyAuth, "acquire_token", fake_acquire_token)
    config = Config()
    config.spotify.timeout_s = 30.0
    config.preview.timeout_s = 12.0

    async def _run():
        async with open_run_context(config) as context:
            return context.previews.timeout_s, context.search.limit

    preview_timeout, search_limit = asyncio.run(_run())

    assert preview_timeout == 12.0
    assert search_limit == config.spotify.search_limit
