from __future__ import annotations

import json
import logging
import re
from html.parser import HTMLParser
from typing import Any

from chart_linker.charts import ChartEntry
from chart_linker.scrapers.base import ChartScraper, ScrapeError

logger = logging.getLogger(__name__)


class CountrytownScraper(ChartScraper):
    """
    Scraper for the Countrytown Hot 50 (Australian weekly chart).

    Target: https://countrytown.com/charts/countrytown-hot-50

    The page embeds the chart as a JavaScript object literal
    (`chartEntries: [...]`) inside an inline script.
    """

    source = "countrytown"

    CHART_ENTRIES_PATTERN = re.compile(r"chartEntries\s*:\s*\[([^\]]*)\]")

    # Bare object keys directly after "{" or ","; quoted keys and values are left alone
    BARE_KEY_PATTERN = re.compile(r"([{,]\s*)(\w+)\s*:")

    async def scrape(self, url: str) -> list[ChartEntry]:
        html = await self._fetch_url(url)
        entries = self._parse_html(html)
        if not entries:
            raise ScrapeError(f"No chart entries found at {url}")
        logger.debug(f"Parsed {len(entries)} Countrytown entries from {url}")
        return entries

    def _parse_html(self, html: str) -> list[ChartEntry]:
        parser = ScriptTextParser()
        parser.feed(html)
        parser.close()

        raw_entries = self._extract_chart_entries(parser.script_text)
        entries: list[ChartEntry] = []
        for index, raw in enumerate(raw_entries):
            if not isinstance(raw, dict):
                continue
            title = self._clean_text(str(raw.get("trackTitle") or ""))
            artist = self._clean_text(str(raw.get("artistName") or ""))
            if not title or not artist:
                logger.debug(f"Skipping Countrytown entry {index + 1} without title or artist")
                continue

            rank = self._parse_int(_as_text(raw.get("positionThisWeek")))
            entries.append(
                ChartEntry(
                    title=title,
                    artist=artist,
                    rank=rank if rank is not None else index + 1,
                    last_week_rank=self._parse_int(_as_text(raw.get("positionLastWeek"))),
                    peak_rank=self._parse_int(_as_text(raw.get("positionPeak"))) or 0,
                    weeks_on_chart=self._parse_int(_as_text(raw.get("weeksInChart"))) or 0,
                    country=raw.get("countryOfOrigin") or None,
                    label=raw.get("labelName") or None,
                )
            )
        return entries

    def _extract_chart_entries(self, script_text: str) -> list[Any]:
        """Pull the `chartEntries` literal out of script text and parse it as JSON."""
        match = self.CHART_ENTRIES_PATTERN.search(script_text)
        if match is None:
            logger.warning("No chartEntries literal found in page scripts")
            return []

        literal = "[" + match.group(1) + "]"
        literal = self.BARE_KEY_PATTERN.sub(r'\1"\2":', literal)
        try:
            data = json.loads(literal)
        except ValueError as e:
            raise ScrapeError(f"Could not parse chartEntries literal: {e}") from e

        if not isinstance(data, list):
            raise ScrapeError("chartEntries literal is not a list")
        return data


def _as_text(value: Any) -> str | None:
    if value is None:
        return None
    if isinstance(value, bool):
        return None
    return str(value)


class ScriptTextParser(HTMLParser):
    """Collects the text of every inline <script> element, in document order."""

    def __init__(self) -> None:
        super().__init__(convert_charrefs=True)
        self._in_script = False
        self._parts: list[str] = []

    @property
    def script_text(self) -> str:
        return "".join(self._parts)

    def handle_starttag(self, tag: str, attrs: list[tuple[str, str | None]]) -> None:
        if tag == "script":
            self._in_script = True

    def handle_endtag(self, tag: str) -> None:
        if tag == "script":
            self._in_script = False

    def handle_data(self, data: str) -> None:
        if self._in_script:
            self._parts.append(data)


## Tests


def test_extract_chart_entries_quotes_bare_keys():
    scraper = CountrytownScraper()
    script = (
        "window.__data = {chartEntries: [{trackTitle: \"Dusty\", artistName: \"Lee Kernaghan\","
        " positionThisWeek: 1, positionLastWeek: 3, url: \"https://x.test/a\"}], other: 1}"
    )
    entries = scraper._extract_chart_entries(script)
    assert entries == [
        {
            "trackTitle": "Dusty",
            "artistName": "Lee Kernaghan",
            "positionThisWeek": 1,
            "positionLastWeek": 3,
            "url": "https://x.test/a",
        }
    ]


def test_extract_chart_entries_missing_literal():
    assert CountrytownScraper()._extract_chart_entries("var x = 1;") == []


def test_script_text_parser_ignores_body_text():
    parser = ScriptTextParser()
    parser.feed("<p>chartEntries: [nope]</p><script>var a = 1;</script>")
    parser.close()
    assert parser.script_text == "var a = 1;"
