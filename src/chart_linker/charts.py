"""
Chart entries, chart definitions and the JSON chart store.

Each registered chart writes its newest week to a fixed "latest" file. When a
new week is saved the previous latest file is archived under its own date.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, replace
from datetime import date, datetime, timedelta
from enum import StrEnum
from pathlib import Path
from typing import TYPE_CHECKING, Any
from zoneinfo import ZoneInfo

if TYPE_CHECKING:
    from chart_linker.resolution import Resolution

logger = logging.getLogger(__name__)

COUNTRYTOWN_DEFAULT_IMAGE = (
    "https://pbs.twimg.com/profile_images/1301033714529394693/SsLzg2DQ_400x400.jpg"
)


@dataclass(frozen=True)
class ChartEntry:
    """One ranked chart row; resolution is attached by copying, never mutated."""

    title: str
    artist: str
    rank: int
    last_week_rank: int | None = None
    peak_rank: int = 0
    weeks_on_chart: int = 0
    image: str | None = None
    country: str | None = None
    label: str | None = None
    resolution: Resolution | None = None

    def with_resolution(self, resolution: Resolution | None) -> ChartEntry:
        return replace(self, resolution=resolution)

    def with_image(self, image: str | None) -> ChartEntry:
        return replace(self, image=image)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "title": self.title,
            "artist": self.artist,
            "image": self.image,
            "rank": self.rank,
            "lastWeekRank": self.last_week_rank,
            "peakRank": self.peak_rank,
            "weeksOnChart": self.weeks_on_chart,
        }
        if self.country is not None:
            data["country"] = self.country
        if self.label is not None:
            data["label"] = self.label
        data["spotifyData"] = self.resolution.to_dict() if self.resolution else None
        return data


@dataclass(frozen=True)
class Chart:
    """A dated, ordered list of chart entries."""

    date: date
    entries: list[ChartEntry]

    def to_dict(self) -> dict[str, Any]:
        return {
            "date": self.date.isoformat(),
            "entries": [entry.to_dict() for entry in self.entries],
        }


class ChartSource(StrEnum):
    """Sites we know how to scrape."""

    BILLBOARD = "billboard"
    COUNTRYTOWN = "countrytown"


class ChartDateRule(StrEnum):
    """How the publication date of the current chart week is derived."""

    SATURDAY = "saturday"
    FRIDAY = "friday"


@dataclass(frozen=True)
class ChartDefinition:
    """Where a chart comes from and where it is stored."""

    chart_id: str
    name: str
    source: ChartSource
    url: str
    latest_file: str
    archive_prefix: str
    date_rule: ChartDateRule
    default_image: str | None = None

    def archive_file(self, chart_date: str) -> str:
        return f"{self.archive_prefix}{chart_date}.json"


CHART_REGISTRY: dict[str, ChartDefinition] = {
    "country-songs": ChartDefinition(
        chart_id="country-songs",
        name="Country",
        source=ChartSource.BILLBOARD,
        url="https://www.billboard.com/charts/country-songs/",
        latest_file="latest.json",
        archive_prefix="",
        date_rule=ChartDateRule.SATURDAY,
    ),
    "country-airplay": ChartDefinition(
        chart_id="country-airplay",
        name="Country Airplay",
        source=ChartSource.BILLBOARD,
        url="https://www.billboard.com/charts/country-airplay/",
        latest_file="latest-airplay.json",
        archive_prefix="airplay-",
        date_rule=ChartDateRule.SATURDAY,
    ),
    "countrytown-hot-50": ChartDefinition(
        chart_id="countrytown-hot-50",
        name="Countrytown Hot 50",
        source=ChartSource.COUNTRYTOWN,
        url="https://countrytown.com/charts/countrytown-hot-50",
        latest_file="latest-au.json",
        archive_prefix="au-",
        date_rule=ChartDateRule.FRIDAY,
        default_image=COUNTRYTOWN_DEFAULT_IMAGE,
    ),
}


def get_chart(chart_id: str) -> ChartDefinition:
    """Look up a registered chart, raising KeyError with the known ids."""
    try:
        return CHART_REGISTRY[chart_id]
    except KeyError:
        known = ", ".join(CHART_REGISTRY)
        raise KeyError(f"Unknown chart '{chart_id}' (known: {known})") from None


def chart_date(rule: ChartDateRule, now: datetime) -> date:
    """
    Compute the chart week date for a moment in the chart's timezone.

    Saturday charts use the coming Saturday, except on Monday and Tuesday when
    the new chart is not out yet and the previous Saturday is used. Sunday
    also maps back to the day before. Friday charts use the most recent Friday,
    so Saturday and Sunday resolve to the day or two before, not a week earlier.
    """
    weekday = now.isoweekday()
    if rule is ChartDateRule.SATURDAY:
        days = -(weekday + 1) if weekday <= 2 else 6 - weekday
    else:
        days = -((weekday - 5) % 7)
    return (now + timedelta(days=days)).date()


def current_chart_date(rule: ChartDateRule, timezone: str) -> date:
    """Chart week date for the current moment in `timezone`."""
    return chart_date(rule, datetime.now(ZoneInfo(timezone)))


class ChartStore:
    """Writes chart JSON files into one directory, archiving the previous week."""

    def __init__(self, directory: Path):
        self.directory = directory

    def save(self, definition: ChartDefinition, chart: Chart) -> Path:
        """
        Archive the current latest file (if any) and write the new chart.

        Returns:
            Path of the latest file written
        """
        self.directory.mkdir(parents=True, exist_ok=True)
        latest_path = self.directory / definition.latest_file

        if latest_path.exists():
            self._archive(definition, latest_path)

        latest_path.write_text(
            json.dumps(chart.to_dict(), indent="\t", ensure_ascii=False), encoding="utf-8"
        )
        logger.info(f"New {definition.name} chart data saved to {latest_path}")
        return latest_path

    def _archive(self, definition: ChartDefinition, latest_path: Path) -> None:
        try:
            existing = json.loads(latest_path.read_text(encoding="utf-8"))
            existing_date = existing["date"]
        except (ValueError, KeyError, TypeError) as e:
            corrupt_path = latest_path.with_name(f"{latest_path.name}.corrupt")
            logger.warning(f"Unreadable {latest_path}, moving it to {corrupt_path}: {e}")
            latest_path.replace(corrupt_path)
            return

        archive_path = self.directory / definition.archive_file(existing_date)
        latest_path.replace(archive_path)
        logger.info(f"Renaming {existing_date} {definition.name} chart to {archive_path.name}")

    def load_latest(self, definition: ChartDefinition) -> dict[str, Any] | None:
        """Read the latest file of a chart, or None if it was never written."""
        latest_path = self.directory / definition.latest_file
        if not latest_path.exists():
            return None
        return json.loads(latest_path.read_text(encoding="utf-8"))


## Tests


def test_saturday_rule():
    # 2024-06-12 is a Wednesday
    assert chart_date(ChartDateRule.SATURDAY, datetime(2024, 6, 12)) == date(2024, 6, 15)
    assert chart_date(ChartDateRule.SATURDAY, datetime(2024, 6, 15)) == date(2024, 6, 15)
    # Monday and Tuesday fall back to the previous Saturday
    assert chart_date(ChartDateRule.SATURDAY, datetime(2024, 6, 10)) == date(2024, 6, 8)
    assert chart_date(ChartDateRule.SATURDAY, datetime(2024, 6, 11)) == date(2024, 6, 8)


def test_friday_rule():
    assert chart_date(ChartDateRule.FRIDAY, datetime(2024, 6, 14)) == date(2024, 6, 14)
    assert chart_date(ChartDateRule.FRIDAY, datetime(2024, 6, 16)) == date(2024, 6, 14)
    assert chart_date(ChartDateRule.FRIDAY, datetime(2024, 6, 13)) == date(2024, 6, 7)


def test_entry_to_dict_omits_missing_country_and_label():
    entry = ChartEntry(title="Fast Car", artist="Luke Combs", rank=1, peak_rank=1)
    data = entry.to_dict()
    assert "country" not in data
    assert "label" not in data
    assert data["spotifyData"] is None
    assert list(data)[:3] == ["title", "artist", "image"]


def test_get_chart_unknown():
    import pytest

    with pytest.raises(KeyError, match="country-songs"):
        get_chart("hot-100")
