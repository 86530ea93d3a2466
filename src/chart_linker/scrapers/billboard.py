from __future__ import annotations

import logging
from collections.abc import Callable, Iterator
from dataclasses import dataclass, field
from html.parser import HTMLParser

from chart_linker.charts import ChartEntry
from chart_linker.scrapers.base import ChartScraper, ScrapeError

logger = logging.getLogger(__name__)

ROW_CLASS = "o-chart-results-list-row-container"
ITEM_CLASS = "o-chart-results-list__item"
TITLE_ID = "title-of-a-story"
ARTIST_CLASS = "c-label"

# Column positions (1-based, among the item's siblings) of the row statistics
LAST_WEEK_COLUMN = 4
PEAK_COLUMN = 5
WEEKS_COLUMN = 6

VOID_ELEMENTS = frozenset(
    {
        "area",
        "base",
        "br",
        "col",
        "embed",
        "hr",
        "img",
        "input",
        "link",
        "meta",
        "source",
        "track",
        "wbr",
    }
)


class BillboardScraper(ChartScraper):
    """
    Scraper for Billboard weekly charts.

    Target: https://www.billboard.com/charts/<chart>/[YYYY-MM-DD]
    """

    source = "billboard"

    async def scrape(self, url: str) -> list[ChartEntry]:
        html = await self._fetch_url(url)
        entries = self._parse_html(html)
        if not entries:
            raise ScrapeError(f"No chart rows found at {url}")
        logger.debug(f"Parsed {len(entries)} Billboard rows from {url}")
        return entries

    def _parse_html(self, html: str) -> list[ChartEntry]:
        parser = BillboardChartParser()
        parser.feed(html)
        parser.close()

        entries: list[ChartEntry] = []
        for index, row in enumerate(parser.rows()):
            title = self._clean_text(_first_text(row, _is_title))
            artist = self._clean_text(
                "".join(node.text() for node in row.iter_descendants() if _is_artist(node))
            )
            if not title or not artist:
                logger.debug(f"Skipping Billboard row {index + 1} without title or artist")
                continue

            entries.append(
                ChartEntry(
                    title=title,
                    artist=artist,
                    rank=index + 1,
                    last_week_rank=self._parse_int(_column_text(row, LAST_WEEK_COLUMN)),
                    peak_rank=self._parse_int(_column_text(row, PEAK_COLUMN)) or 0,
                    weeks_on_chart=self._parse_int(_column_text(row, WEEKS_COLUMN)) or 0,
                    image=_image(row),
                )
            )
        return entries


@dataclass(eq=False)
class _Node:
    """Element in the minimal document tree built by BillboardChartParser."""

    tag: str
    attrs: dict[str, str]
    parent: _Node | None = None
    children: list[_Node | str] = field(default_factory=list)

    @property
    def classes(self) -> set[str]:
        return set(self.attrs.get("class", "").split())

    @property
    def elements(self) -> list[_Node]:
        return [child for child in self.children if isinstance(child, _Node)]

    def iter_descendants(self) -> Iterator[_Node]:
        """Descendant elements in document order."""
        for child in self.elements:
            yield child
            yield from child.iter_descendants()

    def text(self) -> str:
        return "".join(
            child if isinstance(child, str) else child.text() for child in self.children
        )

    def position(self) -> int:
        """1-based index among the parent's element children."""
        if self.parent is None:
            return 1
        return self.parent.elements.index(self) + 1

    def previous_element(self) -> _Node | None:
        if self.parent is None:
            return None
        siblings = self.parent.elements
        index = siblings.index(self)
        return siblings[index - 1] if index > 0 else None


class BillboardChartParser(HTMLParser):
    """
    Builds a small element tree so chart rows can be queried structurally.

    Uses standard library to avoid BeautifulSoup dependency.
    """

    def __init__(self) -> None:
        super().__init__(convert_charrefs=True)
        self.root = _Node(tag="#document", attrs={})
        self._stack: list[_Node] = [self.root]

    def handle_starttag(self, tag: str, attrs: list[tuple[str, str | None]]) -> None:
        node = self._append(tag, attrs)
        if tag not in VOID_ELEMENTS:
            self._stack.append(node)

    def handle_startendtag(self, tag: str, attrs: list[tuple[str, str | None]]) -> None:
        self._append(tag, attrs)

    def handle_endtag(self, tag: str) -> None:
        # Close up to the matching open tag; stray end tags are ignored
        for depth in range(len(self._stack) - 1, 0, -1):
            if self._stack[depth].tag == tag:
                del self._stack[depth:]
                return

    def handle_data(self, data: str) -> None:
        self._stack[-1].children.append(data)

    def rows(self) -> list[_Node]:
        return [node for node in self.root.iter_descendants() if ROW_CLASS in node.classes]

    def _append(self, tag: str, attrs: list[tuple[str, str | None]]) -> _Node:
        parent = self._stack[-1]
        node = _Node(tag=tag, attrs={k: v or "" for k, v in attrs}, parent=parent)
        parent.children.append(node)
        return node


def _is_title(node: _Node) -> bool:
    return node.tag == "h3" and node.attrs.get("id") == TITLE_ID


def _is_artist(node: _Node) -> bool:
    """`h3 + span.c-label`: an artist label directly after a title heading."""
    if node.tag != "span" or ARTIST_CLASS not in node.classes:
        return False
    previous = node.previous_element()
    return previous is not None and previous.tag == "h3"


def _first_text(row: _Node, predicate: Callable[[_Node], bool]) -> str:
    for node in row.iter_descendants():
        if predicate(node):
            return node.text()
    return ""


def _column_text(row: _Node, column: int) -> str:
    """Text of the first `span` child of the row item at `column`."""
    for node in row.iter_descendants():
        if ITEM_CLASS not in node.classes or node.position() != column:
            continue
        for child in node.elements:
            if child.tag == "span":
                return child.text().strip()
    return ""


def _image(row: _Node) -> str | None:
    for node in row.iter_descendants():
        if node.tag == "img":
            return node.attrs.get("data-lazy-src") or None
    return None


## Tests


def test_parser_builds_rows():
    html = """
    <div class="o-chart-results-list-row-container">
      <ul class="o-chart-results-list-row">
        <li class="o-chart-results-list__item"><span>1</span></li>
        <li class="o-chart-results-list__item"><img data-lazy-src="https://img/1.jpg"></li>
        <li class="lrv-u-width-100p">
          <ul>
            <li class="o-chart-results-list__item">
              <h3 id="title-of-a-story">
                Fast Car
              </h3>
              <span class="c-label">
                Luke Combs
              </span>
            </li>
            <li class="o-chart-results-list__item"></li>
            <li class="o-chart-results-list__item"></li>
            <li class="o-chart-results-list__item"><span>-</span></li>
            <li class="o-chart-results-list__item"><span>1</span></li>
            <li class="o-chart-results-list__item"><span>12</span></li>
          </ul>
        </li>
      </ul>
    </div>
    """
    entries = BillboardScraper()._parse_html(html)
    assert len(entries) == 1
    entry = entries[0]
    assert entry.title == "Fast Car"
    assert entry.artist == "Luke Combs"
    assert entry.rank == 1
    assert entry.last_week_rank is None
    assert entry.peak_rank == 1
    assert entry.weeks_on_chart == 12
    assert entry.image == "https://img/1.jpg"


def test_parser_ignores_stray_end_tags():
    parser = BillboardChartParser()
    parser.feed("<div class='x'></span><p>text</p></div>")
    parser.close()
    div = parser.root.elements[0]
    assert div.tag == "div"
    assert div.elements[0].text() == "text"
