"""Artist names whose legal form contains the join marker.

A chart credit such as "Brooks & Dunn" is one act, not two collaborators, so
truncating the query artist at the first join marker must step over it.
"""

from __future__ import annotations

from collections.abc import Iterable

from chart_linker.config import DEFAULT_ARTIST_ALIASES
from chart_linker.normalize import JOIN_MARKER


class ArtistAliasTable:
    """Fixed set of joined artist names protected from truncation."""

    def __init__(self, aliases: Iterable[str] | None = None):
        if aliases is None:
            aliases = DEFAULT_ARTIST_ALIASES
        self.aliases = [a for a in aliases if a.strip()]

    def find(self, artist: str) -> str | None:
        """Return the first alias contained (case-insensitively) in artist."""
        artist_lower = artist.lower()
        for alias in self.aliases:
            if alias.lower() in artist_lower:
                return alias
        return None

    def truncate_artist(self, artist: str) -> str:
        """
        Reduce a joined artist credit to its primary artist.

        Keeps the text before the first join marker that does not fall inside
        an alias occurrence. Strings without a join marker, or whose only
        markers belong to aliases, are returned unchanged apart from trimming.
        Applying it twice gives the same result as applying it once.
        """
        if JOIN_MARKER not in artist:
            return artist

        protected = self._alias_spans(artist) if self.find(artist) else []
        for index, char in enumerate(artist):
            if char != JOIN_MARKER:
                continue
            if any(start <= index < end for start, end in protected):
                continue
            head = artist[:index].strip()
            # A leading marker leaves nothing to match on
            return head if head else artist.strip()

        return artist.strip()

    def _alias_spans(self, artist: str) -> list[tuple[int, int]]:
        """Character ranges of every alias occurrence in artist."""
        artist_lower = artist.lower()
        spans: list[tuple[int, int]] = []
        for alias in self.aliases:
            alias_lower = alias.lower()
            start = artist_lower.find(alias_lower)
            while start != -1:
                spans.append((start, start + len(alias_lower)))
                start = artist_lower.find(alias_lower, start + 1)
        return spans


## Tests


def test_truncate_plain_collaboration():
    table = ArtistAliasTable()
    assert table.truncate_artist("Morgan Wallen & Eric Church") == "Morgan Wallen"


def test_truncate_keeps_alias_intact():
    table = ArtistAliasTable()
    assert table.truncate_artist("Brooks & Dunn & Reba McEntire") == "Brooks & Dunn"
    assert table.truncate_artist("Brooks & Dunn") == "Brooks & Dunn"


def test_truncate_is_case_insensitive_for_aliases():
    table = ArtistAliasTable()
    assert table.truncate_artist("MADDIE & TAE & Carrie") == "MADDIE & TAE"


def test_truncate_without_marker_is_identity():
    table = ArtistAliasTable()
    assert table.truncate_artist("Jason Aldean") == "Jason Aldean"


def test_find_alias():
    table = ArtistAliasTable()
    assert table.find("Hootie & The Blowfish") == "Hootie & the Blowfish"
    assert table.find("Jason Aldean") is None
