from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass

from chart_linker.config import DEFAULT_DIACRITIC_CORRECTIONS

# Single marker every collaborator separator is rewritten to
JOIN_MARKER = "&"

QUOTE_TRANSLATION = str.maketrans(
    {
        "\u2018": "'",
        "\u2019": "'",
        "`": "'",
        "\u201c": '"',
        "\u201d": '"',
    }
)


@dataclass(frozen=True)
class NormalizedQuery:
    """Title/artist pair prepared for searching and comparison."""

    title: str
    artist: str

    @property
    def search_text(self) -> str:
        """Free-form query string sent to the track search index."""
        return f"{self.title} {self.artist}"


class Normalizer:
    """
    Deterministic text transforms for chart queries and catalog track names.

    The diacritic correction table is data: pass a different mapping to extend
    or replace it without touching the matching rules.
    """

    JOIN_PATTERN = re.compile(
        r"\b(?:featuring|feat|with)\b\.?|\s*/\s*|\s*,\s*",
        re.IGNORECASE,
    )

    # Trailing "(feat. X)" / "(... with X)" credit or "- Spotify Singles[ Holiday]" marker
    FEATURE_SUFFIX_PATTERN = re.compile(
        r"\s*\((f(?:ea)?t(?:uring)?\.?\s.*?|.*?\s?with\s.*?)\)|\s*- Spotify Singles(?: Holiday)?",
        re.IGNORECASE,
    )

    NON_ALPHANUMERIC_PATTERN = re.compile(r"[^\w\s]|_")

    def __init__(self, diacritic_corrections: Mapping[str, str] | None = None):
        if diacritic_corrections is None:
            diacritic_corrections = DEFAULT_DIACRITIC_CORRECTIONS
        self.diacritic_corrections = dict(diacritic_corrections)

    def normalize_query(self, title: str, artist: str) -> NormalizedQuery:
        """
        Prepare a scraped chart row for searching.

        Corrects known unaccented artist spellings, rewrites collaborator
        separators to the join marker and straightens quotes on both fields.
        """
        artist = self.correct_diacritics(artist)
        artist = self.normalize_joins(artist)
        return NormalizedQuery(
            title=self.normalize_quotes(title),
            artist=self.normalize_quotes(artist),
        )

    def clean_track_name(self, name: str) -> str:
        """Straighten quotes in a catalog track name before comparison."""
        return self.normalize_quotes(name)

    def strip_feature_suffix(self, name: str) -> str | None:
        """
        Remove a trailing featured-artist credit from a track name.

        Returns:
            The name up to the suffix, or None if no suffix was found
        """
        match = self.FEATURE_SUFFIX_PATTERN.search(name)
        if match is None:
            return None
        return name[: match.start()].strip()

    def preview_title(self, name: str) -> str:
        """Cleaned, suffix-free track name used for the preview lookup."""
        cleaned = self.clean_track_name(name)
        stripped = self.strip_feature_suffix(cleaned)
        return stripped if stripped else cleaned

    @staticmethod
    def normalize_quotes(s: str) -> str:
        """Map curly quotes and the grave accent to straight ASCII quotes."""
        return s.translate(QUOTE_TRANSLATION)

    def correct_diacritics(self, artist: str) -> str:
        """Rewrite known unaccented artist spellings to their canonical form."""
        for plain, accented in self.diacritic_corrections.items():
            artist = artist.replace(plain, accented)
        return artist

    def normalize_joins(self, artist: str) -> str:
        """Rewrite Featuring/feat/With, slashes and commas to the join marker."""
        return self.JOIN_PATTERN.sub(JOIN_MARKER, artist)

    def clean_names(self, name: str) -> str:
        """Keep only letters, digits and whitespace."""
        return self.NON_ALPHANUMERIC_PATTERN.sub("", name).strip()


## Tests


def test_quote_normalization():
    norm = Normalizer()
    assert norm.normalize_quotes("Don\u2019t Stop") == "Don't Stop"
    assert norm.normalize_quotes("\u201cHello\u201d") == '"Hello"'
    assert norm.normalize_quotes("Rock `n Roll") == "Rock 'n Roll"


def test_quote_normalization_identity_on_straight_quotes():
    norm = Normalizer()
    assert norm.normalize_quotes("Don't \"Stop\"") == "Don't \"Stop\""


def test_diacritic_correction():
    norm = Normalizer()
    assert norm.correct_diacritics("Michael Buble") == "Michael Bublé"
    assert norm.correct_diacritics("Beyonce") == "Beyoncé"
    assert norm.correct_diacritics("Beyoncé") == "Beyoncé"


def test_diacritic_correction_custom_table():
    norm = Normalizer({"Bjork": "Björk"})
    assert norm.correct_diacritics("Bjork") == "Björk"
    # Default table no longer applies
    assert norm.correct_diacritics("Beyonce") == "Beyonce"


def test_join_normalization():
    norm = Normalizer()
    assert (
        norm.normalize_joins("Morgan Wallen Featuring Eric Church")
        == "Morgan Wallen & Eric Church"
    )
    assert norm.normalize_joins("Luke Combs feat. Amanda Shires") == "Luke Combs & Amanda Shires"
    assert norm.normalize_joins("Chris Young With Kane Brown") == "Chris Young & Kane Brown"
    assert norm.normalize_joins("A / B") == "A&B"
    assert norm.normalize_joins("A, B") == "A&B"


def test_join_normalization_keeps_words_containing_with():
    norm = Normalizer()
    assert norm.normalize_joins("Bill Withers") == "Bill Withers"


def test_clean_names():
    norm = Normalizer()
    assert norm.clean_names("Brooks & Dunn ") == "Brooks  Dunn"
    assert norm.clean_names("P!nk") == "Pnk"
    assert norm.clean_names("Bublé") == "Bublé"


def test_strip_feature_suffix():
    norm = Normalizer()
    stripped = norm.strip_feature_suffix("Beer Never Broke My Heart (feat. X)")
    assert stripped == "Beer Never Broke My Heart"
    assert norm.strip_feature_suffix("Song (with Kane Brown)") == "Song"
    assert norm.strip_feature_suffix("Jolene - Spotify Singles") == "Jolene"
    assert norm.strip_feature_suffix("Silent Night - Spotify Singles Holiday") == "Silent Night"
    assert norm.strip_feature_suffix("Plain Title") is None


def test_normalize_query():
    norm = Normalizer()
    query = norm.normalize_query("I\u2019m Gonna Love You", "Beyonce Featuring Celine Dion")
    assert query.title == "I'm Gonna Love You"
    assert query.artist == "Beyoncé & Céline Dion"
    assert query.search_text == "I'm Gonna Love You Beyoncé & Céline Dion"
