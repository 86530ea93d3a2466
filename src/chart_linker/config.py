from __future__ import annotations

import os
import tomllib
from pathlib import Path

from pydantic import BaseModel, Field

DEFAULT_DIACRITIC_CORRECTIONS: dict[str, str] = {
    "Buble": "Bublé",
    "Celine Dion": "Céline Dion",
    "Blue Oyster Cult": "Blue Öyster Cult",
    "Beyonce": "Beyoncé",
    "Jose Feliciano": "José Feliciano",
}

DEFAULT_ARTIST_ALIASES: list[str] = [
    "Brooks & Dunn",
    "Hootie & the Blowfish",
    "Maddie & Tae",
]


class SpotifyConfig(BaseModel):
    """Spotify Web API configuration."""

    # Read from SPOTIFY_CLIENT_ID / SPOTIFY_CLIENT_SECRET if not provided
    client_id: str | None = Field(default=None)
    client_secret: str | None = Field(default=None)

    search_limit: int = Field(default=5, ge=1, le=50)
    timeout_s: float = Field(default=30.0, ge=1.0)


class PreviewConfig(BaseModel):
    """Audio preview lookup configuration."""

    base_url: str = Field(default="https://radio.markwasley.net.nz/lookup/appleMusic.php")
    attempts: int = Field(default=3, ge=1)
    delay_s: float = Field(default=1.0, ge=0.0)
    timeout_s: float = Field(default=30.0, ge=1.0)


class NormalizationConfig(BaseModel):
    """Artist name corrections applied before searching."""

    diacritic_corrections: dict[str, str] = Field(
        default_factory=lambda: dict(DEFAULT_DIACRITIC_CORRECTIONS)
    )
    artist_aliases: list[str] = Field(default_factory=lambda: list(DEFAULT_ARTIST_ALIASES))


class OutputConfig(BaseModel):
    """Chart file output configuration."""

    directory: Path = Field(default=Path("."))
    timezone: str = Field(default="Pacific/Auckland")


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = Field(default="INFO")  # DEBUG, INFO, WARNING, ERROR
    format: str = Field(default="%(message)s")


class Config(BaseModel):
    """
    Main configuration for chart-linker.

    Loads from TOML file with optional environment variable overrides.
    """

    spotify: SpotifyConfig = Field(default_factory=SpotifyConfig)
    preview: PreviewConfig = Field(default_factory=PreviewConfig)
    normalization: NormalizationConfig = Field(default_factory=NormalizationConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @classmethod
    def load(cls, config_path: Path | None = None) -> Config:
        """
        Load configuration from TOML file with environment variable overrides.

        Environment variables take precedence and follow the pattern:
        CHART_LINKER_<SECTION>_<KEY> (e.g., CHART_LINKER_PREVIEW_ATTEMPTS)

        All values are gathered into a single dictionary first, then validated
        by Pydantic to ensure consistent type checking and coercion.
        """
        config_dict: dict[str, object] = {}

        if config_path and config_path.exists():
            config_dict = tomllib.loads(config_path.read_text())

        config_dict = cls._merge_env_overrides(config_dict)
        return cls.model_validate(config_dict)

    @staticmethod
    def _section(config_dict: dict[str, object], name: str) -> dict[str, object]:
        section = config_dict.setdefault(name, {})
        if not isinstance(section, dict):
            section = {}
            config_dict[name] = section
        return section

    @classmethod
    def _merge_env_overrides(cls, config_dict: dict[str, object]) -> dict[str, object]:
        """
        Merge environment variable overrides into config dictionary.

        Returns a new dictionary with env vars applied, ready for Pydantic validation.
        """
        env_prefix = "CHART_LINKER_"

        spotify = cls._section(config_dict, "spotify")
        if spotify_id := os.getenv("SPOTIFY_CLIENT_ID"):
            spotify["client_id"] = spotify_id
        if spotify_secret := os.getenv("SPOTIFY_CLIENT_SECRET"):
            spotify["client_secret"] = spotify_secret
        if search_limit := os.getenv(f"{env_prefix}SPOTIFY_SEARCH_LIMIT"):
            spotify["search_limit"] = search_limit
        if spotify_timeout := os.getenv(f"{env_prefix}SPOTIFY_TIMEOUT_S"):
            spotify["timeout_s"] = spotify_timeout

        preview = cls._section(config_dict, "preview")
        if preview_url := os.getenv(f"{env_prefix}PREVIEW_BASE_URL"):
            preview["base_url"] = preview_url
        if preview_attempts := os.getenv(f"{env_prefix}PREVIEW_ATTEMPTS"):
            preview["attempts"] = preview_attempts
        if preview_delay := os.getenv(f"{env_prefix}PREVIEW_DELAY_S"):
            preview["delay_s"] = preview_delay
        if preview_timeout := os.getenv(f"{env_prefix}PREVIEW_TIMEOUT_S"):
            preview["timeout_s"] = preview_timeout

        output = cls._section(config_dict, "output")
        if output_dir := os.getenv(f"{env_prefix}OUTPUT_DIRECTORY"):
            output["directory"] = output_dir
        if output_tz := os.getenv(f"{env_prefix}OUTPUT_TIMEZONE"):
            output["timezone"] = output_tz

        logging_config = cls._section(config_dict, "logging")
        if log_level := os.getenv(f"{env_prefix}LOGGING_LEVEL"):
            logging_config["level"] = log_level
        if log_format := os.getenv(f"{env_prefix}LOGGING_FORMAT"):
            logging_config["format"] = log_format

        return config_dict


## Tests


def test_config_defaults():
    config = Config()
    assert config.spotify.search_limit == 5
    assert config.preview.attempts == 3
    assert config.preview.delay_s == 1.0
    assert config.output.directory == Path(".")
    assert config.output.timezone == "Pacific/Auckland"
    assert "Brooks & Dunn" in config.normalization.artist_aliases
    assert config.normalization.diacritic_corrections["Beyonce"] == "Beyoncé"


def test_config_from_dict():
    config = Config.model_validate(
        {
            "preview": {"attempts": 5, "delay_s": 0},
            "normalization": {"artist_aliases": ["Big & Rich"]},
        }
    )
    assert config.preview.attempts == 5
    assert config.preview.delay_s == 0.0
    assert config.normalization.artist_aliases == ["Big & Rich"]
    # Untouched table keeps its defaults
    assert "Buble" in config.normalization.diacritic_corrections


def test_config_env_overrides(monkeypatch):  # pyright: ignore[reportMissingParameterType]
    monkeypatch.setenv("CHART_LINKER_PREVIEW_ATTEMPTS", "2")
    monkeypatch.setenv("CHART_LINKER_OUTPUT_DIRECTORY", "/custom/out")
    monkeypatch.setenv("SPOTIFY_CLIENT_ID", "abc")

    config = Config.load()
    assert config.preview.attempts == 2
    assert config.output.directory == Path("/custom/out")
    assert config.spotify.client_id == "abc"


def test_config_load_nonexistent_file():
    config = Config.load(Path("/nonexistent/config.toml"))
    assert config.preview.attempts == 3
