"""CLI for chart-linker using Typer and Rich."""

from __future__ import annotations

import asyncio
import logging
from datetime import date
from enum import StrEnum
from pathlib import Path
from typing import Annotated, Any

import httpx
import typer

from chart_linker.charts import CHART_REGISTRY, ChartDefinition, ChartSource, get_chart
from chart_linker.config import Config
from chart_linker.console import (
    chart_progress,
    print_error,
    print_json,
    print_success,
    print_warning,
    set_console,
    status,
)
from chart_linker.console import (
    print as cprint,
)
from chart_linker.linker import ChartLinker, RunSummary, build_orchestrator, open_run_context
from chart_linker.resolution import Resolution
from chart_linker.safe_logging import configure_rich_logging
from chart_linker.spotify import CatalogError

logger = logging.getLogger(__name__)


class OutputFormat(StrEnum):
    """Output format for CLI commands."""

    TEXT = "text"
    JSON = "json"


class ExitCode:
    """Standard exit codes for CLI commands."""

    SUCCESS = 0
    ERROR = 1
    NO_RESULTS = 2


app = typer.Typer(
    name="chart-linker",
    help="Attach Spotify tracks and audio previews to weekly country music charts",
    no_args_is_help=True,
    add_completion=False,
)


class AppState:
    """Global application state passed between commands."""

    config: Config
    output_format: OutputFormat
    verbose: int


state = AppState()


@app.callback()
def main(
    config_path: Annotated[
        Path | None,
        typer.Option("--config", help="Path to configuration TOML file", exists=True),
    ] = None,
    output_dir: Annotated[
        Path | None,
        typer.Option("--output-dir", help="Directory chart JSON files are written to"),
    ] = None,
    output: Annotated[
        OutputFormat,
        typer.Option("--output", "-o", help="Output format"),
    ] = OutputFormat.TEXT,
    verbose: Annotated[
        int,
        typer.Option("--verbose", "-v", count=True, help="Increase verbosity"),
    ] = 0,
) -> None:
    """chart-linker: resolve chart entries to Spotify tracks."""
    cfg = Config.load(config_path)

    # CLI > Env > Config File > Defaults
    if output_dir:
        cfg.output.directory = output_dir

    if verbose >= 2:
        log_level = logging.DEBUG
    elif verbose == 1:
        log_level = logging.INFO
    else:
        log_level = getattr(logging, cfg.logging.level.upper(), logging.INFO)

    console = configure_rich_logging(level=log_level, format_string=cfg.logging.format)
    set_console(console)

    # Suppress HTTP client logging unless very verbose (-vvv)
    if verbose < 3:
        logging.getLogger("httpx").setLevel(logging.WARNING)
        logging.getLogger("httpcore").setLevel(logging.WARNING)

    if config_path:
        logger.info(f"Loaded config from {config_path}")
    logger.debug(f"Logging configured: level={logging.getLevelName(log_level)}")

    state.config = cfg
    state.output_format = output
    state.verbose = verbose


@app.command("charts")
def list_charts() -> None:
    """List the charts that can be fetched."""
    if state.output_format == OutputFormat.JSON:
        print_json(
            [
                {
                    "id": definition.chart_id,
                    "name": definition.name,
                    "source": definition.source.value,
                    "url": definition.url,
                    "latestFile": definition.latest_file,
                }
                for definition in CHART_REGISTRY.values()
            ]
        )
        raise typer.Exit(code=ExitCode.SUCCESS)

    for definition in CHART_REGISTRY.values():
        cprint(f"[bold]{definition.chart_id}[/bold]  {definition.name}")
        cprint(f"  {definition.url} -> {definition.latest_file}", markup=False)
    raise typer.Exit(code=ExitCode.SUCCESS)


@app.command()
def fetch(
    chart_ids: Annotated[
        list[str] | None,
        typer.Argument(help="Charts to fetch (default: all registered charts)"),
    ] = None,
    week: Annotated[
        str | None,
        typer.Option("--week", help="Chart week to fetch (YYYY-MM-DD, Billboard only)"),
    ] = None,
) -> None:
    """Scrape charts, resolve every entry and write the chart JSON files."""
    try:
        definitions = [get_chart(chart_id) for chart_id in chart_ids or CHART_REGISTRY]
    except KeyError as e:
        print_error(str(e.args[0]))
        raise typer.Exit(code=ExitCode.ERROR) from None

    chart_week: date | None = None
    if week:
        try:
            chart_week = date.fromisoformat(week)
        except ValueError:
            print_error(f"Invalid --week '{week}', expected YYYY-MM-DD")
            raise typer.Exit(code=ExitCode.ERROR) from None
        for definition in definitions:
            if definition.source is not ChartSource.BILLBOARD:
                print_warning(f"--week is ignored for {definition.name}, fetching current chart")

    try:
        summary = asyncio.run(_run_fetch(definitions, chart_week))
    except (ValueError, CatalogError, httpx.HTTPError) as e:
        print_error(f"Could not start run: {e}")
        raise typer.Exit(code=ExitCode.ERROR) from None

    if state.output_format == OutputFormat.JSON:
        print_json(
            {
                "saved": {chart_id: str(path) for chart_id, path in summary.saved.items()},
                "failed": summary.failed,
            }
        )
    else:
        for chart_id, path in summary.saved.items():
            print_success(f"{chart_id}: saved {path}")
        for chart_id, message in summary.failed.items():
            print_error(f"{chart_id}: {message}")

    raise typer.Exit(code=ExitCode.SUCCESS if summary.ok else ExitCode.ERROR)


async def _run_fetch(definitions: list[ChartDefinition], week: date | None) -> RunSummary:
    async with open_run_context(state.config) as context:
        linker = ChartLinker(state.config, context)
        with chart_progress() as progress:
            task = progress.add_task("Resolving entries", total=None)
            return await linker.run(
                definitions,
                week=week,
                on_entry=lambda entry: progress.update(
                    task, advance=1, description=f"#{entry.rank} {entry.title}"
                ),
            )


@app.command()
def resolve(
    title: Annotated[str, typer.Option("--title", "-t", help="Track title as charted")],
    artist: Annotated[str, typer.Option("--artist", "-a", help="Artist credit as charted")],
) -> None:
    """Resolve a single title/artist pair and print the match."""
    try:
        with status(f"Resolving {title} by {artist}..."):
            resolution = asyncio.run(_resolve_one(title, artist))
    except (ValueError, CatalogError, httpx.HTTPError) as e:
        print_error(f"Could not start run: {e}")
        raise typer.Exit(code=ExitCode.ERROR) from None

    if resolution is None:
        if state.output_format == OutputFormat.JSON:
            print_json(None)
        else:
            print_error(f"No track found for {title} by {artist}")
        raise typer.Exit(code=ExitCode.NO_RESULTS)

    data = resolution.to_dict()
    if state.output_format == OutputFormat.JSON:
        print_json(data)
    else:
        _print_resolution(data)
    raise typer.Exit(code=ExitCode.SUCCESS)


async def _resolve_one(title: str, artist: str) -> Resolution | None:
    async with open_run_context(state.config) as context:
        return await build_orchestrator(state.config, context).resolve(title, artist)


def _print_resolution(data: dict[str, Any]) -> None:
    print_success(f"{data['name']} - {', '.join(data['artists'])}")
    for label, key in (
        ("Album", "albumName"),
        ("Type", "type"),
        ("Match", "artistMatch"),
        ("Spotify ID", "id"),
        ("ISRC", "isrc"),
        ("Preview", "preview"),
    ):
        cprint(f"  {label}: {data[key]}", markup=False)


def cli() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    cli()
