"""Rich console helpers shared by the chart-linker CLI commands."""

from __future__ import annotations

import json
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from rich.console import Console
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    SpinnerColumn,
    TextColumn,
    TimeElapsedColumn,
)
from rich.status import Status

# Set by the CLI callback; tests install their own
_console: Console | None = None


def get_console() -> Console:
    """Return the console installed by set_console().

    Raises:
        RuntimeError: If no console was installed
    """
    if _console is None:
        raise RuntimeError("Console not initialized. Call set_console() first.")
    return _console


def set_console(console: Console) -> None:
    global _console
    _console = console


@contextmanager
def chart_progress(transient: bool = True) -> Iterator[Progress]:
    """Progress display for resolving chart entries.

    The chart size is unknown until the page is scraped, so tasks are usually
    added with total=None and given a total once the entries are in.

    Yields:
        Progress instance for tracking tasks
    """
    columns = [
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        MofNCompleteColumn(),
        TimeElapsedColumn(),
    ]
    with Progress(*columns, transient=transient, console=get_console()) as progress:
        yield progress


@contextmanager
def status(message: str, spinner: str = "dots") -> Iterator[Status]:
    """Spinner with a message while a single lookup runs."""
    with get_console().status(message, spinner=spinner) as st:
        yield st


def print(*args: Any, **kwargs: Any) -> None:
    get_console().print(*args, **kwargs)


def print_json(data: Any) -> None:
    """Print a JSON document unwrapped, without markup or highlighting."""
    get_console().print(
        json.dumps(data, indent=2, ensure_ascii=False),
        soft_wrap=True,
        markup=False,
        highlight=False,
    )


def print_error(message: str) -> None:
    get_console().print(f"[red]Error: {message}[/red]")


def print_warning(message: str) -> None:
    get_console().print(f"[yellow]Warning: {message}[/yellow]")


def print_success(message: str) -> None:
    get_console().print(f"[green]{message}[/green]")
