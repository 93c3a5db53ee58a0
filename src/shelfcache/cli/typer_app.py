"""
shelfcache Typer CLI Application

Administrative commands for inspecting and clearing cache store files.
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Annotated, Any, Optional

import orjson
import typer
from rich.console import Console
from rich.table import Table

from shelfcache import __version__
from shelfcache.config.settings import CacheSettings, get_settings
from shelfcache.services.cache_manager import CacheManager
from shelfcache.shared.errors import ShelfCacheError
from shelfcache.shared.logging import setup_structured_logger

console = Console()


class LogLevel(str, Enum):
    """Log level enumeration for type safety."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


name_argument = typer.Argument(..., help="Cache manager name (the store file is <cache-dir>/<name>.sqlite).")

cache_dir_option: Any = typer.Option(
    None,
    "--cache-dir",
    help="Directory holding the store files. Default: SHELFCACHE_CACHE_DIRECTORY or ~/.cache/shelfcache.",
    file_okay=False,
    dir_okay=True,
)

json_output_option: Any = typer.Option(
    False,
    "--json",
    help="Enable machine-readable JSON output instead of a table.",
)


def version_callback(value: bool) -> None:
    """Print version information and exit."""
    if value:
        typer.echo(f"shelfcache {__version__}")
        raise typer.Exit


app = typer.Typer(
    name="shelfcache",
    help="Inspect and clear shelfcache store files.",
    add_completion=False,
    no_args_is_help=True,
)


@app.callback()
def main(
    log_level: Annotated[
        Optional[LogLevel],
        typer.Option(
            "--log-level",
            case_sensitive=False,
            help="Set the logging level. Default: SHELFCACHE_LOG_LEVEL or INFO.",
        ),
    ] = None,
    version: Annotated[
        bool,
        typer.Option("--version", "-V", help="Show version information and exit.", is_eager=True, callback=version_callback),
    ] = False,
) -> None:
    """Configure logging for all commands."""
    level = log_level.value if log_level is not None else get_settings().log_level
    setup_structured_logger(level=level)


def _open_manager(name: str, cache_dir: Optional[Path]) -> CacheManager:
    settings = CacheSettings() if cache_dir is None else CacheSettings(cache_directory=cache_dir)
    return CacheManager(name, settings=settings)


@app.command("info")
def info_command(
    name: str = name_argument,
    cache_dir: Optional[Path] = cache_dir_option,
    json_output: bool = json_output_option,
) -> None:
    """Show the store location and entry counts per cache."""
    try:
        with _open_manager(name, cache_dir) as manager:
            info = manager.cache_info()
    except ShelfCacheError as e:
        console.print(f"[red]Error:[/red] {e.message}")
        raise typer.Exit(1) from e

    if info is None:
        console.print("[red]Error:[/red] could not read the store")
        raise typer.Exit(1)

    if json_output:
        typer.echo(orjson.dumps(info, option=orjson.OPT_INDENT_2 | orjson.OPT_SORT_KEYS).decode("utf-8"))
        return

    table = Table(title=f"{info['name']} ({info['db_path']})")
    table.add_column("Cache", style="cyan")
    table.add_column("Entries", justify="right")
    for cache_name, count in info["caches"].items():
        table.add_row(cache_name, str(count))
    table.add_row("[bold]total[/bold]", f"[bold]{info['total_entries']}[/bold]")
    console.print(table)


@app.command("clear")
def clear_command(
    name: str = name_argument,
    cache_dir: Optional[Path] = cache_dir_option,
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation."),
) -> None:
    """Delete every entry of every cache in the store."""
    if not yes:
        typer.confirm(f"Delete all entries of '{name}'?", abort=True)

    try:
        with _open_manager(name, cache_dir) as manager:
            deleted = manager.clear_all()
    except ShelfCacheError as e:
        console.print(f"[red]Error:[/red] {e.message}")
        raise typer.Exit(1) from e

    console.print(f"Deleted {deleted} entries from '{name}'")
