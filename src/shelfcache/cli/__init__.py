"""Command line interface for shelfcache."""

from shelfcache.cli.typer_app import app

__all__ = ["app"]
