"""
shelfcache Package Main Entry Point

Runs the admin CLI when the package is executed with ``python -m shelfcache``.
"""

from shelfcache.cli.typer_app import app

if __name__ == "__main__":
    app()
