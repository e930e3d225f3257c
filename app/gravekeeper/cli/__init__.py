"""CLI package for gravekeeper.

This package contains the Typer application and all subcommands.
"""

from gravekeeper.cli.main import app

__all__ = ["app"]
