"""CLI commands for gravekeeper.

This package contains all subcommand implementations.
"""

from gravekeeper.cli.commands import (
    banish,
    config,
    graveyard,
    log,
    purge,
    restore,
    scan,
    undo,
    whitelist,
)

__all__ = [
    "banish",
    "config",
    "graveyard",
    "log",
    "purge",
    "restore",
    "scan",
    "undo",
    "whitelist",
]
