"""Durable stores: the graveyard log and the whitelist."""

from gravekeeper.storage.graveyard_log import GraveyardLog
from gravekeeper.storage.whitelist import WhitelistStore

__all__ = ["GraveyardLog", "WhitelistStore"]
