"""Data models for gravekeeper.

This module exports the core data structures used throughout the application.
"""

from gravekeeper.models.log_entry import LogAction, LogEntry, LogFilter, create_log_entry
from gravekeeper.models.record import TAG_PRECEDENCE, ClassifiedFile, FileRecord, Tag
from gravekeeper.models.results import (
    BanishResult,
    ItemError,
    PurgeResult,
    RestoreResult,
    ScanProgress,
    ScanResult,
    SessionUndoResult,
    UndoResult,
)

__all__ = [
    "TAG_PRECEDENCE",
    "BanishResult",
    "ClassifiedFile",
    "FileRecord",
    "ItemError",
    "LogAction",
    "LogEntry",
    "LogFilter",
    "PurgeResult",
    "RestoreResult",
    "ScanProgress",
    "ScanResult",
    "SessionUndoResult",
    "Tag",
    "UndoResult",
    "create_log_entry",
]
