"""File custody: scanning, classification, quarantine and undo.

This package provides the safety policy, the directory scanner, duplicate
detection, tagging rules, the graveyard move operations and the undo
machinery layered on top of them.
"""

from gravekeeper.custody.classifier import (
    ClassificationSummary,
    Classifier,
    ClassifierPolicy,
    summarize,
)
from gravekeeper.custody.duplicates import DuplicateDetector, DuplicateGroup, file_digest
from gravekeeper.custody.guard import PathGuard, Verdict
from gravekeeper.custody.purge import SwiftPurgeExecutor
from gravekeeper.custody.quarantine import QuarantineStore
from gravekeeper.custody.reconcile import ReconcileReport, reconcile
from gravekeeper.custody.scanner import Scanner
from gravekeeper.custody.stats import GraveyardStats, calculate_stats, graveyard_stats
from gravekeeper.custody.undo import UndoCoordinator, UndoSession, UndoToken

__all__ = [
    "ClassificationSummary",
    "Classifier",
    "ClassifierPolicy",
    "DuplicateDetector",
    "DuplicateGroup",
    "GraveyardStats",
    "PathGuard",
    "QuarantineStore",
    "ReconcileReport",
    "Scanner",
    "SwiftPurgeExecutor",
    "UndoCoordinator",
    "UndoSession",
    "UndoToken",
    "Verdict",
    "calculate_stats",
    "file_digest",
    "graveyard_stats",
    "reconcile",
    "summarize",
]
