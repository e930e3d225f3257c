"""Safety policy for directories that may be scanned or moved from.

This module defines the roots and path patterns that must never be scanned
or have files moved out of them, and the small set of pre-approved
locations that can be scanned without asking the user first.
"""

import os
import re
from collections.abc import Iterable
from enum import Enum
from pathlib import Path


class Verdict(str, Enum):
    """Outcome of a PathGuard check.

    Attributes:
        ALLOWED: Path is inside a pre-approved location.
        FORBIDDEN: Path is system-critical and must not be touched.
        ALLOWED_WITH_WARNING: Path is not forbidden but is outside the
            pre-approved locations; confirm with the user first.
    """

    ALLOWED = "allowed"
    FORBIDDEN = "forbidden"
    ALLOWED_WITH_WARNING = "allowed_with_warning"


# Absolute roots that are never scanned (POSIX)
FORBIDDEN_ROOTS_POSIX: tuple[str, ...] = (
    "/System",
    "/usr",
    "/bin",
    "/sbin",
    "/etc",
    "/var",
    "/lib",
    "/lib64",
    "/boot",
    "/root",
    "/proc",
    "/sys",
    "/dev",
)

# Absolute roots that are never scanned (Windows), compared case-insensitively
FORBIDDEN_ROOTS_WINDOWS: tuple[str, ...] = (
    "C:\\Windows",
    "C:\\Program Files",
    "C:\\Program Files (x86)",
    "C:\\ProgramData",
    "C:\\System Volume Information",
    "C:\\$Recycle.Bin",
    "C:\\Recovery",
    "C:\\Boot",
)

# Sensitive subtrees anywhere in a path. Matched against the path with
# forward slashes, on whole path components.
FORBIDDEN_PATTERNS: tuple[re.Pattern[str], ...] = tuple(
    re.compile(pattern, re.IGNORECASE)
    for pattern in (
        # Version control
        r"(^|/)\.git(/|$)",
        r"(^|/)\.svn(/|$)",
        r"(^|/)\.hg(/|$)",
        # Build tool caches
        r"(^|/)node_modules(/|$)",
        r"(^|/)__pycache__(/|$)",
        r"(^|/)\.gradle(/|$)",
        r"(^|/)\.m2(/|$)",
        r"(^|/)\.cache/pip(/|$)",
        # Trash
        r"(^|/)\.Trash(-\d+)?(/|$)",
        r"(^|/)\.local/share/Trash(/|$)",
        # Application state
        r"AppData/Local/Microsoft(/|$)",
        r"AppData/Local/Google(/|$)",
        r"Library/Application Support(/|$)",
    )
)

# Pre-approved locations (relative to the user's home directory)
SAFE_LOCATIONS: tuple[str, ...] = (
    "Downloads",
    "Desktop",
    "Documents",
    "Pictures",
)

CUSTOM_FOLDER_WARNING = (
    "Custom folders may contain important files and are scanned recursively. "
    "Proceed with caution."
)


def _normalize(path: str) -> str:
    """Absolute path with forward slashes and no trailing slash."""
    absolute = os.path.abspath(os.path.expanduser(path)).replace("\\", "/")
    if len(absolute) > 1:
        absolute = absolute.rstrip("/")
    return absolute


def _is_under(path: str, root: str, *, ignore_case: bool = False) -> bool:
    if ignore_case:
        path, root = path.lower(), root.lower()
    root = root.rstrip("/") or "/"
    if root == "/":
        return True
    return path == root or path.startswith(root + "/")


class PathGuard:
    """Pure predicate deciding whether a path may be scanned or moved from.

    Args:
        extra_forbidden: Additional absolute roots to refuse (e.g. the
            graveyard itself and the state directory).
        home: Home directory used to resolve the safe locations.
        forbidden_roots: Override for the built-in POSIX deny-list.
    """

    def __init__(
        self,
        *,
        extra_forbidden: Iterable[str | Path] = (),
        home: Path | None = None,
        forbidden_roots: Iterable[str] | None = None,
    ) -> None:
        self._home = home if home is not None else Path.home()
        roots = tuple(forbidden_roots) if forbidden_roots is not None else FORBIDDEN_ROOTS_POSIX
        self._posix_roots = roots
        self._windows_roots = tuple(r.replace("\\", "/") for r in FORBIDDEN_ROOTS_WINDOWS)
        self._extra = tuple(_normalize(str(p)) for p in extra_forbidden)
        self._safe = tuple(_normalize(str(self._home / name)) for name in SAFE_LOCATIONS)

    def check(self, path: str | Path) -> Verdict:
        """Classify a path against the safety policy.

        Args:
            path: Path to check. Relative paths are made absolute.

        Returns:
            FORBIDDEN, ALLOWED, or ALLOWED_WITH_WARNING.
        """
        raw = str(path)
        if not raw.strip():
            return Verdict.FORBIDDEN

        if self.is_forbidden(raw):
            return Verdict.FORBIDDEN

        normalized = _normalize(raw)
        if any(_is_under(normalized, safe) for safe in self._safe):
            return Verdict.ALLOWED

        return Verdict.ALLOWED_WITH_WARNING

    def is_forbidden(self, path: str | Path) -> bool:
        """Check if a path falls under a deny-listed root or pattern."""
        raw = str(path)
        if not raw.strip():
            return True

        normalized = _normalize(raw)

        for root in self._windows_roots:
            if _is_under(normalized, root, ignore_case=True):
                return True

        for root in self._posix_roots:
            if _is_under(normalized, root):
                return True

        for root in self._extra:
            if _is_under(normalized, root):
                return True

        return any(pattern.search(normalized) for pattern in FORBIDDEN_PATTERNS)

    def describe(self, path: str | Path) -> str | None:
        """Human-readable explanation of the verdict, None when plainly allowed."""
        verdict = self.check(path)
        if verdict == Verdict.FORBIDDEN:
            if not str(path).strip():
                return "Please select a folder to scan."
            return (
                f'Cannot use "{path}". This appears to be a system-critical folder. '
                "Please choose a different location."
            )
        if verdict == Verdict.ALLOWED_WITH_WARNING:
            return CUSTOM_FOLDER_WARNING
        return None
