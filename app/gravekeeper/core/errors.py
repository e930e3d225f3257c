"""Error taxonomy for the file-custody engine.

Filesystem and storage failures are reported as an ``ErrorKind`` on result
objects rather than raised. Exceptions are reserved for configuration
problems and misuse of the engine API.
"""

from enum import Enum


class ErrorKind(str, Enum):
    """Category of a failed custody operation.

    Attributes:
        FORBIDDEN_PATH: PathGuard refused the path. Not retried.
        PERMISSION_DENIED: The OS refused the move.
        CONFLICT: Restore destination is occupied by another file.
        NOT_FOUND: File, undo token, or session does not exist.
        ALREADY_CONSUMED: Undo token or session was already used.
        EXPIRED: Undo window has passed; the log entry stays restorable.
        CORRUPT_STORE: Backing record could not be parsed and was reset.
        ORPHAN: Quarantine contents and the log disagree.
        IO_ERROR: Any other filesystem error.
    """

    FORBIDDEN_PATH = "forbidden_path"
    PERMISSION_DENIED = "permission_denied"
    CONFLICT = "conflict"
    NOT_FOUND = "not_found"
    ALREADY_CONSUMED = "already_consumed"
    EXPIRED = "expired"
    CORRUPT_STORE = "corrupt_store"
    ORPHAN = "orphan"
    IO_ERROR = "io_error"


class GravekeeperError(Exception):
    """Base exception for gravekeeper."""


class ConfigError(GravekeeperError):
    """Raised when the settings file cannot be used."""


class ConfigNotFoundError(ConfigError):
    """Raised when a required settings file is missing."""


class ConfigParseError(ConfigError):
    """Raised when the settings file is not valid TOML."""


class ScanInProgressError(GravekeeperError):
    """Raised when a scan is requested for a root that is already being scanned."""

    def __init__(self, root: str) -> None:
        super().__init__(f"A scan of {root} is already in progress")
        self.root = root


def error_kind_for(exc: OSError) -> ErrorKind:
    """Map an OSError to the matching ErrorKind.

    Args:
        exc: The exception raised by a filesystem call.

    Returns:
        PERMISSION_DENIED, NOT_FOUND, CONFLICT or IO_ERROR.
    """
    if isinstance(exc, PermissionError):
        return ErrorKind.PERMISSION_DENIED
    if isinstance(exc, FileNotFoundError):
        return ErrorKind.NOT_FOUND
    if isinstance(exc, FileExistsError):
        return ErrorKind.CONFLICT
    return ErrorKind.IO_ERROR
