"""Gravekeeper settings.

This module provides the settings model and its TOML I/O. Settings are
stored in ~/.config/gravekeeper/config.toml; a missing file means defaults.
"""

import logging
import os
import tomllib
from datetime import timedelta
from pathlib import Path
from tempfile import NamedTemporaryFile
from typing import Annotated, Literal

import tomli_w
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from gravekeeper.core.errors import ConfigError, ConfigNotFoundError, ConfigParseError
from gravekeeper.core.paths import (
    LOG_FILENAME,
    WHITELIST_FILENAME,
    get_default_graveyard_dir,
    get_settings_path,
    get_state_dir,
)
from gravekeeper.custody.classifier import DEFAULT_DEMON_EXTENSIONS, MIB, ClassifierPolicy

logger = logging.getLogger(__name__)

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR"]


class Settings(BaseModel):
    """Runtime settings for the custody engine.

    Attributes:
        graveyard_dir: Quarantine root (None = XDG data dir default).
        state_dir: Directory for the log and whitelist (None = XDG state dir).
        stale_days: Age in days at which a file becomes a Ghost.
        demon_size_bytes: Size at which a file becomes a Demon.
        demon_extensions: Bulky extensions subject to the age-based Demon rule.
        demon_extension_age_days: Age at which a bulky-extension file is a Demon.
        scan_cap: Maximum files collected by one scan.
        progress_interval: Files between progress notifications.
        hash_chunk_size: Read size for content digests.
        follow_symlinks: Descend into symlinked directories.
        undo_token_ttl_seconds: Lifetime of undo tokens (None = no expiry).
        session_ttl_seconds: Length of the swift-purge undo window.
        extra_forbidden_paths: Additional directories that must never be touched.
        log_level: Default log level for the CLI.
    """

    model_config = ConfigDict(extra="forbid")

    graveyard_dir: Annotated[
        Path | None,
        Field(description="Quarantine root (None = default data dir)"),
    ] = None
    state_dir: Annotated[
        Path | None,
        Field(description="Directory holding the log and whitelist"),
    ] = None
    stale_days: Annotated[
        int,
        Field(ge=1, description="Days untouched before a file is a Ghost"),
    ] = 180
    demon_size_bytes: Annotated[
        int,
        Field(ge=1, description="Size in bytes at which a file is a Demon"),
    ] = 500 * MIB
    demon_extensions: Annotated[
        list[str],
        Field(description="Extensions subject to the age-based Demon rule"),
    ] = list(DEFAULT_DEMON_EXTENSIONS)
    demon_extension_age_days: Annotated[
        int,
        Field(ge=0, description="Days before a bulky-extension file is a Demon"),
    ] = 90
    scan_cap: Annotated[
        int,
        Field(ge=1, description="Maximum files collected per scan"),
    ] = 1000
    progress_interval: Annotated[
        int,
        Field(ge=1, description="Files between progress notifications"),
    ] = 50
    hash_chunk_size: Annotated[
        int,
        Field(ge=4096, description="Read size for content digests"),
    ] = MIB
    follow_symlinks: Annotated[
        bool,
        Field(description="Descend into symlinked directories"),
    ] = True
    undo_token_ttl_seconds: Annotated[
        int | None,
        Field(ge=1, description="Undo token lifetime (None = no expiry)"),
    ] = None
    session_ttl_seconds: Annotated[
        int,
        Field(ge=1, le=3600, description="Swift-purge undo window (1-3600)"),
    ] = 30
    extra_forbidden_paths: Annotated[
        list[str],
        Field(description="Additional directories that must never be touched"),
    ] = []
    log_level: Annotated[
        LogLevel,
        Field(description="Default CLI log level"),
    ] = "WARNING"

    @field_validator("demon_extensions")
    @classmethod
    def normalize_extensions(cls, value: list[str]) -> list[str]:
        normalized = []
        for ext in value:
            ext = ext.strip().lower()
            if not ext:
                continue
            normalized.append(ext if ext.startswith(".") else f".{ext}")
        return normalized

    @property
    def effective_graveyard_dir(self) -> Path:
        """Quarantine root with the default applied."""
        return (self.graveyard_dir or get_default_graveyard_dir()).expanduser()

    @property
    def effective_state_dir(self) -> Path:
        """State directory with the default applied."""
        return (self.state_dir or get_state_dir()).expanduser()

    @property
    def log_path(self) -> Path:
        return self.effective_state_dir / LOG_FILENAME

    @property
    def whitelist_path(self) -> Path:
        return self.effective_state_dir / WHITELIST_FILENAME

    @property
    def undo_token_ttl(self) -> timedelta | None:
        if self.undo_token_ttl_seconds is None:
            return None
        return timedelta(seconds=self.undo_token_ttl_seconds)

    @property
    def session_ttl(self) -> timedelta:
        return timedelta(seconds=self.session_ttl_seconds)

    def classifier_policy(self) -> ClassifierPolicy:
        """Build the classification thresholds from these settings."""
        return ClassifierPolicy(
            demon_threshold=self.demon_size_bytes,
            stale_threshold=timedelta(days=self.stale_days),
            demon_extensions=frozenset(self.demon_extensions),
            demon_extension_age=timedelta(days=self.demon_extension_age_days),
        )


def load_settings(path: Path | None = None, *, required: bool = False) -> Settings:
    """Load settings from a TOML file.

    Args:
        path: Path to the settings file. If None, uses the default path.
        required: Raise instead of falling back to defaults when missing.

    Returns:
        Validated Settings object.

    Raises:
        ConfigNotFoundError: If the file is missing and ``required`` is set.
        ConfigParseError: If the TOML syntax is invalid.
        ConfigError: If the content doesn't match the schema.
    """
    settings_path = path or get_settings_path()

    if not settings_path.exists():
        if required:
            raise ConfigNotFoundError(f"Settings file not found: {settings_path}")
        logger.debug("No settings file at %s, using defaults", settings_path)
        return Settings()

    try:
        with open(settings_path, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigParseError(f"Invalid TOML syntax: {e}") from e
    except OSError as e:
        raise ConfigError(f"Failed to read settings: {e}") from e

    try:
        return Settings.model_validate(data)
    except (ValueError, ValidationError) as e:
        raise ConfigError(f"Invalid settings content: {e}") from e


def save_settings(settings: Settings, path: Path | None = None) -> Path:
    """Save settings to a TOML file.

    The file is written to a temporary file in the same directory and
    moved into place with os.replace().

    Args:
        settings: Settings to save.
        path: Destination. If None, uses the default path.

    Returns:
        Path where the settings were saved.

    Raises:
        ConfigError: If the file cannot be written.
    """
    settings_path = path or get_settings_path()
    settings_path.parent.mkdir(parents=True, exist_ok=True)

    data = _settings_to_dict(settings)

    tmp_path: Path | None = None
    try:
        with NamedTemporaryFile(
            mode="wb",
            dir=settings_path.parent,
            delete=False,
            suffix=".tmp",
        ) as f:
            tmp_path = Path(f.name)
            tomli_w.dump(data, f)
        os.replace(tmp_path, settings_path)
    except OSError as e:
        if tmp_path is not None and tmp_path.exists():
            tmp_path.unlink()
        raise ConfigError(f"Failed to write settings: {e}") from e

    return settings_path


def _settings_to_dict(settings: Settings) -> dict[str, object]:
    """Convert Settings to a TOML-serializable dictionary.

    TOML has no null, so unset optional values are left out.
    """
    return settings.model_dump(mode="json", exclude_none=True)
