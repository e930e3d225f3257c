"""XDG-compliant path management for gravekeeper.

This module provides standardized paths following the XDG Base Directory
Specification for configuration, state, and quarantine storage.

XDG defaults:
- Config: ~/.config/gravekeeper/
- State: ~/.local/state/gravekeeper/
- Data: ~/.local/share/gravekeeper/ (graveyard lives here)
"""

import os
from pathlib import Path

# Application identifier for directory naming
APP_NAME = "gravekeeper"

LOG_FILENAME = "graveyard-log.jsonl"
WHITELIST_FILENAME = "whitelist.json"
GRAVEYARD_DIRNAME = "graveyard"


def _get_xdg_dir(env_var: str, default_subdir: str) -> Path:
    """Get XDG directory respecting environment variable override.

    Args:
        env_var: XDG environment variable name (e.g., "XDG_CONFIG_HOME").
        default_subdir: Default subdirectory under home (e.g., ".config").

    Returns:
        Path to the application-specific directory.
    """
    base = os.environ.get(env_var)
    if base:
        return Path(base) / APP_NAME
    return Path.home() / default_subdir / APP_NAME


def get_config_dir() -> Path:
    """Get the configuration directory path.

    Returns:
        Path to ~/.config/gravekeeper/ (or XDG_CONFIG_HOME/gravekeeper/).
    """
    return _get_xdg_dir("XDG_CONFIG_HOME", ".config")


def get_state_dir() -> Path:
    """Get the state directory path.

    State data includes the graveyard log and the whitelist, which must
    persist between runs but are not configuration.

    Returns:
        Path to ~/.local/state/gravekeeper/ (or XDG_STATE_HOME/gravekeeper/).
    """
    return _get_xdg_dir("XDG_STATE_HOME", ".local/state")


def get_data_dir() -> Path:
    """Get the data directory path.

    Returns:
        Path to ~/.local/share/gravekeeper/ (or XDG_DATA_HOME/gravekeeper/).
    """
    return _get_xdg_dir("XDG_DATA_HOME", ".local/share")


def get_settings_path() -> Path:
    """Get the default settings file path.

    Returns:
        Path to ~/.config/gravekeeper/config.toml.
    """
    return get_config_dir() / "config.toml"


def get_user_theme_path() -> Path:
    """Get the user theme override path.

    Returns:
        Path to ~/.config/gravekeeper/theme.toml.
    """
    return get_config_dir() / "theme.toml"


def get_default_graveyard_dir() -> Path:
    """Get the default quarantine root.

    Returns:
        Path to ~/.local/share/gravekeeper/graveyard/.
    """
    return get_data_dir() / GRAVEYARD_DIRNAME


def ensure_dir(path: Path, name: str) -> Path:
    """Create directory if it doesn't exist.

    Args:
        path: Directory path to create.
        name: Human-readable name for error messages.

    Returns:
        The created/existing directory path.

    Raises:
        RuntimeError: If directory cannot be created.
    """
    try:
        path.mkdir(parents=True, exist_ok=True)
    except PermissionError as e:
        msg = f"Cannot create {name} directory {path}: Permission denied"
        raise RuntimeError(msg) from e
    except OSError as e:
        msg = f"Cannot create {name} directory {path}: {e}"
        raise RuntimeError(msg) from e
    return path
