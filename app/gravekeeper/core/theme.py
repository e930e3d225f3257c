"""Theme management for the gravekeeper CLI.

Colors default to the values on ThemeColors; ~/.config/gravekeeper/theme.toml
may override any of them under a ``[colors]`` table.
"""

import logging
import string
import tomllib
from pathlib import Path
from typing import cast

from pydantic import BaseModel, ConfigDict, ValidationError, ValidationInfo, field_validator
from rich.theme import Theme

from gravekeeper.core.paths import get_user_theme_path

logger = logging.getLogger(__name__)


class ThemeColors(BaseModel):
    """Color configuration for the CLI.

    All colors must be valid hex codes (#RRGGBB or #RGB).
    """

    model_config = ConfigDict(extra="forbid")

    # Base colors
    text: str = "#ffffff"
    muted: str = "#b2bec3"
    header: str = "#69B9A1"
    border: str = "#29526d"

    # Semantic colors
    success: str = "#03b971"
    warning: str = "#f5b332"
    error: str = "#f53263"
    info: str = "#0ec1c8"

    # Tags
    ghost: str = "#a29bfe"
    zombie: str = "#7bed9f"
    demon: str = "#ff4757"

    # Log actions
    banished: str = "#f5b332"
    restored: str = "#03b971"
    resurrected: str = "#0ec1c8"

    @field_validator("*", mode="before")
    @classmethod
    def check_hex(cls, value: object, info: ValidationInfo) -> str:
        if not isinstance(value, str):
            msg = f"{info.field_name}: expected a hex color string"
            raise ValueError(msg)

        color = value.strip()
        digits = color.removeprefix("#")
        if digits == color:
            msg = f"{info.field_name}: color must start with '#'"
            raise ValueError(msg)
        if len(digits) not in (3, 6):
            msg = f"{info.field_name}: color must be #RGB or #RRGGBB"
            raise ValueError(msg)
        if any(ch not in string.hexdigits for ch in digits):
            msg = f"{info.field_name}: invalid hex color {color!r}"
            raise ValueError(msg)
        return color


def _load_toml_colors(path: Path) -> dict[str, str] | None:
    """Read the ``[colors]`` table of a theme file, None if unusable."""
    try:
        with open(path, "rb") as f:
            data = tomllib.load(f)
    except FileNotFoundError:
        return None
    except tomllib.TOMLDecodeError as e:
        logger.warning("Failed to parse theme file %s: %s", path, e)
        return None
    except OSError as e:
        logger.warning("Failed to read theme file %s: %s", path, e)
        return None

    colors_raw: object = data.get("colors", {})
    if not isinstance(colors_raw, dict):
        logger.warning("Invalid 'colors' section in %s", path)
        return None
    return {
        key: value
        for key, value in cast(dict[str, object], colors_raw).items()
        if isinstance(value, str)
    }


def load_theme(path: Path | None = None) -> ThemeColors:
    """Load theme colors, applying user overrides when present.

    Args:
        path: Theme file to read. If None, uses the user theme path.

    Returns:
        ThemeColors with overrides merged over the defaults.
    """
    theme_path = path or get_user_theme_path()
    overrides = _load_toml_colors(theme_path)
    if not overrides:
        return ThemeColors()

    logger.debug("Loaded theme overrides from %s", theme_path)
    try:
        return ThemeColors(**overrides)
    except (ValueError, ValidationError) as e:
        logger.warning("Theme validation failed, using defaults: %s", e)
        return ThemeColors()


def get_rich_theme(colors: ThemeColors | None = None) -> Theme:
    """Convert ThemeColors to a Rich Theme.

    Tag styles are named after the tag values (``ghost``, ``zombie``,
    ``demon``) so that markup can be built straight from a Tag.
    """
    if colors is None:
        colors = load_theme()

    styles: dict[str, str] = {
        "text": colors.text,
        "muted": colors.muted,
        "header": colors.header,
        "border": colors.border,
        "success": colors.success,
        "warning": colors.warning,
        "error": f"bold {colors.error}",
        "info": colors.info,
        "ghost": colors.ghost,
        "zombie": colors.zombie,
        "demon": f"bold {colors.demon}",
        "banish": colors.banished,
        "restore": colors.restored,
        "resurrect": colors.resurrected,
        "bold_header": f"bold {colors.header}",
        "file.path": colors.text,
        "file.size": colors.info,
        "file.age": colors.muted,
    }

    return Theme(styles)


_cached_theme: Theme | None = None


def get_theme() -> Theme:
    """Get the Rich theme, loading and caching it on first use."""
    global _cached_theme
    if _cached_theme is None:
        _cached_theme = get_rich_theme()
    return _cached_theme
