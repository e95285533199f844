"""Configuration loading for progressview.

Loads dashboard settings from TOML config files with sensible defaults and
validates them into immutable :class:`DashboardConfig` objects.
Search order: explicit --config path → ~/.config/progressview/config.toml → defaults only.
"""

from __future__ import annotations

import enum
import logging
import sys
import tomllib
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from rich.errors import StyleSyntaxError
from rich.style import Style

logger = logging.getLogger(__name__)

DEFAULT_CONFIG: dict[str, Any] = {
    "preserve_previous_screen": True,
    "progress": {
        "header": "Files",
        "symbol": " ",
        "type": "NUMBER",
        "max": 100,
        "value": 0,
        "colour": "white on bright_green",
        "background": "black on bright_black",
    },
    "stats": [
        [
            {"name": "     read:", "digits": 12, "style": "NONE"},
            {"name": "r_per_sec:", "digits": 6, "style": "SPARK"},
        ],
        [
            {"name": "    write:", "digits": 12, "style": "NONE"},
            {"name": "w_per_sec:", "digits": 6, "style": "SPARK"},
        ],
        [{"name": "      cpu:", "digits": 5, "style": "GAUGE", "colour": "white on magenta"}],
        [{"name": "      mem:", "digits": 5, "style": "GAUGE", "colour": "on #ff8800"}],
    ],
}

_DEFAULT_PATH = Path.home() / ".config" / "progressview" / "config.toml"


class ConfigError(ValueError):
    """The dashboard configuration is missing or malformed."""


class ProgressType(enum.Enum):
    PERCENTAGE = "PERCENTAGE"
    NUMBER = "NUMBER"


class FieldStyle(enum.Enum):
    NONE = "NONE"
    SPARK = "SPARK"
    GAUGE = "GAUGE"


@dataclass(frozen=True)
class FieldSpec:
    name: str
    digits: int
    style: FieldStyle = FieldStyle.NONE
    colour: Style | None = None


@dataclass(frozen=True)
class DashboardConfig:
    """Validated dashboard configuration, fixed for the lifetime of a dashboard."""

    stats: tuple[tuple[FieldSpec, ...], ...]
    preserve_previous_screen: bool = False
    progress_header: str = "Progress"
    progress_symbol: str = "="
    progress_type: ProgressType = ProgressType.PERCENTAGE
    progress_max: float = 100
    progress_value: float = 0
    progress_colour: Style = Style.parse("bright_green")
    progress_background: Style = Style.parse("on black")

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> DashboardConfig:
        """Validate *raw* (a ``DEFAULT_CONFIG``-shaped mapping).

        Raises:
            ConfigError: On any missing or malformed setting.
        """
        progress = raw.get("progress", {})
        if not isinstance(progress, Mapping):
            raise ConfigError("'progress' must be a table")
        if "stats" not in raw:
            raise ConfigError("missing required 'stats' layout")

        kwargs: dict[str, Any] = {"stats": _parse_stats(raw["stats"])}
        if "preserve_previous_screen" in raw:
            kwargs["preserve_previous_screen"] = bool(raw["preserve_previous_screen"])
        if "header" in progress:
            kwargs["progress_header"] = str(progress["header"])
        if "symbol" in progress:
            symbol = str(progress["symbol"])
            if len(symbol) != 1:
                raise ConfigError(f"progress symbol must be a single glyph, got {symbol!r}")
            kwargs["progress_symbol"] = symbol
        if "type" in progress:
            try:
                kwargs["progress_type"] = ProgressType(str(progress["type"]).upper())
            except ValueError as e:
                raise ConfigError(f"unknown progress type {progress['type']!r}") from e
        if "max" in progress:
            kwargs["progress_max"] = _number(progress["max"], "progress max")
            if kwargs["progress_max"] < 0:
                raise ConfigError("progress max must not be negative")
        if "value" in progress:
            kwargs["progress_value"] = _number(progress["value"], "progress value")
        if "colour" in progress:
            kwargs["progress_colour"] = _style(progress["colour"], "progress colour")
        if "background" in progress:
            kwargs["progress_background"] = _style(progress["background"], "progress background")
        return cls(**kwargs)


def _number(value: Any, what: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigError(f"{what} must be a number, got {value!r}")
    return value


def _style(value: Any, what: str) -> Style:
    if isinstance(value, Style):
        return value
    if not isinstance(value, str):
        raise ConfigError(f"{what} must be a style string, got {value!r}")
    try:
        return Style.parse(value)
    except StyleSyntaxError as e:
        raise ConfigError(f"{what}: {e}") from e


def _parse_field(raw: Any, where: str) -> FieldSpec:
    if not isinstance(raw, Mapping):
        raise ConfigError(f"{where}: expected a table, got {raw!r}")
    for key in ("name", "digits"):
        if key not in raw:
            raise ConfigError(f"{where}: missing required key {key!r}")
    digits = raw["digits"]
    if isinstance(digits, bool) or not isinstance(digits, int) or digits < 1:
        raise ConfigError(f"{where}: digits must be a positive integer, got {digits!r}")

    style_name = str(raw.get("style", "NONE")).upper()
    try:
        style = FieldStyle(style_name)
    except ValueError:
        logger.warning("%s: unknown field style %r, using NONE", where, raw.get("style"))
        style = FieldStyle.NONE

    colour = None
    if raw.get("colour") is not None:
        colour = _style(raw["colour"], f"{where} colour")
    elif style is FieldStyle.GAUGE:
        raise ConfigError(f"{where}: GAUGE fields need a colour")
    return FieldSpec(name=str(raw["name"]), digits=digits, style=style, colour=colour)


def _parse_stats(raw: Any) -> tuple[tuple[FieldSpec, ...], ...]:
    if isinstance(raw, (str, bytes)) or not isinstance(raw, Sequence):
        raise ConfigError("'stats' must be a list of lines")
    lines: list[tuple[FieldSpec, ...]] = []
    for i, line in enumerate(raw):
        if isinstance(line, (str, bytes)) or not isinstance(line, Sequence) or not line:
            raise ConfigError(f"stats line {i}: expected a non-empty list of fields")
        lines.append(
            tuple(_parse_field(f, f"stats line {i} field {j}") for j, f in enumerate(line))
        )
    return tuple(lines)


def _deep_merge(base: dict[str, Any], overlay: dict[str, Any]) -> dict[str, Any]:
    """Merge overlay into base. Nested dicts are merged at the first level only."""
    merged = dict(base)
    for key, value in overlay.items():
        if key in merged and isinstance(merged[key], dict) and isinstance(value, dict):
            merged[key] = {**merged[key], **value}
        else:
            # Lists (the stats layout) are replaced wholesale
            merged[key] = value
    return merged


def load_config(path: Path | None = None) -> dict[str, Any]:
    """Load configuration, merging user TOML over defaults.

    Args:
        path: Explicit config file path (from --config). If None, tries the
              default location ~/.config/progressview/config.toml.

    Returns:
        Merged configuration dict.

    Raises:
        SystemExit: If an explicit path doesn't exist or can't be parsed.
    """
    if path is not None:
        if not path.is_file():
            print(f"progressview: config file not found: {path}", file=sys.stderr)
            raise SystemExit(1)
        try:
            user_config = tomllib.loads(path.read_text(encoding="utf-8"))
        except tomllib.TOMLDecodeError as e:
            print(f"progressview: invalid TOML in {path}: {e}", file=sys.stderr)
            raise SystemExit(1) from e
        return _deep_merge(DEFAULT_CONFIG, user_config)

    if _DEFAULT_PATH.is_file():
        try:
            user_config = tomllib.loads(_DEFAULT_PATH.read_text(encoding="utf-8"))
            return _deep_merge(DEFAULT_CONFIG, user_config)
        except tomllib.TOMLDecodeError:
            print(
                f"progressview: warning: ignoring invalid TOML in {_DEFAULT_PATH}",
                file=sys.stderr,
            )

    return dict(DEFAULT_CONFIG)


def _toml_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, str):
        return '"' + value.replace("\\", "\\\\").replace('"', '\\"') + '"'
    return str(value)


def dump_default_config() -> str:
    """Return the default configuration as a TOML string."""
    lines = [
        "# progressview configuration",
        "# Place this file at ~/.config/progressview/config.toml",
        "",
        f"preserve_previous_screen = {_toml_value(DEFAULT_CONFIG['preserve_previous_screen'])}",
        "",
    ]

    # Statistics layout: one inner list per panel line
    lines.append("stats = [")
    for line in DEFAULT_CONFIG["stats"]:
        fields = ", ".join(
            "{ " + ", ".join(f"{k} = {_toml_value(v)}" for k, v in field.items()) + " }"
            for field in line
        )
        lines.append(f"  [ {fields} ],")
    lines.append("]")
    lines.append("")

    lines.append("[progress]")
    for key, value in DEFAULT_CONFIG["progress"].items():
        lines.append(f"{key} = {_toml_value(value)}")

    return "\n".join(lines) + "\n"
