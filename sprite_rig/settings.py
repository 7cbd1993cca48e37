"""
Import settings for a sprite rig import run.

Settings can be built from environment variables (the service loads a .env
file at startup) and overridden per request from a JSON object.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Tuple

from .geometry import Vec2, scale


ENV_PREFIX = "SPRITE_RIG_"


class SettingsError(ValueError):
    """Raised for settings values that cannot be parsed."""


class SpriteAlignment(Enum):
    """Named anchor points used for the default pivot."""
    NONE = "none"
    CENTER = "center"
    TOP_LEFT = "top_left"
    TOP_CENTER = "top_center"
    TOP_RIGHT = "top_right"
    LEFT_CENTER = "left_center"
    RIGHT_CENTER = "right_center"
    BOTTOM_LEFT = "bottom_left"
    BOTTOM_CENTER = "bottom_center"
    BOTTOM_RIGHT = "bottom_right"
    CUSTOM = "custom"


class PixelOrigin(Enum):
    """Whether a pivot pixel refers to its center or its bottom-left corner."""
    CENTER = "center"
    CORNER = "corner"


_ALIGNMENT_POSITIONS: Dict[SpriteAlignment, Vec2] = {
    SpriteAlignment.NONE: (0.0, 0.0),
    SpriteAlignment.CENTER: (0.5, 0.5),
    SpriteAlignment.TOP_LEFT: (0.0, 1.0),
    SpriteAlignment.TOP_CENTER: (0.5, 1.0),
    SpriteAlignment.TOP_RIGHT: (1.0, 1.0),
    SpriteAlignment.LEFT_CENTER: (0.0, 0.5),
    SpriteAlignment.RIGHT_CENTER: (1.0, 0.5),
    SpriteAlignment.BOTTOM_LEFT: (0.0, 0.0),
    SpriteAlignment.BOTTOM_CENTER: (0.5, 0.0),
    SpriteAlignment.BOTTOM_RIGHT: (1.0, 0.0),
}


@dataclass(frozen=True)
class ImportSettings:
    """
    Options consumed by the importer.

    Attributes:
        border: Empty pixels between packed sprites
        alignment: Default pivot anchor, used when no pivot layer applies
        custom_pivot: 0..1 fraction of the canvas used when alignment is CUSTOM
        pixel_origin: Pivot pixel convention (center adds half a pixel)
        dense_packed: Trim frame images to their content; when False every
            frame image covers the full canvas
        ppu: Pixels per world unit, used to convert offsets for rig data
        base_name: Name of the root sprite; empty means the document name
    """
    border: int = 1
    alignment: SpriteAlignment = SpriteAlignment.CENTER
    custom_pivot: Vec2 = (0.5, 0.5)
    pixel_origin: PixelOrigin = PixelOrigin.CENTER
    dense_packed: bool = True
    ppu: float = 100.0
    base_name: str = ""

    @property
    def pivot_relative_pos(self) -> Vec2:
        """Default pivot as a 0..1 fraction of the canvas (bottom-left origin)."""
        if self.alignment == SpriteAlignment.CUSTOM:
            return self.custom_pivot
        return _ALIGNMENT_POSITIONS[self.alignment]

    def default_pivot(self, width: int, height: int) -> Vec2:
        return scale(self.pivot_relative_pos, width, height)

    def with_overrides(self, overrides: Optional[Mapping[str, Any]]) -> "ImportSettings":
        """Return a copy with values from a JSON-like mapping applied."""
        if not overrides:
            return self
        if not isinstance(overrides, Mapping):
            raise SettingsError(f"Settings must be a JSON object, got {overrides!r}")
        changes: Dict[str, Any] = {}
        for key, value in overrides.items():
            if key not in _PARSERS:
                raise SettingsError(f"Unknown setting: {key}")
            changes[key] = _PARSERS[key](value)
        return replace(self, **changes)

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> "ImportSettings":
        return cls().with_overrides(data)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "ImportSettings":
        """
        Read settings from SPRITE_RIG_* variables, e.g. SPRITE_RIG_BORDER=2,
        SPRITE_RIG_ALIGNMENT=bottom_center, SPRITE_RIG_CUSTOM_PIVOT=0.5,0.1.
        """
        environ = os.environ if environ is None else environ
        overrides = {
            key: environ[ENV_PREFIX + key.upper()]
            for key in _PARSERS
            if ENV_PREFIX + key.upper() in environ
        }
        return cls().with_overrides(overrides)


def _parse_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in ("1", "true", "yes", "on"):
        return True
    if text in ("0", "false", "no", "off"):
        return False
    raise SettingsError(f"Invalid boolean: {value!r}")


def _parse_int(value: Any) -> int:
    try:
        result = int(value)
    except (TypeError, ValueError) as e:
        raise SettingsError(f"Invalid integer: {value!r}") from e
    if result < 0:
        raise SettingsError(f"Expected a non-negative integer, got {result}")
    return result


def _parse_float(value: Any) -> float:
    try:
        result = float(value)
    except (TypeError, ValueError) as e:
        raise SettingsError(f"Invalid number: {value!r}") from e
    if result <= 0:
        raise SettingsError(f"Expected a positive number, got {result}")
    return result


def _parse_pair(value: Any) -> Tuple[float, float]:
    if isinstance(value, str):
        value = value.split(",")
    try:
        x, y = (float(v) for v in value)
    except (TypeError, ValueError) as e:
        raise SettingsError(f"Invalid pivot pair: {value!r}") from e
    return x, y


def _parse_enum(enum_cls):
    def parse(value: Any):
        if isinstance(value, enum_cls):
            return value
        try:
            return enum_cls(str(value).strip().lower())
        except ValueError as e:
            choices = ", ".join(m.value for m in enum_cls)
            raise SettingsError(f"Invalid {enum_cls.__name__} {value!r} (expected one of {choices})") from e
    return parse


_PARSERS = {
    "border": _parse_int,
    "alignment": _parse_enum(SpriteAlignment),
    "custom_pivot": _parse_pair,
    "pixel_origin": _parse_enum(PixelOrigin),
    "dense_packed": _parse_bool,
    "ppu": _parse_float,
    "base_name": str,
}


__all__ = [
    "ImportSettings",
    "PixelOrigin",
    "SettingsError",
    "SpriteAlignment",
]
