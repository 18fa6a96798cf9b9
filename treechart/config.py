"""Configuration helpers for the tree chart engine."""
from __future__ import annotations

import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Callable, Optional

from dotenv import load_dotenv

from treechart.errors import ConfigError

PROJECT_ROOT = Path(__file__).resolve().parents[1]
ENV_PATH = PROJECT_ROOT / ".env"

# Load environment variables early so downstream modules can rely on them.
load_dotenv(ENV_PATH, override=False)

WIDTH_ENV = "TREECHART_WIDTH"
HEIGHT_ENV = "TREECHART_HEIGHT"
MARGIN_ENV = "TREECHART_MARGIN"
PIXELS_PER_NODE_ENV = "TREECHART_PIXELS_PER_NODE"
DURATION_ENV = "TREECHART_DURATION_MS"
GLYPH_WIDTH_ENV = "TREECHART_GLYPH_WIDTH"
RADIUS_ENV = "TREECHART_RADIUS"

DEFAULT_WIDTH = 800
DEFAULT_ASPECT = 1.0
DEFAULT_MARGIN = 16
DEFAULT_PIXELS_PER_NODE = 30
DEFAULT_DURATION_MS = 666
DEFAULT_GLYPH_WIDTH = 8.39  # Rough average glyph width used to size labels
DEFAULT_TEXT_GAP = 10
DEFAULT_RADIUS = 4.5


@dataclass(frozen=True)
class ChartConfig:
    """Render parameters for one chart.

    `radius` accepts a number, a callable taking a TreeNode, or a
    [min, max] pair mapped through the value scale. `separation` and
    `label_visibility` replace the built-in policies when set.
    """

    width: float = DEFAULT_WIDTH
    height: Optional[float] = None  # None = derive from pixels_per_node or aspect
    margin: float = DEFAULT_MARGIN
    pixels_per_node: float = DEFAULT_PIXELS_PER_NODE
    duration_ms: int = DEFAULT_DURATION_MS
    radius: Any = DEFAULT_RADIUS
    glyph_width: float = DEFAULT_GLYPH_WIDTH
    text_gap: float = DEFAULT_TEXT_GAP
    aspect: float = DEFAULT_ASPECT
    separation: Optional[Callable[..., float]] = None
    label_visibility: Optional[Callable[..., bool]] = None

    def with_overrides(self, **changes: Any) -> "ChartConfig":
        return replace(self, **changes)


def _get_env(name: str, default: Optional[str] = None) -> Optional[str]:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    return value


def _env_number(name: str, default: float, minimum: float = 0.0) -> float:
    raw = _get_env(name)
    if raw is None:
        return default
    try:
        number = float(raw)
    except ValueError as exc:
        raise ConfigError(f"{name} must be a number; received '{raw}'.") from exc
    if number < minimum:
        raise ConfigError(f"{name} must be >= {minimum}; received '{raw}'.")
    return number


def _env_radius(default: Any) -> Any:
    raw = _get_env(RADIUS_ENV)
    if raw is None:
        return default
    parts = [p.strip() for p in raw.split(",") if p.strip()]
    try:
        numbers = [float(p) for p in parts]
    except ValueError as exc:
        raise ConfigError(f"{RADIUS_ENV} must be 'r' or 'min,max'; received '{raw}'.") from exc
    if len(numbers) == 1:
        return numbers[0]
    if len(numbers) == 2:
        return (numbers[0], numbers[1])
    raise ConfigError(f"{RADIUS_ENV} must be 'r' or 'min,max'; received '{raw}'.")


def get_chart_defaults() -> ChartConfig:
    """Resolve chart defaults from the environment."""

    raw_height = _get_env(HEIGHT_ENV)
    height = _env_number(HEIGHT_ENV, 0.0) if raw_height is not None else None
    return ChartConfig(
        width=_env_number(WIDTH_ENV, DEFAULT_WIDTH),
        height=height,
        margin=_env_number(MARGIN_ENV, DEFAULT_MARGIN),
        pixels_per_node=_env_number(PIXELS_PER_NODE_ENV, DEFAULT_PIXELS_PER_NODE),
        duration_ms=int(_env_number(DURATION_ENV, DEFAULT_DURATION_MS)),
        glyph_width=_env_number(GLYPH_WIDTH_ENV, DEFAULT_GLYPH_WIDTH),
        radius=_env_radius(DEFAULT_RADIUS),
    )
