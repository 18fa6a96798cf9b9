"""Link geometry and SVG path data for painters."""
from __future__ import annotations

import math
from typing import Sequence, Tuple

from treechart.hierarchy.models import Point


def diagonal(source: Point, target: Point) -> Tuple[Point, ...]:
    """Cubic diagonal from `source` to `target` in screen space.

    Control points sit halfway along the depth axis so the curve leaves and
    enters both ends horizontally.
    """
    mid = (source[0] + target[0]) / 2
    return (source, (mid, source[1]), (mid, target[1]), target)


def degenerate(point: Point, count: int) -> Tuple[Point, ...]:
    """Zero-length geometry with every point collapsed onto `point`."""
    return tuple(point for _ in range(max(count, 1)))


def _fmt(p: Point) -> str:
    return f"{p[0]:.2f} {p[1]:.2f}"


def path_data(points: Sequence[Point], closed: bool = False) -> str:
    """SVG path data through `points`.

    Four points are read as one cubic segment; other lengths as chained
    quadratic segments. Returns "" if any coordinate is missing or not finite.
    """
    if not points:
        return ""
    for p in points:
        if p is None or p[0] is None or p[1] is None:
            return ""
        if not (math.isfinite(p[0]) and math.isfinite(p[1])):
            return ""

    parts = [f"M {_fmt(points[0])}"]
    rest = list(points[1:])
    if len(points) == 4:
        parts.append(f"C {_fmt(rest[0])}, {_fmt(rest[1])}, {_fmt(rest[2])}")
    else:
        while len(rest) >= 2:
            parts.append(f"Q {_fmt(rest[0])}, {_fmt(rest[1])}")
            rest = rest[2:]
        if rest:
            parts.append(f"L {_fmt(rest[0])}")
    if closed:
        parts.append("Z")
    return " ".join(parts)
