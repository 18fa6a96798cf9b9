"""Resolve and route connection edges between (possibly hidden) nodes."""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Container, List, Optional, Set, Tuple

import numpy as np

from treechart.hierarchy.models import Connection, HierarchyModel, NodeId, Point, TreeLayout
from treechart.hierarchy.traversal import nearest_visible_ancestor

logger = logging.getLogger(__name__)

CIRCLE_THRESHOLD = 60.0  # Sibling-axis distance below which aligned endpoints get a tight bulge
MIN_CURVE_RADIUS = 8.0
MAX_CURVE_RADIUS = 120.0
ALIGN_TOLERANCE = 0.5  # Depth-axis pixels within which endpoints count as aligned

INWARD = -1.0  # Toward the root
OUTWARD = 1.0


@dataclass(frozen=True)
class RoutedConnection:
    """A connection with both endpoints resolved to visible nodes."""

    connection: Connection
    source: NodeId  # Visible representative of connection.source
    target: NodeId  # Visible representative of connection.target
    shape: str  # "loop", "bulge", "arc" or "curve"
    points: Tuple[Point, ...]

    @property
    def key(self) -> Tuple[NodeId, NodeId]:
        return self.connection.key

    @property
    def label(self) -> Optional[str]:
        return self.connection.label


def clamp_radius(radius: float) -> float:
    if not math.isfinite(radius):
        return MAX_CURVE_RADIUS
    return float(np.clip(radius, MIN_CURVE_RADIUS, MAX_CURVE_RADIUS))


def resolve_endpoint(
    model: HierarchyModel,
    node_id: NodeId,
    visible: Container[NodeId],
    warned: Optional[Set[NodeId]] = None,
) -> NodeId:
    """Map a declared endpoint to the nearest visible node on its ancestor chain.

    Ids missing from the hierarchy (or with no visible ancestor) fall back
    to the root.
    """
    resolved = nearest_visible_ancestor(model, node_id, visible)
    if resolved is not None:
        return resolved
    if warned is None or node_id not in warned:
        logger.warning("Connection endpoint %r not found in hierarchy; using root", node_id)
        if warned is not None:
            warned.add(node_id)
    return model.root_id


def loop_points(p: Point) -> Tuple[Point, ...]:
    """Small closed loop on the outward side of a node."""
    x, y = p
    r = MIN_CURVE_RADIUS
    return (p, (x + r, y - r), (x + 2 * r, y), (x + r, y + r), p)


def aligned_points(a: Point, b: Point, direction: float) -> Tuple[str, Tuple[Point, ...]]:
    """Bulge between two endpoints sharing a depth coordinate.

    Endpoints are ordered by sibling coordinate so the winding is stable.
    """
    if a[1] > b[1]:
        a, b = b, a
    x = a[0]
    distance = b[1] - a[1]
    radius = clamp_radius(distance / 2)
    if distance < CIRCLE_THRESHOLD:
        mid = (x + direction * radius, (a[1] + b[1]) / 2)
        return "bulge", (a, mid, b)
    reach = min(radius, distance / 2)
    bx = x + direction * radius
    return "arc", (a, (bx, a[1] + reach), (bx, (a[1] + b[1]) / 2), (bx, b[1] - reach), b)


def curve_points(a: Point, b: Point) -> Tuple[Point, ...]:
    """Open 3-point curve, shallower endpoint first, bent across the sibling axis."""
    if a[0] > b[0]:
        a, b = b, a
    mid_x = (a[0] + b[0]) / 2
    mid_y = (a[1] + b[1]) / 2
    offset = clamp_radius(math.hypot(b[0] - a[0], b[1] - a[1]) / 4)
    bend = -offset if b[1] >= a[1] else offset
    return (a, (mid_x, mid_y + bend), b)


def route_connection(
    model: HierarchyModel,
    layout: TreeLayout,
    connection: Connection,
    warned: Optional[Set[NodeId]] = None,
) -> RoutedConnection:
    """Resolve both endpoints of one connection and compute its geometry."""
    source = resolve_endpoint(model, connection.source, layout.placements, warned)
    target = resolve_endpoint(model, connection.target, layout.placements, warned)
    a = layout[source].point
    b = layout[target].point

    if source == target:
        return RoutedConnection(connection, source, target, "loop", loop_points(a))

    if abs(a[0] - b[0]) <= ALIGN_TOLERANCE:
        either_open = model.nodes[source].is_open or model.nodes[target].is_open
        direction = INWARD if either_open else OUTWARD
        shape, points = aligned_points(a, b, direction)
        return RoutedConnection(connection, source, target, shape, points)

    return RoutedConnection(connection, source, target, "curve", curve_points(a, b))


def route_connections(model: HierarchyModel, layout: TreeLayout) -> List[RoutedConnection]:
    """Route every declared connection of `model` against `layout`."""
    warned: Set[NodeId] = set()
    routed = [route_connection(model, layout, c, warned) for c in model.connections]
    logger.debug("Routed %d connections (%d unresolved ids)", len(routed), len(warned))
    return routed
