"""Reconcile a fresh layout against the previously committed render state."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Hashable, Iterable, List, Optional, Sequence, Tuple

from treechart.hierarchy.connections import RoutedConnection, resolve_endpoint
from treechart.hierarchy.models import HierarchyModel, NodeId, Point, TreeLayout
from treechart.hierarchy.scales import TINY
from treechart.hierarchy.traversal import nearest_visible_ancestor
from treechart.render.paths import degenerate, diagonal

logger = logging.getLogger(__name__)

NODE = "node"
LINK = "link"
CONNECTION = "connection"

ENTER = "enter"
UPDATE = "update"
EXIT = "exit"

Geometry = Tuple[Point, ...]
ConnectionKey = Tuple[NodeId, NodeId]


@dataclass(frozen=True)
class RetainedNode:
    """Last committed target for a node."""

    position: Point
    parent_id: Optional[NodeId]
    radius: float


@dataclass
class RenderState:
    """Geometric truth of the last commit, the baseline for the next one."""

    root_id: Optional[NodeId] = None
    nodes: Dict[NodeId, RetainedNode] = field(default_factory=dict)
    links: Dict[NodeId, Geometry] = field(default_factory=dict)  # Keyed by child id
    connections: Dict[ConnectionKey, Geometry] = field(default_factory=dict)

    @property
    def empty(self) -> bool:
        return not self.nodes


@dataclass(frozen=True)
class PaintInstruction:
    """One entity's transition for a commit.

    Geometry is a tuple of screen points: one point for nodes, the path
    control points for links and connections.
    """

    entity_id: Hashable
    kind: str  # NODE, LINK or CONNECTION
    phase: str  # ENTER, UPDATE or EXIT
    transition_from: Geometry
    transition_to: Geometry
    opacity_from: float
    opacity_to: float
    radius_from: Optional[float] = None
    radius_to: Optional[float] = None
    label: Optional[str] = None
    label_visible: bool = True
    collapsed: bool = False  # Node has hidden children
    shape: Optional[str] = None


def partition(previous: Iterable[Hashable], current: Sequence[Hashable]) -> Tuple[List, List, List]:
    """Split ids into (entering, persisting, exiting), keeping input order."""
    prev_list = list(previous)
    prev_set = set(prev_list)
    current_set = set(current)
    entering = [i for i in current if i not in prev_set]
    persisting = [i for i in current if i in prev_set]
    exiting = [i for i in prev_list if i not in current_set]
    return entering, persisting, exiting


def _entry_origin(
    node_id: NodeId,
    model: HierarchyModel,
    layout: TreeLayout,
    previous: RenderState,
) -> Point:
    """Where an entering node starts: parent's old spot, old root, or itself."""
    if previous.empty:
        return layout[node_id].point
    parent_id = model.nodes[node_id].parent_id
    if parent_id is not None and parent_id in previous.nodes:
        return previous.nodes[parent_id].position
    if previous.root_id in previous.nodes:
        return previous.nodes[previous.root_id].position
    return layout[node_id].point


def _exit_target(
    node_id: NodeId,
    retained: RetainedNode,
    model: HierarchyModel,
    layout: TreeLayout,
) -> Point:
    """Where an exiting node collapses to: its nearest visible ancestor now."""
    anchor = nearest_visible_ancestor(model, node_id, layout.placements)
    if anchor is None and retained.parent_id is not None:
        anchor = nearest_visible_ancestor(model, retained.parent_id, layout.placements)
    if anchor is None:
        anchor = model.root_id
    return layout[anchor].point


def commit(
    previous: Optional[RenderState],
    model: HierarchyModel,
    layout: TreeLayout,
    routed: Sequence[RoutedConnection] = (),
) -> Tuple[List[PaintInstruction], RenderState]:
    """Diff a fresh layout against `previous`.

    Returns the paint instructions for this commit and the state to retain.
    The retained state always holds the fresh targets, never in-flight values.
    """
    prev = previous or RenderState()
    instructions: List[PaintInstruction] = []
    origins: Dict[NodeId, Point] = {}

    entering, persisting, exiting = partition(prev.nodes.keys(), layout.order)

    for node_id in entering:
        placement = layout[node_id]
        origin = _entry_origin(node_id, model, layout, prev)
        origins[node_id] = origin
        animate = not prev.empty
        instructions.append(PaintInstruction(
            entity_id=node_id,
            kind=NODE,
            phase=ENTER,
            transition_from=(origin,),
            transition_to=(placement.point,),
            opacity_from=TINY if animate else 1.0,
            opacity_to=1.0,
            radius_from=TINY if animate else placement.radius,
            radius_to=placement.radius,
            label=model.nodes[node_id].label,
            label_visible=placement.label_visible,
            collapsed=bool(model.nodes[node_id].hidden_children),
        ))

    for node_id in persisting:
        placement = layout[node_id]
        retained = prev.nodes[node_id]
        origins[node_id] = retained.position
        instructions.append(PaintInstruction(
            entity_id=node_id,
            kind=NODE,
            phase=UPDATE,
            transition_from=(retained.position,),
            transition_to=(placement.point,),
            opacity_from=1.0,
            opacity_to=1.0,
            radius_from=retained.radius,
            radius_to=placement.radius,
            label=model.nodes[node_id].label,
            label_visible=placement.label_visible,
            collapsed=bool(model.nodes[node_id].hidden_children),
        ))

    exit_targets: Dict[NodeId, Point] = {}
    for node_id in exiting:
        retained = prev.nodes[node_id]
        target = _exit_target(node_id, retained, model, layout)
        exit_targets[node_id] = target
        instructions.append(PaintInstruction(
            entity_id=node_id,
            kind=NODE,
            phase=EXIT,
            transition_from=(retained.position,),
            transition_to=(target,),
            opacity_from=1.0,
            opacity_to=TINY,
            radius_from=retained.radius,
            radius_to=TINY,
            label=model.nodes[node_id].label if node_id in model else None,
        ))

    # Parent/child links, keyed by child id.
    links: Dict[NodeId, Geometry] = {}
    for node_id in layout.order:
        parent_id = model.nodes[node_id].parent_id
        if parent_id is None:
            continue
        links[node_id] = diagonal(layout[node_id].point, layout[parent_id].point)

    link_enter, link_update, link_exit = partition(prev.links.keys(), list(links))
    for node_id in link_enter:
        if prev.empty:
            start, fade = links[node_id], 1.0
        else:
            start, fade = degenerate(origins[node_id], len(links[node_id])), TINY
        instructions.append(PaintInstruction(
            node_id, LINK, ENTER, start, links[node_id], opacity_from=fade, opacity_to=1.0,
        ))
    for node_id in link_update:
        instructions.append(PaintInstruction(
            node_id, LINK, UPDATE, prev.links[node_id], links[node_id],
            opacity_from=1.0, opacity_to=1.0,
        ))
    for node_id in link_exit:
        old = prev.links[node_id]
        target = exit_targets.get(node_id)
        if target is None:
            retained = prev.nodes.get(node_id, RetainedNode(old[0], None, TINY))
            target = _exit_target(node_id, retained, model, layout)
        instructions.append(PaintInstruction(
            node_id, LINK, EXIT, old, degenerate(target, len(old)),
            opacity_from=1.0, opacity_to=TINY,
        ))

    # Connections, keyed by (from, to).
    fresh: Dict[ConnectionKey, RoutedConnection] = {r.key: r for r in routed}
    conn_enter, conn_update, conn_exit = partition(prev.connections.keys(), list(fresh))
    for key in conn_enter:
        r = fresh[key]
        if prev.empty:
            start, fade = r.points, 1.0
        else:
            start, fade = degenerate(origins[r.source], len(r.points)), TINY
        instructions.append(PaintInstruction(
            key, CONNECTION, ENTER, start, r.points,
            opacity_from=fade, opacity_to=1.0, label=r.label, shape=r.shape,
        ))
    for key in conn_update:
        r = fresh[key]
        instructions.append(PaintInstruction(
            key, CONNECTION, UPDATE, prev.connections[key], r.points,
            opacity_from=1.0, opacity_to=1.0, label=r.label, shape=r.shape,
        ))
    for key in conn_exit:
        old = prev.connections[key]
        anchor = resolve_endpoint(model, key[0], layout.placements)
        instructions.append(PaintInstruction(
            key, CONNECTION, EXIT, old, degenerate(layout[anchor].point, len(old)),
            opacity_from=1.0, opacity_to=TINY,
        ))

    state = RenderState(
        root_id=model.root_id,
        nodes={
            node_id: RetainedNode(layout[node_id].point, model.nodes[node_id].parent_id, layout[node_id].radius)
            for node_id in layout.order
        },
        links=links,
        connections={key: r.points for key, r in fresh.items()},
    )
    logger.debug(
        "render diff: nodes enter=%d update=%d exit=%d links=%d connections=%d",
        len(entering), len(persisting), len(exiting), len(links), len(fresh),
    )
    return instructions, state
