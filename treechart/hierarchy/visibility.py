"""Expand/collapse state management for a bound hierarchy.

Every operation here moves whole child lists between a node's
`visible_children` and `hidden_children`. Nodes are never created or
dropped, so ids and the union of the two lists survive any sequence of
calls.
"""
from __future__ import annotations

import logging
from typing import Dict, Mapping, Optional

from treechart.hierarchy.models import HierarchyModel, NodeId, TreeNode
from treechart.hierarchy.traversal import iter_postorder, iter_preorder

logger = logging.getLogger(__name__)

OpenState = Dict[NodeId, bool]


def _open(node: TreeNode) -> bool:
    if not node.hidden_children:
        return False
    node.visible_children, node.hidden_children = node.hidden_children, []
    return True


def _close(node: TreeNode) -> bool:
    if not node.visible_children:
        return False
    node.hidden_children, node.visible_children = node.visible_children, []
    return True


def expand(model: HierarchyModel, depth_limit: Optional[int] = None) -> int:
    """Open every node shallower than `depth_limit` (default: whole tree).

    Runs root-to-leaf so children exposed by this call are opened too.
    Returns the number of nodes opened.
    """
    limit = model.height if depth_limit is None else depth_limit
    if limit <= 0:
        return 0

    opened = 0
    for node in iter_preorder(model, visible_only=True):
        if node.depth < limit and _open(node):
            opened += 1
    logger.debug("expand(depth_limit=%s): opened %d nodes", depth_limit, opened)
    return opened


def collapse(model: HierarchyModel, depth_limit: int = 1) -> int:
    """Close every visible node at depth >= `depth_limit` (leaf-to-root).

    The default keeps the root open with its children showing; `collapse(0)`
    closes the root too, leaving a root-only view. Returns the number of
    nodes closed.
    """
    limit = max(0, depth_limit)
    if limit > model.height:
        return 0

    closed = 0
    for node in iter_postorder(model, visible_only=True):
        if node.depth >= limit and _close(node):
            closed += 1
    logger.debug("collapse(depth_limit=%s): closed %d nodes", depth_limit, closed)
    return closed


def toggle(model: HierarchyModel, node_id: NodeId) -> bool:
    """Flip one node between open and closed; returns the new open state."""
    node = model.nodes[node_id]
    if node.is_open:
        _close(node)
    else:
        _open(node)
    logger.debug("toggle(%r): open=%s", node_id, node.is_open)
    return node.is_open


def snapshot_open_state(model: HierarchyModel) -> OpenState:
    """Map every node id to whether its children are currently visible."""
    return {node_id: node.is_open for node_id, node in model.nodes.items()}


def restore_open_state(model: HierarchyModel, snapshot: Mapping[NodeId, bool]) -> int:
    """Reapply a snapshot from `snapshot_open_state`.

    Ids missing from the snapshot keep their current state; unknown ids are
    ignored. Returns the number of nodes whose state changed.
    """
    changed = 0
    for node in iter_postorder(model, visible_only=False):
        wanted = snapshot.get(node.id)
        if wanted is None:
            continue
        if wanted and not node.is_open:
            changed += _open(node)
        elif not wanted and node.is_open:
            changed += _close(node)
    logger.debug("restore_open_state: %d nodes changed", changed)
    return changed
