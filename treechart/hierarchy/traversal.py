"""Tree traversal utilities over the node arena."""
from __future__ import annotations

from typing import Container, Iterator, List, Optional

from treechart.hierarchy.models import HierarchyModel, NodeId, TreeNode


def get_siblings(model: HierarchyModel, node_id: NodeId) -> List[NodeId]:
    """Get the node and its siblings in order (just the node for the root)."""
    parent_id = model.nodes[node_id].parent_id
    if parent_id is None:
        return [node_id]
    return list(model.nodes[parent_id].all_children())


def iter_preorder(model: HierarchyModel, visible_only: bool = True) -> Iterator[TreeNode]:
    """Yield nodes root first, children left to right."""
    stack = [model.root_id]
    while stack:
        node = model.nodes[stack.pop()]
        yield node
        children = node.visible_children if visible_only else node.all_children()
        stack.extend(reversed(children))


def iter_postorder(model: HierarchyModel, visible_only: bool = True) -> Iterator[TreeNode]:
    """Yield nodes children first (left to right), root last."""
    stack = [(model.root_id, False)]
    while stack:
        node_id, expanded = stack.pop()
        node = model.nodes[node_id]
        if expanded:
            yield node
            continue
        stack.append((node_id, True))
        children = node.visible_children if visible_only else node.all_children()
        stack.extend((child, False) for child in reversed(children))


def nearest_visible_ancestor(
    model: HierarchyModel,
    node_id: NodeId,
    visible: Container[NodeId],
) -> Optional[NodeId]:
    """Walk the ancestor chain from the node outward; first id in `visible` wins.

    Returns None when the id is unknown or nothing on its chain is visible.
    """
    chain = model.ancestor_chains.get(node_id)
    if chain is None:
        return None
    for candidate in reversed(chain):
        if candidate in visible:
            return candidate
    return None
