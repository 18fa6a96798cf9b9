"""Data models for the bound hierarchy and its layout."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Hashable, List, Optional, Tuple

NodeId = Hashable
Point = Tuple[float, float]


@dataclass
class TreeNode:
    """One entry of the hierarchy, stored in the model's node arena."""

    id: NodeId
    parent_id: Optional[NodeId]  # None for the root
    depth: int
    height: int  # Height of the full subtree (leaf = 0)
    label: str
    value: Optional[float]  # None when absent or non-numeric
    data: Any = None  # Original source datum, never mutated
    visible_children: List[NodeId] = field(default_factory=list)
    hidden_children: List[NodeId] = field(default_factory=list)

    @property
    def has_descendants(self) -> bool:
        return bool(self.visible_children or self.hidden_children)

    @property
    def is_open(self) -> bool:
        """True if the node's children are currently shown."""
        return bool(self.visible_children)

    @property
    def child_count(self) -> int:
        return len(self.visible_children) + len(self.hidden_children)

    def all_children(self) -> List[NodeId]:
        return self.visible_children or self.hidden_children


@dataclass(frozen=True)
class Connection:
    """Declared non-hierarchical edge between two node ids."""

    source: NodeId
    target: NodeId
    label: Optional[str] = None

    @property
    def key(self) -> Tuple[NodeId, NodeId]:
        return (self.source, self.target)


@dataclass
class HierarchyModel:
    """Complete hierarchy for one bound data set."""

    root_id: NodeId
    nodes: Dict[NodeId, TreeNode]
    max_label_length: int  # Longest label among deepest-level nodes
    value_range: Tuple[float, float]
    ancestor_chains: Dict[NodeId, Tuple[NodeId, ...]]  # Root first, node last
    connections: List[Connection]
    height: int
    source: Any = None

    @property
    def root(self) -> TreeNode:
        return self.nodes[self.root_id]

    def __contains__(self, node_id: object) -> bool:
        return node_id in self.nodes

    def __getitem__(self, node_id: NodeId) -> TreeNode:
        return self.nodes[node_id]

    def __len__(self) -> int:
        return len(self.nodes)


@dataclass(frozen=True)
class NodePlacement:
    """Computed position and painter hints for one visible node."""

    id: NodeId
    x: float  # Sibling-order coordinate
    y: float  # Depth coordinate
    depth: int
    radius: float
    label_visible: bool
    label_dx: float
    label_dy: float
    label_anchor: str  # "start" or "end"

    @property
    def point(self) -> Point:
        """Screen point (depth axis horizontal, sibling axis vertical)."""
        return (self.y, self.x)


@dataclass
class TreeLayout:
    """Positions for every visible node of a model."""

    placements: Dict[NodeId, NodePlacement]
    order: List[NodeId]  # Visible ids in depth-first order
    node_size: float  # Pixels per separation unit on the sibling axis
    column_width: float  # Pixels per depth level
    width: float  # Drawable width (inside margins)
    height: float  # Drawable height (inside margins)
    canvas_width: float
    canvas_height: float

    def __contains__(self, node_id: object) -> bool:
        return node_id in self.placements

    def __getitem__(self, node_id: NodeId) -> NodePlacement:
        return self.placements[node_id]
