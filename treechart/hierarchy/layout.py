"""Tidy-tree layout for the visible part of a hierarchy."""
from __future__ import annotations

import logging
import time
from typing import Callable, Dict, List, Optional, Tuple

import numpy as np

from treechart.config import ChartConfig
from treechart.hierarchy.models import HierarchyModel, NodeId, NodePlacement, TreeLayout, TreeNode
from treechart.hierarchy.scales import TINY, RadiusPolicy
from treechart.hierarchy.traversal import get_siblings, iter_preorder

logger = logging.getLogger(__name__)

MIN_COLUMN_WIDTH = 1.0  # Floor for the depth-axis step when labels eat the canvas
MIN_EXTENT = 1.0  # Floor for drawable width/height

# Separation policy gaps, in node-height units
GAP_DIFFERENT_PARENTS = 3.0
GAP_BOTH_OPEN = 6.0
GAP_PER_HIDDEN_CHILD = 1.33
GAP_ONE_OPEN = 3.0
GAP_CLOSED_BRANCHES = 2.5
GAP_LEAVES = 2.0

Separation = Callable[[TreeNode, TreeNode, HierarchyModel], float]


def default_separation(a: TreeNode, b: TreeNode, model: Optional[HierarchyModel] = None) -> float:
    """Minimum gap between two adjacent same-depth nodes. First match wins."""
    if a.parent_id != b.parent_id:
        return GAP_DIFFERENT_PARENTS
    if a.is_open and b.is_open:
        return GAP_BOTH_OPEN
    if (a.is_open and not b.has_descendants) or (b.is_open and not a.has_descendants):
        return max(a.child_count, b.child_count) * GAP_PER_HIDDEN_CHILD
    if a.is_open or b.is_open:
        return GAP_ONE_OPEN
    if a.has_descendants or b.has_descendants:
        return GAP_CLOSED_BRANCHES
    return GAP_LEAVES


def label_visible(node: TreeNode, model: HierarchyModel) -> bool:
    """Decide whether a node's label should be drawn.

    A label is hidden while some sibling branch is open and this node is
    not, unless every expandable sibling is open.
    """
    if node.is_open:
        return True
    peers = [model.nodes[p] for p in get_siblings(model, node.id)]
    open_peers = sum(1 for p in peers if p.is_open)
    expandable_peers = sum(1 for p in peers if p.has_descendants)
    if open_peers > 1 and open_peers == expandable_peers:
        return True
    return open_peers == 0


def label_anchor(node: TreeNode, text_gap: float) -> Tuple[float, float, str]:
    """Label offset (dx, dy) and text anchor relative to the node centre."""
    dx = -text_gap if node.has_descendants else text_gap
    if node.parent_id is None:
        return dx, -text_gap, "start"
    return dx, 0.0, "end" if node.has_descendants else "start"


def level_widths(model: HierarchyModel) -> List[int]:
    """Count visible nodes per depth level (index 0 is the root level)."""
    widths = [1]
    for node in iter_preorder(model, visible_only=True):
        if node.visible_children:
            level = node.depth + 1
            if len(widths) <= level:
                widths.append(0)
            widths[level] += len(node.visible_children)
    return widths


def canvas_size(model: HierarchyModel, config: ChartConfig) -> Tuple[float, float]:
    """Full canvas (width, height) including margins."""
    width = float(config.width)
    if config.height is not None:
        height = float(config.height)
    elif config.pixels_per_node > 0:
        height = max(level_widths(model)) * float(config.pixels_per_node) + 2 * config.margin
    else:
        height = float(round(width * config.aspect))
    return width, height


class _LayoutNode:
    __slots__ = (
        "node", "parent", "children", "index",
        "prelim", "mod", "change", "shift",
        "thread", "ancestor", "default_ancestor", "x",
    )

    def __init__(self, node: Optional[TreeNode], index: int = 0):
        self.node = node
        self.parent: Optional[_LayoutNode] = None
        self.children: List[_LayoutNode] = []
        self.index = index
        self.prelim = 0.0
        self.mod = 0.0
        self.change = 0.0
        self.shift = 0.0
        self.thread: Optional[_LayoutNode] = None
        self.ancestor: _LayoutNode = self
        self.default_ancestor: Optional[_LayoutNode] = None
        self.x = 0.0


def _next_left(v: _LayoutNode) -> Optional[_LayoutNode]:
    return v.children[0] if v.children else v.thread


def _next_right(v: _LayoutNode) -> Optional[_LayoutNode]:
    return v.children[-1] if v.children else v.thread


def _move_subtree(wm: _LayoutNode, wp: _LayoutNode, shift: float) -> None:
    change = shift / (wp.index - wm.index)
    wp.change -= change
    wp.shift += shift
    wm.change += change
    wp.prelim += shift
    wp.mod += shift


def _execute_shifts(v: _LayoutNode) -> None:
    shift = 0.0
    change = 0.0
    for w in reversed(v.children):
        w.prelim += shift
        w.mod += shift
        change += w.change
        shift += w.shift + change


def _next_ancestor(vim: _LayoutNode, v: _LayoutNode, ancestor: _LayoutNode) -> _LayoutNode:
    return vim.ancestor if vim.ancestor.parent is v.parent else ancestor


class _TidyTree:
    """Buchheim/Walker tidy tree with a pairwise separation callback.

    Coordinates come out in separation units, root at 0.
    """

    def __init__(self, model: HierarchyModel, separation: Separation):
        self.model = model
        self.separation = separation

    def _sep(self, left: _LayoutNode, right: _LayoutNode) -> float:
        gap = float(self.separation(left.node, right.node, self.model))
        if not np.isfinite(gap) or gap <= 0:
            return TINY
        return gap

    def _wrap(self) -> Tuple[_LayoutNode, List[_LayoutNode], List[_LayoutNode]]:
        sentinel = _LayoutNode(None)
        root = _LayoutNode(self.model.root)
        root.parent = sentinel
        sentinel.children = [root]

        preorder: List[_LayoutNode] = []
        stack = [root]
        while stack:
            v = stack.pop()
            preorder.append(v)
            for i, child_id in enumerate(v.node.visible_children):
                child = _LayoutNode(self.model.nodes[child_id], i)
                child.parent = v
                v.children.append(child)
            stack.extend(reversed(v.children))

        postorder: List[_LayoutNode] = []
        stack2: List[Tuple[_LayoutNode, bool]] = [(root, False)]
        while stack2:
            v, done = stack2.pop()
            if done:
                postorder.append(v)
                continue
            stack2.append((v, True))
            stack2.extend((c, False) for c in reversed(v.children))
        return sentinel, preorder, postorder

    def _first_walk(self, v: _LayoutNode) -> None:
        siblings = v.parent.children
        w = siblings[v.index - 1] if v.index else None
        if v.children:
            _execute_shifts(v)
            mean = sum(c.prelim for c in v.children) / len(v.children)
            if w is not None:
                v.prelim = w.prelim + self._sep(w, v)
                v.mod = v.prelim - mean
            else:
                v.prelim = mean
        elif w is not None:
            v.prelim = w.prelim + self._sep(w, v)
        v.parent.default_ancestor = self._apportion(v, w, v.parent.default_ancestor or siblings[0])

    def _apportion(self, v: _LayoutNode, w: Optional[_LayoutNode], ancestor: _LayoutNode) -> _LayoutNode:
        if w is None:
            return ancestor
        vip = vop = v
        vim = w
        vom = vip.parent.children[0]
        sip, sop, sim, som = vip.mod, vop.mod, vim.mod, vom.mod
        vim = _next_right(vim)
        vip = _next_left(vip)
        while vim is not None and vip is not None:
            vom = _next_left(vom)
            vop = _next_right(vop)
            vop.ancestor = v
            shift = vim.prelim + sim - vip.prelim - sip + self._sep(vim, vip)
            if shift > 0:
                _move_subtree(_next_ancestor(vim, v, ancestor), v, shift)
                sip += shift
                sop += shift
            sim += vim.mod
            sip += vip.mod
            som += vom.mod
            sop += vop.mod
            vim = _next_right(vim)
            vip = _next_left(vip)
        if vim is not None and _next_right(vop) is None:
            vop.thread = vim
            vop.mod += sim - sop
        if vip is not None and _next_left(vom) is None:
            vom.thread = vip
            vom.mod += sip - som
            ancestor = v
        return ancestor

    def run(self) -> List[_LayoutNode]:
        """Return wrapped nodes in pre-order with `x` assigned."""
        sentinel, preorder, postorder = self._wrap()
        for v in postorder:
            self._first_walk(v)
        root = sentinel.children[0]
        sentinel.mod = -root.prelim
        for v in preorder:
            v.x = v.prelim + v.parent.mod
            v.mod += v.parent.mod
        return preorder


def compute_layout(model: HierarchyModel, config: Optional[ChartConfig] = None) -> TreeLayout:
    """Place every visible node of `model`.

    The sibling axis (x) is fitted into the drawable height; the depth axis
    (y) is fitted into the drawable width after reserving room for the
    widest deepest-level label and the largest node.
    """
    config = config or ChartConfig()
    t_start = time.time()

    radius_fn = RadiusPolicy.coerce(config.radius).resolve(model)
    separation: Separation = config.separation or default_separation
    show_label = config.label_visibility or label_visible

    canvas_w, canvas_h = canvas_size(model, config)
    inner_w = max(canvas_w - 2 * config.margin, MIN_EXTENT)
    inner_h = max(canvas_h - 2 * config.margin, MIN_EXTENT)

    wrapped = _TidyTree(model, separation).run()
    radii = {v.node.id: radius_fn(v.node) for v in wrapped}
    max_radius = max(radii.values())

    # Depth axis: leave room for labels of the deepest level and the node itself.
    reserved = model.max_label_length * config.glyph_width + max_radius + config.text_gap
    depth_span = inner_w - reserved
    deepest = max(v.node.depth for v in wrapped)
    column_width = depth_span / (deepest or 1)
    if not np.isfinite(column_width) or column_width < MIN_COLUMN_WIDTH:
        logger.warning(
            "Canvas too narrow for depth %d (span %.1f px after %.1f px reserved); clamping columns",
            deepest, depth_span, reserved,
        )
        column_width = MIN_COLUMN_WIDTH

    # Sibling axis: pad half a separation at both extremes, then scale to fit.
    xs = np.array([v.x for v in wrapped], dtype=np.float64)
    left = wrapped[int(np.argmin(xs))]
    right = wrapped[int(np.argmax(xs))]
    pad = 1.0 if left is right else float(separation(left.node, right.node, model)) / 2
    if not np.isfinite(pad) or pad <= 0:
        pad = 1.0
    offset = pad - left.x
    span = right.x + pad + offset
    node_size = inner_h / span if span > 0 else inner_h
    xs = np.nan_to_num((xs + offset) * node_size)

    placements: Dict[NodeId, NodePlacement] = {}
    order: List[NodeId] = []
    for v, x in zip(wrapped, xs):
        node = v.node
        dx, dy, anchor = label_anchor(node, config.text_gap)
        y = float(np.nan_to_num(node.depth * column_width))
        placements[node.id] = NodePlacement(
            id=node.id,
            x=float(x),
            y=y,
            depth=node.depth,
            radius=radii[node.id],
            label_visible=bool(show_label(node, model)),
            label_dx=dx,
            label_dy=dy,
            label_anchor=anchor,
        )
        order.append(node.id)

    logger.debug(
        "layout timing: nodes=%d depth=%d node_size=%.2f column_width=%.2f (%.2fms)",
        len(order), deepest, node_size, column_width, (time.time() - t_start) * 1000,
    )
    return TreeLayout(
        placements=placements,
        order=order,
        node_size=float(node_size),
        column_width=float(column_width),
        width=float(inner_w),
        height=float(inner_h),
        canvas_width=float(canvas_w),
        canvas_height=float(canvas_h),
    )
