"""Build a hierarchy model from nested source data."""
from __future__ import annotations

import logging
import math
import numbers
import time
from collections.abc import Mapping
from typing import Any, Callable, Dict, Iterable, List, Optional, Set, Tuple

from treechart.errors import InvalidHierarchy
from treechart.hierarchy.models import Connection, HierarchyModel, NodeId, TreeNode

logger = logging.getLogger(__name__)

# Synthesized ids start well above the small integers callers tend to use.
SYNTHETIC_ID_SEED = 1_000_000

Accessor = Callable[[Any], Any]


def read_field(datum: Any, name: str) -> Any:
    """Read `name` from a mapping key or an object attribute."""
    if isinstance(datum, Mapping):
        return datum.get(name)
    return getattr(datum, name, None)


def default_children(datum: Any) -> Any:
    return read_field(datum, "children")


def default_label(datum: Any) -> str:
    name = read_field(datum, "name")
    return "" if name is None else str(name)


def default_value(datum: Any) -> Any:
    return read_field(datum, "value")


def default_node_id(datum: Any) -> Any:
    return read_field(datum, "id")


def _as_number(raw: Any) -> Optional[float]:
    if isinstance(raw, bool) or not isinstance(raw, numbers.Real):
        return None
    value = float(raw)
    return value if math.isfinite(value) else None


class _Record:
    __slots__ = ("datum", "parent", "depth", "children", "height")

    def __init__(self, datum: Any, parent: Optional[int], depth: int):
        self.datum = datum
        self.parent = parent
        self.depth = depth
        self.children: List[int] = []
        self.height = 0


def _walk_source(source: Any, children: Accessor) -> List[_Record]:
    """Flatten the source tree in pre-order, rejecting anything that is not a tree."""
    records: List[_Record] = []
    seen: Set[int] = set()
    stack: List[Tuple[Any, Optional[int], int]] = [(source, None, 0)]

    while stack:
        datum, parent, depth = stack.pop()
        marker = id(datum)
        if marker in seen:
            raise InvalidHierarchy(
                "source datum %r is reachable by more than one path (shared child or cycle)"
                % (default_label(datum) or type(datum).__name__,)
            )
        seen.add(marker)

        index = len(records)
        records.append(_Record(datum, parent, depth))
        if parent is not None:
            records[parent].children.append(index)

        kids = children(datum)
        if kids is None:
            continue
        if isinstance(kids, (str, bytes, Mapping)) or not isinstance(kids, Iterable):
            raise InvalidHierarchy(
                "children accessor must return a sequence, got %s" % type(kids).__name__
            )
        for kid in reversed(list(kids)):
            stack.append((kid, index, depth + 1))

    return records


def _assign_ids(records: List[_Record], node_id: Accessor) -> List[NodeId]:
    explicit: List[Optional[NodeId]] = [node_id(r.datum) for r in records]
    taken: Set[NodeId] = set()
    for candidate in explicit:
        if candidate is None:
            continue
        if candidate in taken:
            raise InvalidHierarchy("duplicate node id %r" % (candidate,))
        taken.add(candidate)

    counter = SYNTHETIC_ID_SEED
    ids: List[NodeId] = []
    for candidate in explicit:
        if candidate is None:
            while counter in taken:
                counter += 1
            candidate = counter
            counter += 1
        ids.append(candidate)
    return ids


def parse_connections(raw: Any) -> List[Connection]:
    """Normalise connection declarations into Connection objects.

    Accepts Connection instances, mappings with from/to (or source/target)
    and an optional label, or (from, to) pairs. Duplicate pairs keep the
    first declaration.
    """
    if not raw:
        return []

    connections: List[Connection] = []
    seen: Set[Tuple[NodeId, NodeId]] = set()
    for entry in raw:
        if isinstance(entry, Connection):
            conn = entry
        elif isinstance(entry, Mapping):
            src = entry.get("from", entry.get("source"))
            tgt = entry.get("to", entry.get("target"))
            if src is None or tgt is None:
                logger.warning("Skipping connection without both endpoints: %r", entry)
                continue
            label = entry.get("label")
            conn = Connection(src, tgt, None if label is None else str(label))
        elif isinstance(entry, (tuple, list)) and len(entry) == 2:
            conn = Connection(entry[0], entry[1])
        else:
            logger.warning("Skipping unrecognised connection declaration: %r", entry)
            continue

        if conn.key in seen:
            logger.warning("Duplicate connection %s -> %s ignored", conn.source, conn.target)
            continue
        seen.add(conn.key)
        connections.append(conn)
    return connections


def build_hierarchy(
    source: Any,
    children: Optional[Accessor] = None,
    label: Optional[Accessor] = None,
    value: Optional[Accessor] = None,
    node_id: Optional[Accessor] = None,
    connections: Optional[Iterable[Any]] = None,
) -> HierarchyModel:
    """Build a hierarchy model from a nested source object.

    Args:
        source: Root datum; nested data is reached through `children`
        children: Accessor returning a datum's child list (default: "children" field)
        label: Accessor returning the display label (default: "name" field)
        value: Accessor returning the numeric weight (default: "value" field)
        node_id: Accessor returning a caller id (default: "id" field)
        connections: Connection declarations (default: root's "connections" field)

    Raises:
        InvalidHierarchy: if the source is not a rooted tree
    """
    if source is None:
        raise InvalidHierarchy("cannot build a hierarchy from None")

    children = children or default_children
    label = label or default_label
    value = value or default_value
    node_id = node_id or default_node_id

    t_start = time.time()
    records = _walk_source(source, children)
    ids = _assign_ids(records, node_id)

    # Pre-order puts parents before children, so a reverse pass settles heights.
    for record in reversed(records):
        if record.parent is not None:
            parent = records[record.parent]
            parent.height = max(parent.height, record.height + 1)

    tree_height = records[0].height
    nodes: Dict[NodeId, TreeNode] = {}
    max_label_length = 0
    lo, hi = math.inf, -math.inf

    for index, record in enumerate(records):
        text = label(record.datum)
        text = "" if text is None else str(text)
        weight = _as_number(value(record.datum))
        scale_weight = 0.0 if weight is None else weight
        lo = min(lo, scale_weight)
        hi = max(hi, scale_weight)
        if record.depth == tree_height:
            max_label_length = max(max_label_length, len(text))

        nodes[ids[index]] = TreeNode(
            id=ids[index],
            parent_id=ids[record.parent] if record.parent is not None else None,
            depth=record.depth,
            height=record.height,
            label=text,
            value=weight,
            data=record.datum,
            visible_children=[ids[c] for c in record.children],
        )

    # Second full traversal: ancestor chains, root first.
    root_id = ids[0]
    ancestor_chains: Dict[NodeId, Tuple[NodeId, ...]] = {root_id: (root_id,)}
    stack = [root_id]
    while stack:
        current = stack.pop()
        chain = ancestor_chains[current]
        for child in nodes[current].visible_children:
            if child in ancestor_chains:
                raise InvalidHierarchy("node %r visited twice while chaining ancestors" % (child,))
            ancestor_chains[child] = chain + (child,)
            stack.append(child)

    if connections is None:
        connections = read_field(source, "connections")

    model = HierarchyModel(
        root_id=root_id,
        nodes=nodes,
        max_label_length=max_label_length,
        value_range=(float(lo), float(hi)),
        ancestor_chains=ancestor_chains,
        connections=parse_connections(connections),
        height=tree_height,
        source=source,
    )
    logger.info(
        "Built hierarchy: %d nodes, height=%d, connections=%d (%.2fms)",
        len(nodes),
        tree_height,
        len(model.connections),
        (time.time() - t_start) * 1000,
    )
    return model
