"""Hierarchy package: model, builder, visibility, layout and connections."""
from treechart.hierarchy.models import (
    Connection,
    HierarchyModel,
    NodePlacement,
    TreeLayout,
    TreeNode,
)
from treechart.hierarchy.builder import build_hierarchy
from treechart.hierarchy.visibility import (
    collapse,
    expand,
    restore_open_state,
    snapshot_open_state,
    toggle,
)
from treechart.hierarchy.scales import Constant, Derived, Range, RadiusPolicy
from treechart.hierarchy.layout import compute_layout, default_separation, label_visible
from treechart.hierarchy.connections import RoutedConnection, resolve_endpoint, route_connections
