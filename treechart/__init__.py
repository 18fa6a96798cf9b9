"""Layout and incremental render-diff engine for collapsible node-link trees."""

from .chart import RenderResult, TreeChart, render
from .config import ChartConfig, get_chart_defaults
from .errors import ChartNotBound, ConfigError, InvalidHierarchy, TreeChartError
from .hierarchy import (
    Connection,
    HierarchyModel,
    TreeLayout,
    TreeNode,
    build_hierarchy,
    collapse,
    compute_layout,
    expand,
    restore_open_state,
    snapshot_open_state,
    toggle,
)
from .render import PaintInstruction, RenderState, TransitionScheduler

__all__ = [
    "ChartConfig",
    "ChartNotBound",
    "ConfigError",
    "Connection",
    "HierarchyModel",
    "InvalidHierarchy",
    "PaintInstruction",
    "RenderResult",
    "RenderState",
    "TransitionScheduler",
    "TreeChart",
    "TreeChartError",
    "TreeLayout",
    "TreeNode",
    "build_hierarchy",
    "collapse",
    "compute_layout",
    "expand",
    "get_chart_defaults",
    "render",
    "restore_open_state",
    "snapshot_open_state",
    "toggle",
]
