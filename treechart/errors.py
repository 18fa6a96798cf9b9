"""Exception types raised by the tree chart engine."""
from __future__ import annotations


class TreeChartError(Exception):
    """Base class for all tree chart errors."""


class InvalidHierarchy(TreeChartError, ValueError):
    """Source data is not a rooted tree (cycle, shared child or duplicate id)."""


class ChartNotBound(TreeChartError, RuntimeError):
    """A command or render was issued before any data was bound."""


class ConfigError(TreeChartError, ValueError):
    """A configuration value could not be parsed or is out of range."""
