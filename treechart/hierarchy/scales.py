"""Node radius policies and the value scale behind them."""
from __future__ import annotations

import logging
import numbers
from dataclasses import dataclass
from typing import Any, Callable, Sequence, Tuple

import numpy as np

from treechart.errors import ConfigError
from treechart.hierarchy.models import HierarchyModel, TreeNode

logger = logging.getLogger(__name__)

TINY = 1e-6  # Stand-in for "zero" sizes and opacities that must stay positive
VALUE_EXPONENT = 1.1

RadiusFn = Callable[[TreeNode], float]


def _positive(value: Any) -> float:
    """Coerce a radius to a finite positive float, TINY otherwise."""
    try:
        radius = float(value)
    except (TypeError, ValueError):
        return TINY
    if not np.isfinite(radius) or radius < TINY:
        return TINY
    return radius


@dataclass(frozen=True)
class PowerScale:
    """Clamped power scale (sign-preserving) from a domain onto a range."""

    domain: Tuple[float, float]
    range: Tuple[float, float]
    exponent: float = VALUE_EXPONENT

    def _transform(self, x: float) -> float:
        return float(np.sign(x) * np.power(abs(x), self.exponent))

    @property
    def degenerate(self) -> bool:
        d0, d1 = self.domain
        return not (np.isfinite(d0) and np.isfinite(d1)) or self._transform(d0) == self._transform(d1)

    def __call__(self, x: float) -> float:
        r0, r1 = self.range
        if self.degenerate:
            return r0
        t0 = self._transform(self.domain[0])
        t1 = self._transform(self.domain[1])
        t = float(np.clip((self._transform(x) - t0) / (t1 - t0), 0.0, 1.0))
        return r0 + t * (r1 - r0)


class RadiusPolicy:
    """Tagged radius variant resolved once per render into a plain callable."""

    def resolve(self, model: HierarchyModel) -> RadiusFn:
        raise NotImplementedError

    @staticmethod
    def coerce(value: Any) -> "RadiusPolicy":
        """Build a policy from a number, a callable or a [min, max] pair."""
        if isinstance(value, RadiusPolicy):
            return value
        if isinstance(value, numbers.Real) and not isinstance(value, bool):
            return Constant(float(value))
        if callable(value):
            return Derived(value)
        if isinstance(value, Sequence) and not isinstance(value, str) and len(value) == 2:
            try:
                return Range(float(value[0]), float(value[1]))
            except (TypeError, ValueError) as exc:
                raise ConfigError(f"radius range must be numeric; received {value!r}") from exc
        raise ConfigError(f"radius must be a number, callable or [min, max]; received {value!r}")


@dataclass(frozen=True)
class Constant(RadiusPolicy):
    radius: float

    def resolve(self, model: HierarchyModel) -> RadiusFn:
        radius = _positive(self.radius)
        return lambda node: radius


@dataclass(frozen=True)
class Derived(RadiusPolicy):
    fn: RadiusFn

    def resolve(self, model: HierarchyModel) -> RadiusFn:
        fn = self.fn
        return lambda node: _positive(fn(node))


@dataclass(frozen=True)
class Range(RadiusPolicy):
    """Map node values through a power scale onto [min_radius, max_radius].

    A degenerate value range gives every node `min_radius`; otherwise a node
    without a numeric value gets a negligible radius.
    """

    min_radius: float
    max_radius: float

    def resolve(self, model: HierarchyModel) -> RadiusFn:
        scale = PowerScale(domain=model.value_range, range=(self.min_radius, self.max_radius))
        if scale.degenerate:
            radius = _positive(self.min_radius)
            logger.debug("Degenerate value range %s; constant radius %.2f", model.value_range, radius)
            return lambda node: radius

        def radius_for(node: TreeNode) -> float:
            if node.value is None:
                return TINY
            return _positive(scale(node.value))

        return radius_for
