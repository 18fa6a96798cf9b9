"""Tree chart component: owns the bound hierarchy and the retained render state."""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Iterable, List, Mapping, Optional

from treechart.config import ChartConfig, get_chart_defaults
from treechart.errors import ChartNotBound
from treechart.hierarchy import visibility
from treechart.hierarchy.builder import Accessor, build_hierarchy
from treechart.hierarchy.connections import RoutedConnection, route_connections
from treechart.hierarchy.layout import compute_layout
from treechart.hierarchy.models import HierarchyModel, NodeId, TreeLayout
from treechart.render.diff import PaintInstruction, RenderState, commit
from treechart.render.transitions import TransitionScheduler

logger = logging.getLogger(__name__)


@dataclass
class RenderResult:
    """Output of one commit."""

    instructions: List[PaintInstruction]
    state: RenderState
    layout: TreeLayout
    connections: List[RoutedConnection]


def render(
    model: HierarchyModel,
    config: Optional[ChartConfig] = None,
    previous: Optional[RenderState] = None,
) -> RenderResult:
    """One synchronous commit: layout, connection routing, then diff."""
    config = config or ChartConfig()
    t0 = time.time()
    layout = compute_layout(model, config)
    t1 = time.time()
    routed = route_connections(model, layout)
    t2 = time.time()
    instructions, state = commit(previous, model, layout, routed)
    t3 = time.time()
    logger.info(
        "render timing: layout=%.2fms connections=%.2fms diff=%.2fms nodes=%d instructions=%d",
        (t1 - t0) * 1000, (t2 - t1) * 1000, (t3 - t2) * 1000, len(layout.order), len(instructions),
    )
    return RenderResult(instructions=instructions, state=state, layout=layout, connections=routed)


class TreeChart:
    """Collapsible node-link tree.

    Binding the same source object again keeps the current model and its
    open state; binding a different object rebuilds the model while the
    retained render state carries over so the change animates.
    """

    def __init__(
        self,
        config: Optional[ChartConfig] = None,
        scheduler: Optional[TransitionScheduler] = None,
    ):
        self.config = config or get_chart_defaults()
        if scheduler is None:
            scheduler = TransitionScheduler(duration_ms=self.config.duration_ms)
        self.scheduler = scheduler
        self.model: Optional[HierarchyModel] = None
        self.state: Optional[RenderState] = None

    def bind(
        self,
        source: Any,
        children: Optional[Accessor] = None,
        label: Optional[Accessor] = None,
        value: Optional[Accessor] = None,
        node_id: Optional[Accessor] = None,
        connections: Optional[Iterable[Any]] = None,
    ) -> HierarchyModel:
        if self.model is not None and self.model.source is source:
            logger.debug("bind: same source object, keeping current model")
            return self.model
        self.model = build_hierarchy(
            source,
            children=children,
            label=label,
            value=value,
            node_id=node_id,
            connections=connections,
        )
        return self.model

    def _require_model(self) -> HierarchyModel:
        if self.model is None:
            raise ChartNotBound("bind() a data source before issuing commands")
        return self.model

    def expand(self, depth_limit: Optional[int] = None) -> int:
        return visibility.expand(self._require_model(), depth_limit)

    def collapse(self, depth_limit: int = 1) -> int:
        return visibility.collapse(self._require_model(), depth_limit)

    def toggle(self, node_id: NodeId) -> bool:
        return visibility.toggle(self._require_model(), node_id)

    def snapshot_open_state(self) -> visibility.OpenState:
        return visibility.snapshot_open_state(self._require_model())

    def restore_open_state(self, snapshot: Mapping[NodeId, bool]) -> int:
        return visibility.restore_open_state(self._require_model(), snapshot)

    def render(self, config: Optional[ChartConfig] = None) -> RenderResult:
        """Commit the current model and retain its geometry for the next commit."""
        config = config or self.config
        result = render(self._require_model(), config, self.state)
        self.state = result.state
        self.scheduler.schedule(result.instructions, duration_ms=config.duration_ms)
        return result

    def reset(self) -> None:
        """Forget the retained render state; the next render will not animate."""
        self.state = None
