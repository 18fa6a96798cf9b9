"""Render package: diffing, link geometry and transitions."""
from treechart.render.diff import (
    CONNECTION,
    ENTER,
    EXIT,
    LINK,
    NODE,
    UPDATE,
    PaintInstruction,
    RenderState,
    RetainedNode,
    commit,
    partition,
)
from treechart.render.paths import degenerate, diagonal, path_data
from treechart.render.transitions import Frame, Transition, TransitionScheduler
