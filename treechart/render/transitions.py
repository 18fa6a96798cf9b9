"""Interruptible per-entity transitions driven by paint instructions.

A commit may land while the previous commit's animations are still
running. Scheduling an instruction for an entity that already has a live
transition samples that transition at the current time and restarts from
the sampled value toward the new target.
"""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable, Dict, Hashable, Iterable, List, Optional, Tuple

import numpy as np

from treechart.config import DEFAULT_DURATION_MS
from treechart.render.diff import EXIT, Geometry, PaintInstruction

logger = logging.getLogger(__name__)

TransitionKey = Tuple[str, Hashable]  # (kind, entity_id)
Easing = Callable[[float], float]


def ease_cubic_in_out(t: float) -> float:
    t *= 2
    if t <= 1:
        return t * t * t / 2
    t -= 2
    return (t * t * t + 2) / 2


def _pad(geometry: Geometry, count: int) -> np.ndarray:
    points = np.asarray(geometry, dtype=np.float64).reshape(-1, 2)
    if len(points) < count:
        filler = np.repeat(points[-1:], count - len(points), axis=0)
        points = np.vstack([points, filler])
    return points


def interpolate_geometry(start: Geometry, end: Geometry, t: float) -> Geometry:
    """Point-wise interpolation; the shorter geometry repeats its last point."""
    count = max(len(start), len(end))
    a = _pad(start, count)
    b = _pad(end, count)
    mixed = np.nan_to_num(a + (b - a) * t)
    return tuple((float(x), float(y)) for x, y in mixed)


def _lerp(a: Optional[float], b: Optional[float], t: float) -> Optional[float]:
    if a is None or b is None:
        return b
    return a + (b - a) * t


@dataclass(frozen=True)
class Frame:
    """Sampled state of one transition."""

    geometry: Geometry
    opacity: float
    radius: Optional[float]
    removed: bool = False  # Exit finished; the painter should drop the entity


@dataclass
class Transition:
    key: TransitionKey
    start: Geometry
    end: Geometry
    opacity_from: float
    opacity_to: float
    radius_from: Optional[float]
    radius_to: Optional[float]
    started_at: float
    duration: float  # Seconds
    removes_on_end: bool
    easing: Easing = ease_cubic_in_out

    def progress(self, now: float) -> float:
        if self.duration <= 0:
            return 1.0
        return float(np.clip((now - self.started_at) / self.duration, 0.0, 1.0))

    def finished(self, now: float) -> bool:
        return self.progress(now) >= 1.0

    def sample(self, now: float) -> Frame:
        t = self.easing(self.progress(now))
        return Frame(
            geometry=interpolate_geometry(self.start, self.end, t),
            opacity=float(_lerp(self.opacity_from, self.opacity_to, t)),
            radius=_lerp(self.radius_from, self.radius_to, t),
            removed=self.removes_on_end and self.finished(now),
        )


class TransitionScheduler:
    """Holds at most one live transition per (kind, entity id)."""

    def __init__(
        self,
        duration_ms: float = DEFAULT_DURATION_MS,
        clock: Callable[[], float] = time.monotonic,
        easing: Easing = ease_cubic_in_out,
    ):
        self._tasks: Dict[TransitionKey, Transition] = {}
        self._duration = max(0.0, float(duration_ms)) / 1000.0
        self._clock = clock
        self._easing = easing
        self.interruptions = 0

    def __len__(self) -> int:
        return len(self._tasks)

    def __contains__(self, key: object) -> bool:
        return key in self._tasks

    def schedule(
        self,
        instructions: Iterable[PaintInstruction],
        now: Optional[float] = None,
        duration_ms: Optional[float] = None,
    ) -> List[Transition]:
        """Start (or restart) a transition for every instruction.

        `duration_ms` overrides the scheduler's duration for this batch.
        """
        now = self._clock() if now is None else now
        duration = self._duration if duration_ms is None else max(0.0, float(duration_ms)) / 1000.0
        started: List[Transition] = []
        interrupted = 0
        for ins in instructions:
            key = (ins.kind, ins.entity_id)
            start, opacity_from, radius_from = ins.transition_from, ins.opacity_from, ins.radius_from
            running = self._tasks.get(key)
            if running is not None and not running.finished(now):
                current = running.sample(now)
                start, opacity_from = current.geometry, current.opacity
                if current.radius is not None:
                    radius_from = current.radius
                interrupted += 1
            task = Transition(
                key=key,
                start=start,
                end=ins.transition_to,
                opacity_from=opacity_from,
                opacity_to=ins.opacity_to,
                radius_from=radius_from,
                radius_to=ins.radius_to,
                started_at=now,
                duration=duration,
                removes_on_end=ins.phase == EXIT,
                easing=self._easing,
            )
            self._tasks[key] = task
            started.append(task)
        self.interruptions += interrupted
        if interrupted:
            logger.debug("Interrupted %d running transitions", interrupted)
        return started

    def sample(self, kind: str, entity_id: Hashable, now: Optional[float] = None) -> Optional[Frame]:
        task = self._tasks.get((kind, entity_id))
        if task is None:
            return None
        return task.sample(self._clock() if now is None else now)

    def frame(self, now: Optional[float] = None) -> Dict[TransitionKey, Frame]:
        """Sample every live transition, then drop the finished ones.

        Finished exit transitions are sampled with `removed=True` and stay
        registered until `removed()` hands them to the painter; other
        finished transitions simply come to rest.
        """
        now = self._clock() if now is None else now
        frames = {key: task.sample(now) for key, task in self._tasks.items()}
        for key, task in list(self._tasks.items()):
            if task.finished(now) and not task.removes_on_end:
                del self._tasks[key]
        return frames

    def cancel(self, kind: str, entity_id: Hashable) -> bool:
        return self._tasks.pop((kind, entity_id), None) is not None

    def removed(self, now: Optional[float] = None) -> List[TransitionKey]:
        """Pop and return the keys whose exit transition has completed by `now`."""
        now = self._clock() if now is None else now
        done = [k for k, task in self._tasks.items() if task.removes_on_end and task.finished(now)]
        for key in done:
            del self._tasks[key]
        return done
