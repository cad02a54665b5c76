"""
Incremental rep counting from one joint angle per frame.
Two phases with a hysteresis gap: enter CONTRACTED below `enter_below`, count the rep
when the angle rises back above `exit_above`. Form checks run on every frame and only
add notes; they never gate the count.
"""
from __future__ import annotations

import logging
import math
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Optional, Sequence

from .angles import angle_at
from .exercises import ExerciseDefinition, get_exercise
from .landmarks import get_landmark

logger = logging.getLogger(__name__)


class Phase(str, Enum):
    RESTING = "resting"
    CONTRACTED = "contracted"


@dataclass(frozen=True)
class RepCompleted:
    exercise: str
    rep_count: int


RepListener = Callable[[RepCompleted], None]


class RepCounter:
    """
    Per-session rep state for one exercise.
    Frames must arrive in order. Every read and update, including the listener list,
    holds one lock; listeners themselves are called outside it.
    Malformed frames and unknown exercises are no-ops, nothing is raised.
    """

    def __init__(
        self,
        exercise: str,
        definition: Optional[ExerciseDefinition] = None,
    ):
        self.exercise = exercise
        self.definition = definition if definition is not None else get_exercise(exercise)
        if self.definition is None:
            logger.warning("rep_counter: no configuration for exercise %r, frames will be ignored", exercise)
        self._lock = threading.Lock()
        self._listeners: list[RepListener] = []
        self._phase = Phase.RESTING
        self._reps = 0
        self._notes: dict[str, None] = {}
        self._angle: Optional[float] = None

    @property
    def reps(self) -> int:
        with self._lock:
            return self._reps

    @property
    def phase(self) -> Phase:
        with self._lock:
            return self._phase

    @property
    def posture_notes(self) -> list[str]:
        with self._lock:
            return list(self._notes)

    @property
    def angle(self) -> Optional[float]:
        with self._lock:
            return self._angle

    def add_listener(self, listener: RepListener) -> None:
        with self._lock:
            self._listeners.append(listener)

    def remove_listener(self, listener: RepListener) -> None:
        with self._lock:
            if listener in self._listeners:
                self._listeners.remove(listener)

    def reset(self) -> None:
        with self._lock:
            self._phase = Phase.RESTING
            self._reps = 0
            self._notes.clear()
            self._angle = None

    def snapshot(self) -> dict[str, Any]:
        with self._lock:
            return self._state("Tracking" if self.definition is not None else "Unknown exercise")

    def process(self, landmarks: Optional[Sequence[Any]]) -> dict[str, Any]:
        """
        Consume one landmark frame. Returns the current state:
        exercise, rep_count, phase, angle, posture_notes, status.
        """
        event: Optional[RepCompleted] = None
        with self._lock:
            cfg = self.definition
            if cfg is None:
                return self._state("Unknown exercise")
            proximal_idx, vertex_idx, distal_idx = cfg.joint
            proximal = get_landmark(landmarks, proximal_idx)
            vertex = get_landmark(landmarks, vertex_idx)
            distal = get_landmark(landmarks, distal_idx)
            if proximal is None or vertex is None or distal is None:
                return self._state("No pose")

            angle = angle_at(proximal, vertex, distal)
            self._angle = angle
            status = "Extended" if self._phase is Phase.RESTING else "Contracted"

            if self._phase is Phase.RESTING:
                if angle < cfg.enter_below:
                    self._phase = Phase.CONTRACTED
                    status = "Contracted"
                    logger.debug("rep_counter: %s contracted at %.1f deg", self.exercise, angle)
            elif angle > cfg.exit_above:
                self._phase = Phase.RESTING
                self._reps += 1
                status = "Rep confirmed"
                event = RepCompleted(self.exercise, self._reps)
                logger.info("rep_counter: %s rep %s (angle=%.1f)", self.exercise, self._reps, angle)

            for check in cfg.posture_checks:
                note = check(angle, proximal, vertex, distal)
                if note and note not in self._notes:
                    self._notes[note] = None
                    logger.info("rep_counter: %s posture note %r", self.exercise, note)

            state = self._state(status)

        if event is not None:
            self._notify(event)
        return state

    def _state(self, status: str) -> dict[str, Any]:
        return {
            "exercise": self.exercise,
            "rep_count": self._reps,
            "phase": self._phase.value,
            "angle": self._angle if self._angle is not None and math.isfinite(self._angle) else None,
            "posture_notes": list(self._notes),
            "status": status,
        }

    def _notify(self, event: RepCompleted) -> None:
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(event)
            except Exception:
                logger.exception("rep_counter: listener failed for %s rep %s", event.exercise, event.rep_count)
