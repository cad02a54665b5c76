"""
Workout session: wraps a RepCounter with start/stop timing and produces the
immutable WorkoutRecord when the session ends.
"""
from __future__ import annotations

import logging
import math
import time
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Iterable, Optional, Sequence

from .counter import RepCounter, RepListener

logger = logging.getLogger(__name__)

# Posture score: 100 minus a penalty per distinct note, floored.
POSTURE_SCORE_MAX = 100
POSTURE_SCORE_MIN = 70
POSTURE_NOTE_PENALTY = 5


class SessionError(RuntimeError):
    pass


def posture_score(notes: Iterable[str]) -> int:
    distinct = len(dict.fromkeys(notes))
    return max(POSTURE_SCORE_MIN, POSTURE_SCORE_MAX - POSTURE_NOTE_PENALTY * distinct)


@dataclass(frozen=True)
class WorkoutRecord:
    id: str
    exercise_type: str
    reps: int
    duration: int
    timestamp: datetime
    posture_score: int
    posture_notes: tuple[str, ...] = field(default_factory=tuple)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "exercise_type": self.exercise_type,
            "reps": self.reps,
            "duration": self.duration,
            "timestamp": self.timestamp.isoformat(),
            "posture_score": self.posture_score,
            "posture_notes": list(self.posture_notes),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "WorkoutRecord":
        ts = datetime.fromisoformat(data["timestamp"])
        if ts.tzinfo is None:
            ts = ts.replace(tzinfo=timezone.utc)
        return cls(
            id=str(data["id"]),
            exercise_type=str(data["exercise_type"]),
            reps=int(data["reps"]),
            duration=int(data["duration"]),
            timestamp=ts,
            posture_score=int(data["posture_score"]),
            posture_notes=tuple(dict.fromkeys(data.get("posture_notes") or [])),
        )


class WorkoutSession:
    """
    One workout of one exercise. start() resets the counter; frames are only
    counted while the session is running; stop() returns the record exactly once.
    """

    def __init__(
        self,
        exercise: str,
        clock: Callable[[], float] = time.time,
        on_rep: Optional[RepListener] = None,
    ):
        self.exercise = exercise
        self.counter = RepCounter(exercise)
        self._clock = clock
        self._start_time: Optional[float] = None
        self.record: Optional[WorkoutRecord] = None
        if on_rep is not None:
            self.counter.add_listener(on_rep)

    @property
    def active(self) -> bool:
        return self._start_time is not None and self.record is None

    def start(self) -> None:
        if self.record is not None:
            raise SessionError("session already finished")
        self.counter.reset()
        self._start_time = self._clock()
        logger.info("session: started %s", self.exercise)

    def elapsed(self) -> float:
        if self._start_time is None:
            return 0.0
        return max(0.0, self._clock() - self._start_time)

    def process_frame(self, landmarks: Optional[Sequence[Any]]) -> dict[str, Any]:
        if not self.active:
            state = self.counter.snapshot()
            state["status"] = "Finished" if self.record is not None else "Not started"
            return state
        return self.counter.process(landmarks)

    def state(self) -> dict[str, Any]:
        state = self.counter.snapshot()
        state["active"] = self.active
        state["elapsed_sec"] = round(self.elapsed(), 1) if self.active else None
        return state

    def stop(self) -> WorkoutRecord:
        if not self.active:
            raise SessionError("session is not running")
        duration = int(math.floor(self.elapsed() + 0.5))
        notes = tuple(self.counter.posture_notes)
        self.record = WorkoutRecord(
            id=str(uuid.uuid4()),
            exercise_type=self.exercise,
            reps=self.counter.reps,
            duration=duration,
            timestamp=datetime.now(timezone.utc),
            posture_score=posture_score(notes),
            posture_notes=notes,
        )
        logger.info(
            "session: finished %s reps=%s duration=%ss score=%s",
            self.exercise, self.record.reps, duration, self.record.posture_score,
        )
        return self.record
