"""
History summary for the dashboard: totals, average posture score and the last few sessions.
"""
from __future__ import annotations

import math
from typing import Any, Optional, Sequence

from .session import WorkoutRecord

RECENT_WORKOUTS = 7


def _round(value: float) -> int:
    # half up, not banker's rounding
    return int(math.floor(value + 0.5))


def _avg(vals: list[float]) -> Optional[float]:
    return (sum(vals) / len(vals)) if vals else None


def summarize(records: Sequence[WorkoutRecord], recent: int = RECENT_WORKOUTS) -> dict[str, Any]:
    total_reps = sum(r.reps for r in records)
    total_seconds = sum(r.duration for r in records)
    avg_score = _avg([r.posture_score for r in records])
    tail = list(records)[-recent:] if recent > 0 else []
    return {
        "total_workouts": len(records),
        "total_reps": total_reps,
        "total_minutes": _round(total_seconds / 60),
        "average_posture_score": _round(avg_score) if avg_score is not None else 0,
        "recent": [
            {
                "exercise_type": r.exercise_type,
                "reps": r.reps,
                "minutes": _round(r.duration / 60),
                "timestamp": r.timestamp.isoformat(),
            }
            for r in tail
        ],
        "latest": records[-1].to_dict() if records else None,
    }
