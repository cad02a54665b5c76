"""
Exercise catalog: the tracked joint triple, the hysteresis thresholds and form checks for
each supported exercise. Built at import time and read-only afterwards.
"""
from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Callable, Optional

from .landmarks import LandmarkIdx

# Squat: below this knee angle (deg) the knee-over-toe check applies.
KNEE_TRACKING_MAX_ANGLE_DEG = 100.0
# Horizontal margin (normalized x) the knee may drift past the ankle.
KNEE_TRACKING_MARGIN = 0.05
KNEES_ALIGNED_NOTE = "Keep knees aligned with toes"

# check(angle, proximal, vertex, distal) -> note or None
PostureCheck = Callable[[float, Any, Any, Any], Optional[str]]


def knees_over_toes(angle: float, hip: Any, knee: Any, ankle: Any) -> Optional[str]:
    if angle < KNEE_TRACKING_MAX_ANGLE_DEG and knee.x > ankle.x + KNEE_TRACKING_MARGIN:
        return KNEES_ALIGNED_NOTE
    return None


@dataclass(frozen=True)
class ExerciseDefinition:
    name: str
    label: str
    description: str
    standing_guide: str
    target_landmarks: tuple[str, ...]
    joint: tuple[int, int, int]
    # Enter "contracted" below this angle (deg).
    enter_below: float
    # Count the rep when the angle rises back above this (deg).
    exit_above: float
    posture_checks: tuple[PostureCheck, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.name,
            "name": self.label,
            "description": self.description,
            "standing_guide": self.standing_guide,
            "target_landmarks": list(self.target_landmarks),
            "joint": list(self.joint),
            "enter_below": self.enter_below,
            "exit_above": self.exit_above,
        }


_ELBOW = (LandmarkIdx.LEFT_SHOULDER, LandmarkIdx.LEFT_ELBOW, LandmarkIdx.LEFT_WRIST)
_KNEE = (LandmarkIdx.LEFT_HIP, LandmarkIdx.LEFT_KNEE, LandmarkIdx.LEFT_ANKLE)

_CATALOG: dict[str, ExerciseDefinition] = {
    "squats": ExerciseDefinition(
        name="squats",
        label="Squats",
        description="Lower body strength exercise",
        standing_guide="Stand facing the camera with feet shoulder-width apart",
        target_landmarks=("hips", "knees", "ankles"),
        joint=_KNEE,
        enter_below=120.0,
        exit_above=150.0,
        posture_checks=(knees_over_toes,),
    ),
    "pushups": ExerciseDefinition(
        name="pushups",
        label="Push-ups",
        description="Upper body and core strength",
        standing_guide="Position yourself sideways to the camera in plank position",
        target_landmarks=("shoulders", "elbows", "wrists"),
        joint=_ELBOW,
        enter_below=110.0,
        exit_above=150.0,
    ),
    "bicep_curls": ExerciseDefinition(
        name="bicep_curls",
        label="Bicep Curls",
        description="Arm strength exercise",
        standing_guide="Stand sideways to the camera with arms at your sides",
        target_landmarks=("shoulders", "elbows", "wrists"),
        joint=_ELBOW,
        enter_below=110.0,
        exit_above=150.0,
    ),
}

EXERCISES = MappingProxyType(_CATALOG)


def get_exercise(name: Optional[str]) -> Optional[ExerciseDefinition]:
    if not name:
        return None
    return EXERCISES.get(name)


def list_exercises() -> list[ExerciseDefinition]:
    return list(EXERCISES.values())
