"""
Landmark frame types. Frames are ordered lists indexed by the MediaPipe Pose numbering;
coordinates are normalized to the image (0..1).
"""
from __future__ import annotations

import math
import numbers
from dataclasses import dataclass
from typing import Any, Optional, Sequence

NUM_LANDMARKS = 33


# MediaPipe Pose landmark indices (same as PoseLandmark)
class LandmarkIdx:
    NOSE = 0
    LEFT_SHOULDER = 11
    RIGHT_SHOULDER = 12
    LEFT_ELBOW = 13
    RIGHT_ELBOW = 14
    LEFT_WRIST = 15
    RIGHT_WRIST = 16
    LEFT_HIP = 23
    RIGHT_HIP = 24
    LEFT_KNEE = 25
    RIGHT_KNEE = 26
    LEFT_ANKLE = 27
    RIGHT_ANKLE = 28
    LEFT_HEEL = 29
    RIGHT_HEEL = 30
    LEFT_FOOT_INDEX = 31
    RIGHT_FOOT_INDEX = 32


@dataclass(frozen=True)
class Landmark:
    x: float
    y: float
    z: float = 0.0
    visibility: Optional[float] = None

    def to_list(self) -> list[float]:
        out = [round(self.x, 4), round(self.y, 4), round(self.z, 4)]
        if self.visibility is not None:
            out.append(round(self.visibility, 4))
        return out


Frame = Sequence[Optional[Landmark]]


def get_landmark(frame: Optional[Sequence[Any]], idx: int) -> Optional[Any]:
    """Landmark at idx, or None if the frame is short or the point is missing/non-numeric."""
    if frame is None or idx < 0:
        return None
    try:
        if idx >= len(frame):
            return None
        lm = frame[idx]
    except (TypeError, KeyError, IndexError):
        # not an indexable sequence (generator, scalar, mapping)
        return None
    if lm is None:
        return None
    try:
        x = getattr(lm, "x", None)
        y = getattr(lm, "y", None)
    except Exception:
        return None
    if isinstance(x, bool) or isinstance(y, bool):
        return None
    if not isinstance(x, numbers.Real) or not isinstance(y, numbers.Real):
        return None
    return lm


def landmark_from_obj(obj: Any) -> Optional[Landmark]:
    """
    Build a Landmark from [x, y], [x, y, z], [x, y, z, visibility], a dict with x/y keys,
    or any object with x/y attributes (e.g. a MediaPipe NormalizedLandmark).
    Returns None for anything unusable.
    """
    if obj is None:
        return None
    if isinstance(obj, Landmark):
        return obj
    if hasattr(obj, "tolist"):
        # numpy keypoint row
        obj = obj.tolist()
    try:
        if isinstance(obj, (list, tuple)):
            if len(obj) < 2:
                return None
            x, y = float(obj[0]), float(obj[1])
            z = float(obj[2]) if len(obj) > 2 and obj[2] is not None else 0.0
            vis = float(obj[3]) if len(obj) > 3 and obj[3] is not None else None
        elif isinstance(obj, dict):
            if "x" not in obj or "y" not in obj:
                return None
            x, y = float(obj["x"]), float(obj["y"])
            z = float(obj.get("z") or 0.0)
            vis = obj.get("visibility")
            vis = float(vis) if vis is not None else None
        else:
            x, y = float(obj.x), float(obj.y)
            z = float(getattr(obj, "z", 0.0) or 0.0)
            vis = getattr(obj, "visibility", None)
            vis = float(vis) if vis is not None else None
    except (TypeError, ValueError, AttributeError):
        return None
    if not (math.isfinite(x) and math.isfinite(y)):
        return None
    return Landmark(x, y, z, vis)


def frame_from_points(points: Optional[Sequence[Any]]) -> list[Optional[Landmark]]:
    """Convert a raw list of points (JSON, MediaPipe result) into a landmark frame."""
    if points is None:
        return []
    try:
        return [landmark_from_obj(p) for p in points]
    except TypeError:
        return []
