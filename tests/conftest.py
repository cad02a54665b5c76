from __future__ import annotations

import math
from typing import Optional

from repsense.landmarks import NUM_LANDMARKS, Landmark, LandmarkIdx

KNEE = (LandmarkIdx.LEFT_HIP, LandmarkIdx.LEFT_KNEE, LandmarkIdx.LEFT_ANKLE)
ELBOW = (LandmarkIdx.LEFT_SHOULDER, LandmarkIdx.LEFT_ELBOW, LandmarkIdx.LEFT_WRIST)


def make_frame(
    angle_deg: float,
    joint: tuple[int, int, int] = KNEE,
    vertex: tuple[float, float] = (0.5, 0.5),
    distal_offset: tuple[float, float] = (0.0, 0.3),
) -> list[Optional[Landmark]]:
    """
    33-point frame where the angle at joint[1] equals angle_deg.
    The distal point sits at vertex + distal_offset; the proximal point is that offset
    rotated by angle_deg around the vertex.
    """
    frame: list[Optional[Landmark]] = [Landmark(0.5, 0.5, 0.0, 0.9) for _ in range(NUM_LANDMARKS)]
    ux, uy = distal_offset
    t = math.radians(angle_deg)
    px = ux * math.cos(t) - uy * math.sin(t)
    py = ux * math.sin(t) + uy * math.cos(t)
    vx, vy = vertex
    proximal_idx, vertex_idx, distal_idx = joint
    frame[proximal_idx] = Landmark(vx + px, vy + py, 0.0, 0.9)
    frame[vertex_idx] = Landmark(vx, vy, 0.0, 0.9)
    frame[distal_idx] = Landmark(vx + ux, vy + uy, 0.0, 0.9)
    return frame


def frame_points(frame: list[Optional[Landmark]]) -> list[Optional[list[float]]]:
    return [lm.to_list() if lm is not None else None for lm in frame]
