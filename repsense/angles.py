"""
Joint angle from three landmarks (x/y only; z and visibility are ignored).
"""
from __future__ import annotations

import math
from typing import Any


def angle_at(a: Any, b: Any, c: Any) -> float:
    """
    Unsigned angle at vertex b between rays b->a and b->c, in degrees [0, 180].
    Coincident points are not trapped: atan2(0, 0) gives 0 and NaN coordinates give NaN.
    """
    radians = math.atan2(c.y - b.y, c.x - b.x) - math.atan2(a.y - b.y, a.x - b.x)
    angle = abs(math.degrees(radians))
    if angle > 180.0:
        angle = 360.0 - angle
    return angle
