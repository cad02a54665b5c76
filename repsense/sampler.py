"""
Caller-side frame rate limiting. The counter itself has no notion of time; whoever feeds
it frames decides how often.
"""
from __future__ import annotations

import time
from typing import Callable, Optional

# EMA weight of the newest interval in the FPS estimate
FPS_EMA_ALPHA = 0.1


class FrameThrottle:
    """Accepts at most `max_fps` frames per second (max_fps <= 0 disables the limit)."""

    def __init__(self, max_fps: float = 15.0, clock: Callable[[], float] = time.perf_counter):
        self.max_fps = max_fps
        self.min_interval = 1.0 / max_fps if max_fps > 0 else 0.0
        self._clock = clock
        self._last_accepted: Optional[float] = None
        self._last_seen: Optional[float] = None
        self.fps_est = float(max_fps) if max_fps > 0 else 0.0
        self.dropped = 0

    def ready(self, now: Optional[float] = None) -> bool:
        t = self._clock() if now is None else now
        if self._last_seen is not None:
            dt = t - self._last_seen
            if dt > 0:
                self.fps_est = (1 - FPS_EMA_ALPHA) * self.fps_est + FPS_EMA_ALPHA * (1.0 / dt)
        self._last_seen = t
        if self._last_accepted is not None and (t - self._last_accepted) < self.min_interval:
            self.dropped += 1
            return False
        self._last_accepted = t
        return True

    def reset(self) -> None:
        self._last_accepted = None
        self._last_seen = None
        self.dropped = 0
