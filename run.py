#!/usr/bin/env python3
"""
Rep counting from recorded landmark frames, plus workout history.
Usage:
  Replay:   python run.py --keypoints path/to/keypoints.json --exercise squats [--fps 15]
  History:  python run.py --history
  Catalog:  python run.py --list-exercises
"""
from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from typing import Any, Optional

from repsense.config import get_settings
from repsense.exercises import EXERCISES, list_exercises
from repsense.landmarks import frame_from_points
from repsense.session import WorkoutRecord, WorkoutSession
from repsense.stats import summarize
from repsense.storage import WorkoutStore

logger = logging.getLogger(__name__)

DEFAULT_FPS = 15.0


class _FrameClock:
    """Session clock driven by frame timestamps instead of wall time."""

    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


def load_keypoints(path: str) -> tuple[list[list[Any]], Optional[float]]:
    """
    Read {"frames": [{"frame": i, "keypoints": [[x, y(, z, vis)], ...]}, ...], "fps": N}.
    A bare list of keypoint lists is accepted as well. Raises ValueError for anything else.
    """
    with open(path) as f:
        data = json.load(f)
    if isinstance(data, list):
        return [fr.get("keypoints") if isinstance(fr, dict) else fr for fr in data], None
    if not isinstance(data, dict) or not isinstance(data.get("frames", []), list):
        raise ValueError("expected a list of frames or {\"frames\": [...]}")
    frames = data.get("frames", [])
    fps = data.get("fps") or data.get("fps_est")
    if fps is not None and not isinstance(fps, (int, float)):
        raise ValueError(f"fps must be a number, got {fps!r}")
    return [fr.get("keypoints") if isinstance(fr, dict) else fr for fr in frames], fps


def run_offline(
    keypoints_path: str,
    exercise: str,
    fps: Optional[float] = None,
    store: Optional[WorkoutStore] = None,
) -> WorkoutRecord:
    """Replay recorded frames through a workout session; the record is saved when a store is given."""
    frames, file_fps = load_keypoints(keypoints_path)
    fps = fps or file_fps or DEFAULT_FPS
    clock = _FrameClock()
    session = WorkoutSession(exercise, clock=clock)
    session.start()
    for i, points in enumerate(frames):
        clock.now = (i + 1) / fps
        session.process_frame(frame_from_points(points))
    record = session.stop()
    if store is not None:
        store.save(record)
    return record


def print_history(store: WorkoutStore) -> None:
    records = store.all()
    summary = summarize(records)
    print(
        f"Workouts: {summary['total_workouts']}  Reps: {summary['total_reps']}  "
        f"Minutes: {summary['total_minutes']}  Avg posture: {summary['average_posture_score']}%"
    )
    for r in records:
        notes = "; ".join(r.posture_notes) or "-"
        print(
            f"  {r.timestamp:%Y-%m-%d %H:%M}  {r.exercise_type:<12} reps={r.reps:<4} "
            f"{r.duration}s  score={r.posture_score}%  notes: {notes}"
        )


def main(argv: Optional[list[str]] = None) -> int:
    settings = get_settings()
    logging.basicConfig(level=settings.log_level, format="%(asctime)s - %(levelname)s - %(message)s")

    ap = argparse.ArgumentParser(description="Exercise rep counting from landmark frames")
    ap.add_argument("--keypoints", type=str, default=None, help="Landmark frames JSON to replay")
    ap.add_argument("--exercise", type=str, default="squats", help="Exercise id (default squats)")
    ap.add_argument("--fps", type=float, default=None, help="Frame rate of the recording")
    ap.add_argument("--no-save", action="store_true", help="Do not append the record to history")
    ap.add_argument("--history", action="store_true", help="Print stored workouts")
    ap.add_argument("--list-exercises", action="store_true", help="Print supported exercises")
    ap.add_argument("--workouts-file", type=str, default=None, help="History file (overrides REPSENSE_WORKOUTS_FILE)")
    args = ap.parse_args(argv)

    store = WorkoutStore(args.workouts_file or settings.workouts_path)

    if args.list_exercises:
        for e in list_exercises():
            print(f"{e.name:<12} {e.label} - {e.description}")
        return 0
    if args.history:
        print_history(store)
        return 0
    if not args.keypoints:
        print("Error: provide --keypoints PATH, --history or --list-exercises", file=sys.stderr)
        return 1
    if not os.path.isfile(args.keypoints):
        print(f"Error: keypoints file not found: {args.keypoints}", file=sys.stderr)
        return 1
    if args.exercise not in EXERCISES:
        logger.warning("unknown exercise %r, no reps will be counted", args.exercise)

    try:
        record = run_offline(
            args.keypoints,
            args.exercise,
            fps=args.fps,
            store=None if args.no_save else store,
        )
    except ValueError as e:
        # json.JSONDecodeError is a ValueError
        print(f"Error: cannot read keypoints file {args.keypoints}: {e}", file=sys.stderr)
        return 1
    print(
        f"Done. {record.exercise_type}: {record.reps} reps in {record.duration}s. "
        f"Posture score: {record.posture_score}%"
    )
    for note in record.posture_notes:
        print(f"  - {note}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
