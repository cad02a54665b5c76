"""
Append-only workout history in a single JSON file ({"workouts": [...]}, oldest first).
"""
from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
from pathlib import Path
from typing import Optional, Union

from .session import WorkoutRecord

logger = logging.getLogger(__name__)

# One lock per history file, shared by every store opened on it in this process
_PATH_LOCKS: dict[str, threading.Lock] = {}
_PATH_LOCKS_GUARD = threading.Lock()


def _lock_for(path: Path) -> threading.Lock:
    key = os.path.abspath(path)
    with _PATH_LOCKS_GUARD:
        lock = _PATH_LOCKS.get(key)
        if lock is None:
            lock = _PATH_LOCKS[key] = threading.Lock()
        return lock


class WorkoutStore:
    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        self._lock = _lock_for(self.path)

    def _load(self) -> list[dict]:
        if not self.path.is_file():
            return []
        try:
            with self.path.open() as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("storage: cannot read %s (%s), treating history as empty", self.path, e)
            return []
        workouts = data.get("workouts") if isinstance(data, dict) else None
        if not isinstance(workouts, list):
            logger.warning("storage: %s has no workouts list, treating history as empty", self.path)
            return []
        return workouts

    def _write(self, workouts: list[dict]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=self.path.parent, prefix=".workouts-", suffix=".json")
        try:
            with os.fdopen(fd, "w") as f:
                json.dump({"workouts": workouts}, f, indent=2)
            os.replace(tmp_path, self.path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise

    def save(self, record: WorkoutRecord) -> None:
        with self._lock:
            workouts = self._load()
            workouts.append(record.to_dict())
            self._write(workouts)
        logger.info("storage: saved workout %s (%s, %s reps) to %s", record.id, record.exercise_type, record.reps, self.path)

    def all(self) -> list[WorkoutRecord]:
        with self._lock:
            raw = self._load()
        records: list[WorkoutRecord] = []
        for item in raw:
            try:
                records.append(WorkoutRecord.from_dict(item))
            except (KeyError, TypeError, ValueError) as e:
                logger.warning("storage: skipping malformed workout entry (%s)", e)
        return records

    def latest(self) -> Optional[WorkoutRecord]:
        records = self.all()
        return records[-1] if records else None

    def clear(self) -> None:
        with self._lock:
            if self.path.exists():
                self.path.unlink()
        logger.info("storage: cleared %s", self.path)
