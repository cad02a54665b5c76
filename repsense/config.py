"""
Runtime settings from environment variables (a local .env is loaded first).
"""
from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

DEFAULT_DATA_DIR = "outputs"
DEFAULT_MAX_FPS = 15.0
DEFAULT_MAX_SESSIONS = 100


@dataclass(frozen=True)
class Settings:
    data_dir: Path
    workouts_path: Path
    max_fps: float
    log_level: str
    max_sessions: int


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def load_settings(env_file: Optional[str] = None) -> Settings:
    load_dotenv(env_file)
    data_dir = Path(os.getenv("REPSENSE_DATA_DIR") or DEFAULT_DATA_DIR)
    workouts = os.getenv("REPSENSE_WORKOUTS_FILE")
    return Settings(
        data_dir=data_dir,
        workouts_path=Path(workouts) if workouts else data_dir / "workouts.json",
        max_fps=_env_float("REPSENSE_MAX_FPS", DEFAULT_MAX_FPS),
        log_level=(os.getenv("REPSENSE_LOG_LEVEL") or "INFO").upper(),
        max_sessions=_env_int("REPSENSE_MAX_SESSIONS", DEFAULT_MAX_SESSIONS),
    )


_settings: Optional[Settings] = None


def get_settings() -> Settings:
    global _settings
    if _settings is None:
        _settings = load_settings()
    return _settings
