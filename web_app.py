from __future__ import annotations

import asyncio
import concurrent.futures
import json
import logging
import threading
import time
import uuid
from typing import Any, Optional

from fastapi import Depends, FastAPI, HTTPException
from fastapi import WebSocket, WebSocketDisconnect
from pydantic import BaseModel, Field

from repsense.config import Settings, get_settings
from repsense.counter import RepCompleted
from repsense.exercises import list_exercises
from repsense.landmarks import Landmark, frame_from_points
from repsense.pose import create_pose_detector, decode_image, process_frame
from repsense.sampler import FrameThrottle
from repsense.session import SessionError, WorkoutSession
from repsense.stats import summarize
from repsense.storage import WorkoutStore

logger = logging.getLogger(__name__)

# Ensure counter and session logging is visible when running under uvicorn
for _name in ("repsense.counter", "repsense.session", "repsense.storage", __name__):
    logging.getLogger(_name).setLevel(get_settings().log_level)

app = FastAPI(title="RepSense")

# REST sessions (session_id -> {session, created})
_SESSIONS: dict[str, dict[str, Any]] = {}
_SESSION_LOCK = threading.Lock()

# Workout history stores (workouts_path -> store), one per file for the app lifetime
_STORES: dict[str, WorkoutStore] = {}
_STORE_LOCK = threading.Lock()

# One worker keeps frames of a live connection in arrival order and off the event loop
_LIVE_EXECUTOR = concurrent.futures.ThreadPoolExecutor(max_workers=1, thread_name_prefix="live_pose")


class LandmarkIn(BaseModel):
    x: float
    y: float
    z: float = 0.0
    visibility: Optional[float] = None


class FrameIn(BaseModel):
    landmarks: list[Optional[LandmarkIn]] = Field(default_factory=list)


class SessionIn(BaseModel):
    exercise: str


def get_store(settings: Settings = Depends(get_settings)) -> WorkoutStore:
    key = str(settings.workouts_path)
    with _STORE_LOCK:
        store = _STORES.get(key)
        if store is None:
            store = _STORES[key] = WorkoutStore(settings.workouts_path)
        return store


def _to_frame(frame: FrameIn) -> list[Optional[Landmark]]:
    return [Landmark(lm.x, lm.y, lm.z, lm.visibility) if lm is not None else None for lm in frame.landmarks]


def _get_session(session_id: str) -> WorkoutSession:
    with _SESSION_LOCK:
        entry = _SESSIONS.get(session_id)
    if not entry:
        raise HTTPException(status_code=404, detail="Session not found.")
    return entry["session"]


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


@app.get("/exercises")
def exercises() -> list[dict[str, Any]]:
    return [e.to_dict() for e in list_exercises()]


@app.post("/sessions", status_code=201)
def create_session(body: SessionIn, settings: Settings = Depends(get_settings)) -> dict[str, Any]:
    session = WorkoutSession(body.exercise)
    session.start()
    session_id = str(uuid.uuid4())
    with _SESSION_LOCK:
        while len(_SESSIONS) >= max(1, settings.max_sessions):
            oldest = min(_SESSIONS.items(), key=lambda x: x[1].get("created", 0))
            logger.info("sessions: evicting %s", oldest[0])
            del _SESSIONS[oldest[0]]
        _SESSIONS[session_id] = {"session": session, "created": time.time()}
    return {"session_id": session_id, **session.state()}


@app.get("/sessions/{session_id}")
def session_state(session_id: str) -> dict[str, Any]:
    return _get_session(session_id).state()


@app.post("/sessions/{session_id}/frames")
def push_frame(session_id: str, frame: FrameIn) -> dict[str, Any]:
    session = _get_session(session_id)
    return session.process_frame(_to_frame(frame))


@app.post("/sessions/{session_id}/reset")
def reset_session(session_id: str) -> dict[str, Any]:
    session = _get_session(session_id)
    try:
        session.start()
    except SessionError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return session.state()


@app.post("/sessions/{session_id}/stop")
def stop_session(session_id: str, store: WorkoutStore = Depends(get_store)) -> dict[str, Any]:
    session = _get_session(session_id)
    try:
        record = session.stop()
    except SessionError as e:
        raise HTTPException(status_code=409, detail=str(e))
    with _SESSION_LOCK:
        _SESSIONS.pop(session_id, None)
    store.save(record)
    return record.to_dict()


@app.get("/workouts")
def workouts(store: WorkoutStore = Depends(get_store)) -> list[dict[str, Any]]:
    return [r.to_dict() for r in store.all()]


@app.get("/workouts/latest")
def latest_workout(store: WorkoutStore = Depends(get_store)) -> dict[str, Any]:
    record = store.latest()
    if record is None:
        raise HTTPException(status_code=404, detail="No workouts yet.")
    return record.to_dict()


@app.get("/workouts/stats")
def workout_stats(store: WorkoutStore = Depends(get_store)) -> dict[str, Any]:
    return summarize(store.all())


@app.delete("/workouts", status_code=204)
def clear_workouts(store: WorkoutStore = Depends(get_store)) -> None:
    store.clear()


@app.websocket("/ws/live")
async def live_socket(
    websocket: WebSocket,
    exercise: str = "squats",
    settings: Settings = Depends(get_settings),
    store: WorkoutStore = Depends(get_store),
) -> None:
    await websocket.accept()
    rep_events: list[RepCompleted] = []
    session = WorkoutSession(exercise, on_rep=rep_events.append)
    session.start()
    throttle = FrameThrottle(settings.max_fps)
    pose = None
    frame_idx = 0
    logger.info("live: session started (%s)", exercise)
    try:
        while True:
            msg = await websocket.receive_text()
            try:
                payload = json.loads(msg)
            except json.JSONDecodeError:
                continue
            if not isinstance(payload, dict):
                continue
            if payload.get("type") == "stop":
                record = session.stop()
                if payload.get("save", True):
                    store.save(record)
                logger.info("live: stop received, rep_count=%s frames=%s", record.reps, frame_idx)
                await websocket.send_text(json.dumps({"type": "record", "record": record.to_dict()}))
                await websocket.close()
                return
            if payload.get("type") == "reset":
                session.counter.reset()
                rep_events.clear()
                await websocket.send_text(json.dumps({"type": "state", **session.state()}))
                continue

            landmarks = payload.get("landmarks")
            image_data = payload.get("image")
            if landmarks is None and not image_data:
                continue
            if not throttle.ready():
                continue

            if landmarks is not None:
                frame = frame_from_points(landmarks) if isinstance(landmarks, list) else None
            else:
                frame_bgr = decode_image(image_data) if isinstance(image_data, str) else None
                if frame_bgr is None:
                    continue
                if pose is None:
                    pose = await asyncio.get_event_loop().run_in_executor(_LIVE_EXECUTOR, create_pose_detector)

                def _detect_sync(img=frame_bgr) -> Optional[list[Optional[Landmark]]]:
                    return process_frame(img, pose)

                frame = await asyncio.get_event_loop().run_in_executor(_LIVE_EXECUTOR, _detect_sync)

            state = await asyncio.get_event_loop().run_in_executor(
                _LIVE_EXECUTOR, session.process_frame, frame
            )
            frame_idx += 1
            while rep_events:
                event = rep_events.pop(0)
                await websocket.send_text(json.dumps({"type": "rep", "rep_count": event.rep_count}))
            await websocket.send_text(
                json.dumps({"type": "state", **state, "fps_est": round(throttle.fps_est, 1)})
            )
    except WebSocketDisconnect:
        logger.info("live: client disconnected (frames=%s, rep_count=%s)", frame_idx, session.counter.reps)
        return
    except Exception as e:
        # Normal client close (e.g. code 1000) can surface as ConnectionClosedError from websockets
        if "ConnectionClosed" in type(e).__name__ or "1000" in str(e):
            logger.info("live: connection closed (frames=%s, rep_count=%s)", frame_idx, session.counter.reps)
            return
        raise


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("web_app:app", host="0.0.0.0", port=8000, reload=True)
