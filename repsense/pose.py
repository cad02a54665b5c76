"""
MediaPipe Pose adapter. Turns one BGR image into a normalized landmark frame.
Uses the Pose Landmarker task (MediaPipe 0.10+), CPU-only; the older solutions API
is used only when the task API cannot be loaded.
"""
from __future__ import annotations

import base64
import binascii
import logging
import urllib.request
from pathlib import Path
from typing import Optional, Union

import cv2
import numpy as np

from .config import get_settings
from .landmarks import Landmark, frame_from_points

logger = logging.getLogger(__name__)

# Lite model: fast enough for 15 Hz on CPU
POSE_MODEL_URL = (
    "https://storage.googleapis.com/mediapipe-models/pose_landmarker/"
    "pose_landmarker_lite/float16/1/pose_landmarker_lite.task"
)
POSE_MODEL_FILENAME = "pose_landmarker_lite.task"
# Detection, presence and tracking confidence
MIN_POSE_CONFIDENCE = 0.5


def ensure_model(model_dir: Union[str, Path, None] = None) -> Path:
    """Path of the cached landmarker model under the data dir; downloaded on first use."""
    model_dir = Path(model_dir) if model_dir is not None else get_settings().data_dir
    model_dir.mkdir(parents=True, exist_ok=True)
    path = model_dir / POSE_MODEL_FILENAME
    if not path.is_file():
        logger.info("pose: fetching %s", POSE_MODEL_URL)
        urllib.request.urlretrieve(POSE_MODEL_URL, str(path))
    return path


def create_pose_detector(model_dir: Union[str, Path, None] = None):
    """Single-pose image-mode landmarker, or the legacy Pose solution as a fallback."""
    try:
        from mediapipe.tasks.python.core import base_options
        from mediapipe.tasks.python.vision import PoseLandmarker, PoseLandmarkerOptions
        from mediapipe.tasks.python.vision.core import vision_task_running_mode

        options = PoseLandmarkerOptions(
            base_options=base_options.BaseOptions(model_asset_path=str(ensure_model(model_dir))),
            running_mode=vision_task_running_mode.VisionTaskRunningMode.IMAGE,
            num_poses=1,
            min_pose_detection_confidence=MIN_POSE_CONFIDENCE,
            min_pose_presence_confidence=MIN_POSE_CONFIDENCE,
            min_tracking_confidence=MIN_POSE_CONFIDENCE,
        )
        return PoseLandmarker.create_from_options(options)
    except Exception as e:
        logger.warning("pose: landmarker task unavailable (%s), falling back to mp.solutions.pose", e)
        import mediapipe as mp

        return mp.solutions.pose.Pose(
            min_detection_confidence=MIN_POSE_CONFIDENCE,
            min_tracking_confidence=MIN_POSE_CONFIDENCE,
        )


def process_frame(
    frame_bgr: np.ndarray,
    pose,  # PoseLandmarker or legacy mp.solutions.pose.Pose
) -> Optional[list[Optional[Landmark]]]:
    """
    Run pose estimation on one BGR frame.
    Returns 33 normalized landmarks (x, y, z, visibility), or None if no pose.
    """
    rgb = cv2.cvtColor(frame_bgr, cv2.COLOR_BGR2RGB)

    if hasattr(pose, "detect"):
        from mediapipe.tasks.python.vision.core import image as mp_image
        mp_img = mp_image.Image(image_format=mp_image.ImageFormat.SRGB, data=rgb)
        result = pose.detect(mp_img)
        return frame_from_points(result.pose_landmarks[0]) if result.pose_landmarks else None
    results = pose.process(rgb)
    if not results.pose_landmarks:
        return None
    return frame_from_points(results.pose_landmarks.landmark)


def decode_image(data: Optional[str]) -> Optional[np.ndarray]:
    """Decode a base64 (optionally data-URL) encoded image into a BGR array."""
    if not data:
        return None
    if data.startswith("data:"):
        data = data.split(",", 1)[1] if "," in data else ""
    try:
        img_bytes = base64.b64decode(data, validate=False)
    except (binascii.Error, ValueError):
        return None
    if not img_bytes:
        return None
    np_arr = np.frombuffer(img_bytes, np.uint8)
    return cv2.imdecode(np_arr, cv2.IMREAD_COLOR)
