from __future__ import annotations

import base64
from types import SimpleNamespace

import cv2
import numpy as np

from repsense.landmarks import Landmark
from repsense.pose import POSE_MODEL_FILENAME, decode_image, ensure_model, process_frame


def encoded_image() -> str:
    img = np.zeros((8, 12, 3), dtype=np.uint8)
    img[:, :, 2] = 255
    ok, buf = cv2.imencode(".png", img)
    assert ok
    return base64.b64encode(buf.tobytes()).decode("ascii")


def test_decode_image():
    img = decode_image(encoded_image())
    assert img.shape == (8, 12, 3)
    assert img[0, 0, 2] == 255


def test_decode_data_url():
    img = decode_image("data:image/png;base64," + encoded_image())
    assert img.shape == (8, 12, 3)


def test_decode_bad_input():
    assert decode_image(None) is None
    assert decode_image("") is None
    assert decode_image("data:image/png;base64") is None
    assert decode_image("!!!") is None


class LegacyPose:
    def __init__(self, landmarks):
        self.landmarks = landmarks

    def process(self, rgb):
        if self.landmarks is None:
            return SimpleNamespace(pose_landmarks=None)
        return SimpleNamespace(pose_landmarks=SimpleNamespace(landmark=self.landmarks))


def test_process_frame_legacy_detector():
    points = [SimpleNamespace(x=0.1 * i, y=0.2, z=0.0, visibility=0.9) for i in range(3)]
    frame = process_frame(np.zeros((4, 4, 3), dtype=np.uint8), LegacyPose(points))
    assert frame == [Landmark(0.1 * i, 0.2, 0.0, 0.9) for i in range(3)]


def test_process_frame_no_pose():
    assert process_frame(np.zeros((4, 4, 3), dtype=np.uint8), LegacyPose(None)) is None


def test_cached_model_is_reused(tmp_path, monkeypatch):
    cached = tmp_path / POSE_MODEL_FILENAME
    cached.write_bytes(b"model")

    def no_download(*args):
        raise AssertionError("model should not be downloaded again")

    monkeypatch.setattr("urllib.request.urlretrieve", no_download)
    assert ensure_model(tmp_path) == cached
