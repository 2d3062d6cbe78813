"""
Pytest configuration and shared fixtures for blobtrack tests.
"""
import pytest
import numpy as np
import cv2

from blobtrack_pkg.config import TrackerConfig
from blobtrack_pkg.localizer import Intrinsics


BACKGROUND_BGR = (128, 128, 128)
TARGET_BGR = (0, 0, 255)  # red


def draw_scene(center, radius=20, size=(240, 320), color=TARGET_BGR):
    """Gray BGR frame with one filled disk (center=None for an empty scene)."""
    h, w = size
    frame = np.full((h, w, 3), BACKGROUND_BGR, dtype=np.uint8)
    if center is not None:
        cv2.circle(frame, (int(center[0]), int(center[1])), radius, color, -1)
    return frame


@pytest.fixture
def default_config():
    """Fresh default configuration."""
    return TrackerConfig()


@pytest.fixture
def scene_frame():
    """Red disk of radius 20 centered at (100, 100)."""
    return draw_scene((100, 100))


@pytest.fixture
def moving_scene():
    """Disk moving right by 3 px per frame for 10 frames."""
    centers = [(80 + 3 * i, 120) for i in range(10)]
    return [draw_scene(c) for c in centers], centers


@pytest.fixture
def sample_intrinsics():
    """640x480 pinhole camera, no distortion."""
    return Intrinsics(width=640, height=480, fx=600.0, fy=600.0, ppx=320.0, ppy=240.0)


@pytest.fixture
def uniform_lab():
    """Small Lab frame with a single color everywhere."""
    return np.full((50, 50, 3), (150, 200, 190), dtype=np.uint8)


@pytest.fixture
def scene_video(tmp_path, moving_scene):
    """MJPG .avi of the moving disk scene."""
    frames, centers = moving_scene
    path = tmp_path / "scene.avi"
    h, w = frames[0].shape[:2]
    writer = cv2.VideoWriter(str(path), cv2.VideoWriter_fourcc(*"MJPG"), 30.0, (w, h))
    if not writer.isOpened():
        pytest.skip("OpenCV build cannot write MJPG video")
    for frame in frames:
        writer.write(frame)
    writer.release()
    return path, centers
