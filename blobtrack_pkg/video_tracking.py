"""
Offline click-to-track over recorded frames.

Use case: replaying a recording to tune tolerances and hold frames, or
extracting a 2D/3D trajectory from a video where the target's first-frame
position is known.

Example:
    >>> trajectory = track_video("ball.mp4", click=(412, 230))
    >>> print(f"Tracked {sum(r['fresh'] for r in trajectory)} frames")
"""

import json
import logging
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple, Union

import cv2
import numpy as np

from .camera import FrameBundle
from .config import TrackerConfig
from .localizer import Intrinsics
from .processing import FrameProcessor
from .tracking_types import PixelCoordinate, TrackPhase

logger = logging.getLogger(__name__)


def track_frames(
    frames: Iterable[np.ndarray],
    click: Tuple[int, int],
    config: Optional[TrackerConfig] = None,
    color_order: str = "bgr",
    depths: Optional[Iterable[Optional[np.ndarray]]] = None,
    intrinsics: Optional[Intrinsics] = None,
    click_frame: int = 0,
) -> List[Dict]:
    """
    Run the tracker over a finite frame sequence.

    Args:
        frames: HxWx3 uint8 frames
        click: (x, y) pixel clicked on frame `click_frame`
        config: tracker configuration (defaults if None)
        color_order: "bgr" or "rgb"
        depths: optional per-frame depth maps in meters, aligned to color
        intrinsics: camera intrinsics (FOV-based default from config if None)
        click_frame: index of the frame the click applies to

    Returns:
        One record per frame (see FrameResult.to_record)
    """
    config = config if config is not None else TrackerConfig()
    processor = FrameProcessor(config)
    depth_iter = iter(depths) if depths is not None else None

    records = []
    for idx, frame in enumerate(frames):
        depth = next(depth_iter, None) if depth_iter is not None else None
        if intrinsics is None:
            h, w = frame.shape[:2]
            intrinsics = Intrinsics.from_fov(w, h, config.camera.fov_deg)

        bundle = FrameBundle(index=idx, color=frame, color_order=color_order,
                             intrinsics=intrinsics, depth_m=depth)
        click_px = PixelCoordinate(int(click[0]), int(click[1])) if idx == click_frame else None
        result = processor.process(bundle, click_px)
        records.append(result.to_record())

    return records


def _read_video(cap: "cv2.VideoCapture", sample_stride: int):
    frame_idx = 0
    while True:
        ret, frame = cap.read()
        if not ret:
            break
        if frame_idx % sample_stride == 0:
            yield frame
        frame_idx += 1


def track_video(
    video_path: Union[str, Path],
    click: Tuple[int, int],
    config: Optional[TrackerConfig] = None,
    sample_stride: int = 1,
) -> List[Dict]:
    """
    Track a clicked colored object through a video file (2D only, no depth).

    Raises:
        FileNotFoundError: video does not exist
        RuntimeError: video cannot be opened
    """
    video_path = str(Path(video_path).resolve())
    if not Path(video_path).exists():
        raise FileNotFoundError(f"Video not found: {video_path}")
    if sample_stride < 1:
        raise ValueError("sample_stride must be >= 1")

    cap = cv2.VideoCapture(video_path)
    if not cap.isOpened():
        raise RuntimeError(f"Failed to open video: {video_path}")

    try:
        records = track_frames(_read_video(cap, sample_stride), click, config, color_order="bgr")
    finally:
        cap.release()

    tracked = sum(1 for r in records if r["fresh"])
    held = sum(1 for r in records if r["phase"] == TrackPhase.TRACKING.value and not r["fresh"])
    logger.info("[offline] %s: %d frames, %d tracked, %d held", video_path, len(records), tracked, held)
    return records


def save_trajectory(records: List[Dict], path: Union[str, Path]) -> None:
    with open(path, "w") as f:
        json.dump({"frames": records}, f, indent=2)
