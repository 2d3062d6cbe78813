"""
Frame sources (producer side).

Each source runs a background thread that pulls frames, preprocesses them and
publishes a FrameBundle into a LatestFrameSlot. Stopping is cooperative: the
thread checks a threading.Event every iteration and is joined by stop().

Acquisition failures are fatal: stream start errors are raised from start(),
errors inside the thread are stored on `error` for the consumer to re-raise.
"""
import logging
import threading
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Tuple

import cv2
import numpy as np

from .config import CameraConfig
from .handoff import LatestFrameSlot
from .localizer import Intrinsics

logger = logging.getLogger(__name__)


@dataclass
class FrameBundle:
    """Co-timed color + depth, ready for the consumer."""
    index: int
    color: np.ndarray  # HxWx3 uint8
    color_order: str  # "rgb" or "bgr"
    intrinsics: Intrinsics
    depth_m: Optional[np.ndarray] = None  # HxW float32 meters, aligned to color
    accel: Optional[Tuple[float, float, float]] = None
    timestamp: float = 0.0


class FrameSource:
    """Base class: owns the producer thread and the hand-off slot."""

    name = "source"

    def __init__(self, config: CameraConfig, slot: Optional[LatestFrameSlot] = None):
        self.config = config
        self.slot = slot if slot is not None else LatestFrameSlot()
        self.error: Optional[BaseException] = None
        self.finished = threading.Event()
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._index = 0

    def _open(self):
        raise NotImplementedError

    def _close(self):
        pass

    def _grab(self) -> Optional[FrameBundle]:
        """Return the next bundle, None if nothing is ready yet."""
        raise NotImplementedError

    def start(self):
        self._open()
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name=f"{self.name}-producer", daemon=True)
        self._thread.start()
        logger.info("[camera] %s started", self.name)
        return self

    def _run(self):
        try:
            while not self._stop.is_set() and not self.finished.is_set():
                bundle = self._grab()
                if bundle is None:
                    time.sleep(0.001)
                    continue
                self.slot.publish(bundle)
        except Exception as e:
            logger.error("[camera] %s producer failed: %s", self.name, e)
            self.error = e
        finally:
            self._close()

    def stop(self):
        self._stop.set()
        if self._thread is not None:
            self._thread.join()
            self._thread = None
        logger.info("[camera] %s stopped (%d frames published, %d dropped)",
                    self.name, self.slot.published, self.slot.dropped)

    def check(self):
        """Re-raise a producer failure in the consumer thread."""
        if self.error is not None:
            raise RuntimeError(f"{self.name} acquisition failed: {self.error}") from self.error

    def __enter__(self):
        return self.start()

    def __exit__(self, exc_type, exc, tb):
        self.stop()


class RealSenseSource(FrameSource):
    """
    Intel RealSense color + depth (+ accel when available).

    Depth is aligned to the color stream, then optionally filtered in the
    disparity domain (spatial with hole filling, then temporal) so that far
    objects are smoothed proportionally.
    """

    name = "realsense"

    def __init__(self, config: CameraConfig, slot: Optional[LatestFrameSlot] = None):
        super().__init__(config, slot)
        self._rs = None
        self._pipe = None
        self._align = None
        self._filters = []
        self._depth_scale = 0.001
        self._intrinsics: Optional[Intrinsics] = None

    def _start_pipeline(self, with_accel: bool):
        rs = self._rs
        cfg = rs.config()
        if self.config.serial:
            cfg.enable_device(self.config.serial)
        c = self.config
        cfg.enable_stream(rs.stream.depth, c.width, c.height, rs.format.z16, c.fps)
        cfg.enable_stream(rs.stream.color, c.width, c.height, rs.format.rgb8, c.fps)
        if with_accel:
            cfg.enable_stream(rs.stream.accel, rs.format.motion_xyz32f)
        return self._pipe.start(cfg)

    def _open(self):
        try:
            import pyrealsense2 as rs
        except ImportError as e:
            raise RuntimeError(
                "pyrealsense2 not installed. Install with: pip install 'blobtrack[realsense]'"
            ) from e
        self._rs = rs
        self._pipe = rs.pipeline()

        try:
            profile = self._start_pipeline(with_accel=True)
        except RuntimeError as e:
            logger.warning("[camera] accel stream unavailable (%s), continuing without IMU", e)
            profile = self._start_pipeline(with_accel=False)

        sensor = profile.get_device().first_depth_sensor()
        self._depth_scale = float(sensor.get_depth_scale())
        if sensor.supports(rs.option.visual_preset):
            sensor.set_option(rs.option.visual_preset, int(rs.rs400_visual_preset.high_accuracy))

        color_profile = profile.get_stream(rs.stream.color).as_video_stream_profile()
        self._intrinsics = Intrinsics.from_realsense(color_profile.get_intrinsics())
        self._align = rs.align(rs.stream.color)

        if self.config.use_filters:
            spat = rs.spatial_filter()
            spat.set_option(rs.option.holes_fill, self.config.hole_fill)
            self._filters = [
                rs.disparity_transform(True),
                spat,
                rs.temporal_filter(),
                rs.disparity_transform(False),
            ]
        logger.info("[camera] RealSense %dx%d@%d, depth scale %.5f, filters %s",
                    self.config.width, self.config.height, self.config.fps,
                    self._depth_scale, "on" if self._filters else "off")

    def _close(self):
        if self._pipe is not None:
            try:
                self._pipe.stop()
            except RuntimeError as e:
                logger.warning("[camera] pipeline stop failed: %s", e)
            self._pipe = None

    def _grab(self) -> Optional[FrameBundle]:
        frames = self._pipe.poll_for_frames()
        if not frames:
            return None

        frames = self._align.process(frames)
        depth = frames.get_depth_frame()
        color = frames.get_color_frame()
        if not depth or not color:
            return None

        for f in self._filters:
            depth = f.process(depth)
        depth = depth.as_depth_frame()

        accel = None
        motion = frames.first_or_default(self._rs.stream.accel)
        if motion:
            data = motion.as_motion_frame().get_motion_data()
            accel = (float(data.x), float(data.y), float(data.z))

        depth_m = np.asanyarray(depth.get_data()).astype(np.float32) * self._depth_scale
        bundle = FrameBundle(
            index=self._index,
            color=np.asanyarray(color.get_data()).copy(),
            color_order="rgb",
            intrinsics=self._intrinsics,
            depth_m=depth_m,
            accel=accel,
            timestamp=time.time(),
        )
        self._index += 1
        return bundle


class VideoSource(FrameSource):
    """
    OpenCV video file or webcam. No depth: every localization reports
    invalid depth, tracking still works in 2D.
    """

    name = "video"

    def __init__(self, config: CameraConfig, slot: Optional[LatestFrameSlot] = None, realtime: bool = True):
        super().__init__(config, slot)
        self.realtime = realtime
        self._cap = None
        self._intrinsics: Optional[Intrinsics] = None
        self._period = 0.0
        self._next_time = 0.0

    def _open(self):
        target = self.config.video_path
        if target is None:
            raise ValueError("video source requires camera.video_path (file or webcam index)")
        if str(target).isdigit():
            self._cap = cv2.VideoCapture(int(target))
        else:
            if not Path(target).exists():
                raise FileNotFoundError(f"Video not found: {target}")
            self._cap = cv2.VideoCapture(str(target))
        if not self._cap.isOpened():
            raise RuntimeError(f"Failed to open video: {target}")

        width = int(self._cap.get(cv2.CAP_PROP_FRAME_WIDTH))
        height = int(self._cap.get(cv2.CAP_PROP_FRAME_HEIGHT))
        fps = self._cap.get(cv2.CAP_PROP_FPS) or self.config.fps
        self._period = 1.0 / fps if self.realtime and fps > 0 else 0.0
        self._intrinsics = Intrinsics.from_fov(width, height, self.config.fov_deg)
        logger.info("[camera] video %s: %dx%d @ %.1f fps", target, width, height, fps)

    def _close(self):
        if self._cap is not None:
            self._cap.release()
            self._cap = None

    def _grab(self) -> Optional[FrameBundle]:
        if self._period:
            now = time.time()
            if now < self._next_time:
                return None
            self._next_time = now + self._period

        ok, frame = self._cap.read()
        if not ok:
            logger.info("[camera] end of video after %d frames", self._index)
            self.finished.set()
            return None

        bundle = FrameBundle(
            index=self._index,
            color=frame,
            color_order="bgr",
            intrinsics=self._intrinsics,
            timestamp=time.time(),
        )
        self._index += 1
        return bundle


def make_source(config: CameraConfig, slot: Optional[LatestFrameSlot] = None) -> FrameSource:
    """Build the frame source named by config.source."""
    if config.source == "realsense":
        return RealSenseSource(config, slot)
    if config.source == "video":
        return VideoSource(config, slot)
    raise ValueError(f"Unknown source: {config.source} (expected realsense or video)")
