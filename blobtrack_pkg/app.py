"""
Live tracking application (consumer side).

The producer thread publishes frames into a LatestFrameSlot; this loop polls
it without blocking, applies the latest staged click, advances the tracker
and renders. Tracker state is only touched from this loop.

Controls:
    left click  - calibrate on the clicked color and start tracking
    r           - reset tracker
    q / ESC     - quit
"""
import logging
import time
from typing import Optional

import cv2

from .camera import FrameSource, make_source
from .config import TrackerConfig
from .handoff import ClickMailbox, LatestFrameSlot, PointerState
from .overlay import describe, render_frame, render_mask
from .processing import FrameProcessor, FrameResult

logger = logging.getLogger(__name__)

MASK_WINDOW = "Mask"


class TrackerApp:
    """Wires the frame source, UI input, processor and preview window."""

    def __init__(self, config: TrackerConfig, source: Optional[FrameSource] = None):
        self.config = config
        self.slot = LatestFrameSlot()
        self.source = source if source is not None else make_source(config.camera, self.slot)
        self.source.slot = self.slot
        self.processor = FrameProcessor(config)
        self.clicks = ClickMailbox()
        self.pointer = PointerState()
        self.last_result: Optional[FrameResult] = None
        self.frames_processed = 0

    # ------------------------------------------------------------------
    # UI wiring
    # ------------------------------------------------------------------

    def on_mouse(self, event, x, y, flags, userdata=None):
        """HighGUI mouse callback: pointer moves and left clicks."""
        self.pointer.move(x, y)
        if event == cv2.EVENT_LBUTTONDOWN:
            self.clicks.post(self.pointer.position)

    def _create_trackbars(self, window: str):
        color = self.config.color
        det = self.config.detector

        def setter(section, name, scale=1.0, floor=None):
            def _cb(value):
                if floor is not None:
                    value = max(floor, value)
                setattr(section, name, value / scale if scale != 1.0 else value)
            return _cb

        cv2.createTrackbar("L* Th", window, int(color.lightness_tolerance), 255,
                           setter(color, "lightness_tolerance"))
        cv2.createTrackbar("a*, b* Th", window, int(color.chroma_tolerance), 255,
                           setter(color, "chroma_tolerance"))
        cv2.createTrackbar("dilate it", window, int(color.dilate_radius), 21,
                           setter(color, "dilate_radius"))
        cv2.createTrackbar("minConvex", window, int(det.convexity_min * 100), 100,
                           setter(det, "convexity_min", 100.0, floor=1))
        cv2.createTrackbar("minCircle", window, int(det.circularity_min * 100), 100,
                           setter(det, "circularity_min", 100.0, floor=1))
        cv2.createTrackbar("minInertia", window, int(det.inertia_min * 100), 100,
                           setter(det, "inertia_min", 100.0, floor=1))

    def _open_windows(self):
        name = self.config.display.window_name
        cv2.namedWindow(name, cv2.WINDOW_AUTOSIZE)
        cv2.setMouseCallback(name, self.on_mouse)
        if self.config.display.show_mask:
            cv2.namedWindow(MASK_WINDOW, cv2.WINDOW_AUTOSIZE)
            self._create_trackbars(MASK_WINDOW)

    # ------------------------------------------------------------------
    # Consumer loop
    # ------------------------------------------------------------------

    def poll_once(self) -> Optional[FrameResult]:
        """One consumer iteration; None when no new frame was ready."""
        self.source.check()
        bundle = self.slot.poll()
        if bundle is None:
            return None

        click = self.clicks.take()
        result = self.processor.process(bundle, click)
        self.last_result = result
        self.frames_processed += 1

        if self.config.display.enabled:
            self._show(bundle, result)
        return result

    def _show(self, bundle, result: FrameResult):
        frame = bundle.color
        if bundle.color_order == "rgb":
            frame = cv2.cvtColor(frame, cv2.COLOR_RGB2BGR)
        lines = [f"Color: {frame.shape[1]}x{frame.shape[0]}"]
        lines += describe(result.update, result.localization, result.tilt, result.step_m)
        show_mask = self.config.display.show_mask and result.mask is not None
        vis = render_frame(frame, result.update, lines,
                           mask=result.mask if show_mask else None,
                           cross_half_size=self.config.display.cross_half_size)
        cv2.imshow(self.config.display.window_name, vis)
        if show_mask:
            cv2.imshow(MASK_WINDOW, render_mask(result.mask, result.candidates))

    def _handle_key(self, key: int) -> bool:
        """Return False to quit."""
        if key in (ord("q"), 27):
            return False
        if key == ord("r"):
            self.processor.tracker.reset()
        return True

    def run(self, max_frames: Optional[int] = None) -> int:
        """Run until quit, end of stream or max_frames. Returns frames processed."""
        if self.config.display.enabled:
            self._open_windows()

        self.source.start()
        try:
            while True:
                # Read before polling: once set, nothing more will be published
                finished = self.source.finished.is_set()
                result = self.poll_once()
                if result is None:
                    if finished:
                        break
                    time.sleep(0.001)
                if self.config.display.enabled:
                    if not self._handle_key(cv2.waitKey(1) & 0xFF):
                        break
                if max_frames is not None and self.frames_processed >= max_frames:
                    break
        finally:
            self.source.stop()
            if self.config.display.enabled:
                cv2.destroyAllWindows()

        logger.info("[app] processed %d frames (%d dropped by hand-off)",
                    self.frames_processed, self.slot.dropped)
        return self.frames_processed
