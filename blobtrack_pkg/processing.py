"""
Per-frame consumer step shared by the live app and offline tracking.

    click (optional) -> Lab -> mask -> candidates -> tracker step -> localize
"""
import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple

import numpy as np

from .camera import FrameBundle
from .color_model import to_lab
from .config import TrackerConfig
from .detector import BlobDetector
from .imu import tilt_from_accel
from .localizer import Localization, ReferenceFrameTransform, displacement, localize, sample_depth
from .tracker import BlobTracker, TrackUpdate
from .tracking_types import Candidate, PixelCoordinate

logger = logging.getLogger(__name__)


@dataclass
class FrameResult:
    """Everything the renderer (or a trajectory writer) needs for one frame."""
    index: int
    update: TrackUpdate
    candidates: List[Candidate]
    mask: Optional[np.ndarray] = None
    localization: Optional[Localization] = None
    tilt: Optional[Tuple[float, float]] = None
    step_m: Optional[float] = None  # displacement since the previous valid point

    def to_record(self) -> dict:
        """Flat JSON-friendly record."""
        rec = {
            "frame": self.index,
            "phase": self.update.phase.value,
            "status": self.update.status,
            "fresh": self.update.fresh,
            "hold": self.update.hold_frames_remaining,
            "num_candidates": len(self.candidates),
        }
        if self.update.target is not None:
            rec["u"] = self.update.target.x
            rec["v"] = self.update.target.y
        loc = self.localization
        if loc is not None:
            rec["depth_m"] = loc.depth_m
            rec["valid_depth"] = loc.valid
            if loc.valid:
                p, q = loc.camera_point, loc.reference_point
                rec.update({"x": p.x, "y": p.y, "z": p.z, "ref_x": q.x, "ref_y": q.y, "ref_z": q.z})
        if self.step_m is not None:
            rec["step_m"] = self.step_m
        return rec


class FrameProcessor:
    """Owns the tracker and detector; called once per consumed frame."""

    def __init__(self, config: TrackerConfig, detector: Optional[BlobDetector] = None):
        self.config = config
        self.tracker = BlobTracker(config)
        self.detector = detector if detector is not None else BlobDetector(config.detector)
        self.transform = ReferenceFrameTransform.from_extrinsics(config.extrinsics)
        self._last_point = None

    def process(self, bundle: FrameBundle, click: Optional[PixelCoordinate] = None) -> FrameResult:
        lab = to_lab(bundle.color, bundle.color_order)

        if click is not None:
            if self.tracker.click(click, lab) is not None:
                self._last_point = None

        mask = self.tracker.build_mask(lab)
        candidates = self.detector.detect(mask) if mask is not None else []
        update = self.tracker.step(candidates)

        loc = None
        step_m = None
        if update.tracking and update.target is not None:
            depth = sample_depth(bundle.depth_m, update.target)
            loc = localize(update.target, depth, bundle.intrinsics, self.transform)
            if loc.valid:
                if self._last_point is not None:
                    step_m = displacement(loc.camera_point, self._last_point)
                self._last_point = loc.camera_point
            else:
                logger.debug("[processing] frame %d: invalid depth %.3f at %s",
                             bundle.index, depth, update.target.as_tuple())

        tilt = tilt_from_accel(*bundle.accel) if bundle.accel is not None else None

        return FrameResult(
            index=bundle.index,
            update=update,
            candidates=candidates,
            mask=mask,
            localization=loc,
            tilt=tilt,
            step_m=step_m,
        )
