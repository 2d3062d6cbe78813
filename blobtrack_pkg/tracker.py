"""
Click-to-track state machine.

Lifecycle:
    IDLE --click--> ACQUIRING --match--> TRACKING
    ACQUIRING --no match--> IDLE                    (a new click is required)
    TRACKING --match--> TRACKING                    (hold counter reset)
    TRACKING --no match, hold left--> TRACKING      (stale target reported)
    TRACKING --no match, hold exhausted--> IDLE
    any --click--> ACQUIRING                        (previous track discarded)

The hold counter bounds how long a target may go undetected (flicker,
momentary occlusion, shape-filter rejection) before it is declared lost. No
motion prediction is attempted: held frames report the last known position.

Usage:
    tracker = BlobTracker(config)
    tracker.click(PixelCoordinate(320, 240), lab_frame)
    mask = tracker.build_mask(lab_frame)
    update = tracker.step(detector.detect(mask))
"""

import logging
from dataclasses import dataclass
from typing import Optional, Sequence

import numpy as np

from .color_model import calibrate, sample_color
from .config import TrackerConfig
from .gate import GateResult, Match, find_closest
from .segmentation import build_mask
from .tracking_types import (
    Candidate,
    ColorAcceptanceRange,
    ColorSample,
    PixelCoordinate,
    TrackPhase,
    TrackState,
)

logger = logging.getLogger(__name__)


STATUS_IDLE = "Not tracking"
STATUS_ACQUISITION_FAILED = "Acquisition failed"
STATUS_DROPPED = "Target dropped"


@dataclass(frozen=True)
class TrackUpdate:
    """Per-frame tracker output for the localizer and the renderer."""
    phase: TrackPhase
    target: Optional[PixelCoordinate]
    fresh: bool  # True when target comes from this frame's detection
    status: str
    hold_frames_remaining: int
    gate_result: Optional[GateResult] = None

    @property
    def tracking(self) -> bool:
        return self.phase is TrackPhase.TRACKING


class BlobTracker:
    """Single-target tracker owning the color model and TrackState."""

    def __init__(self, config: TrackerConfig):
        self.config = config
        self.state = TrackState()
        self.sample: Optional[ColorSample] = None
        self.color_range: Optional[ColorAcceptanceRange] = None
        self._range_tolerances = None
        self._click: Optional[PixelCoordinate] = None

    # ------------------------------------------------------------------
    # Calibration
    # ------------------------------------------------------------------

    def _tolerances(self):
        return (self.config.color.lightness_tolerance, self.config.color.chroma_tolerance)

    def _recalibrate(self):
        l_tol, c_tol = self._tolerances()
        self.color_range = calibrate(self.sample, l_tol, c_tol)
        self._range_tolerances = (l_tol, c_tol)

    def click(self, pixel: PixelCoordinate, lab_frame: np.ndarray) -> Optional[ColorAcceptanceRange]:
        """
        Calibrate on the clicked pixel and start acquisition.

        Preempts any acquisition or track in progress. Clicks outside the
        frame are ignored and leave the state untouched.

        Returns:
            The new acceptance range, or None if the click was ignored
        """
        try:
            sample = sample_color(lab_frame, pixel)
        except IndexError as e:
            logger.warning("[tracker] click ignored: %s", e)
            return None

        previous = self.state.phase
        self.sample = sample
        self._recalibrate()
        self._click = pixel

        self.state.phase = TrackPhase.ACQUIRING
        self.state.target = None
        self.state.hold_frames_remaining = 0
        self.state.status = f"Acquiring near u: {pixel.x}, v: {pixel.y}"

        logger.info(
            "[tracker] %s -> acquiring at %s, Lab %s, range %s..%s",
            previous.value, pixel.as_tuple(), (sample.l, sample.a, sample.b),
            self.color_range.lower, self.color_range.upper,
        )
        return self.color_range

    def refresh_range(self) -> Optional[ColorAcceptanceRange]:
        """Rebuild the range from the stored sample if the tolerances changed."""
        if self.sample is not None and self._tolerances() != self._range_tolerances:
            self._recalibrate()
            logger.debug("[tracker] tolerances %s -> range %s..%s",
                         self._range_tolerances, self.color_range.lower, self.color_range.upper)
        return self.color_range

    def build_mask(self, lab_frame: np.ndarray) -> Optional[np.ndarray]:
        """Foreground mask for the current calibration, None before the first click."""
        if self.refresh_range() is None:
            return None
        return build_mask(lab_frame, self.color_range, self.config.color.dilate_radius)

    # ------------------------------------------------------------------
    # Per-frame advance
    # ------------------------------------------------------------------

    def _transition(self, phase: TrackPhase, status: str):
        if phase is not self.state.phase:
            logger.info("[tracker] %s -> %s (%s)", self.state.phase.value, phase.value, status)
        self.state.phase = phase
        self.state.status = status

    def _snapshot(self, fresh: bool, result: Optional[GateResult]) -> TrackUpdate:
        return TrackUpdate(
            phase=self.state.phase,
            target=self.state.target,
            fresh=fresh,
            status=self.state.status,
            hold_frames_remaining=self.state.hold_frames_remaining,
            gate_result=result,
        )

    def step(self, candidates: Sequence[Candidate]) -> TrackUpdate:
        """Advance one frame with this frame's detector output."""
        phase = self.state.phase
        if phase is TrackPhase.ACQUIRING:
            return self._step_acquiring(candidates)
        if phase is TrackPhase.TRACKING:
            return self._step_tracking(candidates)
        return self._snapshot(fresh=False, result=None)

    def _step_acquiring(self, candidates: Sequence[Candidate]) -> TrackUpdate:
        gate = self.config.gate
        result = find_closest(candidates, self._click, gate.max_distance_px)
        if isinstance(result, Match):
            target = result.candidate.to_pixel()
            self.state.target = target
            self.state.hold_frames_remaining = gate.max_hold_frames
            self._transition(TrackPhase.TRACKING, f"Blob u: {target.x}, v: {target.y}")
            return self._snapshot(fresh=True, result=result)

        self.state.target = None
        self._transition(TrackPhase.IDLE, STATUS_ACQUISITION_FAILED)
        return self._snapshot(fresh=False, result=result)

    def _step_tracking(self, candidates: Sequence[Candidate]) -> TrackUpdate:
        gate = self.config.gate
        result = find_closest(candidates, self.state.target, gate.max_distance_px)
        if isinstance(result, Match):
            target = result.candidate.to_pixel()
            self.state.target = target
            self.state.hold_frames_remaining = gate.max_hold_frames
            self.state.status = f"Blob u: {target.x}, v: {target.y}"
            return self._snapshot(fresh=True, result=result)

        self.state.hold_frames_remaining -= 1
        if self.state.hold_frames_remaining <= 0:
            self.state.target = None
            self._transition(TrackPhase.IDLE, STATUS_DROPPED)
            return self._snapshot(fresh=False, result=result)

        target = self.state.target
        self.state.status = (
            f"Blob u: {target.x}, v: {target.y} (held, {self.state.hold_frames_remaining} left)"
        )
        logger.debug("[tracker] no match (%s), holding %d", result.reason.value,
                     self.state.hold_frames_remaining)
        return self._snapshot(fresh=False, result=result)

    def reset(self):
        """Forget calibration and track."""
        self.state = TrackState()
        self.sample = None
        self.color_range = None
        self._range_tolerances = None
        self._click = None
        logger.info("[tracker] Tracking state reset")
