"""
Tests for the click-to-track state machine.
"""
import pytest

from blobtrack_pkg.config import TrackerConfig
from blobtrack_pkg.gate import Match, NoMatch
from blobtrack_pkg.tracker import (
    STATUS_ACQUISITION_FAILED,
    STATUS_DROPPED,
    STATUS_IDLE,
    BlobTracker,
)
from blobtrack_pkg.tracking_types import Candidate, PixelCoordinate, TrackPhase

CLICK = PixelCoordinate(10, 10)


@pytest.fixture
def tracker():
    return BlobTracker(TrackerConfig())


@pytest.fixture
def tracking(tracker, uniform_lab):
    """Tracker locked onto a target at (12, 10)."""
    tracker.click(CLICK, uniform_lab)
    tracker.step([Candidate(12, 10)])
    return tracker


class TestAcquisition:
    """Test IDLE -> ACQUIRING -> TRACKING / IDLE."""

    def test_idle_step_is_noop(self, tracker):
        update = tracker.step([Candidate(5, 5)])
        assert update.phase is TrackPhase.IDLE
        assert update.target is None
        assert update.status == STATUS_IDLE
        assert not update.fresh

    def test_no_mask_before_click(self, tracker, uniform_lab):
        assert tracker.build_mask(uniform_lab) is None

    def test_click_starts_acquisition(self, tracker, uniform_lab):
        rng = tracker.click(CLICK, uniform_lab)
        assert rng.lower == (100, 185, 175)
        assert rng.upper == (200, 215, 205)
        assert tracker.state.phase is TrackPhase.ACQUIRING
        assert tracker.state.target is None

    def test_match_locks_target(self, tracker, uniform_lab):
        tracker.click(CLICK, uniform_lab)
        update = tracker.step([Candidate(40, 40), Candidate(12.4, 9.6)])
        assert update.phase is TrackPhase.TRACKING
        assert update.target == PixelCoordinate(12, 10)
        assert update.hold_frames_remaining == 15
        assert update.fresh
        assert update.status == "Blob u: 12, v: 10"
        assert isinstance(update.gate_result, Match)

    def test_no_candidates_fails(self, tracker, uniform_lab):
        """Nothing detected: back to IDLE, no retry on the next frame."""
        tracker.click(CLICK, uniform_lab)
        update = tracker.step([])
        assert update.phase is TrackPhase.IDLE
        assert update.status == STATUS_ACQUISITION_FAILED
        assert update.target is None

        update = tracker.step([Candidate(10, 10)])
        assert update.phase is TrackPhase.IDLE

    def test_far_candidate_fails(self, tracker, uniform_lab):
        tracker.click(CLICK, uniform_lab)
        update = tracker.step([Candidate(45, 10)])
        assert update.phase is TrackPhase.IDLE
        assert isinstance(update.gate_result, NoMatch)

    def test_click_outside_frame_ignored(self, tracking, uniform_lab):
        before = tracking.color_range
        assert tracking.click(PixelCoordinate(60, 60), uniform_lab) is None
        assert tracking.state.phase is TrackPhase.TRACKING
        assert tracking.color_range == before


class TestTracking:
    """Test TRACKING persistence and drop."""

    def test_repeated_matches_keep_full_hold(self, tracking):
        for x in (14, 16, 18):
            update = tracking.step([Candidate(x, 10)])
            assert update.hold_frames_remaining == 15
            assert update.target == PixelCoordinate(x, 10)

    def test_gate_follows_previous_target(self, tracking):
        """Association is measured from the last target, not the click."""
        for x in (35, 60, 85):
            update = tracking.step([Candidate(x, 10)])
            assert update.tracking
        assert tracking.state.target == PixelCoordinate(85, 10)

    def test_hold_then_reacquire(self, tracking):
        """14 misses then a match resets the counter to full."""
        for i in range(14):
            update = tracking.step([])
            assert update.phase is TrackPhase.TRACKING
            assert update.hold_frames_remaining == 14 - i
            assert update.target == PixelCoordinate(12, 10)
            assert not update.fresh
        assert update.hold_frames_remaining == 1

        update = tracking.step([Candidate(13, 11)])
        assert update.phase is TrackPhase.TRACKING
        assert update.hold_frames_remaining == 15
        assert update.fresh

    def test_held_status_mentions_hold(self, tracking):
        update = tracking.step([Candidate(200, 200)])
        assert update.status == "Blob u: 12, v: 10 (held, 14 left)"

    def test_drop_after_max_hold(self, tracking):
        """The 15th consecutive miss drops the target."""
        for _ in range(14):
            assert tracking.step([]).tracking
        update = tracking.step([])
        assert update.phase is TrackPhase.IDLE
        assert update.target is None
        assert update.status == STATUS_DROPPED

    def test_zero_hold_drops_on_first_miss(self, uniform_lab):
        config = TrackerConfig()
        config.gate.max_hold_frames = 0
        tracker = BlobTracker(config)
        tracker.click(CLICK, uniform_lab)
        assert tracker.step([Candidate(10, 10)]).tracking
        assert tracker.step([]).phase is TrackPhase.IDLE

    def test_click_preempts_track(self, tracking, uniform_lab):
        tracking.click(PixelCoordinate(40, 40), uniform_lab)
        assert tracking.state.phase is TrackPhase.ACQUIRING
        assert tracking.state.target is None
        update = tracking.step([Candidate(12, 10)])
        assert update.phase is TrackPhase.IDLE

    def test_click_during_hold_reacquires_with_full_hold(self, tracking, uniform_lab):
        """Recalibrating mid-hold discards the decayed counter."""
        for _ in range(5):
            tracking.step([])
        assert tracking.state.hold_frames_remaining == 10

        tracking.click(PixelCoordinate(30, 30), uniform_lab)
        assert tracking.state.hold_frames_remaining == 0
        update = tracking.step([Candidate(31, 29)])
        assert update.phase is TrackPhase.TRACKING
        assert update.target == PixelCoordinate(31, 29)
        assert update.hold_frames_remaining == 15

    def test_reset(self, tracking, uniform_lab):
        tracking.reset()
        assert tracking.state.phase is TrackPhase.IDLE
        assert tracking.color_range is None
        assert tracking.build_mask(uniform_lab) is None


class TestTolerances:
    """Test live tolerance edits."""

    def test_range_rebuilt_from_stored_sample(self, tracker, uniform_lab):
        tracker.click(CLICK, uniform_lab)
        tracker.config.color.lightness_tolerance = 10
        tracker.config.color.chroma_tolerance = 0
        rng = tracker.refresh_range()
        assert rng.lower == (140, 200, 190)
        assert rng.upper == (160, 200, 190)

    def test_mask_uses_new_tolerances(self, tracker, uniform_lab):
        lab = uniform_lab.copy()
        lab[0, 0] = (170, 200, 190)
        tracker.config.color.dilate_radius = 0
        tracker.click(CLICK, lab)
        assert tracker.build_mask(lab)[0, 0] == 255

        tracker.config.color.lightness_tolerance = 10
        assert tracker.build_mask(lab)[0, 0] == 0
