"""
Value types shared by the tracking core.

Conventions
- Pixels: (x, y) = (column, row), origin at the top-left corner
- Colors: OpenCV 8-bit Lab, channel order [L, a, b]
- Points: camera space in meters (x right, y down, z forward)
"""
import math
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple

import numpy as np


@dataclass(frozen=True)
class PixelCoordinate:
    """Integer position in image space."""
    x: int
    y: int

    @classmethod
    def from_float(cls, x: float, y: float) -> "PixelCoordinate":
        """Round a sub-pixel position half up."""
        return cls(int(x + 0.5), int(y + 0.5))

    def as_tuple(self) -> Tuple[int, int]:
        return (self.x, self.y)


@dataclass(frozen=True)
class ColorSample:
    """Lab color of one pixel, captured at calibration."""
    l: int
    a: int
    b: int

    def as_array(self) -> np.ndarray:
        return np.array([self.l, self.a, self.b], dtype=np.int32)


@dataclass(frozen=True)
class ColorAcceptanceRange:
    """Per-channel [min, max] window in Lab space."""
    lower: Tuple[int, int, int]
    upper: Tuple[int, int, int]

    def __post_init__(self):
        if len(self.lower) != 3 or len(self.upper) != 3:
            raise ValueError("lower and upper must have exactly 3 channels")
        for lo, hi in zip(self.lower, self.upper):
            if lo > hi:
                raise ValueError(f"range min {self.lower} exceeds max {self.upper}")

    def contains(self, color: Tuple[int, int, int]) -> bool:
        return all(lo <= c <= hi for c, lo, hi in zip(color, self.lower, self.upper))


@dataclass(frozen=True)
class Candidate:
    """Blob position reported by the detector (size is informational)."""
    x: float
    y: float
    size: float = 0.0

    def distance_to(self, reference: PixelCoordinate) -> float:
        return math.hypot(self.x - reference.x, self.y - reference.y)

    def to_pixel(self) -> PixelCoordinate:
        return PixelCoordinate.from_float(self.x, self.y)


@dataclass(frozen=True)
class Point3D:
    """3D point in meters."""
    x: float
    y: float
    z: float

    def as_array(self) -> np.ndarray:
        return np.array([self.x, self.y, self.z], dtype=np.float64)

    @classmethod
    def from_array(cls, arr) -> "Point3D":
        return cls(float(arr[0]), float(arr[1]), float(arr[2]))


class TrackPhase(Enum):
    IDLE = "idle"
    ACQUIRING = "acquiring"
    TRACKING = "tracking"


@dataclass
class TrackState:
    """Tracker-owned state, mutated once per frame by the consumer loop."""
    phase: TrackPhase = TrackPhase.IDLE
    target: Optional[PixelCoordinate] = None
    hold_frames_remaining: int = 0
    status: str = "Not tracking"

    @property
    def tracking(self) -> bool:
        return self.phase is TrackPhase.TRACKING
