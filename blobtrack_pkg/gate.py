"""
Nearest-neighbor candidate gate.

Used both to seed a track from a click and to re-associate it frame to frame
from the previous target. The outcome is a value, not an exception: "nothing
close enough" is the common case when the target is occluded.

Ties on the minimum distance go to the first candidate in input order, which
is the order the detector produced.
"""
import math
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Sequence, Union

from .tracking_types import Candidate, PixelCoordinate


class NoMatchReason(Enum):
    EMPTY = "empty"  # detector returned nothing
    OUT_OF_RANGE = "out_of_range"  # nearest candidate beyond max distance


@dataclass(frozen=True)
class Match:
    candidate: Candidate
    distance: float


@dataclass(frozen=True)
class NoMatch:
    reason: NoMatchReason
    nearest_distance: Optional[float] = None


GateResult = Union[Match, NoMatch]


def find_closest(
    candidates: Sequence[Candidate],
    reference: PixelCoordinate,
    max_distance: float,
) -> GateResult:
    """
    Pick the candidate nearest to `reference`.

    Args:
        candidates: detector output, in detector order
        reference: click pixel or previous target
        max_distance: hard cutoff in pixels; a distance equal to it passes

    Returns:
        Match(candidate, distance) or NoMatch(reason, nearest_distance)
    """
    if not candidates:
        return NoMatch(NoMatchReason.EMPTY)

    best = None
    best_dist = math.inf
    for cand in candidates:
        dist = cand.distance_to(reference)
        if dist < best_dist:
            best_dist = dist
            best = cand

    if best is None or best_dist > max_distance:
        return NoMatch(NoMatchReason.OUT_OF_RANGE, nearest_distance=best_dist)
    return Match(best, best_dist)
