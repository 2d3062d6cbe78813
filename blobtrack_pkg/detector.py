"""
Blob candidate extraction from a foreground mask.

Thin wrapper over cv2.SimpleBlobDetector. Shape scoring (circularity,
convexity, inertia ratio) lives here so it can be tuned independently of the
color window.
"""
import logging
from typing import List

import cv2
import numpy as np

from .config import DetectorConfig
from .tracking_types import Candidate

logger = logging.getLogger(__name__)


def _fraction(value: float) -> float:
    # SimpleBlobDetector rejects a zero minimum for these ratios
    return min(1.0, max(0.01, float(value)))


def make_blob_params(config: DetectorConfig) -> "cv2.SimpleBlobDetector_Params":
    """Translate DetectorConfig into SimpleBlobDetector parameters."""
    params = cv2.SimpleBlobDetector_Params()

    # Mask is binary 0/255, foreground white
    params.minThreshold = 127
    params.maxThreshold = 255
    params.filterByColor = True
    params.blobColor = 255

    params.filterByArea = True
    params.minArea = float(config.min_area)
    params.maxArea = float(config.max_area)

    # Upper ratio bounds left at OpenCV defaults (a blob is rejected when ratio >= max)
    params.filterByCircularity = True
    params.minCircularity = _fraction(config.circularity_min)

    params.filterByConvexity = True
    params.minConvexity = _fraction(config.convexity_min)

    params.filterByInertia = True
    params.minInertiaRatio = _fraction(config.inertia_min)
    return params


class BlobDetector:
    """
    Mask -> Candidate list.

    The underlying detector is rebuilt lazily whenever the DetectorConfig
    values change (the tuning trackbars write into the config object).
    """

    def __init__(self, config: DetectorConfig):
        self.config = config
        self._detector = None
        self._built_for = None

    def _snapshot(self):
        c = self.config
        return (c.circularity_min, c.convexity_min, c.inertia_min, c.min_area, c.max_area)

    def _ensure_detector(self):
        snapshot = self._snapshot()
        if self._detector is None or snapshot != self._built_for:
            self._detector = cv2.SimpleBlobDetector_create(make_blob_params(self.config))
            self._built_for = snapshot
            logger.debug("[detector] rebuilt with %s", snapshot)
        return self._detector

    def detect(self, mask: np.ndarray) -> List[Candidate]:
        """Detect blobs in a uint8 mask. Order is whatever OpenCV reports."""
        keypoints = self._ensure_detector().detect(mask)
        return [Candidate(x=float(kp.pt[0]), y=float(kp.pt[1]), size=float(kp.size)) for kp in keypoints]
