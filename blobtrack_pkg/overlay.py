"""
Preview rendering: tracked cross, status panel, image axes and mask view.
"""
from typing import List, Optional, Sequence, Tuple

import cv2
import numpy as np

from .localizer import Localization
from .tracker import TrackUpdate
from .tracking_types import Candidate


def describe(
    update: TrackUpdate,
    loc: Optional[Localization] = None,
    tilt: Optional[Tuple[float, float]] = None,
    step_m: Optional[float] = None,
) -> List[str]:
    """Status panel lines for one frame."""
    lines = []
    if tilt is not None:
        lines.append(f"Roll: {tilt[0]:.1f}")
        lines.append(f"Yaw: {tilt[1]:.1f}")

    lines.append(update.status)
    if update.tracking and loc is not None:
        if loc.valid:
            p, q = loc.camera_point, loc.reference_point
            lines.append(f"x: {p.x:.4f}, y: {p.y:.4f}, z: {p.z:.4f}")
            lines.append("Transformed:")
            lines.append(f"x: {q.x:.4f}, y: {q.y:.4f}, z: {q.z:.4f}")
            if step_m is not None:
                lines.append(f"moved: {step_m:.4f} m")
        else:
            lines.append("Invalid depth")
    return lines


def draw_cross(img: np.ndarray, center: Tuple[int, int], half_size: int = 50,
               color=(255, 255, 255), thickness: int = 2):
    cx, cy = center
    cv2.line(img, (cx - half_size, cy), (cx + half_size, cy), color, thickness)
    cv2.line(img, (cx, cy - half_size), (cx, cy + half_size), color, thickness)


def draw_axes(img: np.ndarray):
    h, w = img.shape[:2]
    cv2.line(img, (w // 2, 0), (w // 2, h), (0, 255, 0), 1)  # Y axis
    cv2.line(img, (0, h // 2), (w, h // 2), (0, 0, 255), 1)  # X axis


def draw_panel(img: np.ndarray, lines: Sequence[str], origin=(10, 20), line_h: int = 18):
    """Semi-transparent black box with yellow text."""
    if not lines:
        return
    width = max(cv2.getTextSize(s, cv2.FONT_HERSHEY_SIMPLEX, 0.5, 1)[0][0] for s in lines) + 20
    height = line_h * len(lines) + 10
    roi = img[0:height, 0:min(width, img.shape[1])]
    roi[:] = (roi * 0.5).astype(img.dtype)
    x, y = origin
    for i, text in enumerate(lines):
        cv2.putText(img, text, (x, y + i * line_h), cv2.FONT_HERSHEY_SIMPLEX,
                    0.5, (0, 255, 255), 1, cv2.LINE_AA)


def render_frame(
    frame_bgr: np.ndarray,
    update: TrackUpdate,
    lines: Sequence[str],
    mask: Optional[np.ndarray] = None,
    cross_half_size: int = 50,
) -> np.ndarray:
    """Compose the preview image (BGR)."""
    vis = frame_bgr.copy()

    # Overlay mask in green
    if mask is not None:
        tinted = vis.copy()
        tinted[mask > 0] = (0, 255, 0)
        vis = cv2.addWeighted(vis, 0.7, tinted, 0.3, 0)

    draw_axes(vis)
    if update.tracking and update.target is not None:
        color = (255, 255, 255) if update.fresh else (0, 165, 255)
        draw_cross(vis, update.target.as_tuple(), cross_half_size, color)
    draw_panel(vis, lines)
    return vis


def render_mask(mask: np.ndarray, candidates: Sequence[Candidate]) -> np.ndarray:
    """Mask with the detected candidates circled in red."""
    keypoints = [cv2.KeyPoint(c.x, c.y, max(c.size, 1.0)) for c in candidates]
    return cv2.drawKeypoints(
        mask, keypoints, None, (0, 0, 255), cv2.DRAW_MATCHES_FLAGS_DRAW_RICH_KEYPOINTS
    )
