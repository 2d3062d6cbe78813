"""
Segmentation mask builder.

Thresholds a Lab frame against the calibrated acceptance window and dilates
the result so that a target broken up by specular highlights or texture comes
out as one connected blob for the detector.
"""
import cv2
import numpy as np

from .tracking_types import ColorAcceptanceRange


def _structuring_element(dilate_radius: int) -> np.ndarray:
    size = 2 * dilate_radius + 1
    return cv2.getStructuringElement(
        cv2.MORPH_RECT, (size, size), (dilate_radius, dilate_radius)
    )


def threshold_lab(lab_frame: np.ndarray, color_range: ColorAcceptanceRange) -> np.ndarray:
    """Raw membership mask (uint8, 0/255) before dilation."""
    lower = np.asarray(color_range.lower, dtype=np.int32)
    upper = np.asarray(color_range.upper, dtype=np.int32)

    # A window entirely outside [0, 255] on any channel selects nothing
    if np.any(upper < 0) or np.any(lower > 255):
        return np.zeros(lab_frame.shape[:2], dtype=np.uint8)

    lower = np.clip(lower, 0, 255).astype(np.uint8)
    upper = np.clip(upper, 0, 255).astype(np.uint8)
    return cv2.inRange(lab_frame, lower, upper)


def build_mask(
    lab_frame: np.ndarray,
    color_range: ColorAcceptanceRange,
    dilate_radius: int,
) -> np.ndarray:
    """
    Build the binary foreground mask handed to the blob detector.

    Args:
        lab_frame: HxWx3 uint8 Lab image
        color_range: calibrated acceptance window
        dilate_radius: growth in pixels (0 = no dilation)

    Returns:
        HxW uint8 mask, 255 = foreground
    """
    if dilate_radius < 0:
        raise ValueError("dilate_radius must be non-negative")

    mask = threshold_lab(lab_frame, color_range)
    if dilate_radius == 0:
        return mask
    return cv2.dilate(mask, _structuring_element(dilate_radius))
