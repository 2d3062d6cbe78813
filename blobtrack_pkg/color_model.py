"""
Color model for click-to-track calibration.

A single clicked pixel is sampled in Lab space and widened into a per-channel
acceptance window: L* by the lightness tolerance, a* and b* by the chroma
tolerance. Lab keeps lightness separate from chromaticity, so shading changes
on the target can be absorbed by a wide L* window while the hue stays tight.

Example:
    >>> lab = to_lab(frame, color_order="bgr")
    >>> sample = sample_color(lab, PixelCoordinate(100, 100))
    >>> color_range = calibrate(sample, lightness_tolerance=50, chroma_tolerance=15)
"""

import cv2
import numpy as np

from .tracking_types import ColorAcceptanceRange, ColorSample, PixelCoordinate


_LAB_CONVERSIONS = {
    "rgb": cv2.COLOR_RGB2Lab,
    "bgr": cv2.COLOR_BGR2Lab,
}


def to_lab(frame: np.ndarray, color_order: str = "rgb") -> np.ndarray:
    """
    Convert an 8-bit color frame to OpenCV 8-bit Lab.

    Args:
        frame: HxWx3 uint8 image
        color_order: "rgb" (RealSense rgb8 stream) or "bgr" (cv2.VideoCapture)

    Returns:
        HxWx3 uint8 Lab image
    """
    code = _LAB_CONVERSIONS.get(color_order.lower())
    if code is None:
        raise ValueError(f"Unknown color order: {color_order} (expected rgb or bgr)")
    if frame.ndim != 3 or frame.shape[2] != 3:
        raise ValueError(f"Expected HxWx3 frame, got shape {frame.shape}")
    return cv2.cvtColor(frame, code)


def sample_color(lab_frame: np.ndarray, pixel: PixelCoordinate) -> ColorSample:
    """Read the Lab color under a pixel. Raises IndexError outside the frame."""
    h, w = lab_frame.shape[:2]
    if not (0 <= pixel.x < w and 0 <= pixel.y < h):
        raise IndexError(f"Pixel {pixel.as_tuple()} outside {w}x{h} frame")
    l, a, b = (int(v) for v in lab_frame[pixel.y, pixel.x])
    return ColorSample(l, a, b)


def calibrate(
    sample: ColorSample,
    lightness_tolerance: int,
    chroma_tolerance: int,
) -> ColorAcceptanceRange:
    """
    Build the acceptance window around a sampled color.

    The window is a full overwrite: nothing from a previous calibration is
    carried over. Bounds are not clipped to the 8-bit domain; the mask builder
    handles out-of-domain bounds.

    Args:
        sample: Lab color captured at the click
        lightness_tolerance: half-width on L*
        chroma_tolerance: half-width on a* and b*

    Returns:
        ColorAcceptanceRange with min = sample - tol, max = sample + tol
    """
    if lightness_tolerance < 0 or chroma_tolerance < 0:
        raise ValueError("tolerances must be non-negative")

    tol = (int(lightness_tolerance), int(chroma_tolerance), int(chroma_tolerance))
    center = (sample.l, sample.a, sample.b)
    lower = tuple(c - t for c, t in zip(center, tol))
    upper = tuple(c + t for c, t in zip(center, tol))
    return ColorAcceptanceRange(lower=lower, upper=upper)
