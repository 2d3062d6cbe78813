"""
Pixel + depth -> 3D point, and camera -> reference frame transform.

Deprojection follows the RealSense SDK conventions (rs2_deproject_pixel_to_point):
normalized coordinates are undistorted according to the stream's distortion
model and scaled by the depth along the optical axis.

Coordinate system (camera space):
- x axis: left (-) to right (+) in image
- y axis: top (-) to bottom (+) in image
- z axis: depth, forward into the scene
"""
import math
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple, Union

import numpy as np
from scipy.spatial.transform import Rotation

from .tracking_types import PixelCoordinate, Point3D

# Iteration count used by the SDK for iterative undistortion
_UNDISTORT_ITERATIONS = 10

DISTORTION_MODELS = ("none", "brown_conrady", "inverse_brown_conrady")


@dataclass
class Intrinsics:
    """Camera intrinsic parameters for 2D <-> 3D projection."""
    width: int
    height: int
    fx: float
    fy: float
    ppx: float
    ppy: float
    model: str = "none"
    coeffs: Tuple[float, float, float, float, float] = (0.0, 0.0, 0.0, 0.0, 0.0)

    def __post_init__(self):
        if self.model not in DISTORTION_MODELS:
            raise ValueError(f"Unsupported distortion model: {self.model}")
        self.coeffs = tuple(float(c) for c in self.coeffs)
        if len(self.coeffs) != 5:
            raise ValueError("coeffs must have 5 entries (k1, k2, p1, p2, k3)")

    @classmethod
    def from_fov(cls, width: int, height: int, fov_deg: float) -> "Intrinsics":
        """Pinhole intrinsics from a horizontal FOV, square pixels, centered."""
        f = (width / 2.0) / np.tan(np.radians(fov_deg / 2.0))
        return cls(width=width, height=height, fx=float(f), fy=float(f),
                   ppx=width / 2.0, ppy=height / 2.0)

    @classmethod
    def from_realsense(cls, intr) -> "Intrinsics":
        """Convert a pyrealsense2.intrinsics object."""
        model = str(intr.model).split(".")[-1].lower()
        if model not in DISTORTION_MODELS:
            # modified_brown_conrady and fisheye models carry no inverse in the SDK
            model = "none"
        return cls(
            width=int(intr.width), height=int(intr.height),
            fx=float(intr.fx), fy=float(intr.fy),
            ppx=float(intr.ppx), ppy=float(intr.ppy),
            model=model, coeffs=tuple(intr.coeffs),
        )


@dataclass(frozen=True)
class InvalidDepth:
    """Depth sample unusable (zero, negative or not finite)."""
    depth_m: float


def deproject(
    pixel: PixelCoordinate,
    depth_m: float,
    intrinsics: Intrinsics,
) -> Union[Point3D, InvalidDepth]:
    """
    Deproject a pixel with a depth sample into camera space.

    Args:
        pixel: image position
        depth_m: depth along the optical axis in meters
        intrinsics: camera intrinsics

    Returns:
        Point3D, or InvalidDepth when depth_m <= 0 or not finite
    """
    if not math.isfinite(depth_m) or depth_m <= 0:
        return InvalidDepth(float(depth_m))

    x = (pixel.x - intrinsics.ppx) / intrinsics.fx
    y = (pixel.y - intrinsics.ppy) / intrinsics.fy
    xo, yo = x, y
    c = intrinsics.coeffs

    if intrinsics.model == "inverse_brown_conrady":
        for _ in range(_UNDISTORT_ITERATIONS):
            r2 = x * x + y * y
            icdist = 1.0 / (1.0 + ((c[4] * r2 + c[1]) * r2 + c[0]) * r2)
            xq = x / icdist
            yq = y / icdist
            delta_x = 2 * c[2] * xq * yq + c[3] * (r2 + 2 * xq * xq)
            delta_y = 2 * c[3] * xq * yq + c[2] * (r2 + 2 * yq * yq)
            x = (xo - delta_x) * icdist
            y = (yo - delta_y) * icdist
    elif intrinsics.model == "brown_conrady":
        for _ in range(_UNDISTORT_ITERATIONS):
            r2 = x * x + y * y
            icdist = 1.0 / (1.0 + ((c[4] * r2 + c[1]) * r2 + c[0]) * r2)
            delta_x = 2 * c[2] * x * y + c[3] * (r2 + 2 * x * x)
            delta_y = 2 * c[3] * x * y + c[2] * (r2 + 2 * y * y)
            x = (xo - delta_x) * icdist
            y = (yo - delta_y) * icdist

    return Point3D(depth_m * x, depth_m * y, float(depth_m))


def project(point: Point3D, intrinsics: Intrinsics) -> Tuple[float, float]:
    """Project a camera-space point to sub-pixel (u, v). Inverse of deproject."""
    if point.z <= 0:
        raise ValueError("point must lie in front of the camera (z > 0)")
    if intrinsics.model == "inverse_brown_conrady":
        raise ValueError("projection is not defined for inverse_brown_conrady")

    x = point.x / point.z
    y = point.y / point.z
    if intrinsics.model == "brown_conrady":
        c = intrinsics.coeffs
        r2 = x * x + y * y
        f = 1 + c[0] * r2 + c[1] * r2 * r2 + c[4] * r2 * r2 * r2
        xf = x * f + 2 * c[2] * x * y + c[3] * (r2 + 2 * x * x)
        yf = y * f + 2 * c[3] * x * y + c[2] * (r2 + 2 * y * y)
        x, y = xf, yf
    return (x * intrinsics.fx + intrinsics.ppx, y * intrinsics.fy + intrinsics.ppy)


def displacement(a: Point3D, b: Point3D) -> float:
    """Euclidean distance between two points in meters."""
    return float(np.linalg.norm(a.as_array() - b.as_array()))


class ReferenceFrameTransform:
    """
    Fixed affine map from camera space into a reference frame.

    Applied in homogeneous coordinates; the result is divided by the
    homogeneous scale component.
    """

    def __init__(self, matrix: Sequence[Sequence[float]]):
        m = np.asarray(matrix, dtype=np.float64)
        if m.shape != (4, 4):
            raise ValueError(f"Expected 4x4 matrix, got {m.shape}")
        self.matrix = m

    @classmethod
    def identity(cls) -> "ReferenceFrameTransform":
        return cls(np.eye(4))

    @classmethod
    def from_translation(cls, tx: float, ty: float, tz: float) -> "ReferenceFrameTransform":
        m = np.eye(4)
        m[:3, 3] = (tx, ty, tz)
        return cls(m)

    @classmethod
    def from_euler(
        cls,
        angles_deg: Sequence[float],
        translation: Sequence[float] = (0.0, 0.0, 0.0),
        order: str = "xyz",
    ) -> "ReferenceFrameTransform":
        """Rigid transform from Euler angles (degrees) and a translation."""
        m = np.eye(4)
        m[:3, :3] = Rotation.from_euler(order, angles_deg, degrees=True).as_matrix()
        m[:3, 3] = translation
        return cls(m)

    @classmethod
    def from_extrinsics(cls, extrinsics) -> "ReferenceFrameTransform":
        """Build from an ExtrinsicsConfig (Euler + translation when set, else the matrix)."""
        if extrinsics.euler_deg is not None:
            return cls.from_euler(extrinsics.euler_deg, extrinsics.translation or (0.0, 0.0, 0.0))
        if extrinsics.translation is not None:
            return cls.from_translation(*extrinsics.translation)
        return cls(extrinsics.matrix)

    def apply(self, point: Point3D) -> Point3D:
        src = np.array([point.x, point.y, point.z, 1.0])
        dst = self.matrix @ src
        return Point3D.from_array(dst[:3] / dst[3])

    def inverse(self) -> "ReferenceFrameTransform":
        return ReferenceFrameTransform(np.linalg.inv(self.matrix))

    def __repr__(self):
        return f"ReferenceFrameTransform({self.matrix.tolist()})"


@dataclass(frozen=True)
class Localization:
    """Raw and transformed point for one frame (both None on invalid depth)."""
    pixel: PixelCoordinate
    depth_m: float
    camera_point: Optional[Point3D] = None
    reference_point: Optional[Point3D] = None

    @property
    def valid(self) -> bool:
        return self.camera_point is not None


def localize(
    pixel: PixelCoordinate,
    depth_m: float,
    intrinsics: Intrinsics,
    transform: ReferenceFrameTransform,
) -> Localization:
    """Deproject then transform; invalid depth yields an empty Localization."""
    point = deproject(pixel, depth_m, intrinsics)
    if isinstance(point, InvalidDepth):
        return Localization(pixel=pixel, depth_m=float(depth_m))
    return Localization(
        pixel=pixel,
        depth_m=float(depth_m),
        camera_point=point,
        reference_point=transform.apply(point),
    )


def sample_depth(depth_m: Optional[np.ndarray], pixel: PixelCoordinate) -> float:
    """Depth at a pixel in meters; 0.0 when missing or outside the frame."""
    if depth_m is None:
        return 0.0
    h, w = depth_m.shape[:2]
    if not (0 <= pixel.x < w and 0 <= pixel.y < h):
        return 0.0
    return float(depth_m[pixel.y, pixel.x])
