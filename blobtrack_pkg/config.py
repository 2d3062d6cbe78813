"""
Configuration classes for the blob tracker.

One TrackerConfig instance is owned by the application loop and passed by
reference to every component call. The tuning UI writes into it directly.
"""
from dataclasses import dataclass, field, asdict
from pathlib import Path
from typing import List, Optional, Tuple, Union

import yaml


@dataclass
class ColorConfig:
    """Color model and mask configuration."""
    lightness_tolerance: int = 50  # L* half-width
    chroma_tolerance: int = 15  # a*, b* half-width
    dilate_radius: int = 2

    def __post_init__(self):
        if self.lightness_tolerance < 0 or self.chroma_tolerance < 0:
            raise ValueError("color tolerances must be non-negative")
        if self.dilate_radius < 0:
            raise ValueError("dilate_radius must be non-negative")


@dataclass
class GateConfig:
    """Association and persistence configuration."""
    max_distance_px: float = 30.0
    max_hold_frames: int = 15

    def __post_init__(self):
        if self.max_distance_px < 0:
            raise ValueError("max_distance_px must be non-negative")
        if self.max_hold_frames < 0:
            raise ValueError("max_hold_frames must be non-negative")


@dataclass
class DetectorConfig:
    """Blob shape filters, as fractions in (0, 1]."""
    circularity_min: float = 0.50
    convexity_min: float = 0.70
    inertia_min: float = 0.60
    min_area: float = 300.0
    max_area: float = 600000.0


@dataclass
class CameraConfig:
    """Acquisition configuration."""
    source: str = "realsense"  # realsense, video
    serial: Optional[str] = None
    video_path: Optional[str] = None  # file path or webcam index for source=video
    width: int = 1280
    height: int = 720
    fps: int = 30
    use_filters: bool = True  # disparity + spatial + temporal
    hole_fill: int = 5  # spatial filter hole filling mode (5 = fill all zero pixels)
    fov_deg: float = 69.0  # only used when the source reports no intrinsics


# Camera-to-reference-frame extrinsic, homogeneous 4x4
DEFAULT_EXTRINSIC: List[List[float]] = [
    [1.0, 0.0, 0.0, 0.0],
    [0.0, 1.0, 0.0, -0.09],
    [0.0, 0.0, 1.0, -0.15],
    [0.0, 0.0, 0.0, 1.0],
]


@dataclass
class ExtrinsicsConfig:
    """
    Fixed sensor-to-reference transform.

    Given either as a 4x4 matrix, or as Euler angles (degrees, xyz order) and
    a translation in meters. When euler_deg or translation is set, the matrix
    is ignored.
    """
    matrix: List[List[float]] = field(default_factory=lambda: [list(r) for r in DEFAULT_EXTRINSIC])
    euler_deg: Optional[List[float]] = None
    translation: Optional[List[float]] = None

    def __post_init__(self):
        if len(self.matrix) != 4 or any(len(r) != 4 for r in self.matrix):
            raise ValueError("extrinsic matrix must be 4x4")
        for name in ("euler_deg", "translation"):
            value = getattr(self, name)
            if value is not None and len(value) != 3:
                raise ValueError(f"extrinsics.{name} must have 3 values")


@dataclass
class DisplayConfig:
    """Preview window configuration."""
    enabled: bool = True
    window_name: str = "BlobTracker"
    show_mask: bool = True
    cross_half_size: int = 50


@dataclass
class TrackerConfig:
    """Complete tracker configuration."""
    color: ColorConfig = field(default_factory=ColorConfig)
    gate: GateConfig = field(default_factory=GateConfig)
    detector: DetectorConfig = field(default_factory=DetectorConfig)
    camera: CameraConfig = field(default_factory=CameraConfig)
    extrinsics: ExtrinsicsConfig = field(default_factory=ExtrinsicsConfig)
    display: DisplayConfig = field(default_factory=DisplayConfig)

    @classmethod
    def from_args(cls, args, base: Optional["TrackerConfig"] = None):
        """Overlay argparse values (None = keep) onto a base config."""
        config = base if base is not None else cls()

        def _set(section, name, attr):
            value = getattr(args, attr, None)
            if value is not None:
                setattr(section, name, value)

        _set(config.camera, "source", "source")
        _set(config.camera, "serial", "serial")
        _set(config.camera, "video_path", "video")
        _set(config.camera, "width", "width")
        _set(config.camera, "height", "height")
        _set(config.camera, "fps", "fps")
        _set(config.camera, "fov_deg", "fov_deg")
        if getattr(args, "no_filters", False):
            config.camera.use_filters = False

        _set(config.color, "lightness_tolerance", "lightness_tol")
        _set(config.color, "chroma_tolerance", "chroma_tol")
        _set(config.color, "dilate_radius", "dilate")
        _set(config.gate, "max_distance_px", "max_distance")
        _set(config.gate, "max_hold_frames", "max_hold")

        euler = getattr(args, "extrinsic_euler", None)
        if euler is not None:
            config.extrinsics.euler_deg = floats_from_string(euler, 3)
        translation = getattr(args, "extrinsic_translation", None)
        if translation is not None:
            config.extrinsics.translation = floats_from_string(translation, 3)

        if getattr(args, "no_window", False):
            config.display.enabled = False

        # Re-run validation on the touched sections
        config.color.__post_init__()
        config.gate.__post_init__()
        config.extrinsics.__post_init__()
        return config

    def to_dict(self) -> dict:
        """Convert config to dictionary (for YAML export)."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict):
        """Create config from dictionary (for YAML import)."""
        data = dict(data or {})
        sections = {
            "color": ColorConfig,
            "gate": GateConfig,
            "detector": DetectorConfig,
            "camera": CameraConfig,
            "extrinsics": ExtrinsicsConfig,
            "display": DisplayConfig,
        }
        unknown = set(data) - set(sections)
        if unknown:
            raise ValueError(f"Unknown config section(s): {', '.join(sorted(unknown))}")

        kwargs = {}
        for name, section_cls in sections.items():
            section = data.get(name)
            if section is None:
                continue
            if not isinstance(section, dict):
                raise ValueError(f"Config section '{name}' must be a mapping")
            kwargs[name] = section_cls(**section)
        return cls(**kwargs)


def load_config(path: Union[str, Path]) -> TrackerConfig:
    """Load a TrackerConfig from a YAML file."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Config not found: {path}")
    with open(path, "r") as f:
        try:
            data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ValueError(f"Malformed YAML in {path}: {e}") from e
    return TrackerConfig.from_dict(data or {})


def save_config(config: TrackerConfig, path: Union[str, Path]) -> None:
    """Write a TrackerConfig to a YAML file."""
    with open(path, "w") as f:
        yaml.safe_dump(config.to_dict(), f, sort_keys=False)


def click_from_string(text: str) -> Tuple[int, int]:
    """Parse 'x,y' into a pixel tuple."""
    parts = [int(float(t)) for t in text.split(",")]
    if len(parts) != 2:
        raise ValueError("Click must be 2 comma-separated integers (x,y)")
    return parts[0], parts[1]


def floats_from_string(text: str, count: int) -> List[float]:
    """Parse 'a,b,c' into `count` floats."""
    values = [float(t) for t in text.split(",")]
    if len(values) != count:
        raise ValueError(f"Expected {count} comma-separated numbers, got '{text}'")
    return values
