"""
blobtrack: click-to-track color blob tracking with depth-camera 3D localization

Modules
- color_model: Lab sampling + acceptance window calibration
- segmentation: color mask + dilation
- detector: SimpleBlobDetector candidates from a mask
- gate: nearest-neighbor association (Match | NoMatch)
- tracker: Idle / Acquiring / Tracking state machine with hold frames
- localizer: deprojection + camera-to-reference transform
- imu: camera roll / yaw from the accelerometer
- handoff: latest-frame slot and click mailbox between threads
- camera: RealSense / video producer threads
- processing: per-frame click -> mask -> step -> localize
- overlay: preview rendering
- app: live consumer loop, preview and mouse input
- video_tracking: offline tracking over recorded frames
- cli: blobtrack / blobtrack-offline entry points

Conventions
- Pixels: (x, y), origin top-left
- Colors: OpenCV 8-bit Lab [L, a, b]
- Points: meters, camera space x right / y down / z forward
"""

__all__ = [
    "config",
    "color_model",
    "segmentation",
    "detector",
    "gate",
    "tracker",
    "localizer",
    "imu",
    "handoff",
    "camera",
    "processing",
    "overlay",
    "app",
    "video_tracking",
    "cli",
]
