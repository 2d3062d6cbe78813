"""
Camera tilt from the accelerometer stream.
"""
import math
from typing import Tuple


def tilt_from_accel(ax: float, ay: float, az: float) -> Tuple[float, float]:
    """
    Roll and yaw of the camera body, in degrees, from a gravity sample.

    Roll is offset by 90 degrees so a level camera reads 0, and wrapped into
    (-180, 180].

    Returns:
        (roll_deg, yaw_deg)
    """
    yaw = math.atan2(-ax, math.sqrt(ay * ay + az * az))
    roll = math.atan2(ay, az)

    yaw_deg = math.degrees(yaw)
    roll_deg = math.degrees(roll) + 90.0
    if roll_deg > 180.0:
        roll_deg -= 360.0
    return roll_deg, yaw_deg
