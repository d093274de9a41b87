from __future__ import annotations

import math
from typing import Tuple

from wayfollow.control.base_controller import BaseController
from wayfollow.utils.errors import ActuationLimitUnavailable
from wayfollow.utils.geometry import Pose, Vector3, clamp, normalize_angle, planar_bearing


def heading_error(pose: Pose, target_point: Vector3) -> float:
    """Signed angle (rad) from the current heading to the bearing of `target_point`."""
    return normalize_angle(planar_bearing(pose.location, target_point) - pose.yaw)


def steer_rate(heading_error_deg: float, deadband_deg: float, rate_step: float) -> float:
    # bang-bang with a deadband, fixed magnitude
    if abs(heading_error_deg) < deadband_deg:
        return 0.0
    return rate_step if heading_error_deg >= deadband_deg else -rate_step


def compute_steer(
    pose: Pose,
    target_point: Vector3,
    max_steer_angle_deg: float,
    deadband_deg: float = 3.0,
    rate_step: float = 0.1,
) -> Tuple[float, float, float]:
    """
    Returns (steer, steer_speed, heading_error_deg).

    steer is the heading error as a ratio of the vehicle's maximum steering
    angle, clamped to [-1, 1].
    """
    if not max_steer_angle_deg or max_steer_angle_deg <= 0 or not math.isfinite(max_steer_angle_deg):
        raise ActuationLimitUnavailable(f"Invalid max steering angle: {max_steer_angle_deg!r}")
    err_deg = math.degrees(heading_error(pose, target_point))
    steer = clamp(err_deg / max_steer_angle_deg, -1.0, 1.0)
    return steer, steer_rate(err_deg, deadband_deg, rate_step), err_deg


class HeadingSteerController(BaseController):
    def __init__(self, max_steer_angle_deg: float, deadband_deg: float = 3.0, rate_step: float = 0.1):
        if not max_steer_angle_deg or max_steer_angle_deg <= 0:
            raise ActuationLimitUnavailable(f"Invalid max steering angle: {max_steer_angle_deg!r}")
        self.max_steer_angle_deg = max_steer_angle_deg
        self.deadband_deg = deadband_deg
        self.rate_step = rate_step

    def compute(self, pose: Pose, target_point: Vector3) -> Tuple[float, float, float]:
        return compute_steer(pose, target_point, self.max_steer_angle_deg, self.deadband_deg, self.rate_step)
