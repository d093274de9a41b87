from __future__ import annotations

from wayfollow.control.base_controller import BaseController
from wayfollow.utils.geometry import kmh_to_mps


def compute_acceleration(current_speed: float, speed_threshold: float) -> float:
    """Acceleration gate: 1.0 below the threshold, 0.0 at or above it."""
    return 1.0 if current_speed < speed_threshold else 0.0


class SpeedController(BaseController):
    """
    Open-loop bang-bang speed gate. The cruise speed is passed through to the
    actuation layer; braking is left to it as well.
    """

    def __init__(self, target_speed_kmh: float, speed_threshold: float = 5.0):
        self.target_speed_kmh = target_speed_kmh
        self.speed_threshold = speed_threshold

    @property
    def cruise_speed(self) -> float:
        return kmh_to_mps(self.target_speed_kmh)

    def compute(self, current_speed: float) -> float:
        return compute_acceleration(current_speed, self.speed_threshold)
