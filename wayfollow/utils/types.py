from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from wayfollow.utils.geometry import Pose


@dataclass(frozen=True)
class Waypoint:
    pose: Pose
    road_id: Optional[int] = None
    lane_id: Optional[int] = None
    # backend object used by the simulation to answer successor queries
    handle: Any = None


@dataclass
class ControlCommand:
    steer: float
    steer_speed: float
    speed: float
    acceleration: float
    jerk: float = 0.0  # reserved


class TickStatus(str, Enum):
    CONTROL = "CONTROL"
    RESET = "RESET"


@dataclass
class TickResult:
    tick: int
    status: TickStatus
    command: Optional[ControlCommand] = None
    heading_error_deg: Optional[float] = None
    speed_mps: float = 0.0
    latency_ms: float = 0.0
    tick_rate: float = 0.0
