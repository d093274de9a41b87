import abc
from typing import Optional, Sequence

from wayfollow.utils.geometry import Pose, Vector3
from wayfollow.utils.types import ControlCommand, Waypoint


class BaseSimulation(abc.ABC):
    """Blocking, host-controlled simulator the driver talks to once per tick."""

    def start(self) -> None:
        return

    def stop(self) -> None:
        return

    @abc.abstractmethod
    def get_pose(self) -> Pose:
        ...

    @abc.abstractmethod
    def get_speed(self) -> float:
        ...

    @abc.abstractmethod
    def get_max_steer_angle(self) -> float:
        ...

    @abc.abstractmethod
    def get_nearest_waypoint(self, location: Vector3) -> Optional[Waypoint]:
        ...

    @abc.abstractmethod
    def get_successors(self, waypoint: Waypoint, distance: float) -> Sequence[Waypoint]:
        ...

    @abc.abstractmethod
    def reset_pose(self, pose: Pose) -> None:
        ...

    @abc.abstractmethod
    def submit_control(self, command: ControlCommand) -> None:
        ...

    @abc.abstractmethod
    def advance_step(self) -> None:
        ...

    @abc.abstractmethod
    def set_lockstep_mode(self, enabled: bool, step_duration: Optional[float]) -> None:
        ...

    def set_spectator(self, pose: Pose) -> None:
        return
