from typing import List, Optional, Sequence

import pytest

from wayfollow.sim.base_sim import BaseSimulation
from wayfollow.utils.geometry import Pose, Vector3
from wayfollow.utils.types import ControlCommand, Waypoint

_DEFAULT = object()


def waypoint_at(x: float, y: float, z: float = 0.0) -> Waypoint:
    return Waypoint(pose=Pose(location=Vector3(x, y, z)))


class FakeSimulation(BaseSimulation):
    """Scripted simulator that records every call the driver makes."""

    def __init__(
        self,
        pose: Optional[Pose] = None,
        speed: float = 0.0,
        max_steer: float = 70.0,
        nearest=_DEFAULT,
        successors=_DEFAULT,
    ):
        self.pose = pose or Pose()
        self.speed = speed
        self.max_steer = max_steer
        self.nearest = waypoint_at(0.0, 0.0) if nearest is _DEFAULT else nearest
        self.successors = [waypoint_at(1.0, 0.0)] if successors is _DEFAULT else successors
        self.commands: List[ControlCommand] = []
        self.resets: List[Pose] = []
        self.lockstep: List[tuple] = []
        self.spectator: List[Pose] = []
        self.steps = 0
        self.started = False
        self.stopped = False
        self.on_step = None

    def start(self) -> None:
        self.started = True

    def stop(self) -> None:
        self.stopped = True

    def get_pose(self) -> Pose:
        return self.pose

    def get_speed(self) -> float:
        return self.speed

    def get_max_steer_angle(self) -> float:
        return self.max_steer

    def get_nearest_waypoint(self, location: Vector3) -> Optional[Waypoint]:
        return self.nearest

    def get_successors(self, waypoint: Waypoint, distance: float) -> Sequence[Waypoint]:
        return list(self.successors)

    def reset_pose(self, pose: Pose) -> None:
        self.resets.append(pose)

    def submit_control(self, command: ControlCommand) -> None:
        self.commands.append(command)

    def advance_step(self) -> None:
        self.steps += 1
        if self.on_step is not None:
            self.on_step(self.steps)

    def set_lockstep_mode(self, enabled: bool, step_duration: Optional[float]) -> None:
        self.lockstep.append((enabled, step_duration))

    def set_spectator(self, pose: Pose) -> None:
        self.spectator.append(pose)


@pytest.fixture
def make_sim():
    return FakeSimulation


@pytest.fixture
def make_waypoint():
    return waypoint_at
