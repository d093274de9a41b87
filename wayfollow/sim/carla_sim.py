from __future__ import annotations

import math
from contextlib import contextmanager
from typing import Iterator, List, Optional, Sequence

try:
    import carla
except ImportError:  # pragma: no cover
    carla = None

from wayfollow.sim.base_sim import BaseSimulation
from wayfollow.utils.errors import (
    ActorSetupFailure,
    ActuationLimitUnavailable,
    RouteLookupFailure,
    SimulationConnectionFailure,
)
from wayfollow.utils.geometry import Pose, Rotation, Vector3
from wayfollow.utils.logger import get_logger
from wayfollow.utils.types import ControlCommand, Waypoint


def to_pose(transform) -> Pose:
    loc, rot = transform.location, transform.rotation
    return Pose(
        location=Vector3(loc.x, loc.y, loc.z),
        rotation=Rotation.from_degrees(roll=rot.roll, pitch=rot.pitch, yaw=rot.yaw),
    )


def to_transform(pose: Pose):
    rot = pose.rotation
    return carla.Transform(
        carla.Location(x=pose.location.x, y=pose.location.y, z=pose.location.z),
        carla.Rotation(pitch=math.degrees(rot.pitch), yaw=math.degrees(rot.yaw), roll=math.degrees(rot.roll)),
    )


def to_waypoint(wp) -> Waypoint:
    return Waypoint(pose=to_pose(wp.transform), road_id=wp.road_id, lane_id=wp.lane_id, handle=wp)


class CarlaSimulation(BaseSimulation):
    def __init__(
        self,
        start_pose: Pose,
        host: str = "localhost",
        port: int = 2000,
        world: Optional[str] = None,
        timeout_s: float = 10.0,
        vehicle_blueprint: str = "vehicle.tesla.model3",
        project_to_road: bool = True,
    ):
        self.start_pose = start_pose
        self.host = host
        self.port = port
        self.world_name = world
        self.timeout_s = timeout_s
        self.vehicle_blueprint = vehicle_blueprint
        self.project_to_road = project_to_road
        self.logger = get_logger(__name__)
        self.client = None
        self.world = None
        self.map = None
        self.vehicle = None

    @contextmanager
    def _rpc(self, what: str) -> Iterator[None]:
        # The CARLA client reports timeouts and lost connections as RuntimeError.
        try:
            yield
        except RuntimeError as exc:
            raise SimulationConnectionFailure(f"{what} failed ({self.host}:{self.port}): {exc}") from exc

    def start(self) -> None:
        if carla is None:
            raise ImportError("carla is required for CarlaSimulation (pip install 'wayfollow[sim]')")

        with self._rpc("connect"):
            self.client = carla.Client(self.host, self.port)
            self.client.set_timeout(self.timeout_s)
            if self.world_name:
                self.world = self.client.load_world(self.world_name)
            else:
                self.world = self.client.get_world()
            self.map = self.world.get_map()
        self.logger.info("Connected to CARLA %s:%d map=%s", self.host, self.port, self.map.name)

        with self._rpc("spawn"):
            try:
                blueprint = self.world.get_blueprint_library().find(self.vehicle_blueprint)
            except IndexError as exc:
                raise ActorSetupFailure(f"Blueprint not found: {self.vehicle_blueprint}") from exc
            self.vehicle = self.world.try_spawn_actor(blueprint, to_transform(self.start_pose))
        if self.vehicle is None:
            raise ActorSetupFailure(f"Could not spawn {self.vehicle_blueprint} at {self.start_pose.location}")
        with self._rpc("set_autopilot"):
            self.vehicle.set_autopilot(False)
        self.logger.info("Spawned %s (id=%d) at %s", self.vehicle_blueprint, self.vehicle.id, self.start_pose.location)

    def stop(self) -> None:
        if self.vehicle is not None:
            with self._rpc("destroy"):
                self.vehicle.destroy()
            self.logger.info("Destroyed vehicle")
            self.vehicle = None

    def get_pose(self) -> Pose:
        with self._rpc("get_transform"):
            return to_pose(self.vehicle.get_transform())

    def get_speed(self) -> float:
        with self._rpc("get_velocity"):
            v = self.vehicle.get_velocity()
        return math.sqrt(v.x * v.x + v.y * v.y + v.z * v.z)

    def get_max_steer_angle(self) -> float:
        with self._rpc("get_physics_control"):
            physics = self.vehicle.get_physics_control()
        angles: List[float] = [w.max_steer_angle for w in physics.wheels]
        if not angles or max(angles) <= 0:
            raise ActuationLimitUnavailable("Unable to obtain max steering angle from the vehicle")
        return float(max(angles))

    def get_nearest_waypoint(self, location: Vector3) -> Optional[Waypoint]:
        with self._rpc("get_waypoint"):
            wp = self.map.get_waypoint(
                carla.Location(x=location.x, y=location.y, z=location.z),
                project_to_road=self.project_to_road,
            )
        return to_waypoint(wp) if wp is not None else None

    def get_successors(self, waypoint: Waypoint, distance: float) -> Sequence[Waypoint]:
        if waypoint.handle is None:
            raise RouteLookupFailure(f"Waypoint at {waypoint.pose.location} has no map handle")
        with self._rpc("waypoint.next"):
            return [to_waypoint(wp) for wp in waypoint.handle.next(distance)]

    def reset_pose(self, pose: Pose) -> None:
        with self._rpc("set_transform"):
            self.vehicle.set_transform(to_transform(pose))

    def submit_control(self, command: ControlCommand) -> None:
        control = carla.VehicleAckermannControl(
            steer=float(command.steer),
            steer_speed=float(command.steer_speed),
            speed=float(command.speed),
            acceleration=float(command.acceleration),
            jerk=float(command.jerk),
        )
        with self._rpc("apply_ackermann_control"):
            self.vehicle.apply_ackermann_control(control)

    def advance_step(self) -> None:
        with self._rpc("tick"):
            self.world.tick()

    def set_lockstep_mode(self, enabled: bool, step_duration: Optional[float]) -> None:
        with self._rpc("apply_settings"):
            settings = self.world.get_settings()
            settings.synchronous_mode = enabled
            settings.fixed_delta_seconds = step_duration
            self.world.apply_settings(settings)

    def set_spectator(self, pose: Pose) -> None:
        with self._rpc("spectator"):
            self.world.get_spectator().set_transform(to_transform(pose))
