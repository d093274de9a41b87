import math
from types import SimpleNamespace

import pytest

import wayfollow.sim.carla_sim as carla_sim
from wayfollow.sim.carla_sim import CarlaSimulation, to_pose, to_waypoint
from wayfollow.utils.errors import ActorSetupFailure, ActuationLimitUnavailable, RouteLookupFailure, SimulationConnectionFailure
from wayfollow.utils.geometry import Pose, Rotation, Vector3
from wayfollow.utils.types import ControlCommand, Waypoint


def _transform(x, y, z, yaw):
    return SimpleNamespace(
        location=SimpleNamespace(x=x, y=y, z=z),
        rotation=SimpleNamespace(pitch=0.0, yaw=yaw, roll=0.0),
    )


def _carla_waypoint(x, y, successors=()):
    return SimpleNamespace(transform=_transform(x, y, 0.0, 0.0), road_id=4, lane_id=-1, next=lambda d: list(successors))


def test_transform_conversion_uses_radians():
    pose = to_pose(_transform(1.0, 2.0, 3.0, 90.0))
    assert pose.location == Vector3(1.0, 2.0, 3.0)
    assert pose.yaw == pytest.approx(math.pi / 2)


def test_successors_wrap_backend_waypoints():
    succ = _carla_waypoint(1.0, 0.0)
    current = to_waypoint(_carla_waypoint(0.0, 0.0, successors=[succ]))
    sim = CarlaSimulation(start_pose=Pose())
    (nxt,) = sim.get_successors(current, 1.0)
    assert nxt.pose.location.x == 1.0
    assert nxt.handle is succ
    assert (nxt.road_id, nxt.lane_id) == (4, -1)


def test_max_steer_angle_is_widest_wheel():
    sim = CarlaSimulation(start_pose=Pose())
    wheels = [SimpleNamespace(max_steer_angle=a) for a in (70.0, 70.0, 0.0, 0.0)]
    sim.vehicle = SimpleNamespace(get_physics_control=lambda: SimpleNamespace(wheels=wheels))
    assert sim.get_max_steer_angle() == 70.0


def test_max_steer_angle_missing():
    sim = CarlaSimulation(start_pose=Pose())
    sim.vehicle = SimpleNamespace(get_physics_control=lambda: SimpleNamespace(wheels=[]))
    with pytest.raises(ActuationLimitUnavailable):
        sim.get_max_steer_angle()


def test_speed_is_velocity_norm():
    sim = CarlaSimulation(start_pose=Pose())
    sim.vehicle = SimpleNamespace(get_velocity=lambda: SimpleNamespace(x=3.0, y=4.0, z=0.0))
    assert sim.get_speed() == pytest.approx(5.0)


def test_runtime_errors_become_connection_failures():
    sim = CarlaSimulation(start_pose=Pose())

    def timeout():
        raise RuntimeError("time-out of 10000ms while waiting for the simulator")

    sim.world = SimpleNamespace(tick=timeout)
    with pytest.raises(SimulationConnectionFailure):
        sim.advance_step()


def test_start_requires_carla_package(monkeypatch):
    monkeypatch.setattr(carla_sim, "carla", None)
    with pytest.raises(ImportError):
        CarlaSimulation(start_pose=Pose()).start()


class _Recorder:
    def __init__(self):
        self.transforms = []

    def set_transform(self, transform):
        self.transforms.append(transform)


class _FakeVehicle(_Recorder):
    id = 7

    def __init__(self):
        super().__init__()
        self.autopilot = None
        self.controls = []
        self.destroyed = False

    def set_autopilot(self, enabled):
        self.autopilot = enabled

    def apply_ackermann_control(self, control):
        self.controls.append(control)

    def destroy(self):
        self.destroyed = True


class _FakeBlueprints:
    def find(self, name):
        if name != "vehicle.tesla.model3":
            raise IndexError(name)
        return SimpleNamespace(id=name)


class _FakeWorld:
    def __init__(self, vehicle):
        self.vehicle = vehicle
        self.spawned_at = None
        self.settings = SimpleNamespace(synchronous_mode=False, fixed_delta_seconds=None)
        self.applied = []
        self.spectator = _Recorder()
        self.map = SimpleNamespace(name="Town03", get_waypoint=lambda loc, project_to_road: None)

    def get_map(self):
        return self.map

    def get_blueprint_library(self):
        return _FakeBlueprints()

    def try_spawn_actor(self, blueprint, transform):
        self.spawned_at = transform
        return self.vehicle

    def get_settings(self):
        return self.settings

    def apply_settings(self, settings):
        self.applied.append((settings.synchronous_mode, settings.fixed_delta_seconds))

    def get_spectator(self):
        return self.spectator


def _fake_carla(world):
    class Client:
        def __init__(self, host, port):
            self.address = (host, port)
            self.loaded = None

        def set_timeout(self, seconds):
            self.timeout = seconds

        def get_world(self):
            return world

        def load_world(self, name):
            self.loaded = name
            return world

    return SimpleNamespace(
        Client=Client,
        Location=lambda **kw: SimpleNamespace(**kw),
        Rotation=lambda **kw: SimpleNamespace(**kw),
        Transform=lambda location, rotation: SimpleNamespace(location=location, rotation=rotation),
        VehicleAckermannControl=lambda **kw: SimpleNamespace(**kw),
    )


START_POSE = Pose(location=Vector3(83.075226, 13.414804, 0.6), rotation=Rotation.from_degrees(yaw=-179.84079))


@pytest.fixture
def started(monkeypatch):
    vehicle = _FakeVehicle()
    world = _FakeWorld(vehicle)
    monkeypatch.setattr(carla_sim, "carla", _fake_carla(world))
    sim = CarlaSimulation(start_pose=START_POSE, world="Town03")
    sim.start()
    return sim, world, vehicle


def test_start_spawns_vehicle_at_start_pose(started):
    sim, world, vehicle = started
    assert sim.client.loaded == "Town03"
    assert sim.client.address == ("localhost", 2000)
    assert world.spawned_at.location.x == pytest.approx(83.075226)
    assert world.spawned_at.rotation.yaw == pytest.approx(-179.84079)
    assert vehicle.autopilot is False


def test_start_rejects_unknown_blueprint(monkeypatch):
    monkeypatch.setattr(carla_sim, "carla", _fake_carla(_FakeWorld(_FakeVehicle())))
    with pytest.raises(ActorSetupFailure):
        CarlaSimulation(start_pose=START_POSE, vehicle_blueprint="vehicle.unknown").start()


def test_start_reports_failed_spawn(monkeypatch):
    monkeypatch.setattr(carla_sim, "carla", _fake_carla(_FakeWorld(None)))
    with pytest.raises(ActorSetupFailure):
        CarlaSimulation(start_pose=START_POSE).start()


def test_control_maps_to_ackermann_fields(started):
    sim, _, vehicle = started
    sim.submit_control(ControlCommand(steer=-0.5, steer_speed=-0.1, speed=1.39, acceleration=1.0))
    (control,) = vehicle.controls
    assert (control.steer, control.steer_speed, control.speed, control.acceleration, control.jerk) == (
        -0.5,
        -0.1,
        1.39,
        1.0,
        0.0,
    )


def test_lockstep_toggle_and_restore(started):
    sim, world, _ = started
    sim.set_lockstep_mode(True, 0.05)
    sim.set_lockstep_mode(False, None)
    assert world.applied == [(True, 0.05), (False, None)]


def test_reset_and_spectator_send_transforms(started):
    sim, world, vehicle = started
    sim.reset_pose(START_POSE)
    sim.set_spectator(START_POSE.offset((-10.0, 0.0, 7.0)))
    assert vehicle.transforms[0].location.y == pytest.approx(13.414804)
    assert vehicle.transforms[0].rotation.yaw == pytest.approx(-179.84079)
    assert world.spectator.transforms[0].location.z == pytest.approx(7.6)


def test_off_road_location_has_no_waypoint(started):
    sim, _, _ = started
    assert sim.get_nearest_waypoint(Vector3(1e4, 1e4, 0.0)) is None


def test_stop_destroys_vehicle(started):
    sim, _, vehicle = started
    sim.stop()
    assert vehicle.destroyed
    assert sim.vehicle is None


def test_waypoint_without_map_handle_is_lookup_failure():
    sim = CarlaSimulation(start_pose=Pose())
    with pytest.raises(RouteLookupFailure):
        sim.get_successors(Waypoint(pose=Pose()), 1.0)
