from __future__ import annotations

import time
from enum import Enum
from typing import Generator, Optional, Tuple

import numpy as np

from wayfollow.control.speed import SpeedController
from wayfollow.control.steering import HeadingSteerController
from wayfollow.planning.waypoint_selector import ResetRequired, WaypointSelector
from wayfollow.runtime.cancellation import CancellationToken
from wayfollow.runtime.event_logger import EventLogger
from wayfollow.runtime.health_monitor import HealthMonitor
from wayfollow.sim.base_sim import BaseSimulation
from wayfollow.utils.config import ControllerConfig
from wayfollow.utils.errors import SimulationConnectionFailure
from wayfollow.utils.geometry import Pose
from wayfollow.utils.logger import get_logger
from wayfollow.utils.timing import TickMeter, elapsed_ms
from wayfollow.utils.types import ControlCommand, TickResult, TickStatus


class LoopState(str, Enum):
    RUNNING = "RUNNING"
    STOPPED = "STOPPED"


class ControlLoopDriver:
    """
    Lock-step control loop: one pose read, one waypoint resolution, at most one
    command and exactly one simulation step per tick.

    A failed waypoint resolution sends the vehicle back to `start_pose` and
    issues no command for that tick; the simulation is still stepped so the
    teleport takes effect before the next pose read.
    """

    def __init__(
        self,
        sim: BaseSimulation,
        config: ControllerConfig,
        start_pose: Pose,
        token: Optional[CancellationToken] = None,
        logger=None,
        fixed_delta_s: float = 0.05,
        spectator_offset: Optional[Tuple[float, float, float]] = None,
        health: Optional[HealthMonitor] = None,
        events: Optional[EventLogger] = None,
        rng: Optional[np.random.Generator] = None,
    ):
        self.sim = sim
        self.config = config
        self.start_pose = start_pose
        self.token = token or CancellationToken()
        self.logger = logger or get_logger(__name__)
        self.fixed_delta_s = fixed_delta_s
        self.spectator_offset = spectator_offset
        self.health = health or HealthMonitor({})
        self.events = events
        self.selector = WaypointSelector(
            sim,
            policy=config.successor_policy,
            rng=rng if rng is not None else np.random.default_rng(config.seed),
        )
        self.speed_controller = SpeedController(config.target_speed, config.speed_threshold)
        self.steer_controller: Optional[HeadingSteerController] = None
        self.meter = TickMeter()
        self.state = LoopState.RUNNING
        self.ticks_run = 0

    def start(self) -> None:
        # Raises ActuationLimitUnavailable before the simulator is switched
        # to lock-step, so nothing needs restoring on that path.
        max_steer = self.sim.get_max_steer_angle()
        self.steer_controller = HeadingSteerController(
            max_steer,
            deadband_deg=self.config.heading_deadband,
            rate_step=self.config.steer_rate_step,
        )
        self.logger.info("Max steering angle: %.2f deg", max_steer)
        self.sim.set_lockstep_mode(True, self.fixed_delta_s)
        self.logger.info("Lock-step mode on (dt=%.3f s)", self.fixed_delta_s)
        self.state = LoopState.RUNNING
        self._event(0, LoopState.RUNNING.value, "Control loop started", {"policy": self.config.successor_policy})

    def step(self, tick: int) -> TickResult:
        t0 = time.perf_counter()
        pose = self.sim.get_pose()

        if self.spectator_offset is not None:
            self.sim.set_spectator(pose.offset(self.spectator_offset))

        resolution = self.selector.resolve(pose, self.config.lookahead_distance)
        if isinstance(resolution, ResetRequired):
            self.logger.debug("Tick %d: route lookup failed (%s); resetting to start pose", tick, resolution.reason)
            self.sim.reset_pose(self.start_pose)
            self.health.record_reset()
            self._event(tick, "RESETTING", "Route lookup failed", {"reason": resolution.reason})
            result = TickResult(tick=tick, status=TickStatus.RESET)
        else:
            speed = self.sim.get_speed()
            steer, steer_speed, err_deg = self.steer_controller.compute(pose, resolution.waypoint.pose.location)
            command = ControlCommand(
                steer=steer,
                steer_speed=steer_speed,
                speed=self.speed_controller.cruise_speed,
                acceleration=self.speed_controller.compute(speed),
            )
            self.sim.submit_control(command)
            self.health.record_control()
            self._event(tick, LoopState.RUNNING.value, "Following route", {})
            result = TickResult(
                tick=tick,
                status=TickStatus.CONTROL,
                command=command,
                heading_error_deg=err_deg,
                speed_mps=speed,
            )

        self.sim.advance_step()
        result.latency_ms = elapsed_ms(t0)
        result.tick_rate = self.meter.tick()
        self.health.check_latency(result.latency_ms)
        return result

    def ticks(self, max_ticks: Optional[int] = None) -> Generator[TickResult, None, None]:
        # STOPPED is terminal
        if self.state == LoopState.STOPPED:
            self.logger.warning("Control loop already stopped; ignoring restart")
            return
        self.start()
        restore = True
        tick = 0
        try:
            while not self.token.cancelled:
                if max_ticks is not None and tick >= max_ticks:
                    break
                tick += 1
                self.ticks_run = tick
                yield self.step(tick)
        except SimulationConnectionFailure:
            restore = False
            raise
        finally:
            self.shutdown(tick, restore=restore)

    def run(self, max_ticks: Optional[int] = None) -> int:
        for _ in self.ticks(max_ticks):
            pass
        return self.ticks_run

    def shutdown(self, tick: int, restore: bool = True) -> None:
        if self.state == LoopState.STOPPED:
            return
        self.state = LoopState.STOPPED
        if restore:
            self.sim.set_lockstep_mode(False, None)
            self.logger.info("Lock-step mode off; simulator free-running")
        if not restore:
            reason = "connection_lost"
        else:
            reason = "cancelled" if self.token.cancelled else "finished"
        self.logger.info("Control loop stopped after %d ticks (%s)", tick, reason)
        self._event(tick, LoopState.STOPPED.value, "Control loop stopped", {"reason": reason})

    def _event(self, tick: int, state: str, message: str, details: dict) -> None:
        if self.events is not None:
            self.events.log(tick=tick, state=state, message=message, details=details)
