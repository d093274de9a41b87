from __future__ import annotations

import argparse
import json
import sys
from dataclasses import asdict
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

from rich.console import Console
from tqdm import tqdm

from wayfollow.runtime.cancellation import CancellationToken, install_sigint_handler
from wayfollow.runtime.driver import ControlLoopDriver
from wayfollow.runtime.event_logger import EventLogger
from wayfollow.runtime.health_monitor import HealthMonitor
from wayfollow.sim.base_sim import BaseSimulation
from wayfollow.sim.carla_sim import CarlaSimulation
from wayfollow.utils.config import ControllerConfig, get, load_yaml, put, spectator_offset_from, start_pose_from
from wayfollow.utils.errors import ActorSetupFailure, ActuationLimitUnavailable, SimulationConnectionFailure
from wayfollow.utils.logger import setup_logger
from wayfollow.utils.types import TickStatus

DEFAULT_CONFIG = "configs/follower.yaml"


def make_run_dir(base_dir: str | Path) -> Path:
    ts = datetime.now().strftime("%Y%m%d_%H%M%S")
    run_dir = Path(base_dir) / f"run_{ts}"
    run_dir.mkdir(parents=True, exist_ok=True)
    return run_dir


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="wayfollow - waypoint-following controller for CARLA")
    parser.add_argument("--config", default=DEFAULT_CONFIG, help="Path to YAML config")
    parser.add_argument("--host", default=None, help="Simulator host (overrides simulation.host)")
    parser.add_argument("--port", type=int, default=None, help="Simulator port (overrides simulation.port)")
    parser.add_argument("--world", default=None, help="World to load; current world when omitted")
    parser.add_argument("--target-speed", type=float, default=None, help="Cruise speed in km/h")
    parser.add_argument("--policy", choices=["first", "random"], default=None, help="Successor selection policy")
    parser.add_argument("--seed", type=int, default=None, help="Seed for the random successor policy")
    parser.add_argument("--max-ticks", type=int, default=None, help="Stop after this many ticks")
    return parser.parse_args(argv)


def apply_overrides(cfg: Dict[str, Any], args: argparse.Namespace) -> Dict[str, Any]:
    put(cfg, "simulation.host", args.host)
    put(cfg, "simulation.port", args.port)
    put(cfg, "simulation.world", args.world)
    put(cfg, "control.target_speed_kmh", args.target_speed)
    put(cfg, "control.successor_policy", args.policy)
    put(cfg, "control.seed", args.seed)
    put(cfg, "runtime.max_ticks", args.max_ticks)
    return cfg


def build_simulation(cfg: Dict[str, Any]) -> BaseSimulation:
    return CarlaSimulation(
        start_pose=start_pose_from(cfg),
        host=str(get(cfg, "simulation.host", "localhost")),
        port=int(get(cfg, "simulation.port", 2000)),
        world=get(cfg, "simulation.world"),
        timeout_s=float(get(cfg, "simulation.timeout_s", 10.0)),
        vehicle_blueprint=str(get(cfg, "simulation.vehicle_blueprint", "vehicle.tesla.model3")),
        project_to_road=bool(get(cfg, "simulation.project_to_road", True)),
    )


def run(cfg: Dict[str, Any], token: Optional[CancellationToken] = None) -> int:
    output_base = get(cfg, "runtime.output_dir", "results")
    run_dir = make_run_dir(output_base)
    logger = setup_logger(log_dir=run_dir, level=get(cfg, "runtime.log_level", "INFO"))

    console = Console()
    console.print(f"[bold]wayfollow[/bold] run dir: {run_dir}")

    try:
        config = ControllerConfig.from_dict(cfg)
    except ValueError as exc:
        logger.error("Invalid control config: %s", exc)
        return 2
    logger.info("Controller config: %s", config)

    token = token or CancellationToken()
    sim = build_simulation(cfg)
    max_ticks = get(cfg, "runtime.max_ticks")
    max_ticks = int(max_ticks) if max_ticks is not None else None

    metrics: Dict[str, Any] = {
        "config": asdict(config),
        "ticks": 0,
        "commands": 0,
        "resets": 0,
        "budget_misses": 0,
        "stop_reason": None,
        "latency_ms": {"avg": 0.0, "max": 0.0},
        "tick_rate": 0.0,
    }

    fixed_delta_s = float(get(cfg, "simulation.fixed_delta_s", 0.05))
    health = HealthMonitor(get(cfg, "runtime", {}) or {})
    exit_code = 0
    connection_lost = False
    try:
        sim.start()
        driver = ControlLoopDriver(
            sim,
            config,
            start_pose=start_pose_from(cfg),
            token=token,
            logger=logger,
            fixed_delta_s=fixed_delta_s,
            spectator_offset=spectator_offset_from(cfg),
            health=health,
            events=EventLogger(run_dir, step_s=fixed_delta_s),
        )
        latency_sum = 0.0
        for result in tqdm(driver.ticks(max_ticks), total=max_ticks, desc="Driving"):
            metrics["ticks"] += 1
            if result.status == TickStatus.CONTROL:
                metrics["commands"] += 1
            latency_sum += result.latency_ms
            metrics["latency_ms"]["max"] = max(metrics["latency_ms"]["max"], result.latency_ms)
            metrics["tick_rate"] = result.tick_rate
        if metrics["ticks"]:
            metrics["latency_ms"]["avg"] = latency_sum / metrics["ticks"]
        metrics["stop_reason"] = "cancelled" if token.cancelled else "max_ticks"
    except (ActuationLimitUnavailable, ActorSetupFailure, SimulationConnectionFailure) as exc:
        logger.error("Fatal: %s: %s", type(exc).__name__, exc)
        metrics["stop_reason"] = type(exc).__name__
        connection_lost = isinstance(exc, SimulationConnectionFailure)
        exit_code = 1
    finally:
        metrics["resets"] = health.total_resets
        metrics["budget_misses"] = health.budget_misses
        if not connection_lost:
            try:
                sim.stop()
            except SimulationConnectionFailure as exc:
                logger.error("Cleanup failed: %s", exc)
                exit_code = 1

    if bool(get(cfg, "runtime.save_metrics", True)):
        metrics_path = run_dir / "metrics.json"
        metrics_path.write_text(json.dumps(metrics, indent=2), encoding="utf-8")
        logger.info("Saved metrics: %s", metrics_path)

    logger.info("Done (exit code %d).", exit_code)
    return exit_code


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    cfg: Dict[str, Any] = load_yaml(args.config)
    apply_overrides(cfg, args)
    token = CancellationToken()
    install_sigint_handler(token)
    return run(cfg, token)


if __name__ == "__main__":
    sys.exit(main())
