from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import yaml

from wayfollow.utils.geometry import Pose, Rotation, Vector3

SUCCESSOR_POLICIES = ("first", "random")


def load_yaml(path: str | Path) -> Dict[str, Any]:
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(f"Config not found: {config_path.resolve()}")
    with config_path.open("r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def get(cfg: Dict[str, Any], key: str, default: Any = None) -> Any:
    """
    Dot-access helper:
      get(cfg, "control.lookahead_distance", 1.0)
    """
    cur: Any = cfg
    for part in key.split("."):
        if not isinstance(cur, dict) or part not in cur:
            return default
        cur = cur[part]
    return cur


def put(cfg: Dict[str, Any], key: str, value: Any) -> None:
    """Dot-path setter used for CLI overrides. Skips None values."""
    if value is None:
        return
    parts = key.split(".")
    cur = cfg
    for part in parts[:-1]:
        cur = cur.setdefault(part, {})
    cur[parts[-1]] = value


@dataclass(frozen=True)
class ControllerConfig:
    target_speed: float = 5.0  # km/h
    speed_threshold: float = 5.0  # m/s
    heading_deadband: float = 3.0  # degrees
    steer_rate_step: float = 0.1
    lookahead_distance: float = 1.0  # m
    successor_policy: str = "first"
    seed: Optional[int] = None

    def __post_init__(self):
        if self.successor_policy not in SUCCESSOR_POLICIES:
            raise ValueError(f"Unknown successor policy: {self.successor_policy!r} (expected one of {SUCCESSOR_POLICIES})")
        if self.lookahead_distance <= 0:
            raise ValueError(f"lookahead_distance must be positive, got {self.lookahead_distance}")
        if self.heading_deadband < 0:
            raise ValueError(f"heading_deadband must be non-negative, got {self.heading_deadband}")

    @classmethod
    def from_dict(cls, cfg: Dict[str, Any]) -> "ControllerConfig":
        seed = get(cfg, "control.seed")
        return cls(
            target_speed=float(get(cfg, "control.target_speed_kmh", cls.target_speed)),
            speed_threshold=float(get(cfg, "control.speed_threshold", cls.speed_threshold)),
            heading_deadband=float(get(cfg, "control.heading_deadband_deg", cls.heading_deadband)),
            steer_rate_step=float(get(cfg, "control.steer_rate_step", cls.steer_rate_step)),
            lookahead_distance=float(get(cfg, "control.lookahead_distance", cls.lookahead_distance)),
            successor_policy=str(get(cfg, "control.successor_policy", cls.successor_policy)).lower(),
            seed=int(seed) if seed is not None else None,
        )


def start_pose_from(cfg: Dict[str, Any]) -> Pose:
    sp = get(cfg, "simulation.start_pose", {}) or {}
    return Pose(
        location=Vector3(float(sp.get("x", 0.0)), float(sp.get("y", 0.0)), float(sp.get("z", 0.0))),
        rotation=Rotation.from_degrees(
            roll=float(sp.get("roll_deg", 0.0)),
            pitch=float(sp.get("pitch_deg", 0.0)),
            yaw=float(sp.get("yaw_deg", 0.0)),
        ),
    )


def spectator_offset_from(cfg: Dict[str, Any]) -> Optional[Tuple[float, float, float]]:
    if not bool(get(cfg, "spectator.enabled", True)):
        return None
    off = get(cfg, "spectator.offset", [-10.0, 0.0, 7.0])
    return float(off[0]), float(off[1]), float(off[2])
