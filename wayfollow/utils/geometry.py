from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Sequence, Tuple

import numpy as np


@dataclass(frozen=True)
class Vector3:
    x: float = 0.0
    y: float = 0.0
    z: float = 0.0

    def __sub__(self, other: "Vector3") -> "Vector3":
        return Vector3(self.x - other.x, self.y - other.y, self.z - other.z)

    def __add__(self, other: "Vector3") -> "Vector3":
        return Vector3(self.x + other.x, self.y + other.y, self.z + other.z)

    def as_array(self) -> np.ndarray:
        return np.array([self.x, self.y, self.z], dtype=float)

    @classmethod
    def from_array(cls, arr: Sequence[float]) -> "Vector3":
        return cls(float(arr[0]), float(arr[1]), float(arr[2]))

    def norm(self) -> float:
        return float(np.linalg.norm(self.as_array()))


@dataclass(frozen=True)
class Rotation:
    """Euler angles in radians (roll about x, pitch about y, yaw about z)."""

    roll: float = 0.0
    pitch: float = 0.0
    yaw: float = 0.0

    @classmethod
    def from_degrees(cls, roll: float = 0.0, pitch: float = 0.0, yaw: float = 0.0) -> "Rotation":
        return cls(math.radians(roll), math.radians(pitch), math.radians(yaw))

    def matrix(self) -> np.ndarray:
        cr, sr = math.cos(self.roll), math.sin(self.roll)
        cp, sp = math.cos(self.pitch), math.sin(self.pitch)
        cy, sy = math.cos(self.yaw), math.sin(self.yaw)
        rz = np.array([[cy, -sy, 0.0], [sy, cy, 0.0], [0.0, 0.0, 1.0]])
        ry = np.array([[cp, 0.0, sp], [0.0, 1.0, 0.0], [-sp, 0.0, cp]])
        rx = np.array([[1.0, 0.0, 0.0], [0.0, cr, -sr], [0.0, sr, cr]])
        return rz @ ry @ rx


@dataclass(frozen=True)
class Pose:
    location: Vector3 = Vector3()
    rotation: Rotation = Rotation()

    @property
    def yaw(self) -> float:
        return self.rotation.yaw

    def offset(self, local: Tuple[float, float, float]) -> "Pose":
        """Pose translated by `local`, expressed in this pose's own frame."""
        shifted = self.location.as_array() + self.rotation.matrix() @ np.asarray(local, dtype=float)
        return Pose(location=Vector3.from_array(shifted), rotation=self.rotation)


def normalize_angle(angle: float) -> float:
    """
    Wrap an angle difference into (-pi, pi] with a single 2*pi correction.
    Valid for inputs in (-3*pi, 3*pi], which covers any difference of two
    angles taken from [-pi, pi] or [0, 2*pi).
    """
    if angle > math.pi:
        return angle - 2.0 * math.pi
    if angle <= -math.pi:
        return angle + 2.0 * math.pi
    return angle


def planar_bearing(origin: Vector3, target: Vector3) -> float:
    # vertical component ignored
    d = target - origin
    return math.atan2(d.y, d.x)


def clamp(value: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, value))


def kmh_to_mps(speed_kmh: float) -> float:
    return speed_kmh * 10.0 / 36.0
