from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Sequence, Union

import numpy as np

from wayfollow.sim.base_sim import BaseSimulation
from wayfollow.utils.errors import RouteLookupFailure
from wayfollow.utils.geometry import Pose
from wayfollow.utils.logger import get_logger
from wayfollow.utils.types import Waypoint


@dataclass(frozen=True)
class Found:
    waypoint: Waypoint
    current: Waypoint


@dataclass(frozen=True)
class ResetRequired:
    reason: str


Resolution = Union[Found, ResetRequired]


class WaypointSelector:
    """
    Resolves the lookahead target on the road network.

    policy="first" always takes the first successor (reproducible runs);
    policy="random" draws uniformly among successors from `rng`, which gives
    naturalistic choices at forks. The policy is fixed for the selector's
    lifetime.
    """

    def __init__(self, sim: BaseSimulation, policy: str = "first", rng: Optional[np.random.Generator] = None):
        if policy not in ("first", "random"):
            raise ValueError(f"Unknown successor policy: {policy!r}")
        self.sim = sim
        self.policy = policy
        self.rng = rng if rng is not None else np.random.default_rng()
        self.logger = get_logger(__name__)

    def resolve(self, pose: Pose, lookahead_distance: float) -> Resolution:
        try:
            current = self.sim.get_nearest_waypoint(pose.location)
            if current is None:
                return ResetRequired("no_nearest_waypoint")
            successors = self.sim.get_successors(current, lookahead_distance)
        except RouteLookupFailure as exc:
            self.logger.debug("Waypoint query failed: %s", exc)
            return ResetRequired("lookup_failed")
        if not successors:
            return ResetRequired("no_successor")
        return Found(waypoint=self._choose(successors), current=current)

    def _choose(self, successors: Sequence[Waypoint]) -> Waypoint:
        if self.policy == "first" or len(successors) == 1:
            return successors[0]
        return successors[int(self.rng.integers(len(successors)))]
