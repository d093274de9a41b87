class FollowerError(Exception):
    """Base class for errors raised by the path follower."""


class RouteLookupFailure(FollowerError):
    """No nearest or successor waypoint. Recovered by a pose reset, never fatal."""


class ActuationLimitUnavailable(FollowerError):
    """The vehicle did not report a usable maximum steering angle."""


class SimulationConnectionFailure(FollowerError):
    """A round-trip to the simulator failed."""


class ActorSetupFailure(FollowerError):
    """The controlled vehicle could not be spawned or configured."""
