"""Route optimization and execution tracking."""

from .cost import efficiency, fuel_cost
from .exceptions import (
    InsufficientStopsError,
    InvalidStateError,
    NoCurrentStopError,
    OutOfOrderStopError,
    RouteEngineError,
    SessionNotFoundError,
    StaleTimeWindowWarning,
    UnknownStopError,
)
from .optimizer import optimize_route
from .scoring import score_stop
from .tracker import OutOfOrderPolicy, RouteExecutionTracker

__all__ = [
    "optimize_route",
    "score_stop",
    "fuel_cost",
    "efficiency",
    "RouteExecutionTracker",
    "OutOfOrderPolicy",
    "RouteEngineError",
    "InsufficientStopsError",
    "InvalidStateError",
    "OutOfOrderStopError",
    "NoCurrentStopError",
    "UnknownStopError",
    "SessionNotFoundError",
    "StaleTimeWindowWarning",
]
