"""Errors raised by route optimization and execution tracking."""

from __future__ import annotations


class RouteEngineError(Exception):
    """Base class for route engine failures."""


class InsufficientStopsError(RouteEngineError, ValueError):
    """Raised when fewer than two stops are passed to the optimizer."""

    def __init__(self, count: int, minimum: int = 2) -> None:
        super().__init__(f"At least {minimum} stops are required to optimize a route, got {count}.")
        self.count = count
        self.minimum = minimum


class InvalidStateError(RouteEngineError):
    """Raised when an operation is attempted in the wrong lifecycle state."""


class OutOfOrderStopError(InvalidStateError):
    """Raised when a stop other than the current one is closed under the reject policy."""

    def __init__(self, stop_id: str, current_stop_id: str | None) -> None:
        super().__init__(
            f"Stop {stop_id} is not the current stop (current: {current_stop_id}); "
            "out-of-order completion is disabled."
        )
        self.stop_id = stop_id
        self.current_stop_id = current_stop_id


class NoCurrentStopError(RouteEngineError, LookupError):
    """Raised when the current-stop pointer has moved past the last stop."""


class UnknownStopError(RouteEngineError, KeyError):
    """Raised when a stop id is not part of the route."""

    def __init__(self, stop_id: str, route_id: str) -> None:
        super().__init__(stop_id)
        self.stop_id = stop_id
        self.route_id = route_id

    def __str__(self) -> str:
        return f"Stop {self.stop_id} is not part of route {self.route_id}"


class SessionNotFoundError(RouteEngineError, LookupError):
    """Raised when a driver has no plan or active route."""

    def __init__(self, driver_id: str) -> None:
        super().__init__(f"No route session found for driver '{driver_id}'")
        self.driver_id = driver_id


class StaleTimeWindowWarning(UserWarning):
    """A stop was planned after its delivery window had already closed."""
