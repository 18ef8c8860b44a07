"""State machine for a driver executing a route plan stop by stop."""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime
from enum import Enum
from typing import Callable, Optional

from ...config import settings
from ...models.domain import (
    ActiveRoute,
    DeliveryStop,
    RouteOptimization,
    RouteProgress,
    RouteStatus,
    StopStatus,
)
from .exceptions import InvalidStateError, NoCurrentStopError, OutOfOrderStopError, UnknownStopError

logger = logging.getLogger(__name__)


class OutOfOrderPolicy(str, Enum):
    """What to do when a stop other than the current one is closed.

    ``allow`` marks the stop and leaves the pointer where it is; once the
    current stop is closed the pointer skips stops that are already terminal.
    ``reject`` raises ``OutOfOrderStopError``.
    """

    ALLOW = "allow"
    REJECT = "reject"


class RouteExecutionTracker:
    """Drives ``draft -> active -> completed`` and the per-stop transitions.

    Every operation returns a new ``ActiveRoute``; the route passed in is left
    untouched. Callers must serialize operations against one route.
    """

    def __init__(
        self,
        out_of_order_policy: OutOfOrderPolicy | str | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.out_of_order_policy = OutOfOrderPolicy(out_of_order_policy or settings.out_of_order_policy)
        self.clock = clock or datetime.now

    def start_route(self, route: RouteOptimization | ActiveRoute) -> ActiveRoute:
        if route.status is not RouteStatus.DRAFT:
            raise InvalidStateError(f"Route {route.id} cannot be started from status '{route.status.value}'")

        now = self.clock()
        active = ActiveRoute(
            plan=replace(route, status=RouteStatus.ACTIVE),
            stops=route.stops,
            status=RouteStatus.ACTIVE,
            current_stop_index=0,
            started_at=now,
        )
        logger.info(f"Started route {route.id} with {len(route.optimized_order)} stops")
        return active

    def current_stop(self, route: ActiveRoute) -> DeliveryStop:
        order = route.optimized_order
        if route.current_stop_index >= len(order):
            raise NoCurrentStopError(f"Route {route.id} has no current stop; all stops have been visited")
        stop = route.stop_by_id(order[route.current_stop_index])
        if stop is None:
            raise UnknownStopError(order[route.current_stop_index], route.id)
        return stop

    def arrive_at_stop(self, route: ActiveRoute, stop_id: str) -> ActiveRoute:
        """Mark a pending stop as in progress and record the arrival time."""
        stop = self._closable_stop(route, stop_id)
        if stop.status is not StopStatus.PENDING:
            raise InvalidStateError(f"Stop {stop_id} is already '{stop.status.value}'")
        updated = replace(stop, status=StopStatus.IN_PROGRESS, actual_arrival=self.clock())
        return replace(route, stops=_replace_stop(route.stops, updated))

    def complete_stop(self, route: ActiveRoute, stop_id: str) -> ActiveRoute:
        return self._close_stop(route, stop_id, StopStatus.COMPLETED)

    def fail_stop(self, route: ActiveRoute, stop_id: str, reason: str) -> ActiveRoute:
        return self._close_stop(route, stop_id, StopStatus.FAILED, reason=reason)

    def progress(self, route: ActiveRoute) -> float:
        total = len(route.optimized_order)
        if total == 0:
            return 0.0
        return route.current_stop_index / total * 100

    def summary(self, route: ActiveRoute) -> RouteProgress:
        total = len(route.optimized_order)
        fraction_done = route.current_stop_index / total if total else 1.0
        return RouteProgress(
            route_id=route.id,
            status=route.status,
            current_stop_number=min(route.current_stop_index + 1, total),
            total_stops=total,
            completed_stops=sum(1 for stop in route.stops if stop.status is StopStatus.COMPLETED),
            failed_stops=sum(1 for stop in route.stops if stop.status is StopStatus.FAILED),
            progress_percent=self.progress(route),
            remaining_minutes=int(route.plan.total_duration * (1 - fraction_done)),
        )

    def _closable_stop(self, route: ActiveRoute, stop_id: str) -> DeliveryStop:
        if route.status is not RouteStatus.ACTIVE:
            raise InvalidStateError(f"Route {route.id} is '{route.status.value}', not active")
        stop = route.stop_by_id(stop_id)
        if stop is None:
            raise UnknownStopError(stop_id, route.id)
        if stop.status.is_terminal:
            raise InvalidStateError(f"Stop {stop_id} is already '{stop.status.value}'")

        current_id = _current_stop_id(route)
        if stop_id != current_id and self.out_of_order_policy is OutOfOrderPolicy.REJECT:
            raise OutOfOrderStopError(stop_id, current_id)
        return stop

    def _close_stop(
        self,
        route: ActiveRoute,
        stop_id: str,
        status: StopStatus,
        reason: Optional[str] = None,
    ) -> ActiveRoute:
        stop = self._closable_stop(route, stop_id)
        now = self.clock()
        updated = replace(
            stop,
            status=status,
            actual_arrival=stop.actual_arrival or now,
            actual_departure=now,
            failure_reason=reason,
        )
        stops = _replace_stop(route.stops, updated)
        order = route.optimized_order

        index = route.current_stop_index
        if stop_id == _current_stop_id(route) and index < len(order) - 1:
            index = _next_open_index(order, stops, index + 1)

        if status is StopStatus.FAILED:
            logger.warning(f"Stop {stop_id} on route {route.id} failed: {reason}")
        elif stop_id != _current_stop_id(route):
            logger.info(f"Stop {stop_id} on route {route.id} completed out of order")

        if all(item.status.is_terminal for item in stops):
            logger.info(f"Route {route.id} completed")
            return replace(
                route,
                plan=replace(route.plan, status=RouteStatus.COMPLETED),
                stops=stops,
                status=RouteStatus.COMPLETED,
                current_stop_index=len(order),
                completed_at=now,
            )
        return replace(route, stops=stops, current_stop_index=index)


def _current_stop_id(route: ActiveRoute) -> Optional[str]:
    if route.current_stop_index < len(route.optimized_order):
        return route.optimized_order[route.current_stop_index]
    return None


def _replace_stop(stops: tuple[DeliveryStop, ...], updated: DeliveryStop) -> tuple[DeliveryStop, ...]:
    return tuple(updated if stop.id == updated.id else stop for stop in stops)


def _next_open_index(order: tuple[str, ...], stops: tuple[DeliveryStop, ...], start: int) -> int:
    """First index at or after ``start`` whose stop is still open, capped at the last stop."""
    statuses = {stop.id: stop.status for stop in stops}
    index = start
    while index < len(order) - 1 and statuses[order[index]].is_terminal:
        index += 1
    return index
