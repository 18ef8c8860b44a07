"""Greedy nearest-by-score route optimizer."""

from __future__ import annotations

import logging
import random
import uuid
import warnings
from datetime import datetime
from typing import Sequence

from ...config import settings
from ...models.domain import (
    Coordinates,
    DeliveryStop,
    OptimizationConstraints,
    RouteOptimization,
    RouteStatus,
    StopStatus,
)
from ..geospatial import distance_miles
from .cost import efficiency, fuel_cost
from .exceptions import InsufficientStopsError, StaleTimeWindowWarning
from .scoring import is_window_closed, score_stop

MIN_STOPS = 2

logger = logging.getLogger(__name__)


def _travel_minutes(miles: float) -> float:
    return (miles / settings.average_speed_mph) * 60


def sample_traffic_factor(constraints: OptimizationConstraints, rng: random.Random) -> float:
    low, high = settings.traffic_range_avoid if constraints.avoid_traffic else settings.traffic_range_default
    return rng.uniform(low, high)


def _constraint_violations(
    stop_count: int,
    total_distance: float,
    total_duration: int,
    constraints: OptimizationConstraints,
) -> dict[str, float]:
    violations: dict[str, float] = {}
    if stop_count > constraints.max_stops:
        violations["max_stops"] = float(stop_count - constraints.max_stops)
    if total_duration > constraints.max_duration:
        violations["max_duration"] = float(total_duration - constraints.max_duration)
    if total_distance > constraints.max_distance:
        violations["max_distance"] = total_distance - constraints.max_distance
    return violations


def _validate_stops(stops: Sequence[DeliveryStop]) -> None:
    if len(stops) < MIN_STOPS:
        raise InsufficientStopsError(len(stops), MIN_STOPS)
    seen: set[str] = set()
    for stop in stops:
        if stop.id in seen:
            raise ValueError(f"Duplicate stop id '{stop.id}' in optimization input.")
        if stop.status is not StopStatus.PENDING:
            raise ValueError(f"Stop '{stop.id}' is '{stop.status.value}'; only pending stops can be planned.")
        seen.add(stop.id)


def optimize_route(
    stops: Sequence[DeliveryStop],
    current_location: Coordinates,
    constraints: OptimizationConstraints,
    *,
    rng: random.Random | None = None,
    now: datetime | None = None,
    name: str | None = None,
) -> RouteOptimization:
    """Order ``stops`` with a greedy nearest-by-score walk from ``current_location``.

    Every input stop appears exactly once in the resulting order; stops are never
    dropped, even when ``constraints.max_stops`` is exceeded (the overrun is
    reported in ``constraint_violations`` instead). The traffic factor is drawn
    from ``rng`` so results are reproducible with a seeded generator.

    Args:
        stops: Candidate stops, at least two, with unique ids.
        current_location: Driver position the walk starts from.
        constraints: Scoring preferences and route limits.
        rng: Random source for the traffic factor (defaults to a fresh ``Random``).
        now: Wall-clock time used for time-window checks (defaults to now).
        name: Display name for the plan.

    Returns:
        A ``draft`` RouteOptimization.

    Raises:
        InsufficientStopsError: Fewer than two stops were given.
        ValueError: Stop ids are not unique, or a stop is not pending.
    """
    _validate_stops(stops)
    rng = rng or random.Random()
    now = now or datetime.now()

    # Stops are addressed by index into the input; nothing is removed from it.
    unvisited: list[int] = list(range(len(stops)))
    current = current_location
    order: list[str] = []
    total_distance = 0.0
    duration_minutes = 0.0
    total_value = 0.0

    while unvisited:
        best_position = 0
        best_score = float("inf")
        for position, stop_index in enumerate(unvisited):
            score = score_stop(stops[stop_index], current, constraints, now)
            # Strict comparison keeps the first occurrence on ties.
            if score < best_score:
                best_score = score
                best_position = position

        selected = stops[unvisited.pop(best_position)]
        leg = distance_miles(current, selected.coordinates)
        logger.debug(f"Selected stop {selected.id} (score={best_score:.3f}, leg={leg:.2f} mi)")

        order.append(selected.id)
        total_distance += leg
        duration_minutes += _travel_minutes(leg) + selected.estimated_duration
        total_value += selected.value
        current = selected.coordinates

    traffic_factor = sample_traffic_factor(constraints, rng)
    total_duration = round(duration_minutes * traffic_factor)
    fuel = fuel_cost(total_distance, constraints)
    score = efficiency(total_value, total_duration, fuel)

    stale_stop_ids: tuple[str, ...] = ()
    if constraints.respect_time_windows:
        by_id = {stop.id: stop for stop in stops}
        stale_stop_ids = tuple(stop_id for stop_id in order if is_window_closed(by_id[stop_id], now))
    if stale_stop_ids:
        message = f"Delivery window already closed for stops: {', '.join(stale_stop_ids)}"
        logger.warning(message)
        warnings.warn(message, StaleTimeWindowWarning, stacklevel=2)

    violations = _constraint_violations(len(stops), total_distance, total_duration, constraints)
    if violations:
        logger.warning(f"Route plan exceeds constraints: {violations}")

    created = datetime.now()
    plan = RouteOptimization(
        id=f"route_{uuid.uuid4().hex[:12]}",
        name=name or f"Route {created:%m/%d/%Y}",
        stops=tuple(stops),
        optimized_order=tuple(order),
        total_distance=total_distance,
        total_duration=total_duration,
        total_value=total_value,
        fuel_cost=fuel,
        efficiency=score,
        traffic_factor=traffic_factor,
        created=created,
        status=RouteStatus.DRAFT,
        stale_stop_ids=stale_stop_ids,
        constraint_violations=violations,
    )
    logger.info(
        f"Optimized route {plan.id}: {len(order)} stops, {total_distance:.1f} mi, "
        f"{total_duration} min, efficiency {score}"
    )
    return plan
