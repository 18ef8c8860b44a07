"""Selection score for the greedy route walk (lower is more desirable)."""

from __future__ import annotations

from datetime import datetime

from ...config import settings
from ...models.domain import Coordinates, DeliveryStop, OptimizationConstraints, Priority
from ..geospatial import distance_miles


def priority_multiplier(priority: Priority) -> float:
    if priority is Priority.HIGH:
        return settings.high_priority_multiplier
    if priority is Priority.LOW:
        return settings.low_priority_multiplier
    return settings.medium_priority_multiplier


def is_window_closed(stop: DeliveryStop, now: datetime) -> bool:
    """Return True if ``now`` is past the end of the stop's delivery window."""

    return stop.time_window.has_closed(now)


def score_stop(
    candidate: DeliveryStop,
    current_position: Coordinates,
    constraints: OptimizationConstraints,
    now: datetime,
) -> float:
    """Score a candidate stop from the driver's current position.

    The base score is the straight-line distance in miles. High-value stops are
    pulled down when ``prioritize_high_value`` is set, a closed delivery window
    adds a fixed penalty (the stop stays eligible), and the priority multiplier
    is applied last.
    """

    score = distance_miles(current_position, candidate.coordinates)

    if constraints.prioritize_high_value:
        value = candidate.value if candidate.value > 0 else 1.0
        score = score / (value / 100)

    if constraints.respect_time_windows and is_window_closed(candidate, now):
        score += settings.time_window_penalty

    return score * priority_multiplier(candidate.priority)
