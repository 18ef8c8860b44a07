"""Fuel cost and efficiency scoring for route plans."""

from __future__ import annotations

from ...config import settings
from ...models.domain import OptimizationConstraints

MIN_EFFICIENCY = 0
MAX_EFFICIENCY = 100


def fuel_cost(total_distance: float, constraints: OptimizationConstraints) -> float:
    """Fuel spend in dollars for ``total_distance`` miles, rounded to cents."""

    gallons = total_distance / constraints.fuel_efficiency_mpg
    return round(max(gallons, 0.0) * settings.fuel_price_per_gallon, 2)


def efficiency(total_value: float, total_duration: float, fuel: float) -> int:
    """Value earned per minute-plus-dollar spent, scaled and clamped to 0-100."""

    denominator = total_duration + fuel
    if denominator <= 0:
        return MIN_EFFICIENCY
    raw = round((total_value / denominator) * settings.efficiency_weight)
    return max(MIN_EFFICIENCY, min(MAX_EFFICIENCY, int(raw)))
