"""Route planning and execution orchestration service."""

from __future__ import annotations

import logging
import random
from functools import lru_cache

from ...config import settings
from ...models.domain import (
    Coordinates,
    DeliveryStop,
    OptimizationConstraints,
    TimeWindow,
    VehicleType,
)
from ...schemas.routing import (
    ActiveRouteModel,
    DeliveryStopModel,
    DriverRouteResponse,
    OptimizationConstraintsModel,
    OptimizeRouteRequest,
    RouteOptimizationModel,
    RouteProgressModel,
)
from .optimizer import optimize_route as run_optimizer
from .sessions import DriverSessionStore

logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def get_session_store() -> DriverSessionStore:
    return DriverSessionStore()


def _stop_from_model(model: DeliveryStopModel) -> DeliveryStop:
    return DeliveryStop(
        id=model.id,
        order_id=model.order_id,
        customer_name=model.customer_name,
        address=model.address,
        coordinates=Coordinates(lat=model.coordinates.lat, lng=model.coordinates.lng),
        time_window=TimeWindow(start=model.time_window.start, end=model.time_window.end),
        estimated_duration=model.estimated_duration,
        priority=model.priority,
        value=model.value,
        items=tuple(model.items),
        status=model.status,
        special_instructions=model.special_instructions,
        actual_arrival=model.actual_arrival,
        actual_departure=model.actual_departure,
        failure_reason=model.failure_reason,
    )


def build_constraints(overrides: OptimizationConstraintsModel | None) -> OptimizationConstraints:
    """Merge request overrides onto the configured constraint defaults."""
    base = OptimizationConstraints(
        max_stops=settings.default_max_stops,
        max_duration=settings.default_max_duration_minutes,
        max_distance=settings.default_max_distance_miles,
        vehicle_type=VehicleType(settings.default_vehicle_type),
        fuel_efficiency_mpg=settings.default_fuel_efficiency_mpg,
    )
    if overrides is None:
        return base
    values = {name: getattr(base, name) for name in OptimizationConstraintsModel.model_fields}
    values.update(overrides.model_dump(exclude_none=True))
    return OptimizationConstraints(**values)


def optimize_route(payload: OptimizeRouteRequest) -> RouteOptimizationModel:
    """Optimize the requested stops and store the draft plan on the driver's session."""
    stops = [_stop_from_model(stop) for stop in payload.stops]
    constraints = build_constraints(payload.constraints)
    rng = random.Random(payload.seed) if payload.seed is not None else random.Random()

    plan = run_optimizer(
        stops,
        Coordinates(lat=payload.current_location.lat, lng=payload.current_location.lng),
        constraints,
        rng=rng,
        now=payload.planned_at,
        name=payload.name,
    )
    get_session_store().save_plan(payload.driver_id, plan)
    return RouteOptimizationModel.model_validate(plan)


def get_driver_route(driver_id: str) -> DriverRouteResponse:
    store = get_session_store()
    plan = store.plan(driver_id)
    active = store.active_route(driver_id)
    return DriverRouteResponse(
        driver_id=driver_id,
        plan=RouteOptimizationModel.model_validate(plan),
        active_route=ActiveRouteModel.model_validate(active) if active is not None else None,
    )


def start_route(driver_id: str) -> ActiveRouteModel:
    return ActiveRouteModel.model_validate(get_session_store().start(driver_id))


def arrive_at_stop(driver_id: str, stop_id: str) -> ActiveRouteModel:
    return ActiveRouteModel.model_validate(get_session_store().arrive(driver_id, stop_id))


def complete_stop(driver_id: str, stop_id: str) -> ActiveRouteModel:
    return ActiveRouteModel.model_validate(get_session_store().complete(driver_id, stop_id))


def fail_stop(driver_id: str, stop_id: str, reason: str) -> ActiveRouteModel:
    return ActiveRouteModel.model_validate(get_session_store().fail(driver_id, stop_id, reason))


def current_stop(driver_id: str) -> DeliveryStopModel:
    return DeliveryStopModel.model_validate(get_session_store().current_stop(driver_id))


def route_progress(driver_id: str) -> RouteProgressModel:
    return RouteProgressModel.model_validate(get_session_store().progress(driver_id))


def discard_route(driver_id: str) -> None:
    get_session_store().discard(driver_id)
