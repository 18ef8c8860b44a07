"""Domain models for delivery stops, route plans and routes under execution."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, time
from enum import Enum
from typing import Mapping, Optional


class Priority(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class StopStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (StopStatus.COMPLETED, StopStatus.FAILED)


class RouteStatus(str, Enum):
    DRAFT = "draft"
    ACTIVE = "active"
    COMPLETED = "completed"


class VehicleType(str, Enum):
    CAR = "car"
    VAN = "van"
    TRUCK = "truck"


@dataclass(frozen=True, slots=True)
class Coordinates:
    lat: float
    lng: float


@dataclass(frozen=True, slots=True)
class TimeWindow:
    """Local wall-clock interval during which the customer expects service."""

    start: time
    end: time

    def has_closed(self, now: datetime | time) -> bool:
        current = now.time() if isinstance(now, datetime) else now
        return current > self.end


@dataclass(frozen=True, slots=True)
class DeliveryStop:
    """A unit of work to visit, supplied by the dispatch side in ``pending``."""

    id: str
    order_id: str
    customer_name: str
    address: str
    coordinates: Coordinates
    time_window: TimeWindow
    estimated_duration: float
    priority: Priority
    value: float
    items: tuple[str, ...] = ()
    status: StopStatus = StopStatus.PENDING
    special_instructions: Optional[str] = None
    actual_arrival: Optional[datetime] = None
    actual_departure: Optional[datetime] = None
    failure_reason: Optional[str] = None


@dataclass(frozen=True, slots=True)
class OptimizationConstraints:
    max_stops: int
    max_duration: float
    max_distance: float
    respect_time_windows: bool = True
    prioritize_high_value: bool = False
    minimize_fuel_cost: bool = True
    avoid_traffic: bool = True
    vehicle_type: VehicleType = VehicleType.CAR
    fuel_efficiency_mpg: float = 25.0


@dataclass(frozen=True, slots=True)
class RouteOptimization:
    """Immutable output of one optimizer run.

    ``optimized_order`` is a permutation of the ids in ``stops``.
    """

    id: str
    name: str
    stops: tuple[DeliveryStop, ...]
    optimized_order: tuple[str, ...]
    total_distance: float
    total_duration: int
    total_value: float
    fuel_cost: float
    efficiency: int
    traffic_factor: float
    created: datetime
    status: RouteStatus = RouteStatus.DRAFT
    stale_stop_ids: tuple[str, ...] = ()
    constraint_violations: Mapping[str, float] = field(default_factory=dict)

    def stop_by_id(self, stop_id: str) -> Optional[DeliveryStop]:
        for stop in self.stops:
            if stop.id == stop_id:
                return stop
        return None


@dataclass(slots=True)
class ActiveRoute:
    """A plan being executed by a driver.

    ``stops`` is the execution copy of the plan's stops; the plan itself keeps
    the stops as they were when the route was optimized.
    """

    plan: RouteOptimization
    stops: tuple[DeliveryStop, ...]
    status: RouteStatus
    current_stop_index: int
    started_at: datetime
    completed_at: Optional[datetime] = None

    @property
    def id(self) -> str:
        return self.plan.id

    @property
    def optimized_order(self) -> tuple[str, ...]:
        return self.plan.optimized_order

    def stop_by_id(self, stop_id: str) -> Optional[DeliveryStop]:
        for stop in self.stops:
            if stop.id == stop_id:
                return stop
        return None


@dataclass(frozen=True, slots=True)
class RouteProgress:
    """Snapshot of how far a driver is through an active route."""

    route_id: str
    status: RouteStatus
    current_stop_number: int
    total_stops: int
    completed_stops: int
    failed_stops: int
    progress_percent: float
    remaining_minutes: int
