"""Route optimization and execution request/response schemas."""

from __future__ import annotations

from datetime import datetime, time
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..models.domain import Priority, RouteStatus, StopStatus, VehicleType


class CoordinatesModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)


class TimeWindowModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    start: time = Field(..., description="Local time the delivery window opens (HH:MM).")
    end: time = Field(..., description="Local time the delivery window closes (HH:MM).")


class DeliveryStopModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    order_id: str
    customer_name: str
    address: str
    coordinates: CoordinatesModel
    time_window: TimeWindowModel
    estimated_duration: float = Field(..., ge=0, description="Minutes expected at the stop.")
    priority: Priority = Priority.MEDIUM
    value: float = 0.0
    items: List[str] = Field(default_factory=list)
    status: StopStatus = StopStatus.PENDING
    special_instructions: Optional[str] = None
    actual_arrival: Optional[datetime] = None
    actual_departure: Optional[datetime] = None
    failure_reason: Optional[str] = None


class OptimizationConstraintsModel(BaseModel):
    """Constraint overrides; anything left unset falls back to configured defaults."""

    model_config = ConfigDict(from_attributes=True)

    max_stops: Optional[int] = Field(None, ge=2)
    max_duration: Optional[float] = Field(None, gt=0, description="Minutes.")
    max_distance: Optional[float] = Field(None, gt=0, description="Miles.")
    respect_time_windows: Optional[bool] = None
    prioritize_high_value: Optional[bool] = None
    minimize_fuel_cost: Optional[bool] = None
    avoid_traffic: Optional[bool] = None
    vehicle_type: Optional[VehicleType] = None
    fuel_efficiency_mpg: Optional[float] = Field(None, gt=0)


class OptimizeRouteRequest(BaseModel):
    driver_id: str = Field(..., min_length=1)
    current_location: CoordinatesModel
    stops: List[DeliveryStopModel]
    constraints: Optional[OptimizationConstraintsModel] = None
    name: Optional[str] = Field(default=None, description="Friendly name for the route plan.")
    seed: Optional[int] = Field(
        default=None,
        description="Seed for the traffic factor draw; repeat a seed to reproduce a plan.",
    )
    planned_at: Optional[datetime] = Field(
        default=None,
        description="Time used for delivery window checks. Defaults to the server clock.",
    )


class RouteOptimizationModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    stops: List[DeliveryStopModel]
    optimized_order: List[str]
    total_distance: float
    total_duration: int
    total_value: float
    fuel_cost: float
    efficiency: int
    traffic_factor: float
    created: datetime
    status: RouteStatus
    stale_stop_ids: List[str] = Field(default_factory=list)
    constraint_violations: Dict[str, float] = Field(default_factory=dict)


class ActiveRouteModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    status: RouteStatus
    current_stop_index: int
    optimized_order: List[str]
    stops: List[DeliveryStopModel]
    started_at: datetime
    completed_at: Optional[datetime] = None
    plan: RouteOptimizationModel


class FailStopRequest(BaseModel):
    reason: str = Field(..., min_length=1)


class RouteProgressModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    route_id: str
    status: RouteStatus
    current_stop_number: int
    total_stops: int
    completed_stops: int
    failed_stops: int
    progress_percent: float
    remaining_minutes: int


class DriverRouteResponse(BaseModel):
    driver_id: str
    plan: RouteOptimizationModel
    active_route: Optional[ActiveRouteModel] = None
