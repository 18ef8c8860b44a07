"""Route planning and execution endpoints."""

from __future__ import annotations

import logging
from typing import Callable, NoReturn, TypeVar

from fastapi import APIRouter, HTTPException, Response, status
from pydantic import ValidationError

from ...schemas.routing import (
    ActiveRouteModel,
    DeliveryStopModel,
    DriverRouteResponse,
    FailStopRequest,
    OptimizeRouteRequest,
    RouteOptimizationModel,
    RouteProgressModel,
)
from ...services.routing import service as routing_service
from ...services.routing.exceptions import (
    InsufficientStopsError,
    InvalidStateError,
    NoCurrentStopError,
    SessionNotFoundError,
    UnknownStopError,
)

router = APIRouter(prefix="/routes", tags=["routes"])

T = TypeVar("T")


def _raise_http(exc: Exception, action: str) -> NoReturn:
    if isinstance(exc, InsufficientStopsError):
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)) from exc
    if isinstance(exc, (SessionNotFoundError, UnknownStopError, NoCurrentStopError)):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    if isinstance(exc, InvalidStateError):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    # Schema failures past request parsing come from response building, not from the caller.
    if isinstance(exc, ValueError) and not isinstance(exc, ValidationError):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    logging.exception(f"Error while trying to {action}: {exc}")
    raise HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=f"Failed to {action}: {str(exc)}",
    ) from exc


def _handle(action: str, call: Callable[[], T]) -> T:
    try:
        return call()
    except Exception as exc:
        _raise_http(exc, action)


@router.post("/optimize", response_model=RouteOptimizationModel, status_code=status.HTTP_200_OK)
def optimize(payload: OptimizeRouteRequest) -> RouteOptimizationModel:
    return _handle("optimize route", lambda: routing_service.optimize_route(payload))


@router.get("/{driver_id}", response_model=DriverRouteResponse, status_code=status.HTTP_200_OK)
def get_route(driver_id: str) -> DriverRouteResponse:
    """Return the driver's current plan and, once started, the route under execution."""
    return _handle("load route", lambda: routing_service.get_driver_route(driver_id))


@router.delete("/{driver_id}", status_code=status.HTTP_204_NO_CONTENT)
def discard_route(driver_id: str) -> Response:
    _handle("discard route", lambda: routing_service.discard_route(driver_id))
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{driver_id}/start", response_model=ActiveRouteModel, status_code=status.HTTP_200_OK)
def start(driver_id: str) -> ActiveRouteModel:
    return _handle("start route", lambda: routing_service.start_route(driver_id))


@router.get("/{driver_id}/current-stop", response_model=DeliveryStopModel, status_code=status.HTTP_200_OK)
def current_stop(driver_id: str) -> DeliveryStopModel:
    return _handle("load current stop", lambda: routing_service.current_stop(driver_id))


@router.get("/{driver_id}/progress", response_model=RouteProgressModel, status_code=status.HTTP_200_OK)
def progress(driver_id: str) -> RouteProgressModel:
    return _handle("load route progress", lambda: routing_service.route_progress(driver_id))


@router.post(
    "/{driver_id}/stops/{stop_id}/arrive",
    response_model=ActiveRouteModel,
    status_code=status.HTTP_200_OK,
)
def arrive(driver_id: str, stop_id: str) -> ActiveRouteModel:
    return _handle("record arrival", lambda: routing_service.arrive_at_stop(driver_id, stop_id))


@router.post(
    "/{driver_id}/stops/{stop_id}/complete",
    response_model=ActiveRouteModel,
    status_code=status.HTTP_200_OK,
)
def complete(driver_id: str, stop_id: str) -> ActiveRouteModel:
    return _handle("complete stop", lambda: routing_service.complete_stop(driver_id, stop_id))


@router.post(
    "/{driver_id}/stops/{stop_id}/fail",
    response_model=ActiveRouteModel,
    status_code=status.HTTP_200_OK,
)
def fail(driver_id: str, stop_id: str, payload: FailStopRequest) -> ActiveRouteModel:
    return _handle("fail stop", lambda: routing_service.fail_stop(driver_id, stop_id, payload.reason))
