import random
import threading
from datetime import datetime, time

import pytest

from src.delivery_routing.models.domain import (
    Coordinates,
    DeliveryStop,
    OptimizationConstraints,
    Priority,
    RouteStatus,
    StopStatus,
    TimeWindow,
)
from src.delivery_routing.services.routing.exceptions import InvalidStateError, SessionNotFoundError
from src.delivery_routing.services.routing.optimizer import optimize_route
from src.delivery_routing.services.routing.sessions import DriverSessionStore
from src.delivery_routing.services.routing.tracker import OutOfOrderPolicy, RouteExecutionTracker


def _plan(count: int = 3):
    stops = [
        DeliveryStop(
            id=f"S{i}",
            order_id=f"MP-{i}",
            customer_name=f"Customer {i}",
            address=f"{i} Main St",
            coordinates=Coordinates(lat=40.72 + i * 0.01, lng=-74.0),
            time_window=TimeWindow(start=time(9, 0), end=time(18, 0)),
            estimated_duration=5,
            priority=Priority.MEDIUM,
            value=20.0,
        )
        for i in range(count)
    ]
    constraints = OptimizationConstraints(max_stops=20, max_duration=480, max_distance=100)
    return optimize_route(
        stops,
        Coordinates(lat=40.7128, lng=-74.0060),
        constraints,
        rng=random.Random(0),
        now=datetime(2024, 5, 6, 10, 0),
    )


@pytest.fixture
def store() -> DriverSessionStore:
    return DriverSessionStore(RouteExecutionTracker(out_of_order_policy=OutOfOrderPolicy.ALLOW))


def test_start_twice_is_rejected(store):
    store.save_plan("driver-1", _plan())
    route = store.start("driver-1")
    assert route.status is RouteStatus.ACTIVE

    with pytest.raises(InvalidStateError):
        store.start("driver-1")


def test_unknown_driver(store):
    with pytest.raises(SessionNotFoundError):
        store.start("nobody")
    with pytest.raises(SessionNotFoundError):
        store.discard("nobody")


def test_stop_operations_before_start_are_rejected(store):
    plan = store.save_plan("driver-1", _plan())
    with pytest.raises(InvalidStateError):
        store.complete("driver-1", plan.optimized_order[0])
    with pytest.raises(InvalidStateError):
        store.current_stop("driver-1")


def test_replanning_while_active_is_rejected_until_route_finishes(store):
    store.save_plan("driver-1", _plan(2))
    route = store.start("driver-1")

    with pytest.raises(InvalidStateError):
        store.save_plan("driver-1", _plan(2))

    for stop_id in route.optimized_order:
        store.complete("driver-1", stop_id)
    assert store.active_route("driver-1").status is RouteStatus.COMPLETED

    new_plan = store.save_plan("driver-1", _plan(3))
    assert store.plan("driver-1") is new_plan
    assert store.active_route("driver-1") is None


def test_sessions_are_isolated_per_driver(store):
    store.save_plan("driver-1", _plan())
    store.save_plan("driver-2", _plan())
    route = store.start("driver-1")
    store.complete("driver-1", route.optimized_order[0])

    assert store.active_route("driver-2") is None
    assert store.progress("driver-1").completed_stops == 1


def test_concurrent_stop_updates_are_serialized(store):
    store.save_plan("driver-1", _plan(12))
    route = store.start("driver-1")
    errors: list[Exception] = []

    def close(stop_id: str) -> None:
        try:
            store.complete("driver-1", stop_id)
        except Exception as exc:  # pragma: no cover - surfaced by the assertion below
            errors.append(exc)

    threads = [threading.Thread(target=close, args=(stop_id,)) for stop_id in route.optimized_order]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert errors == []
    final = store.active_route("driver-1")
    assert final.status is RouteStatus.COMPLETED
    assert all(stop.status is StopStatus.COMPLETED for stop in final.stops)


def test_discard_waits_for_in_flight_update(store):
    store.save_plan("driver-1", _plan())
    route = store.start("driver-1")
    session = store._sessions["driver-1"]

    session.lock.acquire()
    discarding = threading.Thread(target=store.discard, args=("driver-1",))
    discarding.start()
    discarding.join(timeout=0.2)
    # The session is still registered while another call holds its lock.
    assert discarding.is_alive()
    assert "driver-1" in store._sessions
    session.lock.release()
    discarding.join()

    assert session.discarded
    with pytest.raises(SessionNotFoundError):
        store.complete("driver-1", route.optimized_order[0])


def test_update_holding_a_discarded_session_is_rejected(store):
    store.save_plan("driver-1", _plan())
    route = store.start("driver-1")
    session = store._sessions["driver-1"]
    session.discarded = True

    with pytest.raises(SessionNotFoundError):
        store.complete("driver-1", route.optimized_order[0])
    assert session.active_route.stop_by_id(route.optimized_order[0]).status is StopStatus.PENDING

    # A new plan replaces the discarded session rather than reviving it.
    store._sessions.pop("driver-1")
    store.save_plan("driver-1", _plan())
    assert store._sessions["driver-1"] is not session
