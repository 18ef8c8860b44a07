import pytest
from fastapi.testclient import TestClient

from src.delivery_routing.main import create_app


@pytest.fixture(autouse=True)
def clear_session_store():
    from src.delivery_routing.services.routing.service import get_session_store

    get_session_store.cache_clear()
    yield
    get_session_store.cache_clear()


@pytest.fixture
def api_client() -> TestClient:
    return TestClient(create_app())


def _stop_payload(sid: str, lat: float, lng: float, value: float, priority: str, window: tuple[str, str]) -> dict:
    return {
        "id": sid,
        "order_id": f"MP-{sid}",
        "customer_name": f"Customer {sid}",
        "address": f"{sid} Main St",
        "coordinates": {"lat": lat, "lng": lng},
        "time_window": {"start": window[0], "end": window[1]},
        "estimated_duration": 12,
        "priority": priority,
        "value": value,
        "items": ["Brake Pads"],
    }


def _optimize_payload(driver_id: str = "driver-1", **extra) -> dict:
    payload = {
        "driver_id": driver_id,
        "current_location": {"lat": 40.7128, "lng": -74.0060},
        "stops": [
            _stop_payload("stop1", 40.7589, -73.9851, 89.99, "high", ("09:00", "12:00")),
            _stop_payload("stop2", 40.7505, -73.9934, 31.96, "medium", ("10:00", "14:00")),
            _stop_payload("stop3", 40.7831, -73.9712, 149.99, "low", ("13:00", "17:00")),
        ],
        "constraints": {"avoid_traffic": False, "fuel_efficiency_mpg": 20},
        "seed": 11,
        "planned_at": "2024-05-06T09:30:00",
    }
    payload.update(extra)
    return payload


def test_health(api_client: TestClient):
    response = api_client.get("/api/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_optimize_returns_draft_plan(api_client: TestClient):
    response = api_client.post("/api/routes/optimize", json=_optimize_payload())

    assert response.status_code == 200
    plan = response.json()
    assert plan["status"] == "draft"
    assert sorted(plan["optimized_order"]) == ["stop1", "stop2", "stop3"]
    assert plan["total_value"] == pytest.approx(271.94)
    assert 0.90 <= plan["traffic_factor"] <= 1.40
    assert 0 <= plan["efficiency"] <= 100

    again = api_client.post("/api/routes/optimize", json=_optimize_payload()).json()
    assert again["traffic_factor"] == plan["traffic_factor"]


def test_optimize_with_one_stop_is_unprocessable(api_client: TestClient):
    payload = _optimize_payload()
    payload["stops"] = payload["stops"][:1]
    response = api_client.post("/api/routes/optimize", json=payload)
    assert response.status_code == 422


def test_route_execution_flow(api_client: TestClient):
    plan = api_client.post("/api/routes/optimize", json=_optimize_payload()).json()
    order = plan["optimized_order"]

    started = api_client.post("/api/routes/driver-1/start")
    assert started.status_code == 200
    assert started.json()["status"] == "active"
    assert api_client.post("/api/routes/driver-1/start").status_code == 409

    current = api_client.get("/api/routes/driver-1/current-stop").json()
    assert current["id"] == order[0]

    arrived = api_client.post(f"/api/routes/driver-1/stops/{order[0]}/arrive").json()
    assert arrived["stops"][[s["id"] for s in arrived["stops"]].index(order[0])]["status"] == "in-progress"

    completed = api_client.post(f"/api/routes/driver-1/stops/{order[0]}/complete").json()
    assert completed["current_stop_index"] == 1

    failed = api_client.post(
        f"/api/routes/driver-1/stops/{order[1]}/fail",
        json={"reason": "Customer not available"},
    ).json()
    assert failed["current_stop_index"] == 2

    progress = api_client.get("/api/routes/driver-1/progress").json()
    assert progress["completed_stops"] == 1
    assert progress["failed_stops"] == 1
    assert progress["progress_percent"] == pytest.approx(200 / 3)

    finished = api_client.post(f"/api/routes/driver-1/stops/{order[2]}/complete").json()
    assert finished["status"] == "completed"
    assert api_client.get("/api/routes/driver-1/current-stop").status_code == 404

    summary = api_client.get("/api/routes/driver-1").json()
    assert summary["plan"]["status"] == "draft"
    assert summary["active_route"]["status"] == "completed"


def test_unknown_driver_and_stop(api_client: TestClient):
    assert api_client.post("/api/routes/ghost/start").status_code == 404
    assert api_client.get("/api/routes/ghost").status_code == 404

    api_client.post("/api/routes/optimize", json=_optimize_payload())
    api_client.post("/api/routes/driver-1/start")
    response = api_client.post("/api/routes/driver-1/stops/missing/complete")
    assert response.status_code == 404


def test_discard_route(api_client: TestClient):
    api_client.post("/api/routes/optimize", json=_optimize_payload())
    assert api_client.delete("/api/routes/driver-1").status_code == 204
    assert api_client.get("/api/routes/driver-1").status_code == 404


def test_optimize_rejects_stops_that_are_not_pending(api_client: TestClient):
    payload = _optimize_payload()
    for stop in payload["stops"]:
        stop["status"] = "completed"

    response = api_client.post("/api/routes/optimize", json=payload)

    assert response.status_code == 400
    assert "only pending stops" in response.json()["detail"]
    assert api_client.get("/api/routes/driver-1").status_code == 404


def test_response_model_errors_are_server_errors(api_client: TestClient, monkeypatch: pytest.MonkeyPatch):
    from src.delivery_routing.schemas.routing import RouteProgressModel
    from src.delivery_routing.services.routing import service as routing_service

    def broken_progress(driver_id: str):
        return RouteProgressModel.model_validate({"route_id": driver_id})

    monkeypatch.setattr(routing_service, "route_progress", broken_progress)

    response = api_client.get("/api/routes/driver-1/progress")

    assert response.status_code == 500
    assert response.json()["detail"].startswith("Failed to load route progress")
