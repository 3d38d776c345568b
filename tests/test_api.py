from unittest.mock import MagicMock

import pytest
from fastapi import Depends
from fastapi.testclient import TestClient

from tripcanvas.api import deps
from tripcanvas.api.server import app
from tripcanvas.db.redis_client import TripSnapshot, UserLocationStore
from tripcanvas.errors import CatalogFetchError
from tripcanvas.modules.catalog.experience_catalog import ExperienceCatalog
from tripcanvas.modules.persistence.trip_persistence import SavePolicy, TripPersistence
from tripcanvas.modules.planning.time_geometry import time_to_position

from conftest import TRIP_DETAILS, FakeBlockService, FakeTripService


@pytest.fixture
def services():
    return {"blocks": FakeBlockService(), "trips": FakeTripService()}


@pytest.fixture
def client(fake_redis, events, services):
    def snapshot_for(editor_id: str = Depends(deps.get_editor_id)):
        return TripSnapshot(editor_id, client=fake_redis)

    def catalog_for(editor_id: str = Depends(deps.get_editor_id)):
        remote = MagicMock()
        remote.list.side_effect = CatalogFetchError("catalog offline")
        return ExperienceCatalog(remote, UserLocationStore(editor_id, client=fake_redis),
                                 photo_resolver=lambda ref: [])

    def persistence_for(snapshot=Depends(deps.get_snapshot)):
        return TripPersistence(services["trips"], services["blocks"], snapshot=snapshot,
                               events=events, policy=SavePolicy.ALL)

    app.dependency_overrides[deps.get_snapshot] = snapshot_for
    app.dependency_overrides[deps.get_catalog] = catalog_for
    app.dependency_overrides[deps.get_persistence] = persistence_for
    yield TestClient(app)
    app.dependency_overrides.clear()


def _create(client, **headers):
    res = client.post("/v1/trips", json=TRIP_DETAILS, headers=headers)
    assert res.status_code == 201
    return res.json()


def test_health(client):
    res = client.get("/v1/health")
    assert res.status_code == 200
    assert res.json()["status"] == "ok"


def test_postgres_health(client, monkeypatch):
    monkeypatch.setattr("tripcanvas.api.routes.health.database_available", lambda: True)
    assert client.get("/v1/health/postgres").json()["postgres"] == "reachable"

    monkeypatch.setattr("tripcanvas.api.routes.health.database_available", lambda: False)
    assert client.get("/v1/health/postgres").status_code == 503


def test_create_and_fetch_current_trip(client):
    created = _create(client)
    current = client.get("/v1/trips/current").json()
    assert current["id"] == created["id"]
    assert current["itinerary"] == []


def test_create_trip_validation_errors(client):
    res = client.post("/v1/trips", json={"name": "x", "startDate": "2025-03-02",
                                         "endDate": "2025-03-01"})
    assert res.status_code == 422
    assert "location is required" in res.json()["detail"]


def test_no_trip_in_progress(client):
    assert client.get("/v1/trips/current").status_code == 404
    assert client.get("/v1/trips/current/layout").status_code == 404


def test_editors_are_isolated(client):
    _create(client, **{"X-Editor-Id": "alice"})
    assert client.get("/v1/trips/current", headers={"X-Editor-Id": "alice"}).status_code == 200
    assert client.get("/v1/trips/current", headers={"X-Editor-Id": "bob"}).status_code == 404


def test_item_lifecycle(client):
    _create(client)
    trip = client.post("/v1/trips/current/items", json={
        "experienceName": "Kayaking", "duration": "1.5 hours", "price": 1200,
        "day": "2025-03-01", "startTime": 10,
    }).json()
    item_id = trip["itinerary"][0]["id"]
    assert trip["itinerary"][0]["endTime"] == 11.5

    res = client.patch(f"/v1/trips/current/items/{item_id}", json={"startTime": 15})
    assert res.status_code == 200
    assert res.json()["itinerary"][0]["endTime"] == 16.5

    assert client.patch("/v1/trips/current/items/ghost", json={"startTime": 9}).status_code == 404
    assert client.patch(f"/v1/trips/current/items/{item_id}", json={"colour": 1}).status_code == 422
    assert client.patch(f"/v1/trips/current/items/{item_id}", json={"startTime": 23}).status_code == 422

    assert client.delete(f"/v1/trips/current/items/{item_id}").json()["itinerary"] == []
    assert client.delete(f"/v1/trips/current/items/{item_id}").status_code == 200


def test_drop_then_layout_and_budget(client):
    _create(client)
    payload = {"kind": "experience", "data": {"id": "exp-1", "name": "Cruise",
                                              "duration": "2 hours", "price": 7000}}
    first = client.post("/v1/trips/current/drop", json={
        "day": "2025-03-01", "y": time_to_position(9), "payload": payload,
    }).json()
    assert first["result"]["kind"] == "insert"
    assert first["result"]["timeSlot"] == "morning"

    client.post("/v1/trips/current/drop", json={
        "day": "2025-03-01", "y": time_to_position(10), "payload": payload,
    })

    layout = client.get("/v1/trips/current/layout").json()
    day1 = layout["days"][0]
    assert [d["day"] for d in layout["days"]] == ["2025-03-01", "2025-03-02", "2025-03-03"]
    assert sorted(i["lane"] for i in day1["items"]) == [0, 1]
    assert {i["widthPercent"] for i in day1["items"]} == {50.0}
    assert day1["items"][0]["top"] == 180
    assert day1["items"][0]["startLabel"] == "9:00 AM"

    budget = client.get("/v1/trips/current/budget").json()
    assert budget["totalSpent"] == 14000
    assert budget["remaining"] == -4000
    assert budget["overBudget"] is True
    assert budget["fillPercent"] == 100.0


def test_drop_reschedules_existing_item(client):
    _create(client)
    trip = client.post("/v1/trips/current/items", json={
        "experienceName": "Spice Farm", "day": "2025-03-01", "startTime": 9,
    }).json()
    item = trip["itinerary"][0]

    res = client.post("/v1/trips/current/drop", json={
        "day": "2025-03-02", "y": time_to_position(13.5),
        "payload": {"kind": "item", "data": item},
    }).json()

    moved = res["trip"]["itinerary"][0]
    assert res["result"]["kind"] == "reschedule"
    assert moved["id"] == item["id"]
    assert (moved["day"], moved["startTime"], moved["endTime"]) == ("2025-03-02", 13.5, 15.5)


def test_drop_without_payload_is_noop(client):
    _create(client)
    res = client.post("/v1/trips/current/drop", json={"day": "2025-03-01", "y": 100})
    assert res.status_code == 200
    assert res.json()["result"] is None


def test_save_reports_partial_failure(client, services):
    _create(client)
    trip = client.post("/v1/trips/current/items", json={
        "id": "keep", "experienceName": "Kayak", "day": "2025-03-01", "startTime": 9,
    }).json()
    client.post("/v1/trips/current/items", json={
        "id": "fail", "experienceName": "Cruise", "day": "2025-03-01", "startTime": 12,
    })
    services["blocks"].fail_on.add("fail")

    report = client.post("/v1/trips/current/save").json()
    assert report["succeeded"] is False
    assert report["failedItems"] == ["fail"]
    assert client.get("/v1/trips/current").json()["id"] == trip["id"]

    services["blocks"].fail_on.clear()
    assert client.post("/v1/trips/current/save").json()["succeeded"] is True
    assert client.get("/v1/trips/current").status_code == 404
    assert len(client.get("/v1/trips").json()) == 2


def test_discard(client):
    _create(client)
    assert client.delete("/v1/trips/current").json() == {"discarded": True}
    assert client.get("/v1/trips/current").status_code == 404


def test_experiences_fall_back_to_user_locations(client):
    res = client.post("/v1/experiences/locations", json={
        "name": "Hidden Cove", "address": "Cola Beach, Goa", "duration": "3", "price": 0,
    })
    assert res.status_code == 201
    assert res.json()["duration"] == "3 hours"

    listing = client.get("/v1/experiences").json()
    assert [e["name"] for e in listing["experiences"]] == ["Hidden Cove"]

    assert client.post("/v1/experiences/locations", json={"name": " "}).status_code == 422
