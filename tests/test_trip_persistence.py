from unittest.mock import MagicMock

import pytest

from tripcanvas.modules.persistence.trip_persistence import (
    PostgresTripService,
    SavePolicy,
    TripPersistence,
    block_from_item,
    trip_header,
)

from conftest import FakeBlockService, FakeTripService


@pytest.fixture
def planned_trip(store, trip):
    trip = store.add_item(trip, {"id": "a", "day": "2025-03-01", "startTime": 9.25,
                                 "duration": "1.5 hours", "experienceName": "Kayaking",
                                 "price": 1200, "category": "Adventure",
                                 "media": {"images": ["https://img.example/k.jpg", 7]}})
    trip = store.add_item(trip, {"id": "b", "day": "2025-03-02", "startTime": 14,
                                 "experienceName": "Spice Farm", "price": 800})
    trip = store.add_item(trip, {"id": "c", "day": "2025-03-03", "startTime": 18,
                                 "experienceName": "Cruise", "price": 2500})
    return trip


def _persistence(blocks, trips, snapshot, events, policy=SavePolicy.ALL):
    return TripPersistence(trips, blocks, snapshot=snapshot, events=events, policy=policy)


def test_block_shape(planned_trip):
    block = block_from_item(planned_trip, planned_trip.itinerary[0])
    assert block["title"] == "Kayaking"
    assert block["destination"] == "Goa, India"
    assert block["date"] == "2025-03-01"
    assert block["timing"] == {"startTime": "09:15", "endTime": "10:45", "duration": "1.5 hours"}
    assert block["cost"] == {"estimated": 1200, "currency": "INR", "perPerson": True}
    assert block["media"] == {"images": ["https://img.example/k.jpg"]}
    assert block["tags"] == ["Adventure", "activity", "Goa, India"]


def test_uncategorised_block_is_tagged_travel(planned_trip):
    assert block_from_item(planned_trip, planned_trip.itinerary[1])["tags"][0] == "travel"


def test_header_describes_activities(planned_trip):
    header = trip_header(planned_trip, ["block-1"])
    assert header["description"] == "Trip with 3 activities"
    assert header["blockIds"] == ["block-1"]
    assert len(header["itinerary"]) == 3


def test_full_success_clears_snapshot(planned_trip, snapshot, events):
    blocks, trips = FakeBlockService(), FakeTripService()
    report = _persistence(blocks, trips, snapshot, events).save(planned_trip)

    assert report.succeeded
    assert report.saved_count == 3
    assert report.remote_trip_id == "remote-1"
    assert trips.created[0]["blockIds"] == ["block-1", "block-2", "block-3"]
    assert snapshot.load() is None


def test_one_failed_block_does_not_stop_the_batch(planned_trip, snapshot, events):
    blocks, trips = FakeBlockService(fail_on={"b"}), FakeTripService()
    report = _persistence(blocks, trips, snapshot, events).save(planned_trip)

    assert [r.ok for r in report.items] == [True, False, True]
    assert report.failed_items == ["b"]
    assert "rejected b" in report.items[1].error
    assert report.header_saved
    assert [b["item_id"] for b in blocks.created] == ["a", "c"]

    assert not report.succeeded
    assert snapshot.load() is not None


@pytest.mark.parametrize("policy, fail_on, expected", [
    (SavePolicy.ALL, {"b"}, False),
    (SavePolicy.ANY, {"b"}, True),
    (SavePolicy.ANY, {"a", "b", "c"}, False),
    (SavePolicy.BEST_EFFORT, {"a", "b", "c"}, True),
])
def test_policies(planned_trip, snapshot, events, policy, fail_on, expected):
    report = _persistence(FakeBlockService(fail_on), FakeTripService(), snapshot, events,
                          policy).save(planned_trip)
    assert report.succeeded is expected
    assert (snapshot.load() is None) is expected


def test_header_failure_fails_every_policy(planned_trip, snapshot, events):
    for policy in SavePolicy:
        report = _persistence(FakeBlockService(), FakeTripService(fail=True), snapshot, events,
                              policy).save(planned_trip)
        assert not report.succeeded
        assert "unavailable" in report.header_error
    assert snapshot.load() is not None


def test_empty_trip_saves_header_only(trip, snapshot, events):
    trips = FakeTripService()
    report = _persistence(FakeBlockService(), trips, snapshot, events, SavePolicy.ANY).save(trip)
    assert report.succeeded
    assert trips.created[0]["description"] == "Trip with 0 activities"


def test_events_are_logged(planned_trip, snapshot, events):
    _persistence(FakeBlockService(fail_on={"c"}), FakeTripService(), snapshot, events).save(planned_trip)

    kinds = [e["event_type"] for e in events.read_events(planned_trip.id)]
    assert kinds == ["SAVE_STARTED", "BLOCK_SAVED", "BLOCK_SAVED", "BLOCK_FAILED",
                     "TRIP_SAVED", "SAVE_FINISHED"]
    finished = events.read_events(planned_trip.id)[-1]["payload"]
    assert finished["failedItems"] == ["c"]


def test_policy_from_config():
    assert SavePolicy.from_config("best-effort") is SavePolicy.BEST_EFFORT
    assert SavePolicy.from_config("ANY") is SavePolicy.ANY
    assert SavePolicy.from_config("sometimes") is SavePolicy.ALL


def test_postgres_trip_service_attaches_blocks(monkeypatch):
    conn = MagicMock()
    ctx = MagicMock()
    ctx.__enter__.return_value = conn
    monkeypatch.setattr(
        "tripcanvas.modules.persistence.trip_persistence.transaction", lambda **kw: ctx,
    )
    insert_trip = MagicMock(return_value="uuid-1")
    attach = MagicMock(return_value=2)
    monkeypatch.setattr("tripcanvas.db.repositories.trip_repo.insert_trip", insert_trip)
    monkeypatch.setattr("tripcanvas.db.repositories.block_repo.attach_blocks_to_trip", attach)

    trip_id = PostgresTripService().create({"name": "Goa", "blockIds": ["b1", "b2"]})

    assert trip_id == "uuid-1"
    assert "blockIds" not in insert_trip.call_args.args[1]
    attach.assert_called_once_with(conn, ["b1", "b2"], "uuid-1")


def test_save_closes_event_log_handle(planned_trip, snapshot, events):
    _persistence(FakeBlockService(), FakeTripService(), snapshot, events).save(planned_trip)

    assert planned_trip.id not in events._handles
    assert events.read_events(planned_trip.id)[-1]["event_type"] == "SAVE_FINISHED"


def test_event_log_closed_even_when_header_service_blows_up(planned_trip, snapshot, events):
    trips = MagicMock()
    trips.create.side_effect = RuntimeError("db down")
    report = _persistence(FakeBlockService(), trips, snapshot, events).save(planned_trip)

    assert not report.succeeded
    assert planned_trip.id not in events._handles
