from datetime import date

import pytest

from tripcanvas.db.redis_client import TripSnapshot, UserLocationStore
from tripcanvas.modules.itinerary.store import ItineraryStore
from tripcanvas.modules.observability.logger import StructuredLogger
from tripcanvas.schemas.itinerary import ItineraryItem

TRIP_DETAILS = {
    "name": "Goa Getaway",
    "location": "Goa, India",
    "startDate": "2025-03-01",
    "endDate": "2025-03-03",
    "budget": 10000,
}


class FakeRedis:
    """In-memory stand-in for the get/set/delete subset of redis.Redis."""

    def __init__(self):
        self.data = {}
        self.ttls = {}

    def get(self, key):
        return self.data.get(key)

    def set(self, key, value, ex=None):
        self.data[key] = value
        self.ttls[key] = ex
        return True

    def delete(self, *keys):
        removed = 0
        for key in keys:
            if self.data.pop(key, None) is not None:
                removed += 1
            self.ttls.pop(key, None)
        return removed


class FakeBlockService:
    def __init__(self, fail_on=()):
        self.fail_on = set(fail_on)
        self.created = []

    def create(self, block):
        if block["item_id"] in self.fail_on:
            raise ConnectionError(f"block store rejected {block['item_id']}")
        self.created.append(block)
        return f"block-{len(self.created)}"


class FakeTripService:
    def __init__(self, fail=False):
        self.fail = fail
        self.created = []

    def create(self, header):
        if self.fail:
            raise ConnectionError("trip store unavailable")
        self.created.append(header)
        return f"remote-{len(self.created)}"

    def list(self):
        return list(self.created)


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def snapshot(fake_redis):
    return TripSnapshot("test-editor", client=fake_redis)


@pytest.fixture
def locations(fake_redis):
    return UserLocationStore("test-editor", client=fake_redis)


@pytest.fixture
def store(snapshot):
    return ItineraryStore(snapshot)


@pytest.fixture
def trip(store):
    return store.create_trip(TRIP_DETAILS)


@pytest.fixture
def events(tmp_path):
    logger = StructuredLogger(tmp_path / "logs")
    yield logger
    logger.close()


@pytest.fixture
def make_item():
    def _make(item_id, start, end, day=date(2025, 3, 1), **extra):
        return ItineraryItem(id=item_id, day=day, start_time=start, end_time=end, **extra)
    return _make
