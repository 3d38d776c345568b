from unittest.mock import MagicMock

import pytest
import requests

from tripcanvas.errors import CatalogFetchError, ValidationError
from tripcanvas.modules.catalog.experience_catalog import (
    ExperienceCatalog,
    ExperienceCatalogClient,
    build_location_experience,
    filter_experiences,
    merge_catalog,
    normalize_address,
)
from tripcanvas.modules.catalog.place_photos import extract_photo_urls
from tripcanvas.schemas.itinerary import Experience, LocationRef


def _exp(exp_id, name, address=None, category="Adventure"):
    ref = LocationRef(address=address) if address else None
    return Experience(id=exp_id, name=name, category=category, location_ref=ref)


def _response(body, status=200):
    res = MagicMock()
    res.json.return_value = body
    if status >= 400:
        res.raise_for_status.side_effect = requests.HTTPError(f"{status} error")
    return res


def _client_returning(body, status=200):
    session = MagicMock()
    session.get.return_value = _response(body, status)
    return ExperienceCatalogClient(base_url="http://catalog.test/api", session=session), session


# ── merge / filter ─────────────────────────────────────────────────────────────

def test_normalize_address():
    assert normalize_address("  Baga Beach ,Goa,  India ") == "baga beach, goa, india"
    assert normalize_address(None) == ""


def test_merge_prepends_user_locations_and_skips_same_address():
    user = [_exp("loc-1", "My Beach", "Baga Beach, Goa")]
    fetched = [
        _exp("e1", "Beach Yoga", "baga beach,  goa"),
        _exp("e2", "Fort Walk", "Aguada Fort, Goa"),
        _exp("e3", "Cooking Class"),
    ]
    merged = merge_catalog(fetched, user)
    assert [e.id for e in merged] == ["loc-1", "e2", "e3"]


def test_filter_experiences():
    items = [
        _exp("a", "Night Kayak", category="Adventure"),
        _exp("b", "Spice Tour", category="Food"),
        _exp("c", "Kayak Lessons", category="Adventure"),
    ]
    assert [e.id for e in filter_experiences(items, category="Adventure")] == ["a", "c"]
    assert [e.id for e in filter_experiences(items, search="KAYAK")] == ["a", "c"]
    assert [e.id for e in filter_experiences(items, "Adventure", "night")] == ["a"]
    assert filter_experiences(items, category="Advent") == []


# ── ad-hoc locations ───────────────────────────────────────────────────────────

def test_build_location_experience_defaults():
    exp = build_location_experience("Hidden Cove", "Cola Beach, Goa")
    assert exp.is_location
    assert exp.duration == "2 hours"
    assert exp.price == 0
    assert exp.media.images == []
    assert exp.location_ref.address == "Cola Beach, Goa"


def test_build_location_experience_requires_name():
    with pytest.raises(ValidationError):
        build_location_experience("   ", "Somewhere")


@pytest.mark.parametrize("duration", ["abc", "0", -1])
def test_build_location_experience_rejects_bad_duration(duration):
    with pytest.raises(ValidationError):
        build_location_experience("Cove", "Somewhere", duration_hours=duration)


def test_photo_extraction_keeps_only_urls():
    photos = [
        "https://img.example/1.jpg",
        {"url": "https://img.example/2.jpg"},
        {"photo_reference": "REF3"},
        {"getUrl": "function"},
        None,
        "not-a-url",
    ]
    urls = extract_photo_urls(photos)
    assert urls[:2] == ["https://img.example/1.jpg", "https://img.example/2.jpg"]
    assert "photo_reference=REF3" in urls[2]
    assert len(urls) == 3
    assert extract_photo_urls("oops") == []


def test_add_location_persists_newest_first(locations):
    catalog = ExperienceCatalog(MagicMock(), locations, photo_resolver=lambda ref: [])
    first = catalog.add_location("Cove", "Cola Beach, Goa", duration_hours=3, price=150)
    second = catalog.add_location("Market", "Anjuna, Goa")

    stored = [e["id"] for e in locations.entries()]
    assert stored == [second.id, first.id]
    assert first.duration == "3 hours"


def test_add_location_at_same_address_replaces_previous(locations):
    catalog = ExperienceCatalog(MagicMock(), locations, photo_resolver=lambda ref: [])
    catalog.add_location("Cove", "Cola Beach, Goa")
    newer = catalog.add_location("Cove again", "cola beach,goa")
    assert [e["id"] for e in locations.entries()] == [newer.id]


def test_add_location_survives_photo_lookup_failure(locations):
    def broken(ref):
        raise requests.ConnectionError("places down")

    catalog = ExperienceCatalog(MagicMock(), locations, photo_resolver=broken)
    exp = catalog.add_location("Cove", "Cola Beach", place_ref="place-123")
    assert exp.media.images == []
    assert exp.location_ref.place_ref == "place-123"


# ── remote catalog ─────────────────────────────────────────────────────────────

def test_client_lists_and_drops_invalid_records():
    client, session = _client_returning({"experiences": [
        {"_id": "e1", "title": "Dolphin Trip", "price": 900, "category": "Adventure"},
        {"id": "", "name": "No id"},
        "junk",
    ]})
    result = client.list(category="Adventure", page=2, limit=5)

    assert [e.id for e in result] == ["e1"]
    assert result[0].name == "Dolphin Trip"
    args, kwargs = session.get.call_args
    assert args[0] == "http://catalog.test/api/experiences"
    assert kwargs["params"] == {"page": 2, "limit": 5, "category": "Adventure"}


@pytest.mark.parametrize("body, status", [
    ({"experiences": []}, 503),
    ({"items": []}, 200),
    (["not", "an", "object"], 200),
])
def test_client_raises_catalog_fetch_error(body, status):
    client, _ = _client_returning(body, status)
    with pytest.raises(CatalogFetchError):
        client.list()


def test_client_wraps_transport_errors():
    session = MagicMock()
    session.get.side_effect = requests.Timeout("slow")
    client = ExperienceCatalogClient(base_url="http://catalog.test/api", session=session)
    with pytest.raises(CatalogFetchError):
        client.list()


def test_browse_merges_user_locations(locations):
    client, _ = _client_returning({"experiences": [
        {"id": "e1", "name": "Beach Yoga", "locationRef": {"address": "Cola Beach, Goa"}},
        {"id": "e2", "name": "Fort Walk"},
    ]})
    catalog = ExperienceCatalog(client, locations, photo_resolver=lambda ref: [])
    loc = catalog.add_location("Cove", "Cola Beach, Goa")

    assert [e.id for e in catalog.browse()] == [loc.id, "e2"]
    assert [e.id for e in catalog.browse(search="fort")] == ["e2"]


def test_browse_degrades_to_user_locations(locations):
    client = MagicMock()
    client.list.side_effect = CatalogFetchError("down")
    catalog = ExperienceCatalog(client, locations, photo_resolver=lambda ref: [])
    loc = catalog.add_location("Cove", "Cola Beach, Goa")

    result = catalog.browse()
    assert [e.id for e in result] == [loc.id]
    assert result[0].is_location


def test_category_filter_keeps_user_locations(locations):
    client = MagicMock()
    client.list.return_value = [_exp("e1", "Rafting"), _exp("e2", "Spa", category="Leisure")]
    catalog = ExperienceCatalog(client, locations, photo_resolver=lambda ref: [])
    loc = catalog.add_location("Cove", "Cola Beach, Goa")

    assert [e.id for e in catalog.browse(category="Adventure")] == [loc.id, "e1"]
    assert [e.id for e in catalog.browse(category="Adventure", search="raft")] == ["e1"]
    client.list.assert_called_with(category="Adventure", page=1, limit=None)


def test_category_browse_degrades_to_user_locations(locations):
    client = MagicMock()
    client.list.side_effect = CatalogFetchError("down")
    catalog = ExperienceCatalog(client, locations, photo_resolver=lambda ref: [])
    loc = catalog.add_location("Cove", "Cola Beach, Goa")

    assert [e.id for e in catalog.browse(category="Adventure")] == [loc.id]
