"""
api/deps.py
-----------
FastAPI dependencies.  Every editor-scoped object is keyed by the optional
``X-Editor-Id`` header (default "default"), which selects the Redis snapshot
and user-location slots.  Tests replace these via app.dependency_overrides.
"""
from __future__ import annotations

from fastapi import Depends, Header

from tripcanvas.db.redis_client import DEFAULT_EDITOR_ID, TripSnapshot, UserLocationStore
from tripcanvas.modules.catalog.experience_catalog import ExperienceCatalog, ExperienceCatalogClient
from tripcanvas.modules.itinerary.store import ItineraryStore
from tripcanvas.modules.persistence.trip_persistence import (
    PostgresBlockService,
    PostgresTripService,
    TripPersistence,
)


def get_editor_id(x_editor_id: str = Header(DEFAULT_EDITOR_ID)) -> str:
    return x_editor_id.strip() or DEFAULT_EDITOR_ID


def get_snapshot(editor_id: str = Depends(get_editor_id)) -> TripSnapshot:
    return TripSnapshot(editor_id)


def get_store(snapshot: TripSnapshot = Depends(get_snapshot)) -> ItineraryStore:
    return ItineraryStore(snapshot)


def get_catalog(editor_id: str = Depends(get_editor_id)) -> ExperienceCatalog:
    return ExperienceCatalog(ExperienceCatalogClient(), UserLocationStore(editor_id))


def get_persistence(snapshot: TripSnapshot = Depends(get_snapshot)) -> TripPersistence:
    return TripPersistence(PostgresTripService(), PostgresBlockService(), snapshot=snapshot)
