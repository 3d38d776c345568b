"""
api/routes/trips.py
--------------------
The in-progress trip of one editor, plus saved trips.

    POST   /v1/trips                              create (replaces any draft)
    GET    /v1/trips                              saved trips (Postgres)
    GET    /v1/trips/current                      draft from the snapshot
    DELETE /v1/trips/current                      discard the draft
    POST   /v1/trips/current/items                add an item
    PATCH  /v1/trips/current/items/{item_id}      patch an item
    DELETE /v1/trips/current/items/{item_id}      remove (idempotent)
    POST   /v1/trips/current/drop                 drag-and-drop onto a day column
    GET    /v1/trips/current/layout               lanes + pixel geometry per day
    GET    /v1/trips/current/budget               spend vs budget
    POST   /v1/trips/current/save                 best-effort remote save

ValidationError → 422 (detail: list of reasons), NotFoundError → 404.
"""

from __future__ import annotations

import json
from contextlib import contextmanager
from typing import Any, Iterator, Optional

import psycopg2
from fastapi import APIRouter, Body, Depends, HTTPException
from pydantic import BaseModel, Field

from tripcanvas import config
from tripcanvas.api.deps import get_persistence, get_store
from tripcanvas.errors import NotFoundError, ValidationError
from tripcanvas.modules.itinerary.drag_drop import DragDropScheduler, DragPayload
from tripcanvas.modules.itinerary.store import ItineraryStore
from tripcanvas.modules.persistence.trip_persistence import TripPersistence
from tripcanvas.modules.planning.budget_tracker import summarize
from tripcanvas.modules.planning.lane_assignment import layout_days
from tripcanvas.modules.planning.time_geometry import (
    column_height,
    format_clock,
    time_to_position,
)
from tripcanvas.schemas.itinerary import Trip

router = APIRouter()


# ── Request schemas ────────────────────────────────────────────────────────────

class TripCreateRequest(BaseModel):
    name:       Optional[str] = None
    location:   Optional[str] = None
    startDate:  Optional[str] = Field(None, description="ISO-8601 date YYYY-MM-DD")
    endDate:    Optional[str] = Field(None, description="ISO-8601 date YYYY-MM-DD")
    budget:     Optional[float] = None
    visibility: Optional[str] = Field(None, description="public | private")


class ItemAddRequest(BaseModel):
    id:             Optional[str] = None
    experienceId:   Optional[str] = None
    experienceName: Optional[str] = None
    price:          Optional[float] = None
    duration:       Optional[str] = Field(None, description='e.g. "1.5 hours"')
    category:       Optional[str] = None
    day:            Optional[str] = None
    startTime:      Optional[float] = None
    endTime:        Optional[float] = None
    timeSlot:       Optional[str] = None
    media:          Optional[dict[str, Any]] = None
    locationRef:    Optional[dict[str, Any]] = None


class DragPayloadModel(BaseModel):
    kind: str = Field(..., description="experience | item")
    data: dict[str, Any]


class DropRequest(BaseModel):
    day: str
    y: float = Field(..., description="Pointer offset (px) from the top of the day column")
    payload: Optional[DragPayloadModel] = None
    transfer: Optional[str] = Field(None, description="Encoded payload from the platform drag API")


# ── Helpers ────────────────────────────────────────────────────────────────────

@contextmanager
def _domain_errors() -> Iterator[None]:
    try:
        yield
    except ValidationError as exc:
        raise HTTPException(status_code=422, detail=exc.errors) from exc
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc


def _current(store: ItineraryStore) -> Trip:
    trip = store.load()
    if trip is None:
        raise HTTPException(status_code=404, detail="No trip in progress")
    return trip


def _ser_layout(trip: Trip) -> dict:
    by_day = layout_days(trip.itinerary)
    px = config.PX_PER_HOUR
    days = []
    for day in trip.days():
        days.append({
            "day": day.isoformat(),
            "items": [
                {
                    "id":           p.item.id,
                    "name":         p.item.experience_name,
                    "lane":         p.lane,
                    "totalLanes":   p.total_lanes,
                    "widthPercent": p.width_percent,
                    "leftPercent":  p.left_percent,
                    "top":          time_to_position(p.item.start_time),
                    "height":       (p.item.end_time - p.item.start_time) * px,
                    "startLabel":   format_clock(p.item.start_time),
                    "endLabel":     format_clock(p.item.end_time),
                    "timeSlot":     p.item.time_slot,
                }
                for p in by_day.get(day, [])
            ],
        })
    return {
        "tripId": trip.id,
        "pxPerHour": px,
        "columnHeight": column_height(),
        "hours": [
            {"hour": h, "label": format_clock(h), "top": time_to_position(h)}
            for h in range(int(config.DAY_START_HOUR), int(config.DAY_END_HOUR) + 1)
        ],
        "days": days,
    }


# ── Trip lifecycle ─────────────────────────────────────────────────────────────

@router.post("", summary="Start a new trip", status_code=201)
def create_trip(req: TripCreateRequest, store: ItineraryStore = Depends(get_store)) -> dict:
    with _domain_errors():
        trip = store.create_trip(req.model_dump(exclude_none=True))
    return trip.to_dict()


@router.get("", summary="List saved trips")
def list_saved_trips(persistence: TripPersistence = Depends(get_persistence)) -> list[dict]:
    try:
        return persistence.list_saved()
    except psycopg2.Error as exc:
        raise HTTPException(status_code=503, detail=f"Trip storage unavailable: {exc}") from exc


@router.get("/current", summary="Trip in progress")
def current_trip(store: ItineraryStore = Depends(get_store)) -> dict:
    return _current(store).to_dict()


@router.delete("/current", summary="Discard the trip in progress")
def discard_trip(store: ItineraryStore = Depends(get_store)) -> dict:
    store.discard()
    return {"discarded": True}


# ── Items ──────────────────────────────────────────────────────────────────────

@router.post("/current/items", summary="Add an itinerary item", status_code=201)
def add_item(req: ItemAddRequest, store: ItineraryStore = Depends(get_store)) -> dict:
    trip = _current(store)
    with _domain_errors():
        updated = store.add_item(trip, req.model_dump(exclude_none=True))
    return updated.to_dict()


@router.patch("/current/items/{item_id}", summary="Update an itinerary item")
def update_item(
    item_id: str,
    patch: dict[str, Any] = Body(...),
    store: ItineraryStore = Depends(get_store),
) -> dict:
    trip = _current(store)
    with _domain_errors():
        updated = store.update_item(trip, item_id, patch)
    return updated.to_dict()


@router.delete("/current/items/{item_id}", summary="Remove an itinerary item")
def remove_item(item_id: str, store: ItineraryStore = Depends(get_store)) -> dict:
    trip = _current(store)
    return store.remove_item(trip, item_id).to_dict()


@router.post("/current/drop", summary="Drop an experience or item onto a day column")
def drop(req: DropRequest, store: ItineraryStore = Depends(get_store)) -> dict:
    """
    One request carries the whole gesture: the captured payload (if any)
    begins the drag, then the drop is applied.  With neither a payload nor
    a readable transfer the drop is a no-op and ``result`` is null.
    """
    trip = _current(store)
    scheduler = DragDropScheduler(store)
    if req.payload is not None:
        try:
            scheduler.begin_drag(DragPayload.decode(json.dumps(req.payload.model_dump())))
        except ValueError as exc:
            raise HTTPException(status_code=422, detail=f"Invalid drag payload: {exc}") from exc

    with _domain_errors():
        result = scheduler.drop(trip, req.day, req.y, transfer=req.transfer)
    if result is None:
        return {"result": None, "trip": trip.to_dict()}
    return {
        "result": {"kind": result.kind, "itemId": result.item.id, "timeSlot": result.time_slot},
        "trip": result.trip.to_dict(),
    }


# ── Derived views ──────────────────────────────────────────────────────────────

@router.get("/current/layout", summary="Lane layout and pixel geometry per day")
def layout(store: ItineraryStore = Depends(get_store)) -> dict:
    return _ser_layout(_current(store))


@router.get("/current/budget", summary="Spend against budget")
def budget(store: ItineraryStore = Depends(get_store)) -> dict:
    trip = _current(store)
    return summarize(trip.budget, trip.itinerary).to_dict()


@router.post("/current/save", summary="Save the trip in progress")
def save_trip(
    store: ItineraryStore = Depends(get_store),
    persistence: TripPersistence = Depends(get_persistence),
) -> dict:
    """Always 200; ``succeeded`` and ``items`` report the per-block outcome."""
    report = persistence.save(_current(store))
    return report.to_dict()
