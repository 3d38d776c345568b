"""
modules/itinerary/store.py
----------------------------
ItineraryStore: the single owner of the in-progress Trip.

Every mutation follows the same pipeline:

    normalize(itinerary)  →  build / patch the item  →  validate_item()
        →  new Trip (copy)  →  snapshot.save(trip.to_dict())

Callers always receive a fresh Trip; the one they passed in is never
mutated, so a caller holding an older reference sees the old state.

The snapshot slot (Redis, see db/redis_client.py) makes the editor survive
a restart.  A snapshot write failure is logged and the mutation still
succeeds: the in-memory trip is the source of truth until the next save.

Usage:
    from tripcanvas.db.redis_client import TripSnapshot
    from tripcanvas.modules.itinerary.store import ItineraryStore

    store = ItineraryStore(TripSnapshot("editor-1"))
    trip  = store.create_trip({"name": "Goa", "location": "Goa, India",
                               "startDate": "2025-03-01", "endDate": "2025-03-03"})
    trip  = store.add_item(trip, experience)
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Any, Mapping, Optional, Union

import redis

from tripcanvas import config
from tripcanvas.db.redis_client import TripSnapshot
from tripcanvas.errors import NotFoundError, ValidationError
from tripcanvas.modules.planning.identity import generate_id, normalize, resolve_raw_id
from tripcanvas.modules.planning.time_geometry import parse_duration_hours, time_slot_for
from tripcanvas.modules.validation import validate_item, validate_trip_details
from tripcanvas.schemas.itinerary import (
    Experience,
    ItineraryItem,
    Trip,
    as_price,
    parse_day,
)

logger = logging.getLogger(__name__)

Candidate = Union[ItineraryItem, Experience, Mapping[str, Any]]

# Patchable fields: wire name → dataclass attribute
PATCH_FIELDS: dict[str, str] = {
    "day":            "day",
    "startTime":      "start_time",
    "start_time":     "start_time",
    "endTime":        "end_time",
    "end_time":       "end_time",
    "experienceName": "experience_name",
    "experience_name": "experience_name",
    "price":          "price",
    "duration":       "duration",
    "category":       "category",
}


class ItineraryStore:
    """Creates trips and applies add / update / remove to their itinerary."""

    def __init__(self, snapshot: TripSnapshot) -> None:
        self.snapshot = snapshot

    # ── Trip lifecycle ─────────────────────────────────────────────────────────

    def create_trip(self, details: Mapping[str, Any]) -> Trip:
        """
        Validate the trip details form and start an empty itinerary.

        budget defaults to DEFAULT_TRIP_BUDGET, visibility to
        DEFAULT_VISIBILITY.  Raises ValidationError listing every problem.
        """
        result = validate_trip_details(dict(details))
        if not result:
            raise ValidationError("Invalid trip details", result.errors)

        budget = details.get("budget")
        trip = Trip(
            id=generate_id(),
            name=str(details.get("name")).strip(),
            location=str(details.get("location")).strip(),
            start_date=parse_day(details.get("startDate", details.get("start_date"))),
            end_date=parse_day(details.get("endDate", details.get("end_date"))),
            budget=float(budget) if budget is not None else float(config.DEFAULT_TRIP_BUDGET),
            visibility=str(details.get("visibility") or config.DEFAULT_VISIBILITY),
        )
        logger.info("Created trip %s (%s, %s → %s)", trip.id, trip.location,
                    trip.start_date, trip.end_date)
        self._persist(trip)
        return trip

    def load(self) -> Optional[Trip]:
        """
        Restore the trip from the snapshot slot, or None when there is none.

        Ids are normalized on the way in.  A snapshot that cannot be read
        back as a trip is logged, cleared, and treated as absent.
        """
        try:
            data = self.snapshot.load()
        except ValueError as exc:
            logger.warning("Clearing unreadable trip snapshot %s: %s", self.snapshot.key, exc)
            self.snapshot.clear()
            return None
        if data is None:
            return None

        try:
            trip = Trip.header_from_dict(data)
        except (TypeError, ValueError) as exc:
            logger.warning("Clearing trip snapshot %s with a bad header: %s", self.snapshot.key, exc)
            self.snapshot.clear()
            return None

        raw_items = data.get("itinerary")
        trip.itinerary = normalize(raw_items if isinstance(raw_items, list) else [])
        if not trip.id:
            trip.id = generate_id()
        logger.info("Loaded trip %s with %d items", trip.id, len(trip.itinerary))
        return trip

    def discard(self) -> None:
        """Drop the in-progress trip snapshot (explicit discard)."""
        self.snapshot.clear()
        logger.info("Discarded trip snapshot %s", self.snapshot.key)

    # ── Item mutations ─────────────────────────────────────────────────────────

    def add_item(self, trip: Trip, candidate: Candidate) -> Trip:
        """
        Append a new item built from an Experience, an ItineraryItem or a raw
        wire dict.

        Missing day → trip.start_date.  Missing startTime → the time slot's
        start hour (morning = 9).  Missing endTime → start + duration.
        A missing id, or one already used in the trip, gets a fresh id.
        """
        items = normalize(trip.itinerary)
        raw = _candidate_to_raw(candidate)

        taken = {i.id for i in items}
        candidate_id = resolve_raw_id(raw)
        raw.pop("_id", None)
        raw["id"] = candidate_id if candidate_id and candidate_id not in taken else generate_id()
        if raw.get("day") is None:
            raw["day"] = trip.start_date.isoformat()

        try:
            item = ItineraryItem.from_dict(raw)
        except (TypeError, ValueError) as exc:
            raise ValidationError(f"Cannot build itinerary item: {exc}") from exc

        self._check(item, trip)
        updated = replace(trip, itinerary=items + [item])
        logger.debug("Added item %s (%s) to trip %s", item.id, item.experience_name, trip.id)
        self._persist(updated)
        return updated

    def update_item(self, trip: Trip, item_id: str, patch: Mapping[str, Any]) -> Trip:
        """
        Patch one item.  Unknown patch keys raise ValidationError; an unknown
        item id raises NotFoundError.

        Changing startTime (or duration) without an explicit endTime keeps
        the item's duration: endTime is recomputed from the duration string.
        """
        unknown = sorted(k for k in patch if k not in PATCH_FIELDS)
        if unknown:
            raise ValidationError(f"Unknown item fields: {', '.join(unknown)}")

        items = normalize(trip.itinerary)
        index = next((i for i, it in enumerate(items) if it.id == item_id), None)
        if index is None:
            raise NotFoundError(item_id)
        current = items[index]

        changes: dict[str, Any] = {}
        for key, value in patch.items():
            changes[PATCH_FIELDS[key]] = value

        try:
            if "day" in changes:
                changes["day"] = parse_day(changes["day"])
            if "start_time" in changes:
                changes["start_time"] = float(changes["start_time"])
            if "end_time" in changes:
                changes["end_time"] = float(changes["end_time"])
        except (TypeError, ValueError) as exc:
            raise ValidationError(f"Invalid item patch: {exc}") from exc
        if "price" in changes:
            changes["price"] = as_price(changes["price"])
        for text_key in ("duration", "experience_name", "category"):
            if text_key in changes:
                changes[text_key] = str(changes[text_key] or "")
        if changes.get("duration") == "":
            changes["duration"] = current.duration

        retimed = "start_time" in changes or "duration" in changes
        if retimed and "end_time" not in changes:
            start = changes.get("start_time", current.start_time)
            duration = changes.get("duration", current.duration)
            changes["end_time"] = start + parse_duration_hours(duration)

        item = replace(current, **changes)
        item = replace(item, time_slot=time_slot_for(item.start_time))
        self._check(item, trip)

        new_items = list(items)
        new_items[index] = item
        updated = replace(trip, itinerary=new_items)
        logger.debug("Updated item %s in trip %s: %s", item_id, trip.id, sorted(patch))
        self._persist(updated)
        return updated

    def remove_item(self, trip: Trip, item_id: str) -> Trip:
        """Remove by id.  Removing an id that is not present is a no-op."""
        items = normalize(trip.itinerary)
        kept = [it for it in items if it.id != item_id]
        if len(kept) == len(items):
            logger.debug("Remove of unknown item %s ignored", item_id)
        updated = replace(trip, itinerary=kept)
        self._persist(updated)
        return updated

    # ── Internals ──────────────────────────────────────────────────────────────

    @staticmethod
    def _check(item: ItineraryItem, trip: Trip) -> None:
        result = validate_item(item, trip)
        if not result:
            raise ValidationError("Invalid itinerary item", result.errors)

    def _persist(self, trip: Trip) -> None:
        try:
            self.snapshot.save(trip.to_dict())
        except redis.RedisError as exc:
            logger.error("Snapshot write failed for trip %s: %s", trip.id, exc)


def _candidate_to_raw(candidate: Candidate) -> dict[str, Any]:
    if isinstance(candidate, Experience):
        return candidate.item_fields()
    if isinstance(candidate, ItineraryItem):
        return candidate.to_dict()
    if isinstance(candidate, Mapping):
        return dict(candidate)
    raise ValidationError(f"Cannot schedule a {type(candidate).__name__}")
