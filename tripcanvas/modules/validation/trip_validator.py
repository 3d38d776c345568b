"""
modules/validation/trip_validator.py
--------------------------------------
Data-quality guards applied before a trip, an itinerary item, or a catalog
entry is accepted by the store or the catalog merge layer.

  Trip details:
    ✓ name, location, start_date, end_date present and non-empty
    ✓ dates are ISO-8601 (or date objects)
    ✓ start_date <= end_date
    ✓ budget numeric and >= 0 (if present)
    ✓ visibility in {"public", "private"} (if present)

  Itinerary item (against its trip):
    ✓ day within [trip.start_date, trip.end_date]
    ✓ DAY_START_HOUR <= start_time < end_time <= DAY_END_HOUR
      (items crossing midnight are rejected, not wrapped)

  Experience (catalog entry):
    ✓ non-empty id and name

Usage:
    from tripcanvas.modules.validation import validate_trip_details

    result = validate_trip_details(form)
    if not result:
        print(result.errors)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Callable, TypeVar

from tripcanvas import config
from tripcanvas.schemas.itinerary import VISIBILITY_VALUES, ItineraryItem, Trip, parse_day

logger = logging.getLogger(__name__)

T = TypeVar("T")

REQUIRED_TRIP_FIELDS: tuple[tuple[str, str], ...] = (
    ("name",      "name"),
    ("location",  "location"),
    ("startDate", "start_date"),
    ("endDate",   "end_date"),
)


# ── Result dataclass ───────────────────────────────────────────────────────────

@dataclass
class ValidationResult:
    """
    Outcome of a single validation run.

    Attributes:
        valid:  True iff there are zero errors.
        errors: Human-readable list of failure reasons.
        record: The input record (for logging purposes).
    """
    valid: bool
    errors: list[str] = field(default_factory=list)
    record: Any = field(default=None, repr=False)

    def __bool__(self) -> bool:
        return self.valid


# ── Trip details ───────────────────────────────────────────────────────────────

def validate_trip_details(record: dict[str, Any]) -> ValidationResult:
    """Validate the trip details form before a Trip is created."""
    errors: list[str] = []

    for wire_key, py_key in REQUIRED_TRIP_FIELDS:
        value = record.get(wire_key, record.get(py_key))
        if value is None or (isinstance(value, str) and not value.strip()):
            errors.append(f"{wire_key} is required")

    start = record.get("startDate", record.get("start_date"))
    end = record.get("endDate", record.get("end_date"))
    if start and end:
        try:
            start_d = parse_day(start)
            end_d = parse_day(end)
            if end_d < start_d:
                errors.append(f"endDate={end_d} is before startDate={start_d}")
        except ValueError:
            errors.append(
                f"startDate={start!r} or endDate={end!r} is not a valid ISO-8601 date"
            )

    budget = record.get("budget")
    if budget is not None:
        try:
            if float(budget) < 0:
                errors.append(f"budget={budget} must be >= 0")
        except (TypeError, ValueError):
            errors.append(f"budget={budget!r} must be numeric")

    visibility = record.get("visibility")
    if visibility is not None and visibility not in VISIBILITY_VALUES:
        errors.append(f"visibility={visibility!r} must be one of {', '.join(VISIBILITY_VALUES)}")

    return ValidationResult(valid=not errors, errors=errors, record=record)


# ── Itinerary item ─────────────────────────────────────────────────────────────

def validate_item(item: ItineraryItem, trip: Trip) -> ValidationResult:
    """Validate an item's day and interval against its trip and the visible day."""
    errors: list[str] = []

    if not isinstance(item.day, date) or not trip.contains_day(item.day):
        errors.append(
            f"day={item.day} is outside the trip range "
            f"[{trip.start_date}, {trip.end_date}]"
        )

    if item.start_time < config.DAY_START_HOUR:
        errors.append(
            f"startTime={item.start_time} is before the day starts ({config.DAY_START_HOUR:g})"
        )
    if item.end_time <= item.start_time:
        errors.append(f"endTime={item.end_time} must be after startTime={item.start_time}")
    if item.end_time > config.DAY_END_HOUR:
        errors.append(
            f"endTime={item.end_time} crosses midnight; items must end by "
            f"{config.DAY_END_HOUR:g}:00"
        )

    return ValidationResult(valid=not errors, errors=errors, record=item)


# ── Catalog entries ────────────────────────────────────────────────────────────

def validate_experience(record: dict[str, Any]) -> ValidationResult:
    errors: list[str] = []
    if not str(record.get("id") or record.get("_id") or "").strip():
        errors.append("id must not be empty")
    if not str(record.get("name") or record.get("title") or "").strip():
        errors.append("name must not be empty")
    return ValidationResult(valid=not errors, errors=errors, record=record)


# ── Batch filter helper ────────────────────────────────────────────────────────

def filter_valid(
    items: list[T],
    validator: Callable[[T], ValidationResult],
) -> list[T]:
    """
    Apply a validator to every item, return only the valid ones.
    Each rejection is logged at WARNING with its reasons.
    """
    valid_items: list[T] = []
    for item in items:
        result = validator(item)
        if result.valid:
            valid_items.append(item)
        else:
            logger.warning("Rejected record: %s", "; ".join(result.errors))

    if len(valid_items) < len(items):
        logger.warning(
            "%d/%d records rejected; %d passed.",
            len(items) - len(valid_items), len(items), len(valid_items),
        )
    return valid_items
