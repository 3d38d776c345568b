"""
schemas/itinerary.py
--------------------
Dataclass definitions for the trip canvas: Trip, ItineraryItem, Experience
and their nested Media / LocationRef records.

Wire format (snapshot JSON, drag payloads, API bodies) is the camelCase
shape of the original web client:
    {"id", "name", "location", "startDate", "endDate", "budget",
     "visibility", "itinerary": [{"id", "day", "startTime", "endTime",
     "experienceId", "experienceName", "price", "duration", "category",
     "timeSlot", "media": {"image", "images"}, "locationRef": {...}}]}

``from_dict`` accepts snake_case keys as a fallback so Python callers can
pass either form.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Any, Mapping, Optional

from tripcanvas.modules.planning.time_geometry import (
    parse_duration_hours,
    slot_start_hour,
    time_slot_for,
)

VISIBILITY_VALUES: tuple[str, ...] = ("public", "private")


# ── Coercion helpers ──────────────────────────────────────────────────────────

def _pick(data: Mapping[str, Any], *keys: str, default: Any = None) -> Any:
    """Return the first present, non-None value among ``keys``."""
    for key in keys:
        value = data.get(key)
        if value is not None:
            return value
    return default


def parse_day(value: Any) -> date:
    """Accept a date, a datetime, or an ISO string (time component dropped)."""
    if isinstance(value, date):
        # datetime is a date subclass; strip the time component
        return date(value.year, value.month, value.day)
    if isinstance(value, str) and value.strip():
        return date.fromisoformat(value.strip()[:10])
    raise ValueError(f"not a date: {value!r}")


def as_price(value: Any) -> float:
    """Numeric, non-negative price; anything else counts as 0."""
    if isinstance(value, bool):
        return 0.0
    try:
        price = float(value)
    except (TypeError, ValueError):
        return 0.0
    if price != price or price < 0:   # NaN or negative
        return 0.0
    return price


def string_list(value: Any) -> list[str]:
    """Keep only non-empty string entries; non-lists become []."""
    if not isinstance(value, (list, tuple)):
        return []
    return [v for v in value if isinstance(v, str) and v.strip()]


# ── Nested records ────────────────────────────────────────────────────────────

@dataclass
class Media:
    """Image references; ``images`` is always a list of plain strings."""
    image: Optional[str] = None
    images: list[str] = field(default_factory=list)

    @classmethod
    def from_raw(cls, raw: Any) -> "Media":
        if not isinstance(raw, Mapping):
            return cls()
        image = raw.get("image")
        return cls(
            image=image if isinstance(image, str) and image.strip() else None,
            images=string_list(raw.get("images")),
        )

    def to_dict(self) -> dict:
        out: dict[str, Any] = {"images": string_list(self.images)}
        if self.image:
            out["image"] = self.image
        return out


@dataclass
class LocationRef:
    """Where an item / ad-hoc experience happens."""
    address: str = ""
    coordinates: Optional[dict[str, float]] = None   # {"lat": .., "lng": ..}
    place_ref: Optional[str] = None                  # provider place id

    @classmethod
    def from_raw(cls, raw: Any) -> Optional["LocationRef"]:
        if not isinstance(raw, Mapping):
            return None
        coords = raw.get("coordinates")
        if isinstance(coords, Mapping):
            try:
                coords = {
                    "lat": float(_pick(coords, "lat", "latitude")),
                    "lng": float(_pick(coords, "lng", "longitude")),
                }
            except (TypeError, ValueError):
                coords = None
        else:
            coords = None
        place_ref = _pick(raw, "placeRef", "place_ref", "placeId")
        return cls(
            address=str(raw.get("address") or ""),
            coordinates=coords,
            place_ref=str(place_ref) if place_ref else None,
        )

    def to_dict(self) -> dict:
        out: dict[str, Any] = {"address": self.address}
        if self.coordinates:
            out["coordinates"] = dict(self.coordinates)
        if self.place_ref:
            out["placeRef"] = self.place_ref
        return out


# ── Itinerary item ────────────────────────────────────────────────────────────

@dataclass
class ItineraryItem:
    """
    One scheduled activity, bound to a single day and a [start, end) interval
    in float hours (9.5 == 09:30).

    Invariants (enforced by ItineraryStore):
      - id unique within the owning trip
      - start_time < end_time
      - end_time == start_time + parse_duration_hours(duration) unless a
        reschedule overrode it
    """
    id: str
    day: date
    start_time: float
    end_time: float
    experience_id: str = ""
    experience_name: str = ""
    price: float = 0.0
    duration: str = "2 hours"
    category: str = ""
    time_slot: str = ""
    media: Media = field(default_factory=Media)
    location_ref: Optional[LocationRef] = None

    @property
    def duration_hours(self) -> float:
        return self.end_time - self.start_time

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ItineraryItem":
        """
        Build an item from wire data.

        Legacy records carrying only ``timeSlot`` get the slot's canonical start
        hour; a missing ``endTime`` is derived from the duration string.
        Raises ValueError when ``day`` is absent or unparseable.
        """
        day_raw = data.get("day")
        if day_raw is None:
            raise ValueError("itinerary item has no 'day'")
        day = parse_day(day_raw)

        duration = str(_pick(data, "duration", default="") or "2 hours")
        slot = _pick(data, "timeSlot", "time_slot", default="")

        start_raw = _pick(data, "startTime", "start_time")
        start = float(start_raw) if start_raw is not None else slot_start_hour(slot)
        end_raw = _pick(data, "endTime", "end_time")
        end = float(end_raw) if end_raw is not None else start + parse_duration_hours(duration)

        item_id = _pick(data, "id", "_id", default="")
        return cls(
            id=str(item_id) if item_id else "",
            day=day,
            start_time=start,
            end_time=end,
            experience_id=str(_pick(data, "experienceId", "experience_id", default="")),
            experience_name=str(
                _pick(data, "experienceName", "experience_name", "name", default="")
            ),
            price=as_price(data.get("price")),
            duration=duration,
            category=str(data.get("category") or ""),
            time_slot=time_slot_for(start),
            media=Media.from_raw(data.get("media")),
            location_ref=LocationRef.from_raw(_pick(data, "locationRef", "location_ref")),
        )

    def to_dict(self) -> dict:
        out: dict[str, Any] = {
            "id":             self.id,
            "day":            self.day.isoformat(),
            "startTime":      self.start_time,
            "endTime":        self.end_time,
            "experienceId":   self.experience_id,
            "experienceName": self.experience_name,
            "price":          self.price,
            "duration":       self.duration,
            "category":       self.category,
            "timeSlot":       self.time_slot,
            "media":          self.media.to_dict(),
        }
        if self.location_ref is not None:
            out["locationRef"] = self.location_ref.to_dict()
        return out


# ── Trip aggregate ────────────────────────────────────────────────────────────

@dataclass
class Trip:
    """The in-progress plan owned by ItineraryStore."""
    id: str
    name: str
    location: str
    start_date: date
    end_date: date
    budget: float = 10000.0
    visibility: str = "public"
    itinerary: list[ItineraryItem] = field(default_factory=list)

    def contains_day(self, day: date) -> bool:
        return self.start_date <= day <= self.end_date

    def find_item(self, item_id: str) -> Optional[ItineraryItem]:
        for item in self.itinerary:
            if item.id == item_id:
                return item
        return None

    def days(self) -> list[date]:
        """Every calendar day in [start_date, end_date]."""
        span = (self.end_date - self.start_date).days
        return [date.fromordinal(self.start_date.toordinal() + i) for i in range(span + 1)]

    @classmethod
    def header_from_dict(cls, data: Mapping[str, Any]) -> "Trip":
        """
        Trip header with an empty itinerary.  Raw itinerary entries must go
        through identity.normalize() before they are attached.
        """
        return cls(
            id=str(_pick(data, "id", "_id", default="")),
            name=str(data.get("name") or ""),
            location=str(data.get("location") or ""),
            start_date=parse_day(_pick(data, "startDate", "start_date")),
            end_date=parse_day(_pick(data, "endDate", "end_date")),
            budget=float(data.get("budget") or 0.0),
            visibility=str(data.get("visibility") or "public"),
        )

    def to_dict(self) -> dict:
        return {
            "id":         self.id,
            "name":       self.name,
            "location":   self.location,
            "startDate":  self.start_date.isoformat(),
            "endDate":    self.end_date.isoformat(),
            "budget":     self.budget,
            "visibility": self.visibility,
            "itinerary":  [item.to_dict() for item in self.itinerary],
        }


# ── Catalog entry ─────────────────────────────────────────────────────────────

@dataclass
class Experience:
    """
    A catalog entry. Read-only when fetched; ``is_location`` entries are
    ad-hoc places the user added and are kept across catalog refreshes.
    """
    id: str
    name: str
    duration: str = "2 hours"
    price: float = 0.0
    category: str = ""
    is_location: bool = False
    location_ref: Optional[LocationRef] = None
    media: Media = field(default_factory=Media)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Experience":
        media = Media.from_raw(data.get("media"))
        # catalog service exposes a single top-level "image"
        image = data.get("image")
        if media.image is None and isinstance(image, str) and image.startswith("http"):
            media.image = image
        return cls(
            id=str(_pick(data, "id", "_id", default="")),
            name=str(_pick(data, "name", "title", default="")),
            duration=str(data.get("duration") or "2 hours"),
            price=as_price(data.get("price")),
            category=str(data.get("category") or ""),
            is_location=bool(_pick(data, "isLocation", "is_location", default=False)),
            location_ref=LocationRef.from_raw(_pick(data, "locationRef", "location_ref")),
            media=media,
        )

    def to_dict(self) -> dict:
        out: dict[str, Any] = {
            "id":         self.id,
            "name":       self.name,
            "duration":   self.duration,
            "price":      self.price,
            "category":   self.category,
            "isLocation": self.is_location,
            "media":      self.media.to_dict(),
        }
        if self.location_ref is not None:
            out["locationRef"] = self.location_ref.to_dict()
        return out

    def item_fields(self) -> dict:
        """Wire fields an itinerary item inherits when this entry is scheduled."""
        out: dict[str, Any] = {
            "experienceId":   self.id,
            "experienceName": self.name,
            "price":          self.price,
            "duration":       self.duration,
            "category":       self.category,
            "media":          self.media.to_dict(),
        }
        if self.location_ref is not None:
            out["locationRef"] = self.location_ref.to_dict()
        return out
