"""
modules/itinerary/drag_drop.py
--------------------------------
Drag-and-drop scheduling as an explicit message protocol.

    IDLE ──begin_drag──► DRAGGING ──drop────► DROPPED   ──► IDLE
                            │    └──cancel──► CANCELLED ──► IDLE
                            └─ update_drag_position (preview only)

A drop at vertical coordinate ``y`` over a day column becomes either:

  reschedule  payload is an item whose id is already in the trip
              → store.update_item(day, startTime=t, endTime=t + its duration)
  insert      anything else (catalog experience, foreign item)
              → store.add_item({...payload, day, startTime=t})

The payload crosses the platform boundary as JSON (DragPayload.encode /
decode); decode also takes a bare item or experience object.
``media.images`` is re-filtered to plain strings on both sides.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Any, Optional, Union

from tripcanvas.errors import ValidationError
from tripcanvas.modules.itinerary.store import ItineraryStore
from tripcanvas.modules.planning.identity import resolve_raw_id
from tripcanvas.modules.planning.time_geometry import position_to_time, time_slot_for
from tripcanvas.schemas.itinerary import (
    Experience,
    ItineraryItem,
    Trip,
    parse_day,
    string_list,
)

logger = logging.getLogger(__name__)

PAYLOAD_KINDS: tuple[str, ...] = ("experience", "item")
_ITEM_MARKERS = ("day", "startTime", "endTime", "start_time", "end_time")


class DragState(str, Enum):
    IDLE      = "idle"
    DRAGGING  = "dragging"
    DROPPED   = "dropped"
    CANCELLED = "cancelled"


# ── Payload ────────────────────────────────────────────────────────────────────

def _clean_media(data: dict[str, Any]) -> dict[str, Any]:
    media = data.get("media")
    if isinstance(media, dict):
        data["media"] = {**media, "images": string_list(media.get("images"))}
    return data


@dataclass
class DragPayload:
    """
    Serializable snapshot of the drag source.

    kind: "experience" (catalog entry wire dict) or "item" (full item wire dict)
    """
    kind: str
    data: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_source(cls, source: Union[Experience, ItineraryItem]) -> "DragPayload":
        if isinstance(source, Experience):
            return cls("experience", _clean_media(source.to_dict()))
        if isinstance(source, ItineraryItem):
            return cls("item", _clean_media(source.to_dict()))
        raise TypeError(f"cannot drag a {type(source).__name__}")

    def encode(self) -> str:
        return json.dumps({"kind": self.kind, "data": _clean_media(dict(self.data))})

    @classmethod
    def decode(cls, raw: str) -> "DragPayload":
        """
        Accepts either the ``{"kind", "data"}`` envelope written by encode()
        or a bare item / experience object as other drag sources hand it
        over.  A bare object carrying a day or times is an item; anything
        else is an experience.

        Raises ValueError for anything that is not a JSON object.
        """
        obj = json.loads(raw)
        if not isinstance(obj, dict):
            raise ValueError("not a drag payload")
        if "kind" in obj and "data" in obj:
            if obj["kind"] not in PAYLOAD_KINDS:
                raise ValueError(f"unknown drag payload kind: {obj['kind']!r}")
            data = obj["data"]
            if not isinstance(data, dict):
                raise ValueError("drag payload has no data object")
            return cls(obj["kind"], _clean_media(dict(data)))
        if not obj:
            raise ValueError("empty drag payload")
        kind = "item" if any(k in obj for k in _ITEM_MARKERS) else "experience"
        return cls(kind, _clean_media(dict(obj)))


@dataclass
class DropResult:
    kind: str                  # "insert" | "reschedule"
    trip: Trip
    item: ItineraryItem
    time_slot: str


# ── State machine ──────────────────────────────────────────────────────────────

class DragDropScheduler:
    """Consumes begin / update / drop / cancel messages for one editor."""

    def __init__(self, store: ItineraryStore) -> None:
        self.store = store
        self.state = DragState.IDLE
        self.last_outcome: Optional[DragState] = None
        self.payload: Optional[DragPayload] = None
        self.preview_time: Optional[float] = None
        self.preview_slot: Optional[str] = None

    def begin_drag(self, source: Union[Experience, ItineraryItem, DragPayload]) -> DragPayload:
        payload = source if isinstance(source, DragPayload) else DragPayload.from_source(source)
        self.payload = payload
        self.state = DragState.DRAGGING
        self._clear_preview()
        logger.debug("Drag started: %s %s", payload.kind, payload.data.get("id"))
        return payload

    def update_drag_position(self, y: float) -> Optional[float]:
        """Preview the drop time for pointer offset ``y``; ignored when idle."""
        if self.state is not DragState.DRAGGING:
            return None
        self.preview_time = position_to_time(y)
        self.preview_slot = time_slot_for(self.preview_time)
        return self.preview_time

    def cancel(self) -> None:
        if self.state is DragState.DRAGGING:
            logger.debug("Drag cancelled")
        self._finish(DragState.CANCELLED)

    def drop(
        self,
        trip: Trip,
        day: Union[date, str],
        y: float,
        transfer: Optional[str] = None,
    ) -> Optional[DropResult]:
        """
        Apply the drop to the store.

        ``transfer`` is the encoded payload handed over by the platform; when
        it is missing or unreadable the payload captured by begin_drag is
        used.  With neither, the drop is a no-op and returns None.
        Store errors (ValidationError) propagate; the machine still returns
        to IDLE with the drop recorded as CANCELLED.
        """
        payload = self._resolve_payload(transfer)
        if payload is None:
            logger.info("Drop ignored: no drag payload available")
            self._finish(DragState.CANCELLED)
            return None

        try:
            try:
                target_day = parse_day(day)
            except ValueError as exc:
                raise ValidationError(f"Invalid drop target day: {day!r}") from exc
            drop_time = position_to_time(y)
            slot = time_slot_for(drop_time)

            item_id = resolve_raw_id(payload.data) if payload.kind == "item" else ""
            existing = trip.find_item(item_id) if item_id else None

            if existing is not None:
                updated = self.store.update_item(trip, existing.id, {
                    "day":       target_day,
                    "startTime": drop_time,
                    "endTime":   drop_time + existing.duration_hours,
                })
                kind, new_id = "reschedule", existing.id
            else:
                candidate = self._insert_candidate(payload)
                candidate.update({"day": target_day.isoformat(), "startTime": drop_time})
                updated = self.store.add_item(trip, candidate)
                kind, new_id = "insert", updated.itinerary[-1].id
        except Exception:
            self._finish(DragState.CANCELLED)
            raise
        self._finish(DragState.DROPPED)

        item = updated.find_item(new_id)
        logger.info("Drop %s: %s on %s at %.2f (%s)", kind, new_id, target_day, drop_time, slot)
        return DropResult(kind=kind, trip=updated, item=item, time_slot=slot)

    # ── Internals ──────────────────────────────────────────────────────────────

    def _resolve_payload(self, transfer: Optional[str]) -> Optional[DragPayload]:
        if transfer:
            try:
                return DragPayload.decode(transfer)
            except ValueError as exc:
                logger.debug("Unreadable drag transfer, using captured payload: %s", exc)
        return self.payload

    @staticmethod
    def _insert_candidate(payload: DragPayload) -> dict[str, Any]:
        if payload.kind == "experience":
            return Experience.from_dict(payload.data).item_fields()
        # foreign item: keep identity, re-derive the interval from the drop
        data = dict(payload.data)
        for stale in ("startTime", "start_time", "endTime", "end_time", "timeSlot", "time_slot"):
            data.pop(stale, None)
        return data

    def _clear_preview(self) -> None:
        self.preview_time = None
        self.preview_slot = None

    def _finish(self, outcome: DragState) -> None:
        self.last_outcome = outcome
        self.state = DragState.IDLE
        self.payload = None
        self._clear_preview()
