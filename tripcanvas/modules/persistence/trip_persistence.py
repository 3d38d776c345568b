"""
modules/persistence/trip_persistence.py
-----------------------------------------
"Save trip": turn the in-progress Trip into durable remote records.

    for each itinerary item (sequential, independent):
        block_service.create(block_from_item(trip, item))     ← failures recorded
    trip_service.create(trip_header(trip, saved_block_ids))   ← one header write

A failing block never aborts the batch.  The outcome is a SaveReport with
one ItemSaveResult per item; whether the save as a whole "succeeded" is
decided by an explicit SavePolicy:

    ALL          header and every block saved                    (default)
    ANY          header saved and at least one block (or none to save)
    BEST_EFFORT  header saved

The local snapshot is cleared only when the policy is satisfied, so a
failed save can be retried from the editor.  Every step is also written
to the trip's JSONL event log (StructuredLogger).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional, Protocol

import redis

from tripcanvas import config
from tripcanvas.db.connection import transaction
from tripcanvas.db.redis_client import TripSnapshot
from tripcanvas.db.repositories import block_repo, trip_repo
from tripcanvas.errors import PersistenceItemError
from tripcanvas.modules.observability.logger import StructuredLogger
from tripcanvas.modules.planning.identity import normalize
from tripcanvas.modules.planning.time_geometry import format_hhmm
from tripcanvas.schemas.itinerary import ItineraryItem, Trip, string_list

logger = logging.getLogger(__name__)


class SavePolicy(str, Enum):
    ALL         = "all"
    ANY         = "any"
    BEST_EFFORT = "best_effort"

    @classmethod
    def from_config(cls, value: Optional[str] = None) -> "SavePolicy":
        raw = (value or config.SAVE_POLICY or "all").strip().lower().replace("-", "_")
        try:
            return cls(raw)
        except ValueError:
            logger.warning("Unknown SAVE_POLICY %r, using 'all'", raw)
            return cls.ALL


# ── Collaborators ──────────────────────────────────────────────────────────────

class BlockService(Protocol):
    def create(self, block: dict[str, Any]) -> str: ...


class TripService(Protocol):
    def create(self, header: dict[str, Any]) -> str: ...
    def list(self) -> list[dict]: ...


class PostgresBlockService:
    """One transaction per block, so a failed insert leaves the others intact."""

    def create(self, block: dict[str, Any]) -> str:
        with transaction() as conn:
            return block_repo.insert_block(conn, block)


class PostgresTripService:
    """Inserts the header and points the already-saved blocks at it."""

    def create(self, header: dict[str, Any]) -> str:
        block_ids = list(header.get("blockIds") or [])
        row = {k: v for k, v in header.items() if k != "blockIds"}
        with transaction() as conn:
            trip_id = trip_repo.insert_trip(conn, row)
            block_repo.attach_blocks_to_trip(conn, block_ids, trip_id)
        return trip_id

    def list(self) -> list[dict]:
        with transaction(readonly=True) as conn:
            return trip_repo.list_trips(conn)


# ── Record shapes ──────────────────────────────────────────────────────────────

def block_from_item(trip: Trip, item: ItineraryItem) -> dict[str, Any]:
    """Durable block record for one itinerary item."""
    tags = [item.category or "travel", "activity", trip.location]
    return {
        "item_id":     item.id,
        "title":       item.experience_name or "Activity",
        "destination": trip.location,
        "type":        "Activity",
        "date":        item.day.isoformat(),
        "timing": {
            "startTime": format_hhmm(item.start_time),
            "endTime":   format_hhmm(item.end_time),
            "duration":  item.duration,
        },
        "cost": {
            "estimated": item.price,
            "currency":  config.CURRENCY_UNIT,
            "perPerson": True,
        },
        "media": {"images": string_list(item.media.images)},
        "tags":  [t for t in tags if t],
    }


def trip_header(trip: Trip, block_ids: list[str]) -> dict[str, Any]:
    n = len(trip.itinerary)
    return {
        "name":        trip.name,
        "location":    trip.location,
        "startDate":   trip.start_date.isoformat(),
        "endDate":     trip.end_date.isoformat(),
        "budget":      trip.budget,
        "visibility":  trip.visibility,
        "description": f"Trip with {n} {'activity' if n == 1 else 'activities'}",
        "itinerary":   [item.to_dict() for item in trip.itinerary],
        "blockIds":    list(block_ids),
    }


# ── Report ─────────────────────────────────────────────────────────────────────

@dataclass
class ItemSaveResult:
    item_id: str
    ok: bool
    block_id: Optional[str] = None
    error: Optional[str] = None

    def to_dict(self) -> dict:
        return {"itemId": self.item_id, "ok": self.ok, "blockId": self.block_id, "error": self.error}


@dataclass
class SaveReport:
    trip_id: str
    policy: SavePolicy
    items: list[ItemSaveResult] = field(default_factory=list)
    header_saved: bool = False
    remote_trip_id: Optional[str] = None
    header_error: Optional[str] = None

    @property
    def saved_count(self) -> int:
        return sum(1 for r in self.items if r.ok)

    @property
    def failed_items(self) -> list[str]:
        return [r.item_id for r in self.items if not r.ok]

    @property
    def succeeded(self) -> bool:
        if not self.header_saved:
            return False
        if self.policy is SavePolicy.ALL:
            return not self.failed_items
        if self.policy is SavePolicy.ANY:
            return not self.items or self.saved_count > 0
        return True

    def to_dict(self) -> dict:
        return {
            "tripId":       self.trip_id,
            "policy":       self.policy.value,
            "succeeded":    self.succeeded,
            "headerSaved":  self.header_saved,
            "remoteTripId": self.remote_trip_id,
            "headerError":  self.header_error,
            "savedCount":   self.saved_count,
            "failedItems":  self.failed_items,
            "items":        [r.to_dict() for r in self.items],
        }


# ── Batch save ─────────────────────────────────────────────────────────────────

class TripPersistence:
    def __init__(
        self,
        trip_service: TripService,
        block_service: BlockService,
        snapshot: Optional[TripSnapshot] = None,
        events: Optional[StructuredLogger] = None,
        policy: Optional[SavePolicy] = None,
    ) -> None:
        self.trip_service = trip_service
        self.block_service = block_service
        self.snapshot = snapshot
        self.events = events or StructuredLogger()
        self.policy = policy or SavePolicy.from_config()

    def save(self, trip: Trip, policy: Optional[SavePolicy] = None) -> SaveReport:
        """
        Write every block, then the header.  Never raises for a single failed
        write; inspect the returned report instead.
        """
        report = SaveReport(trip_id=trip.id, policy=policy or self.policy)
        try:
            self._write(trip, report)
        finally:
            self.events.close(trip.id)
        return report

    def list_saved(self) -> list[dict]:
        return self.trip_service.list()

    def _write(self, trip: Trip, report: SaveReport) -> None:
        items = normalize(trip.itinerary)
        self.events.log(trip.id, "SAVE_STARTED", {"items": len(items), "policy": report.policy.value})

        for item in items:
            try:
                block_id = self.block_service.create(block_from_item(trip, item))
            except Exception as exc:
                err = PersistenceItemError(item.id, exc)
                logger.warning("%s", err)
                self.events.log(trip.id, "BLOCK_FAILED", {"item_id": item.id, "error": str(exc)})
                report.items.append(ItemSaveResult(item.id, ok=False, error=str(exc)))
                continue
            self.events.log(trip.id, "BLOCK_SAVED", {"item_id": item.id, "block_id": block_id})
            report.items.append(ItemSaveResult(item.id, ok=True, block_id=block_id))

        block_ids = [r.block_id for r in report.items if r.ok and r.block_id]
        try:
            report.remote_trip_id = self.trip_service.create(trip_header(trip, block_ids))
            report.header_saved = True
            self.events.log(trip.id, "TRIP_SAVED", {"remote_trip_id": report.remote_trip_id})
        except Exception as exc:
            report.header_error = str(exc)
            logger.error("Trip header save failed for %s: %s", trip.id, exc)
            self.events.log(trip.id, "TRIP_FAILED", {"error": str(exc)})

        if report.succeeded:
            self._clear_snapshot(trip.id)

        logger.info(
            "Saved trip %s: %d/%d blocks, header=%s, policy=%s → %s",
            trip.id, report.saved_count, len(report.items), report.header_saved,
            report.policy.value, "ok" if report.succeeded else "incomplete",
        )
        self.events.log(trip.id, "SAVE_FINISHED", report.to_dict())

    def _clear_snapshot(self, trip_id: str) -> None:
        if self.snapshot is None:
            return
        try:
            self.snapshot.clear()
        except redis.RedisError as exc:
            logger.error("Could not clear snapshot after saving %s: %s", trip_id, exc)
