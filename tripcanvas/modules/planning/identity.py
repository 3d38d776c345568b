"""
modules/planning/identity.py
------------------------------
Item identity: id generation and the normalize() boundary.

Every external input (snapshot load, drag payload, catalog entry) passes
through normalize() before it enters the store, so only one id field
(``id``) ever exists past the boundary and ids are pairwise distinct even
when the same catalog entry was dropped twice or a snapshot was corrupted.
"""

from __future__ import annotations

import logging
import time
import uuid
from dataclasses import replace
from typing import Any, Iterable, Mapping, Union

from tripcanvas.schemas.itinerary import ItineraryItem

logger = logging.getLogger(__name__)

LEGACY_ID_FIELDS: tuple[str, ...] = ("id", "_id")

RawItem = Union[ItineraryItem, Mapping[str, Any]]

_BASE36 = "0123456789abcdefghijklmnopqrstuvwxyz"


def _base36(value: int) -> str:
    if value == 0:
        return "0"
    digits = []
    while value:
        value, rem = divmod(value, 36)
        digits.append(_BASE36[rem])
    return "".join(reversed(digits))


def generate_id() -> str:
    """
    Time-based prefix (epoch ms, base 36) + random suffix (uuid4, 12 hex).

    Sorts roughly by creation time; two calls in one process colliding would
    need the same millisecond and the same 48 random bits.
    """
    return f"{_base36(time.time_ns() // 1_000_000)}-{uuid.uuid4().hex[:12]}"


def resolve_raw_id(raw: RawItem) -> str:
    """Id from ``id`` or legacy ``_id``; empty string when neither is set."""
    if isinstance(raw, ItineraryItem):
        return raw.id or ""
    for key in LEGACY_ID_FIELDS:
        value = raw.get(key)
        if value not in (None, ""):
            return str(value)
    return ""


def normalize(items: Iterable[RawItem]) -> list[ItineraryItem]:
    """
    Convert raw items to ItineraryItem with unique ids.

    First occurrence of an id keeps it; a missing or repeated id is replaced
    by generate_id().  Order is preserved.  Raw entries that cannot form an
    item (no parseable day, non-numeric times) are logged and dropped.
    """
    seen: set[str] = set()
    out: list[ItineraryItem] = []
    for raw in items:
        if not isinstance(raw, (ItineraryItem, Mapping)):
            logger.warning("Dropping non-object itinerary entry %r", raw)
            continue
        item_id = resolve_raw_id(raw)
        if not item_id or item_id in seen:
            fresh = generate_id()
            if item_id:
                logger.info("Duplicate item id %r reissued as %r", item_id, fresh)
            item_id = fresh

        if isinstance(raw, ItineraryItem):
            item = raw if raw.id == item_id else _with_id(raw, item_id)
        else:
            data = {k: v for k, v in raw.items() if k != "_id"}
            data["id"] = item_id
            try:
                item = ItineraryItem.from_dict(data)
            except (TypeError, ValueError) as exc:
                logger.warning("Dropping unreadable itinerary entry %r: %s", item_id, exc)
                continue
        seen.add(item_id)
        out.append(item)
    return out


def _with_id(item: ItineraryItem, item_id: str) -> ItineraryItem:
    return replace(item, id=item_id)
