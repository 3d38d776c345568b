"""
db/repositories/block_repo.py
-------------------------------
Write operations for the `blocks` table — one durable record per itinerary
item of a saved trip.

Table blocks:
    block_id    UUID PK DEFAULT gen_random_uuid()
    trip_id     UUID NULL REFERENCES trips  (NULL: header not yet written)
    item_id     TEXT NOT NULL               (ItineraryItem.id)
    title       TEXT NOT NULL
    destination TEXT NOT NULL
    type        TEXT DEFAULT 'Activity'
    date        DATE NOT NULL
    timing      JSONB  {"startTime", "endTime", "duration"}
    cost        JSONB  {"estimated", "currency", "perPerson"}
    media       JSONB  {"images": [...]}
    tags        TEXT[]
    created_at  TIMESTAMPTZ DEFAULT NOW()

All functions accept a psycopg2 connection object.
Commit/rollback is managed by the caller via db.connection.transaction().
"""

from __future__ import annotations

import json
from typing import Any

_JSON_COLUMNS = ("timing", "cost", "media")


def insert_block(conn, block: dict[str, Any]) -> str:
    """
    Insert one block row. Returns block_id (UUID string).

    Required keys: item_id, title, destination, date
    Optional keys: trip_id, type, timing, cost, media, tags
    """
    _defaults: dict[str, Any] = {
        "trip_id": None,
        "type":    "Activity",
        "timing":  {},
        "cost":    {},
        "media":   {"images": []},
        "tags":    [],
    }
    row = {**_defaults, **block}
    for col in _JSON_COLUMNS:
        if not isinstance(row[col], str):
            row[col] = json.dumps(row[col])

    sql = """
        INSERT INTO blocks (
            trip_id, item_id, title, destination, type, date,
            timing, cost, media, tags
        ) VALUES (
            %(trip_id)s, %(item_id)s, %(title)s, %(destination)s, %(type)s, %(date)s,
            %(timing)s::jsonb, %(cost)s::jsonb, %(media)s::jsonb, %(tags)s
        )
        RETURNING block_id
    """
    with conn.cursor() as cur:
        cur.execute(sql, row)
        return str(cur.fetchone()[0])


def attach_blocks_to_trip(conn, block_ids: list[str], trip_id: str) -> int:
    """Point already-written blocks at their trip header. Returns rows updated."""
    if not block_ids:
        return 0
    sql = "UPDATE blocks SET trip_id = %s WHERE block_id = ANY(%s::uuid[])"
    with conn.cursor() as cur:
        cur.execute(sql, (trip_id, block_ids))
        return cur.rowcount
