"""
db/repositories/trip_repo.py
------------------------------
Insert and list operations for the `trips` table (saved trip headers).

Table trips:
    trip_id     UUID PK DEFAULT gen_random_uuid()
    name        TEXT NOT NULL
    location    TEXT NOT NULL
    start_date  DATE NOT NULL
    end_date    DATE NOT NULL   CHECK (end_date >= start_date)
    budget      NUMERIC NOT NULL CHECK (budget >= 0)
    visibility  TEXT  'public' | 'private'
    status      TEXT  'planning' | 'confirmed' | 'completed' | 'cancelled'
    description TEXT
    itinerary   JSONB  (ItineraryItem wire dicts)
    created_at  TIMESTAMPTZ DEFAULT NOW()

All functions accept a psycopg2 connection object.
Commit/rollback is managed by the caller via db.connection.transaction().
"""

from __future__ import annotations

import json
from typing import Any


def insert_trip(conn, trip_data: dict[str, Any]) -> str:
    """
    Insert a trip header row. Returns trip_id (UUID string).

    Required keys: name, location, startDate, endDate, budget
    Optional keys: visibility, status, description, itinerary
    """
    _defaults: dict[str, Any] = {
        "visibility":  "public",
        "status":      "planning",
        "description": None,
        "itinerary":   [],
    }
    row = {**_defaults, **trip_data}
    if not isinstance(row["itinerary"], str):
        row["itinerary"] = json.dumps(row["itinerary"])

    sql = """
        INSERT INTO trips (
            name, location, start_date, end_date, budget,
            visibility, status, description, itinerary
        ) VALUES (
            %(name)s, %(location)s, %(startDate)s, %(endDate)s, %(budget)s,
            %(visibility)s, %(status)s, %(description)s, %(itinerary)s::jsonb
        )
        RETURNING trip_id
    """
    with conn.cursor() as cur:
        cur.execute(sql, row)
        return str(cur.fetchone()[0])


def list_trips(conn, status: str | None = None) -> list[dict]:
    """Return saved trips, newest first, optionally filtered by status."""
    if status:
        sql = "SELECT * FROM trips WHERE status = %s ORDER BY created_at DESC"
        params: tuple = (status,)
    else:
        sql = "SELECT * FROM trips ORDER BY created_at DESC"
        params = ()
    with conn.cursor() as cur:
        cur.execute(sql, params)
        cols = [d[0] for d in cur.description]
        return [dict(zip(cols, row)) for row in cur.fetchall()]
