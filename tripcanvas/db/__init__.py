"""
db/
----
Storage access layer for the trip canvas.

Storage architecture:
  PostgreSQL (psycopg2) — remote persistence of finished trips
    tables: trips, blocks

  Redis (redis-py) — local durable editor state
    tripcanvas:current_trip:{editor_id}    TTL = CURRENT_TRIP_TTL
    tripcanvas:user_locations:{editor_id}  TTL = USER_LOCATIONS_TTL

Public exports (import from here for convenience):
    from tripcanvas.db import transaction, get_redis
    from tripcanvas.db.repositories import trip_repo, block_repo
"""

from tripcanvas.db.connection import close_pool, database_available, transaction
from tripcanvas.db.redis_client import get_redis, TripSnapshot, UserLocationStore

__all__ = ["transaction", "close_pool", "database_available", "get_redis", "TripSnapshot", "UserLocationStore"]
