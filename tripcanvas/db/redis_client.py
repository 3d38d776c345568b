"""
db/redis_client.py
-------------------
redis-py client — singleton plus the two editor-side key schemas.

Key schemas:

  1. tripcanvas:current_trip:{editor_id}
       Type : String (Trip JSON, camelCase wire shape)
       TTL  : CURRENT_TRIP_TTL (reset on every write)
       Life : written after every store mutation, deleted on successful
              remote save or explicit discard.

  2. tripcanvas:user_locations:{editor_id}
       Type : String (JSON list of Experience dicts, isLocation=true)
       TTL  : USER_LOCATIONS_TTL (reset on every write)
       Life : never touched by catalog refreshes.

Environment variables (set in config.py):
    REDIS_HOST          default: localhost
    REDIS_PORT          default: 6379
    REDIS_DB            default: 0
    REDIS_PASSWORD      default: ""  (empty = no auth)
    CURRENT_TRIP_TTL    default: 604800
    USER_LOCATIONS_TTL  default: 2592000
"""

from __future__ import annotations

import json
import logging
from typing import Any, Optional

import redis

from tripcanvas import config

logger = logging.getLogger(__name__)

DEFAULT_EDITOR_ID = "default"

# Module-level singleton; initialised lazily on first call to get_redis()
_client: redis.Redis | None = None


def get_redis() -> redis.Redis:
    """Return the singleton Redis client, creating it on first call."""
    global _client
    if _client is None:
        kwargs: dict[str, Any] = {
            "host":             config.REDIS_HOST,
            "port":             config.REDIS_PORT,
            "db":               config.REDIS_DB,
            "decode_responses": True,   # return str, not bytes
        }
        if config.REDIS_PASSWORD:
            kwargs["password"] = config.REDIS_PASSWORD
        _client = redis.Redis(**kwargs)
    return _client


def _current_trip_key(editor_id: str) -> str:
    return f"tripcanvas:current_trip:{editor_id}"


def _user_locations_key(editor_id: str) -> str:
    return f"tripcanvas:user_locations:{editor_id}"


# ── Current trip snapshot ──────────────────────────────────────────────────────

class TripSnapshot:
    """
    Durable slot holding the in-progress trip for one editor.

    ``save`` overwrites, ``load`` returns the raw Trip dict (or None),
    ``clear`` deletes.  Conversion to a Trip and id normalisation are the
    store's job.
    """

    def __init__(self, editor_id: str = DEFAULT_EDITOR_ID, client: Optional[redis.Redis] = None) -> None:
        self.editor_id = editor_id
        self._client = client

    @property
    def client(self) -> redis.Redis:
        return self._client if self._client is not None else get_redis()

    @property
    def key(self) -> str:
        return _current_trip_key(self.editor_id)

    def save(self, trip_data: dict) -> None:
        self.client.set(self.key, json.dumps(trip_data), ex=config.CURRENT_TRIP_TTL)

    def load(self) -> dict | None:
        """
        Raw Trip dict, or None when the slot is empty.
        Undecodable JSON raises ValueError; the caller decides whether to clear.
        """
        raw = self.client.get(self.key)
        if raw is None:
            return None
        data = json.loads(raw)
        if not isinstance(data, dict):
            raise ValueError(f"snapshot at {self.key} is not a JSON object")
        return data

    def clear(self) -> None:
        self.client.delete(self.key)


# ── User-added locations ───────────────────────────────────────────────────────

class UserLocationStore:
    """Session-durable list of ad-hoc location experiences, newest first."""

    def __init__(self, editor_id: str = DEFAULT_EDITOR_ID, client: Optional[redis.Redis] = None) -> None:
        self.editor_id = editor_id
        self._client = client

    @property
    def client(self) -> redis.Redis:
        return self._client if self._client is not None else get_redis()

    @property
    def key(self) -> str:
        return _user_locations_key(self.editor_id)

    def entries(self) -> list[dict]:
        raw = self.client.get(self.key)
        if raw is None:
            return []
        try:
            data = json.loads(raw)
        except ValueError:
            logger.warning("Discarding unreadable user locations at %s", self.key)
            return []
        return [d for d in data if isinstance(d, dict)] if isinstance(data, list) else []

    def replace(self, entries: list[dict]) -> None:
        self.client.set(self.key, json.dumps(entries), ex=config.USER_LOCATIONS_TTL)

    def clear(self) -> None:
        self.client.delete(self.key)
