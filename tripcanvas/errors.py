"""
errors.py
---------
Exception taxonomy for the trip canvas engine.

  ValidationError       — missing trip fields, bad date range, item outside
                          the trip / visible day. Surfaced; blocks the op.
  NotFoundError         — update on an unknown item id. Surfaced for update,
                          never raised by remove (idempotent).
  DurationParseWarning  — unparseable duration string. Logged only; the
                          parser falls back to the default duration.
  PersistenceItemError  — one block failed to save. Recorded in the
                          SaveReport; the batch continues.
  CatalogFetchError     — catalog service unreachable / malformed. Caught
                          by ExperienceCatalog, which degrades to user-added
                          locations only.
"""

from __future__ import annotations


class TripCanvasError(Exception):
    """Base class for all engine errors."""


class ValidationError(TripCanvasError):
    """Input rejected before any state change."""

    def __init__(self, message: str, errors: list[str] | None = None) -> None:
        super().__init__(message)
        self.errors = list(errors or [message])


class NotFoundError(TripCanvasError):
    """No itinerary item with the requested id."""

    def __init__(self, item_id: str) -> None:
        super().__init__(f"Itinerary item '{item_id}' not found")
        self.item_id = item_id


class DurationParseWarning(UserWarning):
    """Duration text had no '<n> hour(s)' token; default duration used."""


class PersistenceItemError(TripCanvasError):
    """A single remote write failed during a best-effort batch save."""

    def __init__(self, item_id: str, cause: BaseException) -> None:
        super().__init__(f"Failed to persist item '{item_id}': {cause}")
        self.item_id = item_id
        self.cause = cause


class CatalogFetchError(TripCanvasError):
    """The experience catalog service could not be read."""
