"""
modules/catalog/experience_catalog.py
---------------------------------------
Experience catalog: the remote read-only list plus the user's ad-hoc
locations, merged into the one list the editor browses.

  ExperienceCatalogClient   GET {CATALOG_BASE_URL}/experiences
                            ?category=&page=&limit=  →  {"experiences": [...]}
                            Raises CatalogFetchError on any transport or
                            payload problem.
  merge_catalog()           user locations first, then fetched entries whose
                            normalized address is not already a user location.
  ExperienceCatalog         browse() never fails: a CatalogFetchError degrades
                            to the user locations alone.

User locations live in Redis (UserLocationStore) and are never evicted by a
catalog refresh.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Callable, Iterable, Optional

import requests

from tripcanvas import config
from tripcanvas.db.redis_client import UserLocationStore
from tripcanvas.errors import CatalogFetchError, ValidationError
from tripcanvas.modules.catalog.place_photos import extract_photo_urls, fetch_place_photos
from tripcanvas.modules.planning.identity import generate_id
from tripcanvas.modules.planning.time_geometry import format_duration
from tripcanvas.modules.validation import filter_valid, validate_experience
from tripcanvas.schemas.itinerary import Experience, LocationRef, Media

logger = logging.getLogger(__name__)

LOCATION_CATEGORY = "Location"

_WS = re.compile(r"\s+")


# ── Merge helpers ──────────────────────────────────────────────────────────────

def normalize_address(address: Any) -> str:
    """Case-, spacing- and comma-spacing-insensitive address key ("" if none)."""
    if not isinstance(address, str):
        return ""
    parts = [_WS.sub(" ", p).strip() for p in address.lower().split(",")]
    return ", ".join(p for p in parts if p)


def _address_key(experience: Experience) -> str:
    ref = experience.location_ref
    return normalize_address(ref.address) if ref is not None else ""


def merge_catalog(
    fetched_page: Iterable[Experience],
    user_added: Iterable[Experience],
) -> list[Experience]:
    """
    User-added locations first, in their stored order, then the fetched page
    minus entries at an address a user location already covers.  Entries
    without an address are never treated as duplicates.
    """
    user = list(user_added)
    taken = {key for key in (_address_key(e) for e in user) if key}
    merged = list(user)
    for exp in fetched_page:
        key = _address_key(exp)
        if key and key in taken:
            logger.debug("Skipping catalog entry %s: address covered by a user location", exp.id)
            continue
        merged.append(exp)
    return merged


def filter_experiences(
    experiences: Iterable[Experience],
    category: Optional[str] = None,
    search: str = "",
) -> list[Experience]:
    """Exact category match (when given) and case-insensitive name search."""
    needle = (search or "").strip().lower()
    return [
        exp for exp in experiences
        if (not category or exp.category == category)
        and (not needle or needle in exp.name.lower())
    ]


def build_location_experience(
    name: str,
    address: str,
    duration_hours: Any = "2",
    price: Any = 0,
    coordinates: Optional[dict[str, float]] = None,
    place_ref: Optional[str] = None,
    photos: Any = None,
) -> Experience:
    """
    Ad-hoc location experience from the "add location" form.

    name is required; duration is a number of hours (default 2); price
    defaults to 0.  Photos may be URL strings or Places photo dicts; entries
    that cannot be turned into a URL are dropped.
    """
    name = (name or "").strip()
    if not name:
        raise ValidationError("Location name is required")

    try:
        hours = float(duration_hours if duration_hours not in (None, "") else 2)
    except (TypeError, ValueError) as exc:
        raise ValidationError(f"duration={duration_hours!r} must be a number of hours") from exc
    if hours <= 0:
        raise ValidationError(f"duration={duration_hours!r} must be positive")

    try:
        cost = float(price if price not in (None, "") else 0)
    except (TypeError, ValueError) as exc:
        raise ValidationError(f"price={price!r} must be numeric") from exc
    if cost < 0:
        raise ValidationError(f"price={price!r} must be >= 0")

    images = extract_photo_urls(photos)
    location_ref = LocationRef.from_raw({
        "address":     address or name,
        "coordinates": coordinates,
        "placeRef":    place_ref,
    })
    return Experience(
        id=f"location-{generate_id()}",
        name=name,
        duration=format_duration(hours),
        price=cost,
        category=LOCATION_CATEGORY,
        is_location=True,
        location_ref=location_ref,
        media=Media(image=images[0] if images else None, images=images),
    )


# ── Remote catalog ─────────────────────────────────────────────────────────────

class ExperienceCatalogClient:
    """Thin requests wrapper around the catalog service's list endpoint."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[int] = None,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.base_url = (base_url or config.CATALOG_BASE_URL).rstrip("/")
        self.timeout = timeout or config.CATALOG_REQUEST_TIMEOUT
        self.session = session or requests.Session()

    def list(
        self,
        category: Optional[str] = None,
        page: int = 1,
        limit: Optional[int] = None,
    ) -> list[Experience]:
        params: dict[str, Any] = {"page": page, "limit": limit or config.CATALOG_PAGE_LIMIT}
        if category:
            params["category"] = category

        url = f"{self.base_url}/experiences"
        try:
            res = self.session.get(url, params=params, timeout=self.timeout)
            res.raise_for_status()
            body = res.json()
        except requests.RequestException as exc:
            raise CatalogFetchError(f"GET {url} failed: {exc}") from exc
        except ValueError as exc:
            raise CatalogFetchError(f"GET {url} returned non-JSON body") from exc

        records = body.get("experiences") if isinstance(body, dict) else None
        if not isinstance(records, list):
            raise CatalogFetchError(f"GET {url} returned no 'experiences' list")

        records = [r for r in records if isinstance(r, dict)]
        return [Experience.from_dict(r) for r in filter_valid(records, validate_experience)]


class ExperienceCatalog:
    """What the editor's sidebar shows: user locations plus the fetched page."""

    def __init__(
        self,
        client: ExperienceCatalogClient,
        locations: UserLocationStore,
        photo_resolver: Callable[[str], list[str]] = fetch_place_photos,
    ) -> None:
        self.client = client
        self.locations = locations
        self.photo_resolver = photo_resolver

    def user_locations(self) -> list[Experience]:
        records = filter_valid(self.locations.entries(), validate_experience)
        out = []
        for record in records:
            exp = Experience.from_dict(record)
            exp.is_location = True
            out.append(exp)
        return out

    def browse(
        self,
        category: Optional[str] = None,
        page: int = 1,
        limit: Optional[int] = None,
        search: str = "",
    ) -> list[Experience]:
        user = self.user_locations()
        try:
            fetched = self.client.list(category=category, page=page, limit=limit)
        except CatalogFetchError as exc:
            logger.warning("Catalog unavailable, showing %d user locations only: %s", len(user), exc)
            fetched = []
        # user locations ignore the category filter; only the search applies
        fetched = filter_experiences(fetched, category)
        return filter_experiences(merge_catalog(fetched, user), search=search)

    def add_location(
        self,
        name: str,
        address: str,
        duration_hours: Any = "2",
        price: Any = 0,
        coordinates: Optional[dict[str, float]] = None,
        place_ref: Optional[str] = None,
        photos: Any = None,
    ) -> Experience:
        """
        Build and store a new user location (newest first).  A stored location
        at the same normalized address is replaced.
        """
        if photos is None and place_ref:
            try:
                photos = self.photo_resolver(place_ref)
            except (requests.RequestException, ValueError, TypeError, KeyError) as exc:
                logger.warning("Photo lookup for %s failed: %s", place_ref, exc)
                photos = []

        exp = build_location_experience(
            name, address, duration_hours, price,
            coordinates=coordinates, place_ref=place_ref, photos=photos,
        )
        key = _address_key(exp)
        kept = [
            e for e in self.locations.entries()
            if _address_key(Experience.from_dict(e)) != key
        ]
        self.locations.replace([exp.to_dict()] + kept)
        logger.info("Added user location %s (%s)", exp.id, exp.name)
        return exp
