"""
modules/catalog/place_photos.py
---------------------------------
Photo URLs for an ad-hoc location, resolved through Google Places.

Places details return ``photos: [{"photo_reference": ..., ...}]``; each
reference becomes a plain URL string for the photo endpoint.  Nothing here
raises: a missing key, an HTTP failure or an odd payload all give [].
"""

from __future__ import annotations

import logging
from typing import Any, Optional
from urllib.parse import urlencode

import requests

from tripcanvas import config

logger = logging.getLogger(__name__)

DETAILS_URL = "https://maps.googleapis.com/maps/api/place/details/json"
PHOTO_URL = "https://maps.googleapis.com/maps/api/place/photo"


def photo_url(reference: str, max_width: Optional[int] = None) -> str:
    params = {
        "maxwidth":        max_width or config.PLACE_PHOTO_MAX_WIDTH,
        "photo_reference": reference,
        "key":             config.GOOGLE_PLACES_API_KEY,
    }
    return f"{PHOTO_URL}?{urlencode(params)}"


def extract_photo_urls(photos: Any, limit: Optional[int] = None) -> list[str]:
    """
    Turn a mixed photo list into URL strings.

    Accepts plain URL strings, ``{"url": ...}`` and ``{"photo_reference": ...}``
    entries; anything else is skipped.
    """
    if not isinstance(photos, list):
        return []
    limit = config.PLACE_PHOTO_LIMIT if limit is None else limit

    urls: list[str] = []
    for photo in photos:
        if len(urls) >= limit:
            break
        if isinstance(photo, str) and photo.startswith("http"):
            urls.append(photo)
        elif isinstance(photo, dict):
            if isinstance(photo.get("url"), str) and photo["url"].startswith("http"):
                urls.append(photo["url"])
            elif isinstance(photo.get("photo_reference"), str) and photo["photo_reference"]:
                urls.append(photo_url(photo["photo_reference"]))
    return urls


def fetch_place_photos(
    place_ref: str,
    session: Optional[requests.Session] = None,
) -> list[str]:
    """Photo URLs for a Places place_id; [] on any failure."""
    if not place_ref or not config.GOOGLE_PLACES_API_KEY:
        return []

    params = {
        "place_id": place_ref,
        "fields":   "photos",
        "key":      config.GOOGLE_PLACES_API_KEY,
    }
    http = session or requests
    try:
        res = http.get(DETAILS_URL, params=params, timeout=config.CATALOG_REQUEST_TIMEOUT)
        res.raise_for_status()
        result = res.json().get("result") or {}
    except (requests.RequestException, ValueError, AttributeError) as exc:
        logger.warning("Place photo lookup failed for %s: %s", place_ref, exc)
        return []

    return extract_photo_urls(result.get("photos") if isinstance(result, dict) else None)
