"""
api/routes/experiences.py
--------------------------
GET  /v1/experiences              catalog page merged with the editor's locations
POST /v1/experiences/locations    add an ad-hoc location experience

The catalog listing never fails because the catalog service is down; it
falls back to the user-added locations.
"""

from __future__ import annotations

from typing import Any, Optional, Union

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field

from tripcanvas.api.deps import get_catalog
from tripcanvas.errors import ValidationError
from tripcanvas.modules.catalog.experience_catalog import ExperienceCatalog

router = APIRouter()


class LocationRequest(BaseModel):
    name:        str
    address:     str = ""
    duration:    Union[float, str] = Field("2", description="Hours")
    price:       Union[float, str] = 0
    coordinates: Optional[dict[str, float]] = None
    placeRef:    Optional[str] = None
    photos:      Optional[list[Any]] = None


@router.get("", summary="Browse experiences")
def list_experiences(
    category: Optional[str] = Query(None, description="Exact category match"),
    page:     int = Query(1, ge=1),
    limit:    Optional[int] = Query(None, ge=1, le=100),
    search:   str = Query("", description="Case-insensitive name search"),
    catalog:  ExperienceCatalog = Depends(get_catalog),
) -> dict:
    experiences = catalog.browse(category=category, page=page, limit=limit, search=search)
    return {"experiences": [e.to_dict() for e in experiences], "page": page}


@router.post("/locations", summary="Add a location experience", status_code=201)
def add_location(req: LocationRequest, catalog: ExperienceCatalog = Depends(get_catalog)) -> dict:
    try:
        exp = catalog.add_location(
            req.name,
            req.address,
            duration_hours=req.duration,
            price=req.price,
            coordinates=req.coordinates,
            place_ref=req.placeRef,
            photos=req.photos,
        )
    except ValidationError as exc:
        raise HTTPException(status_code=422, detail=exc.errors) from exc
    return exp.to_dict()
