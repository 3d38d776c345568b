"""
api/server.py
-------------
FastAPI application entry point.

Run dev server:
    uvicorn tripcanvas.api.server:app --reload --port 8000

Endpoints:
    GET    /v1/health
    POST   /v1/trips
    GET    /v1/trips
    GET    /v1/trips/current
    DELETE /v1/trips/current
    POST   /v1/trips/current/items
    PATCH  /v1/trips/current/items/{item_id}
    DELETE /v1/trips/current/items/{item_id}
    POST   /v1/trips/current/drop
    GET    /v1/trips/current/layout
    GET    /v1/trips/current/budget
    POST   /v1/trips/current/save
    GET    /v1/experiences
    POST   /v1/experiences/locations
"""
from __future__ import annotations

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from tripcanvas import __version__
from tripcanvas.api.routes import experiences, health, trips
from tripcanvas.db.connection import close_pool

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = FastAPI(
    title="TripCanvas Itinerary API",
    version=__version__,
    description=(
        "Timeline editor backend: lane layout, drag-and-drop scheduling, "
        "budget tracking and best-effort trip saving."
    ),
    docs_url="/docs",
    redoc_url="/redoc",
)

# Allow the editor frontend (any origin during development)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router,      prefix="/v1",             tags=["Health"])
app.include_router(trips.router,       prefix="/v1/trips",       tags=["Trips"])
app.include_router(experiences.router, prefix="/v1/experiences", tags=["Experiences"])


@app.on_event("shutdown")
def _shutdown() -> None:
    close_pool()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("tripcanvas.api.server:app", host="0.0.0.0", port=8000, reload=True)
