"""
api/routes/health.py
--------------------
Health-check endpoints for container probes.

    GET /v1/health            process is up
    GET /v1/health/postgres   trip store reachable (503 otherwise)
"""
from __future__ import annotations

from fastapi import APIRouter, HTTPException

from tripcanvas import __version__
from tripcanvas.db.connection import database_available

router = APIRouter()


@router.get("/health", summary="Health check")
def health() -> dict:
    return {"status": "ok", "service": "tripcanvas", "version": __version__}


@router.get("/health/postgres", summary="Trip store reachability")
def health_postgres() -> dict:
    if not database_available():
        raise HTTPException(status_code=503, detail="Postgres unavailable")
    return {"status": "ok", "postgres": "reachable"}
