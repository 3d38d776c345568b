"""
config.py
---------
Central configuration for the trip canvas engine.
All secrets loaded from environment variables — never hard-coded.
"""

import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from the package directory (if it exists) so env vars in that file
# are picked up by os.getenv() below.  Won't override vars already set in the shell.
_env_path = Path(__file__).parent / ".env"
if _env_path.exists():
    load_dotenv(_env_path, override=False)

# ── Timeline geometry ────────────────────────────────────────────────────────
# The rendered day column spans [DAY_START_HOUR, DAY_END_HOUR] in float hours.
DAY_START_HOUR: float = float(os.getenv("DAY_START_HOUR", "6"))
DAY_END_HOUR: float   = float(os.getenv("DAY_END_HOUR",   "24"))
PX_PER_HOUR: float    = float(os.getenv("PX_PER_HOUR",    "60"))

# Fallback when a duration string carries no "<n> hour(s)" token
DEFAULT_DURATION_HOURS: float = float(os.getenv("DEFAULT_DURATION_HOURS", "2.0"))

# ── Trip defaults ────────────────────────────────────────────────────────────
DEFAULT_TRIP_BUDGET: float = float(os.getenv("DEFAULT_TRIP_BUDGET", "10000"))
DEFAULT_VISIBILITY: str    = os.getenv("DEFAULT_VISIBILITY", "public")
CURRENCY_UNIT: str         = os.getenv("CURRENCY_UNIT", "INR")

# ── Redis (local durable snapshot) ───────────────────────────────────────────
REDIS_HOST: str     = os.getenv("REDIS_HOST",     "localhost")
REDIS_PORT: int     = int(os.getenv("REDIS_PORT", "6379"))
REDIS_DB: int       = int(os.getenv("REDIS_DB",   "0"))
REDIS_PASSWORD: str = os.getenv("REDIS_PASSWORD", "")
# TTLs (seconds); reset on every write
CURRENT_TRIP_TTL: int   = int(os.getenv("CURRENT_TRIP_TTL",   "604800"))    # 7 days
USER_LOCATIONS_TTL: int = int(os.getenv("USER_LOCATIONS_TTL", "2592000"))   # 30 days

# ── PostgreSQL (trip + block persistence) ────────────────────────────────────
POSTGRES_HOST: str     = os.getenv("POSTGRES_HOST",     "localhost")
POSTGRES_PORT: int     = int(os.getenv("POSTGRES_PORT", "5432"))
POSTGRES_DB: str       = os.getenv("POSTGRES_DB",       "tripcanvas")
POSTGRES_USER: str     = os.getenv("POSTGRES_USER",     "tripcanvas_user")
POSTGRES_PASSWORD: str = os.getenv("POSTGRES_PASSWORD", "tripcanvas_pass")
POSTGRES_MIN_CONN: int = int(os.getenv("POSTGRES_MIN_CONN", "1"))
POSTGRES_MAX_CONN: int = int(os.getenv("POSTGRES_MAX_CONN", "10"))
POSTGRES_STATEMENT_TIMEOUT_MS: int = int(os.getenv("POSTGRES_STATEMENT_TIMEOUT_MS", "5000"))

# ── Experience catalog service ───────────────────────────────────────────────
CATALOG_BASE_URL: str        = os.getenv("CATALOG_BASE_URL", "http://localhost:5000/api")
CATALOG_REQUEST_TIMEOUT: int = int(os.getenv("CATALOG_REQUEST_TIMEOUT", "10"))
CATALOG_PAGE_LIMIT: int      = int(os.getenv("CATALOG_PAGE_LIMIT", "10"))

# ── Google Places (photo references for user-added locations) ────────────────
GOOGLE_PLACES_API_KEY: str  = os.getenv("GOOGLE_PLACES_API_KEY", "")
PLACE_PHOTO_MAX_WIDTH: int  = int(os.getenv("PLACE_PHOTO_MAX_WIDTH", "800"))
PLACE_PHOTO_LIMIT: int      = int(os.getenv("PLACE_PHOTO_LIMIT", "5"))

# ── Save ─────────────────────────────────────────────────────────────────────
# "all" | "any" | "best_effort"; see modules/persistence/trip_persistence.py
SAVE_POLICY: str = os.getenv("SAVE_POLICY", "all")

# ── Observability ────────────────────────────────────────────────────────────
# JSONL event logs, one file per trip id
EVENT_LOG_DIR: str = os.getenv("EVENT_LOG_DIR", str(Path(__file__).resolve().parent.parent / "logs"))
