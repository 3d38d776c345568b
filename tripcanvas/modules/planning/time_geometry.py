"""
modules/planning/time_geometry.py
-----------------------------------
Pure functions mapping clock hours to the timeline's vertical render axis,
and duration strings to numeric hours.

Axis model
~~~~~~~~~~
The day column shows hours [DAY_START_HOUR, DAY_END_HOUR] = [6, 24]; a float
hour ``t`` sits at ``(t - 6) * px_per_hour`` pixels from the top.  Hours
below 6 are wrapped by +24 for display (2.0 renders at the 26:00 position,
i.e. below midnight) — the store never schedules such items itself.

    position_to_time(time_to_position(t)) == t      for t in [6, 24]

Both maps are affine and the clamp is a no-op in range.
"""

from __future__ import annotations

import logging
import re

from tripcanvas import config
from tripcanvas.errors import DurationParseWarning

logger = logging.getLogger(__name__)

_DURATION_RE = re.compile(r"(\d+(?:\.\d+)?)\s*hours?\b", re.IGNORECASE)

# Legacy coarse slots → canonical start hour (used by block records and by
# snapshots written before items carried explicit start/end times)
SLOT_START_HOURS: dict[str, float] = {
    "morning":   9.0,
    "afternoon": 14.0,
    "evening":   18.0,
    "night":     21.0,
}


# ── Durations ─────────────────────────────────────────────────────────────────

def parse_duration_hours(text: object) -> float:
    """
    Leading decimal number before the word "hour"/"hours".

    "1.5 hours" → 1.5, "3 Hours tour" → 3.0.  No match, or a non-positive
    count such as "0 hours", gives DEFAULT_DURATION_HOURS (2.0); the
    DurationParseWarning is logged, never raised.
    """
    match = _DURATION_RE.search(text) if isinstance(text, str) else None
    if match:
        hours = float(match.group(1))
        if hours > 0:
            return hours
    logger.debug(
        "%s: no positive hour count in %r, defaulting to %.1f",
        DurationParseWarning.__name__, text, config.DEFAULT_DURATION_HOURS,
    )
    return config.DEFAULT_DURATION_HOURS


def format_duration(hours: float) -> str:
    """Display string the parser reads back: 2 → "2 hours", 1 → "1 hour"."""
    value = f"{hours:g}"
    return f"{value} hour" if hours == 1 else f"{value} hours"


# ── Clock labels ──────────────────────────────────────────────────────────────

def _split_hour(hour: float) -> tuple[int, int]:
    whole = int(hour)
    minutes = int(round((hour - whole) * 60))
    if minutes == 60:
        whole, minutes = whole + 1, 0
    return whole, minutes


def format_clock(hour: float) -> str:
    """
    12-hour label: 9.5 → "9:30 AM", 13.25 → "1:15 PM".
    0 and 24 both render as "12:00 AM"; 12 renders as "12:00 PM".
    """
    whole, minutes = _split_hour(hour)
    whole %= 24
    period = "AM" if whole < 12 else "PM"
    display = whole % 12 or 12
    return f"{display}:{minutes:02d} {period}"


def format_hhmm(hour: float) -> str:
    """24-hour "HH:MM" label used in block timing records (24 → "00:00")."""
    whole, minutes = _split_hour(hour)
    return f"{whole % 24:02d}:{minutes:02d}"


# ── Axis mapping ──────────────────────────────────────────────────────────────

def time_to_position(hour: float, px_per_hour: float | None = None) -> float:
    """Vertical offset (px) of ``hour`` in the day column."""
    px = config.PX_PER_HOUR if px_per_hour is None else px_per_hour
    normalized = hour + 24 if hour < config.DAY_START_HOUR else hour
    return (normalized - config.DAY_START_HOUR) * px


def position_to_time(y: float, px_per_hour: float | None = None) -> float:
    """Inverse of time_to_position, clamped to [DAY_START_HOUR, DAY_END_HOUR]."""
    px = config.PX_PER_HOUR if px_per_hour is None else px_per_hour
    hour = y / px + config.DAY_START_HOUR
    return min(max(hour, config.DAY_START_HOUR), config.DAY_END_HOUR)


def column_height(px_per_hour: float | None = None) -> float:
    px = config.PX_PER_HOUR if px_per_hour is None else px_per_hour
    return (config.DAY_END_HOUR - config.DAY_START_HOUR) * px


# ── Coarse slots ──────────────────────────────────────────────────────────────

def time_slot_for(hour: float) -> str:
    """<12 morning, <17 afternoon, <21 evening, else night."""
    if hour < 12:
        return "morning"
    if hour < 17:
        return "afternoon"
    if hour < 21:
        return "evening"
    return "night"


def slot_start_hour(slot: object) -> float:
    """Canonical start of a legacy slot label; unknown/empty → morning."""
    if isinstance(slot, str):
        return SLOT_START_HOURS.get(slot.strip().lower(), SLOT_START_HOURS["morning"])
    return SLOT_START_HOURS["morning"]
