"""
Structured JSON event log for trip saves — append-only, one object per line.

Usage:
    from tripcanvas.modules.observability.logger import StructuredLogger

    events = StructuredLogger()
    events.log("lq3k2x-9f1c0a2b4d6e", "BLOCK_SAVED", {"item_id": "..."})

Events land in  <EVENT_LOG_DIR>/<trip_id>.jsonl  (default: logs/ beside the
package).  read_events() returns them back in write order.
"""

from __future__ import annotations

import json
import os
import re
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import IO

from tripcanvas import config

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9_.-]")


def _file_stem(trip_id: str) -> str:
    return _UNSAFE_CHARS.sub("_", trip_id) or "unsaved"


class StructuredLogger:
    """Thread-safe, append-only JSONL logger keyed by trip id."""

    def __init__(self, logs_dir: Path | str | None = None) -> None:
        self._logs_dir = Path(logs_dir) if logs_dir else Path(config.EVENT_LOG_DIR)
        self._lock = threading.Lock()
        self._handles: dict[str, IO[str]] = {}

    def log(self, trip_id: str, event_type: str, payload: dict) -> None:
        record = {
            "timestamp":  datetime.now(timezone.utc).isoformat(),
            "trip_id":    trip_id,
            "event_type": event_type,
            "payload":    payload,
        }
        line = json.dumps(record, default=str, ensure_ascii=False) + "\n"

        with self._lock:
            fh = self._handles.get(trip_id)
            if fh is None:
                fh = self._open(trip_id)
            fh.write(line)
            fh.flush()

    def read_events(self, trip_id: str) -> list[dict]:
        """All records logged for ``trip_id``; [] when nothing was logged."""
        path = self._logs_dir / f"{_file_stem(trip_id)}.jsonl"
        if not path.exists():
            return []
        with open(path, "r", encoding="utf-8") as fh:
            return [json.loads(line) for line in fh if line.strip()]

    def close(self, trip_id: str | None = None) -> None:
        """Close one or all open file handles."""
        with self._lock:
            if trip_id:
                fh = self._handles.pop(trip_id, None)
                if fh:
                    fh.close()
            else:
                for fh in self._handles.values():
                    fh.close()
                self._handles.clear()

    def _open(self, trip_id: str) -> IO[str]:
        os.makedirs(self._logs_dir, exist_ok=True)
        path = self._logs_dir / f"{_file_stem(trip_id)}.jsonl"
        fh = open(path, "a", encoding="utf-8")  # noqa: SIM115
        self._handles[trip_id] = fh
        return fh
