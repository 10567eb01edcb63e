from __future__ import annotations

import json
import logging
import time
from typing import Any, Dict, Optional

TRACKER_LOGGER = "tasktracker.tracker"


def log_task_event(
    event: str,
    task_id: str,
    tracker: Optional[str] = None,
    task_name: Optional[str] = None,
    duration: Optional[float] = None,
    error: Optional[str] = None,
    ts: Optional[int] = None,
    level: int = logging.DEBUG,
) -> None:
    """Emit a structured JSON log line for a task lifecycle event.

    Keys: event, tracker, task_id, task_name, duration_ms, error, ts, component, schema_version
    """
    try:
        logger = logging.getLogger(TRACKER_LOGGER)
        if not logger.isEnabledFor(level):
            return
        payload: Dict[str, Any] = {
            "event": str(event),
            "tracker": tracker,
            "task_id": str(task_id),
            "task_name": task_name,
            "duration_ms": float(duration) if duration is not None else None,
            "ts": int(ts if ts is not None else int(time.time() * 1000)),
            "component": "tracker",
            "schema_version": "v1",
        }
        if error is not None:
            payload["error"] = error
        logger.log(level, json.dumps(payload, separators=(",", ":")))
    except Exception:
        # Logging must never throw
        pass
