"""
Configuration loader for tasktracker.

What it does:
- Reads tracker definitions from `config/tasktracker.yaml`.
- Applies global environment overrides to every tracker:
  `TASKTRACKER_HISTORY_ENABLED` and `TASKTRACKER_MAX_HISTORY_SIZE`.
- Validates the result using Pydantic models.

Where it is used:
- Called by `tasktracker.main` to build the demo trackers; `build_tracker`
  turns one `TrackerSettings` into a wired `Tracker`.
"""

import os
from typing import Callable, List, Literal, Optional

import yaml
from pydantic import BaseModel, field_validator

from ..logs.sinks import jsonl_entry_sink, jsonl_history_sink, logging_sink
from ..metrics.tasks import tracker_label
from ..tracker import DEFAULT_HISTORY_SIZE, Tracker

DEFAULT_CONFIG_PATH = "config/tasktracker.yaml"

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


class TrackerSettings(BaseModel):
    """One tracker instance: naming, history bounds and persistence."""
    name: Optional[str] = None
    is_history_enabled: bool = True
    max_history_size: int = DEFAULT_HISTORY_SIZE
    persist: Literal["none", "jsonl", "log"] = "none"
    persist_entries: bool = False
    persist_dir: str = "data/ledger"

    @field_validator("max_history_size")
    @classmethod
    def positive(cls, v):
        if v < 1:
            raise ValueError(f"max_history_size must be >= 1, got {v}")
        return v


class Settings(BaseModel):
    """Runtime settings assembled from YAML + environment variables."""
    trackers: List[TrackerSettings] = []
    metrics_port: Optional[int] = None


def _env_bool(name: str) -> Optional[bool]:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return None
    val = raw.strip().lower()
    if val in _TRUE:
        return True
    if val in _FALSE:
        return False
    raise ValueError(f"{name} must be a boolean flag, got {raw!r}")


def _env_int(name: str) -> Optional[int]:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return None
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None


def load_settings(path: str = DEFAULT_CONFIG_PATH) -> Settings:
    """Load YAML config, apply env-var overrides, and return Settings."""
    with open(path, "r") as f:
        config = yaml.safe_load(f) or {}
    enabled = _env_bool("TASKTRACKER_HISTORY_ENABLED")
    size = _env_int("TASKTRACKER_MAX_HISTORY_SIZE")
    trackers = []
    for raw in config.get("trackers") or []:
        entry = dict(raw or {})
        if enabled is not None:
            entry["is_history_enabled"] = enabled
        if size is not None:
            entry["max_history_size"] = size
        trackers.append(TrackerSettings(**entry))
    return Settings(trackers=trackers, metrics_port=config.get("metrics_port"))


def build_tracker(settings: TrackerSettings, log: Optional[Callable[[str], None]] = None) -> Tracker:
    """Construct a Tracker and attach the sinks selected by `settings.persist`."""
    base = os.path.join(settings.persist_dir, tracker_label(settings.name))
    persist_entry = jsonl_entry_sink(f"{base}.entries.jsonl") if settings.persist_entries else None
    if settings.persist == "jsonl":
        persist_history = jsonl_history_sink(f"{base}.jsonl")
    elif settings.persist == "log":
        persist_history = logging_sink()
    else:
        persist_history = None
    return Tracker(
        name=settings.name,
        is_history_enabled=settings.is_history_enabled,
        max_history_size=settings.max_history_size,
        persist_entry=persist_entry,
        persist_history=persist_history,
        log=log,
    )
