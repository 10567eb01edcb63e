"""Tracker configuration from YAML and environment."""

from .loader import Settings, TrackerSettings, build_tracker, load_settings

__all__ = ["Settings", "TrackerSettings", "build_tracker", "load_settings"]
