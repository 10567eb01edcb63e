"""Task tracking metrics.

Counters:
- tasktracker_tasks_started_total{tracker}
- tasktracker_tasks_finished_total{tracker,outcome="success|error|cancelled|aborted"}
- tasktracker_ledger_reclaimed_total{tracker}
- tasktracker_listener_errors_total{event="insert|reclaim"}

Gauge:
- tasktracker_tasks_in_flight{tracker} (summed over trackers sharing a label)

Histogram:
- tasktracker_task_duration_seconds{tracker}
"""

from __future__ import annotations

from typing import Optional
import os
from prometheus_client import Counter, Gauge, Histogram, REGISTRY

UNNAMED = "unnamed"

_tasks_started: Optional[Counter] = None
_tasks_finished: Optional[Counter] = None
_task_duration: Optional[Histogram] = None
_tasks_in_flight: Optional[Gauge] = None
_ledger_reclaimed: Optional[Counter] = None
_listener_errors: Optional[Counter] = None


class _NoOp:
    def labels(self, *args, **kwargs):
        return self
    def inc(self, *args, **kwargs):
        return None
    def dec(self, *args, **kwargs):
        return None
    def observe(self, *args, **kwargs):
        return None


def _disabled() -> bool:
    return os.getenv("DISABLE_PROMETHEUS", "0") == "1"


def _registered(name: str):
    # Collectors register under their base name and derived sample names
    try:
        coll = getattr(REGISTRY, "_names_to_collectors", {}).get(name)
        if coll is not None:
            return coll
        for coll in list(getattr(REGISTRY, "_collector_to_names", {}).keys()):  # type: ignore[attr-defined]
            if getattr(coll, "_name", None) == name:
                return coll
    except Exception:
        pass
    return None


def _safe_counter(name: str, doc: str, labelnames):
    if _disabled():
        return _NoOp()
    try:
        return Counter(name, doc, labelnames)
    except ValueError:
        return _registered(name) or _registered(f"{name}_total") or _NoOp()


def _safe_gauge_labels(name: str, doc: str, labelnames):
    if _disabled():
        return _NoOp()
    try:
        return Gauge(name, doc, labelnames)
    except ValueError:
        return _registered(name) or _NoOp()


def _safe_histogram(name: str, doc: str, labelnames, buckets):
    if _disabled():
        return _NoOp()
    try:
        return Histogram(name, doc, labelnames, buckets=buckets)
    except ValueError:
        return _registered(name) or _NoOp()


def tracker_label(name: Optional[str]) -> str:
    return name or UNNAMED


def get_tasks_started_total():
    global _tasks_started
    if _tasks_started is None:
        _tasks_started = _safe_counter(
            "tasktracker_tasks_started_total", "Tasks started", ["tracker"]
        )
    return _tasks_started


def get_tasks_finished_total():
    global _tasks_finished
    if _tasks_finished is None:
        _tasks_finished = _safe_counter(
            "tasktracker_tasks_finished_total", "Tasks finished by outcome", ["tracker", "outcome"]
        )
    return _tasks_finished


def get_task_duration_seconds():
    """Histogram: tasktracker_task_duration_seconds

    Buckets: [0.001, 0.005, 0.01, 0.05, 0.1, 0.5, 1, 5, 10, 30]
    """
    global _task_duration
    if _task_duration is None:
        _task_duration = _safe_histogram(
            "tasktracker_task_duration_seconds",
            "Duration of tracked tasks in seconds",
            ["tracker"],
            buckets=(0.001, 0.005, 0.01, 0.05, 0.1, 0.5, 1, 5, 10, 30),
        )
    return _task_duration


def get_tasks_in_flight():
    """Gauge: timers started and not yet stopped, per tracker."""
    global _tasks_in_flight
    if _tasks_in_flight is None:
        _tasks_in_flight = _safe_gauge_labels(
            "tasktracker_tasks_in_flight", "Tasks currently being timed", ["tracker"]
        )
    return _tasks_in_flight


def get_ledger_reclaimed_total():
    global _ledger_reclaimed
    if _ledger_reclaimed is None:
        _ledger_reclaimed = _safe_counter(
            "tasktracker_ledger_reclaimed_total", "Ledger records evicted", ["tracker"]
        )
    return _ledger_reclaimed


def get_listener_errors_total():
    global _listener_errors
    if _listener_errors is None:
        _listener_errors = _safe_counter(
            "tasktracker_listener_errors_total", "Ledger listener failures", ["event"]
        )
    return _listener_errors


def observe_task_finished(tracker: Optional[str], outcome: str, duration_ms: Optional[float]) -> None:
    label = tracker_label(tracker)
    try:
        get_tasks_finished_total().labels(label, outcome).inc()
        if duration_ms is not None and duration_ms >= 0:
            get_task_duration_seconds().labels(label).observe(duration_ms / 1000.0)
    except Exception:
        # Metrics must never break task execution
        pass


def inc_task_started(tracker: Optional[str]) -> None:
    try:
        get_tasks_started_total().labels(tracker_label(tracker)).inc()
    except Exception:
        pass


def inc_tasks_in_flight(tracker: Optional[str]) -> None:
    try:
        get_tasks_in_flight().labels(tracker_label(tracker)).inc()
    except Exception:
        pass


def dec_tasks_in_flight(tracker: Optional[str]) -> None:
    try:
        get_tasks_in_flight().labels(tracker_label(tracker)).dec()
    except Exception:
        pass


def inc_ledger_reclaimed(tracker: Optional[str], count: int) -> None:
    if count <= 0:
        return
    try:
        get_ledger_reclaimed_total().labels(tracker_label(tracker)).inc(count)
    except Exception:
        pass
