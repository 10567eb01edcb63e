"""Prometheus metrics for tracked tasks and the ledger."""

from .core import start_server_safe
from .tasks import observe_task_finished, tracker_label

__all__ = ["observe_task_finished", "start_server_safe", "tracker_label"]
