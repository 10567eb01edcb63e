"""Task timing and recording."""

from .model import Failed, Succeeded, TaskHandle, TaskRecord, format_signature, new_id
from .tracker import DEFAULT_HISTORY_SIZE, Tracker, task_name_of

__all__ = [
    "DEFAULT_HISTORY_SIZE",
    "Failed",
    "Succeeded",
    "TaskHandle",
    "TaskRecord",
    "Tracker",
    "format_signature",
    "new_id",
    "task_name_of",
]
