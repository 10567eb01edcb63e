"""Structured logging and persistence sinks."""

from .sinks import jsonl_entry_sink, jsonl_history_sink, logging_sink, record_to_dict
from .trace_log import log_task_event

__all__ = [
    "jsonl_entry_sink",
    "jsonl_history_sink",
    "log_task_event",
    "logging_sink",
    "record_to_dict",
]
