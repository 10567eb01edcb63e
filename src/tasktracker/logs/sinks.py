"""
Persistence sinks for ledger entries.

What it does:
- Turns `LedgerRecord[TaskRecord]` objects into plain dicts.
- Builds callbacks for `Tracker(persist_entry=...)` and
  `Tracker(persist_history=...)` that append JSON lines to a file or emit one
  JSON log line per record.

Where it is used:
- `tasktracker.config.loader.build_tracker` wires these from the `persist`
  setting; hosts may also pass them directly.
"""

from __future__ import annotations

import json
import logging
import os
from typing import Any, Callable, Dict, Iterable, List, Optional

from ..ledger import LedgerRecord


def record_to_dict(record: LedgerRecord[Any]) -> Dict[str, Any]:
    data = record.data
    if hasattr(data, "model_dump"):
        data = data.model_dump(exclude_none=True)
    return {"index": record.index, "timestamp": record.timestamp, "data": data}


def append_jsonl(path: str, records: Iterable[LedgerRecord[Any]]) -> None:
    parent = os.path.dirname(path)
    if parent:
        os.makedirs(parent, exist_ok=True)
    with open(path, "a", encoding="utf-8") as f:
        for rec in records:
            f.write(json.dumps(record_to_dict(rec), ensure_ascii=False) + "\n")


def jsonl_entry_sink(path: str) -> Callable[[LedgerRecord[Any]], None]:
    """Callback appending every inserted record to `path`."""

    def _persist(record: LedgerRecord[Any]) -> None:
        append_jsonl(path, [record])

    return _persist


def jsonl_history_sink(path: str) -> Callable[[List[LedgerRecord[Any]]], None]:
    """Callback appending every reclaimed batch to `path`."""

    def _persist(records: List[LedgerRecord[Any]]) -> None:
        append_jsonl(path, records)

    return _persist


def logging_sink(logger: Optional[logging.Logger] = None) -> Callable[[List[LedgerRecord[Any]]], None]:
    """Callback logging each reclaimed record as a single JSON line."""
    logger = logger or logging.getLogger("tasktracker.ledger")

    def _persist(records: List[LedgerRecord[Any]]) -> None:
        for rec in records:
            logger.info(json.dumps(record_to_dict(rec), separators=(",", ":")))

    return _persist
