from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Generic, Literal, Optional, TypeVar, Union
import uuid

from pydantic import BaseModel

T = TypeVar("T")

Phase = Literal["start", "error", "stop"]


def new_id() -> str:
    return uuid.uuid4().hex


def format_signature(task_id: str, tracker: Optional[str] = None, task_name: Optional[str] = None) -> str:
    prefix = f"{tracker}::" if tracker else ""
    return f"{prefix}{task_id}::{task_name or 'unknown'}"


class TaskRecord(BaseModel):
    """One ledger entry for a tracked task.

    `id`, `signature`, `message` and `phase` are always set. `tracker`,
    `task_name` and `duration` are optional; only stop records carry a duration.
    """

    id: str
    signature: str
    message: str
    phase: Phase
    tracker: Optional[str] = None
    task_name: Optional[str] = None
    duration: Optional[float] = None

    def to_json(self) -> str:
        return self.model_dump_json(exclude_none=True)


@dataclass
class TaskHandle:
    id: str
    _stop: Callable[[str], Optional[float]]

    def stop(self) -> Optional[float]:
        """Stop this task's timer; elapsed milliseconds, or None if already stopped."""
        return self._stop(self.id)


@dataclass(frozen=True)
class Succeeded(Generic[T]):
    value: T

    def unwrap(self) -> T:
        return self.value


@dataclass(frozen=True)
class Failed:
    error: Exception

    @property
    def kind(self) -> str:
        return type(self.error).__name__

    @property
    def detail(self) -> str:
        return str(self.error)

    def unwrap(self) -> Any:
        raise self.error


Outcome = Union[Succeeded[Any], Failed]
