from __future__ import annotations

"""
Tracker times units of work and records their lifecycle in a Ledger.
"""

from typing import Any, Awaitable, Callable, Dict, Iterator, List, Optional, TypeVar, Union
import asyncio
import contextlib
import inspect
import logging
import threading
import time

from ..ledger import Ledger, LedgerRecord
from ..logs.trace_log import log_task_event
from ..metrics.tasks import (
    dec_tasks_in_flight,
    inc_ledger_reclaimed,
    inc_task_started,
    inc_tasks_in_flight,
    observe_task_finished,
)
from .model import (
    Failed,
    Outcome,
    Phase,
    Succeeded,
    TaskHandle,
    TaskRecord,
    format_signature,
    new_id,
)

T = TypeVar("T")

DEFAULT_HISTORY_SIZE = 50

TaskFunction = Callable[[], Union[T, Awaitable[T]]]

log = logging.getLogger("tasktracker.tracker")


def monotonic_ms() -> float:
    return time.perf_counter() * 1000.0


def task_name_of(task: Callable[..., Any]) -> Optional[str]:
    name = getattr(task, "__name__", None)
    if not name or name == "<lambda>":
        return None
    return name


async def _settle(task: TaskFunction[T]) -> Outcome:
    try:
        result = task()
        if inspect.isawaitable(result):
            result = await result
    except Exception as e:
        return Failed(e)
    return Succeeded(result)


class Tracker:
    """Times tasks and keeps a bounded history of their start/error/stop records.

    Each timer is keyed by a unique task id, so concurrent runs on the same
    tracker never clobber each other's start time. A `start()` that is never
    stopped stays in the timer map for the lifetime of the tracker; see
    `active_count`.
    """

    def __init__(
        self,
        name: Optional[str] = None,
        is_history_enabled: bool = True,
        max_history_size: Optional[int] = None,
        persist_entry: Optional[Callable[[LedgerRecord[TaskRecord]], None]] = None,
        persist_history: Optional[Callable[[List[LedgerRecord[TaskRecord]]], None]] = None,
        log: Optional[Callable[[str], None]] = None,
        clock: Optional[Callable[[], float]] = None,
        id_factory: Optional[Callable[[], str]] = None,
    ):
        self.name = name
        self.is_history_enabled = is_history_enabled
        self._log = log
        self._clock = clock or monotonic_ms
        self._new_id = id_factory or new_id
        self._timers: Dict[str, float] = {}
        self._timers_lock = threading.Lock()
        self.ledger: Ledger[TaskRecord] = Ledger(
            max_history_size or DEFAULT_HISTORY_SIZE, on_error=self._on_listener_error
        )
        self.ledger.on_reclaim(lambda batch: inc_ledger_reclaimed(self.name, len(batch)))
        if persist_entry is not None:
            self.ledger.on_insert(persist_entry)
        if persist_history is not None:
            self.ledger.on_reclaim(persist_history)

    @property
    def history(self) -> List[LedgerRecord[TaskRecord]]:
        """A history of tasks performed by this instance."""
        return self.ledger.get_history()

    def get_history(self, transform: Optional[Callable[[LedgerRecord[TaskRecord], int], Any]] = None) -> List:
        return self.ledger.get_history(transform)

    @property
    def active_count(self) -> int:
        with self._timers_lock:
            return len(self._timers)

    def start(self) -> TaskHandle:
        """Start measuring a task; the returned handle stops it."""
        task_id = self._new_id()
        now = self._clock()
        with self._timers_lock:
            self._timers[task_id] = now
        inc_task_started(self.name)
        inc_tasks_in_flight(self.name)
        return TaskHandle(task_id, self.stop)

    def stop(self, task_id: str) -> Optional[float]:
        """Stop measuring a task.

        Returns the elapsed milliseconds, or None when the id was never
        started or has already been stopped.
        """
        with self._timers_lock:
            started = self._timers.pop(task_id, None)
            if started is None:
                return None
            now = self._clock()
        dec_tasks_in_flight(self.name)
        return now - started

    async def run(self, task: TaskFunction[T], name: Optional[str] = None) -> T:
        """Run and track a task during its execution.

        Records `start`, then `error: <kind> | <detail>` if the task raises, and
        always `stop: <duration>ms`. The task's own error is re-raised after
        recording; otherwise its result is returned.
        """
        task_name = name or task_name_of(task)
        handle = self._begin(task_name)
        outcome: Optional[Outcome] = None
        interrupt: Optional[BaseException] = None
        try:
            outcome = await _settle(task)
            if isinstance(outcome, Failed):
                self._record_failure(handle.id, task_name, outcome)
        except BaseException as e:
            interrupt = e
            raise
        finally:
            self._finish(handle, task_name, outcome, interrupt)
        return outcome.unwrap()

    @contextlib.contextmanager
    def track(self, name: Optional[str] = None) -> Iterator[TaskHandle]:
        """Track the enclosed block the same way `run` tracks a task."""
        handle = self._begin(name)
        outcome: Optional[Outcome] = None
        interrupt: Optional[BaseException] = None
        try:
            yield handle
            outcome = Succeeded(None)
        except Exception as e:
            outcome = Failed(e)
            self._record_failure(handle.id, name, outcome)
            raise
        except BaseException as e:
            interrupt = e
            raise
        finally:
            self._finish(handle, name, outcome, interrupt)

    def _begin(self, task_name: Optional[str]) -> TaskHandle:
        handle = self.start()
        self._trace(f'start: "{task_name or "unknown"}"')
        log_task_event("start", handle.id, self.name, task_name)
        self._record(handle.id, "start", "start", task_name)
        return handle

    def _record_failure(self, task_id: str, task_name: Optional[str], outcome: Failed) -> None:
        log_task_event(
            "error", task_id, self.name, task_name,
            error=f"{outcome.kind}: {outcome.detail}", level=logging.WARNING,
        )
        self._record(task_id, "error", f"error: {outcome.kind} | {outcome.detail}", task_name)

    def _finish(
        self,
        handle: TaskHandle,
        task_name: Optional[str],
        outcome: Optional[Outcome],
        interrupt: Optional[BaseException] = None,
    ) -> None:
        if outcome is None:
            # Only Exception subclasses are task errors; SystemExit and
            # KeyboardInterrupt pass through without an error record
            status = "cancelled" if isinstance(interrupt, asyncio.CancelledError) else "aborted"
        elif isinstance(outcome, Failed):
            status = "error"
        else:
            status = "success"
        duration = handle.stop()
        observe_task_finished(self.name, status, duration)
        if duration is None:
            # Handle was stopped by the caller inside the tracked block
            log.debug("task %s already stopped", handle.id)
            return
        self._trace(f'stop: "{task_name or "unknown"}" {duration:.2f}ms')
        log_task_event("stop", handle.id, self.name, task_name, duration=duration)
        self._record(handle.id, "stop", f"stop: {duration}ms", task_name, duration)

    def _record(
        self,
        task_id: str,
        phase: Phase,
        message: str,
        task_name: Optional[str] = None,
        duration: Optional[float] = None,
    ) -> None:
        if not self.is_history_enabled:
            return
        self.ledger.push(
            TaskRecord(
                id=task_id,
                signature=format_signature(task_id, self.name, task_name),
                message=message,
                phase=phase,
                tracker=self.name,
                task_name=task_name,
                duration=duration,
            )
        )

    def _trace(self, message: str) -> None:
        if self._log is None:
            return
        try:
            self._log(message)
        except Exception:
            log.exception("log callback failed")

    def _on_listener_error(self, event: str, error: Exception) -> None:
        self._trace(f"{event} listener error: {type(error).__name__} | {error}")
