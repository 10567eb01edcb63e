from __future__ import annotations

"""
Observer lists used by the Ledger for insert and reclaim notifications.
"""

from dataclasses import dataclass
from typing import Callable, Generic, List, Optional, TypeVar
import logging

from ..metrics.tasks import get_listener_errors_total

A = TypeVar("A")

log = logging.getLogger("tasktracker.ledger")

ErrorHook = Callable[[str, Exception], None]


@dataclass(frozen=True)
class Subscription(Generic[A]):
    event: str
    callback: Callable[[A], None]


class Listeners(Generic[A]):
    """Callbacks for one ledger event, invoked in registration order.

    A failing callback is logged and counted; the remaining callbacks still run.
    """

    def __init__(self, event: str, on_error: Optional[ErrorHook] = None):
        self.event = event
        self.on_error = on_error
        self._subscriptions: List[Subscription[A]] = []

    def register(self, callback: Callable[[A], None]) -> Subscription[A]:
        sub = Subscription(self.event, callback)
        self._subscriptions.append(sub)
        return sub

    def notify(self, arg: A) -> None:
        for sub in list(self._subscriptions):
            try:
                sub.callback(arg)
            except Exception as e:
                log.exception("%s listener failed", self.event)
                get_listener_errors_total().labels(self.event).inc()
                if self.on_error is not None:
                    self.on_error(self.event, e)

    def __len__(self) -> int:
        return len(self._subscriptions)
