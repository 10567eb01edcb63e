from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Generic, List, Optional, TypeVar
import threading
import time

from .listeners import ErrorHook, Listeners, Subscription

T = TypeVar("T")
RT = TypeVar("RT")

DEFAULT_LIMIT = 100


def wall_ms() -> int:
    return int(time.time() * 1000)


@dataclass(frozen=True)
class LedgerRecord(Generic[T]):
    index: int
    timestamp: int
    data: T


class Ledger(Generic[T]):
    """Write-only, size-bounded history of records.

    Every pushed item gets a lifetime-unique index and a capture timestamp.
    Once the history reaches `limit`, the oldest half is dropped in one batch
    and handed to the reclaim listeners.
    """

    def __init__(
        self,
        limit: Optional[int] = None,
        clock: Optional[Callable[[], int]] = None,
        on_error: Optional[ErrorHook] = None,
    ):
        self.limit = limit if limit is not None else DEFAULT_LIMIT
        self._clock = clock or wall_ms
        self._index = 0
        self._history: List[LedgerRecord[T]] = []
        self._inserted: Listeners[LedgerRecord[T]] = Listeners("insert", on_error)
        self._reclaimed: Listeners[List[LedgerRecord[T]]] = Listeners("reclaim", on_error)
        # Re-entrant so listeners may push into the same ledger
        self._lock = threading.RLock()

    def push(self, *items: T) -> None:
        if not items:
            return
        with self._lock:
            for item in items:
                record = LedgerRecord(index=self._index, timestamp=self._clock(), data=item)
                self._index += 1
                self._history.append(record)
                self._inserted.notify(record)

            if len(self._history) >= self.limit:
                count = len(self._history) // 2
                if count:
                    batch = self._history[:count]
                    del self._history[:count]
                    self._reclaimed.notify(batch)

    def get_history(
        self, transform: Optional[Callable[[LedgerRecord[T], int], RT]] = None
    ) -> List:
        """Return a copy of the history, optionally mapped through `transform(record, position)`."""
        with self._lock:
            snapshot = list(self._history)
        if transform is None:
            return snapshot
        return [transform(rec, pos) for pos, rec in enumerate(snapshot)]

    def on_insert(self, callback: Callable[[LedgerRecord[T]], None]) -> Subscription:
        return self._inserted.register(callback)

    def on_reclaim(self, callback: Callable[[List[LedgerRecord[T]]], None]) -> Subscription:
        return self._reclaimed.register(callback)

    def __len__(self) -> int:
        with self._lock:
            return len(self._history)
