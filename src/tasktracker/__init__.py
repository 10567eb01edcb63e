"""tasktracker: time units of work and keep a bounded, self-pruning history.

Public API:
- Tracker: start/stop timers and run-and-record tasks.
- Ledger / LedgerRecord: the bounded history the tracker writes to.
- TaskRecord: payload stored for every start/error/stop event.
"""

from .ledger import Ledger, LedgerRecord
from .tracker import TaskHandle, TaskRecord, Tracker

__all__ = ["Ledger", "LedgerRecord", "TaskHandle", "TaskRecord", "Tracker"]
