"""Ledger package.

Public API:
- Ledger: bounded, sequenced history with insert/reclaim listeners.
- LedgerRecord: index + timestamp wrapper around a stored item.
"""

from .ledger import DEFAULT_LIMIT, Ledger, LedgerRecord  # re-export
from .listeners import Listeners, Subscription

__all__ = ["DEFAULT_LIMIT", "Ledger", "LedgerRecord", "Listeners", "Subscription"]
