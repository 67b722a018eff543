"""
payment_splitter.ledger — the balance-holding collaborator.

- api     : `Ledger` protocol (transfer / balance_of / reserved_minimum / checkpoint)
- rent    : storage-reserve minimum
- memory  : thread-safe in-memory ledger for local runs and tests
"""

from __future__ import annotations

from .api import Ledger
from .memory import InMemoryLedger
from .rent import Rent

__all__ = ["Ledger", "InMemoryLedger", "Rent"]
