"""
payment_splitter.ledger.api — the balance-holding collaborator the escrow program drives.

The program never manages raw balances itself; it orchestrates calls to an
injected ledger that exposes:

    transfer(source, destination, amount) -> None   # atomic; TransferFailed on refusal
    balance_of(address) -> int
    reserved_minimum(size) -> int                   # storage reserve for `size` bytes
    checkpoint() -> context manager                 # revert every change if the body raises

Hosts embedding the program against a real ledger provide an object with these
methods. `payment_splitter.ledger.memory.InMemoryLedger` is the local one.
"""

from __future__ import annotations

from typing import ContextManager, Protocol, runtime_checkable


@runtime_checkable
class Ledger(Protocol):
    """Minimal balance ledger interface."""

    def transfer(self, source: bytes, destination: bytes, amount: int) -> None: ...
    def balance_of(self, address: bytes) -> int: ...
    def reserved_minimum(self, size: int) -> int: ...
    def checkpoint(self) -> ContextManager[None]: ...


__all__ = ["Ledger"]
