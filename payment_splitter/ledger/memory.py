"""
payment_splitter.ledger.memory — deterministic in-memory balance ledger.

A tiny in-process ledger for local runs and tests. It implements the `Ledger`
protocol the escrow program expects:

- transfer(source, destination, amount)   debit source, credit destination
- balance_of(address) -> int
- reserved_minimum(size) -> int           via ledger.rent.Rent
- checkpoint()                            undo every change made inside the scope

Host/testing helpers:
- credit(address, amount) / debit(address, amount)
- set_balance(address, amount)
- total_supply()

Notes
-----
* Balances are u64 (MAX_BALANCE_BITS = 64); a credit that would leave the range
  is refused with TransferFailed.
* Checkpoints keep a per-thread undo log of *deltas* rather than snapshots, so
  reverting one thread's operation never clobbers a concurrent operation on
  another record.
"""

from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Dict, Iterator, List, Optional, Tuple

from ..config import ADDRESS_LEN, SplitterConfig
from ..errors import InvalidArgument, TransferFailed
from .rent import Rent

MAX_BALANCE_BITS = 64
_MAX_BALANCE = (1 << MAX_BALANCE_BITS) - 1


# ------------------------------ Addr & Amount ------------------------------ #

def _check_addr(addr: bytes, name: str = "address") -> bytes:
    if not isinstance(addr, (bytes, bytearray)):
        raise InvalidArgument(f"{name} must be bytes", name=name)
    if len(addr) != ADDRESS_LEN:
        raise InvalidArgument(f"{name} must be exactly {ADDRESS_LEN} bytes", name=name)
    return bytes(addr)


def _check_amount(amount: int) -> int:
    if not isinstance(amount, int) or isinstance(amount, bool):
        raise InvalidArgument("amount must be int", name="amount")
    if amount < 0:
        raise InvalidArgument("amount must be non-negative", name="amount")
    if amount.bit_length() > MAX_BALANCE_BITS:
        raise InvalidArgument(f"amount exceeds {MAX_BALANCE_BITS}-bit limit", name="amount")
    return amount


class InMemoryLedger:
    """Thread-safe in-memory ledger keyed by 32-byte addresses."""

    def __init__(self, rent: Optional[Rent] = None) -> None:
        self._lock = threading.RLock()
        self._balances: Dict[bytes, int] = {}
        self._rent = rent or Rent()
        self._tls = threading.local()

    @classmethod
    def from_config(cls, cfg: Optional[SplitterConfig] = None) -> "InMemoryLedger":
        return cls(Rent.from_config(cfg))

    @property
    def rent(self) -> Rent:
        return self._rent

    # ------------------------------ journal ------------------------------ #

    def _journal(self) -> List[List[Tuple[bytes, int]]]:
        stack = getattr(self._tls, "stack", None)
        if stack is None:
            stack = []
            self._tls.stack = stack
        return stack

    def _apply_delta(self, addr: bytes, delta: int) -> None:
        # Caller holds the lock and has range-checked the result.
        self._balances[addr] = self._balances.get(addr, 0) + delta
        stack = self._journal()
        if stack:
            stack[-1].append((addr, delta))

    @contextmanager
    def checkpoint(self) -> Iterator[None]:
        """
        Stage balance changes; revert them if the body raises. Nested
        checkpoints fold into their parent on success.
        """
        stack = self._journal()
        stack.append([])
        try:
            yield
        except BaseException:
            undo = stack.pop()
            with self._lock:
                for addr, delta in reversed(undo):
                    self._balances[addr] = self._balances.get(addr, 0) - delta
            raise
        else:
            done = stack.pop()
            if stack:
                stack[-1].extend(done)

    # ------------------------------ ledger API ----------------------------- #

    def balance_of(self, address: bytes) -> int:
        addr = _check_addr(address)
        with self._lock:
            return self._balances.get(addr, 0)

    def reserved_minimum(self, size: int) -> int:
        return self._rent.minimum_balance(size)

    def transfer(self, source: bytes, destination: bytes, amount: int) -> None:
        """
        Debit `source` and credit `destination` by `amount`, atomically.

        Raises TransferFailed when the source cannot cover the amount or the
        destination would leave the u64 range; nothing changes in that case.
        """
        src = _check_addr(source, "source")
        dst = _check_addr(destination, "destination")
        amt = _check_amount(amount)

        if amt == 0:
            return

        with self._lock:
            cur_src = self._balances.get(src, 0)
            if amt > cur_src:
                raise TransferFailed(
                    "insufficient balance", source=src, destination=dst, amount=amt,
                    data={"available": cur_src},
                )
            if src == dst:
                return
            cur_dst = self._balances.get(dst, 0)
            if cur_dst + amt > _MAX_BALANCE:
                raise TransferFailed("destination balance overflow", source=src, destination=dst, amount=amt)
            self._apply_delta(src, -amt)
            self._apply_delta(dst, amt)

    # ------------------------------- host hooks ---------------------------- #

    def credit(self, address: bytes, amount: int) -> None:
        """Increase the balance of `address` (airdrop / genesis funding)."""
        addr = _check_addr(address)
        amt = _check_amount(amount)
        with self._lock:
            if self._balances.get(addr, 0) + amt > _MAX_BALANCE:
                raise TransferFailed("balance overflow", destination=addr, amount=amt)
            self._apply_delta(addr, amt)

    def debit(self, address: bytes, amount: int) -> None:
        addr = _check_addr(address)
        amt = _check_amount(amount)
        with self._lock:
            cur = self._balances.get(addr, 0)
            if amt > cur:
                raise TransferFailed("insufficient balance", source=addr, amount=amt)
            self._apply_delta(addr, -amt)

    def set_balance(self, address: bytes, amount: int) -> None:
        """Set an exact balance for `address` (tests only)."""
        addr = _check_addr(address)
        amt = _check_amount(amount)
        with self._lock:
            self._apply_delta(addr, amt - self._balances.get(addr, 0))

    def total_supply(self) -> int:
        with self._lock:
            return sum(self._balances.values())


__all__ = ["InMemoryLedger", "MAX_BALANCE_BITS"]
