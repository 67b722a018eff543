"""
payment_splitter.store.records — allocation and persistence of PaymentRequest records.

The store owns no behavior beyond storage and layout checks:

- allocate(address, record)  insert-if-absent; AlreadyExists otherwise
- load(address)              decode, RecordNotFound when absent
- get(address)               decode or None
- save(address, record)      overwrite the mutable fields of an existing record
- iter_records()             (address, record) pairs in key order

`description` and `target_amount` are frozen at allocation: `save` refuses a
record whose immutable fields differ from what is persisted, a lower
`current_amount`, and a completed record flipped back to open. Mutations go
through a single KV batch, so readers see either the old or the new record.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator, Optional, Tuple

from ..errors import AlreadyExists, InvalidArgument, RecordNotFound
from .kv import KV, RECORDS, Batch, MemoryKV
from .record import PaymentRequest


class RecordStore:
    def __init__(self, kv: Optional[KV] = None) -> None:
        self._kv: KV = kv if kv is not None else MemoryKV()

    @property
    def kv(self) -> KV:
        return self._kv

    @staticmethod
    def key(address: bytes) -> bytes:
        return RECORDS.key(address)

    # ------------------------------ reads ------------------------------ #

    def exists(self, address: bytes) -> bool:
        return self._kv.has(self.key(address))

    def get(self, address: bytes) -> Optional[PaymentRequest]:
        raw = self._kv.get(self.key(address))
        if raw is None:
            return None
        return PaymentRequest.decode(raw)

    def load(self, address: bytes) -> PaymentRequest:
        rec = self.get(address)
        if rec is None:
            raise RecordNotFound(address=address)
        return rec

    def iter_records(self) -> Iterator[Tuple[bytes, PaymentRequest]]:
        for k, v in self._kv.iter_prefix(RECORDS.raw):
            yield RECORDS.strip(k), PaymentRequest.decode(v)

    # ------------------------------ writes ----------------------------- #

    @contextmanager
    def transaction(self) -> Iterator[Batch]:
        """One atomic write unit; rolled back if the body raises."""
        with self._kv.batch() as b:
            yield b

    def allocate(self, address: bytes, record: PaymentRequest, batch: Optional[Batch] = None) -> None:
        if batch is None:
            with self.transaction() as b:
                self.allocate(address, record, b)
            return
        if not batch.put_new(self.key(address), record.encode()):
            raise AlreadyExists(address=address)

    def save(self, address: bytes, record: PaymentRequest, batch: Optional[Batch] = None) -> None:
        if batch is None:
            with self.transaction() as b:
                self.save(address, record, b)
            return
        current = self.load(address)
        if (
            current.creator != record.creator
            or current.description != record.description
            or current.target_amount != record.target_amount
        ):
            raise InvalidArgument("creator, description and target_amount are immutable")
        if record.current_amount < current.current_amount:
            raise InvalidArgument(
                "current_amount cannot decrease",
                name="current_amount",
                data={"stored": current.current_amount, "new": record.current_amount},
            )
        if current.is_completed and not record.is_completed:
            raise InvalidArgument("a completed request cannot be reopened", name="is_completed")
        batch.put(self.key(address), record.encode())


__all__ = ["RecordStore"]
