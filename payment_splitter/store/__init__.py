"""
payment_splitter.store — persistent representation of payment requests.

    from payment_splitter.store import RecordStore, PaymentRequest, open_sqlite_kv

- kv       : KV protocols, namespace prefixes, in-memory backend
- sqlite   : durable SQLite backend with the same protocol
- address  : deterministic (creator, description) → address derivation
- record   : PaymentRequest dataclass + persisted layout
- records  : RecordStore (allocate / load / save / iterate)
"""

from __future__ import annotations

from .address import (NAMESPACE_TAG, check_identity, derive_address,
                      description_seed, find_payment_request_address)
from .kv import KV, RECORDS, Batch, MemoryKV, Prefix
from .record import HEADER, PaymentRequest, progress_percent, space
from .records import RecordStore
from .sqlite import SQLiteKV, open_sqlite_kv

__all__ = [
    "KV",
    "Batch",
    "Prefix",
    "RECORDS",
    "MemoryKV",
    "SQLiteKV",
    "open_sqlite_kv",
    "NAMESPACE_TAG",
    "check_identity",
    "derive_address",
    "description_seed",
    "find_payment_request_address",
    "HEADER",
    "PaymentRequest",
    "progress_percent",
    "space",
    "RecordStore",
]
