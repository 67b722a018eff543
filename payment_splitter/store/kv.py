"""
payment_splitter.store.kv — key/value surface under the record store.

Records live under one namespace:

    RECORDS.key(address) == b"r:" + uvarint(len(address)) + address

Backends implement `KV`: point reads, ordered prefix scans, and `batch()`, a
context manager that applies its staged writes atomically on a clean exit and
discards them if the block raises. `Batch.put_new` is the allocation primitive:
it stages a write only when the key is free and reports whether it did.

`MemoryKV` is the default backend; `payment_splitter.store.sqlite` is the
durable one.
"""

from __future__ import annotations

import threading
from typing import (Dict, Iterator, List, Optional, Protocol, Tuple, Union,
                    runtime_checkable)

BytesLike = Union[bytes, bytearray, memoryview]


# ---- encoding helpers ----


def uvarint(n: int) -> bytes:
    """Unsigned LEB128."""
    if n < 0:
        raise ValueError("uvarint of a negative number")
    out = bytearray()
    while n > 0x7F:
        out.append((n & 0x7F) | 0x80)
        n >>= 7
    out.append(n)
    return bytes(out)


def read_uvarint(buf: bytes) -> Tuple[int, int]:
    """Decode a leading uvarint; returns (value, bytes consumed)."""
    value = 0
    for i, byte in enumerate(buf):
        value |= (byte & 0x7F) << (7 * i)
        if byte < 0x80:
            return value, i + 1
    raise ValueError("truncated uvarint")


def be_u32(n: int) -> bytes:
    if not 0 <= n <= 0xFFFF_FFFF:
        raise ValueError(f"u32 out of range: {n}")
    return n.to_bytes(4, "big")


def be_u64(n: int) -> bytes:
    if not 0 <= n <= 0xFFFF_FFFF_FFFF_FFFF:
        raise ValueError(f"u64 out of range: {n}")
    return n.to_bytes(8, "big")


class Prefix:
    """A key namespace: `ns:` followed by length-prefixed parts."""

    __slots__ = ("raw",)

    def __init__(self, ns: Union[BytesLike, str]) -> None:
        b = ns.encode("ascii") if isinstance(ns, str) else bytes(ns)
        b = b.rstrip(b":")
        if not b:
            raise ValueError("empty namespace")
        self.raw = b + b":"

    def key(self, *parts: Union[BytesLike, str]) -> bytes:
        out = bytearray(self.raw)
        for p in parts:
            pb = p.encode("utf-8") if isinstance(p, str) else bytes(p)
            out += uvarint(len(pb))
            out += pb
        return bytes(out)

    def strip(self, key: bytes) -> bytes:
        """The single part of a key built by `key(part)`."""
        if not key.startswith(self.raw):
            raise ValueError("key outside namespace")
        body = key[len(self.raw):]
        n, used = read_uvarint(body)
        if used + n != len(body):
            raise ValueError("not a single-part key")
        return body[used:]

    def __repr__(self) -> str:
        return f"Prefix({self.raw!r})"


RECORDS = Prefix(b"r")


# ---- protocols ----


@runtime_checkable
class ReadOnlyKV(Protocol):
    def get(self, key: bytes) -> Optional[bytes]: ...
    def has(self, key: bytes) -> bool: ...
    def iter_prefix(self, prefix: bytes) -> Iterator[Tuple[bytes, bytes]]: ...
    def close(self) -> None: ...


@runtime_checkable
class Batch(Protocol):
    def put(self, key: bytes, value: bytes) -> None: ...
    def put_new(self, key: bytes, value: bytes) -> bool: ...
    def delete(self, key: bytes) -> None: ...
    def commit(self) -> None: ...
    def rollback(self) -> None: ...
    def __enter__(self) -> "Batch": ...
    def __exit__(self, exc_type, exc, tb) -> Optional[bool]: ...


@runtime_checkable
class KV(ReadOnlyKV, Protocol):
    def put(self, key: bytes, value: bytes) -> None: ...
    def delete(self, key: bytes) -> None: ...
    def batch(self) -> Batch: ...


# ---- in-memory backend ----

_TOMBSTONE = object()


class MemoryBatch:
    """Writes staged in a dict and applied to the MemoryKV in one locked step."""

    def __init__(self, kv: "MemoryKV") -> None:
        self._kv = kv
        self._staged: Dict[bytes, object] = {}
        self._active = False

    def __enter__(self) -> "MemoryBatch":
        if self._active:
            raise RuntimeError("batch is already active")
        self._active = True
        return self

    def __exit__(self, exc_type, exc, tb) -> Optional[bool]:
        if exc_type is None:
            self.commit()
        else:
            self.rollback()
        return None

    def _stage(self, key: bytes, value: object) -> None:
        if not self._active:
            raise RuntimeError("batch is not active")
        self._staged[bytes(key)] = value

    def put(self, key: bytes, value: bytes) -> None:
        self._stage(key, bytes(value))

    def put_new(self, key: bytes, value: bytes) -> bool:
        k = bytes(key)
        if k in self._staged:
            taken = self._staged[k] is not _TOMBSTONE
        else:
            taken = self._kv.has(k)
        if taken:
            return False
        self._stage(k, bytes(value))
        return True

    def delete(self, key: bytes) -> None:
        self._stage(key, _TOMBSTONE)

    def commit(self) -> None:
        if self._active:
            self._kv._apply(self._staged)
        self.rollback()

    def rollback(self) -> None:
        self._staged = {}
        self._active = False


class MemoryKV:
    """Dict-backed KV guarded by a re-entrant lock."""

    def __init__(self) -> None:
        self._data: Dict[bytes, bytes] = {}
        self._lock = threading.RLock()

    def get(self, key: bytes) -> Optional[bytes]:
        with self._lock:
            return self._data.get(bytes(key))

    def has(self, key: bytes) -> bool:
        with self._lock:
            return bytes(key) in self._data

    def put(self, key: bytes, value: bytes) -> None:
        with self._lock:
            self._data[bytes(key)] = bytes(value)

    def delete(self, key: bytes) -> None:
        with self._lock:
            self._data.pop(bytes(key), None)

    def iter_prefix(self, prefix: bytes) -> Iterator[Tuple[bytes, bytes]]:
        with self._lock:
            hits: List[Tuple[bytes, bytes]] = [
                (k, v) for k, v in self._data.items() if k.startswith(prefix)
            ]
        hits.sort()
        return iter(hits)

    def batch(self) -> MemoryBatch:
        return MemoryBatch(self)

    def close(self) -> None:
        pass

    def _apply(self, staged: Dict[bytes, object]) -> None:
        with self._lock:
            for k, v in staged.items():
                if v is _TOMBSTONE:
                    self._data.pop(k, None)
                else:
                    self._data[k] = v  # type: ignore[assignment]

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)


__all__ = [
    "ReadOnlyKV",
    "KV",
    "Batch",
    "Prefix",
    "RECORDS",
    "MemoryKV",
    "MemoryBatch",
    "uvarint",
    "read_uvarint",
    "be_u32",
    "be_u64",
]
