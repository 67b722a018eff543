"""
payment_splitter.store.sqlite — durable KV backend on SQLite.

One table, `kv(k BLOB PRIMARY KEY, v BLOB NOT NULL)`; BLOB keys sort bytewise,
so prefix scans are a range query `prefix <= k < next(prefix)`.

A single connection is shared between threads and guarded by one re-entrant
lock. A batch holds that lock from `BEGIN IMMEDIATE` to `COMMIT`/`ROLLBACK`,
so batches never interleave and reads issued by the batch's own thread see its
pending writes.
"""

from __future__ import annotations

import os
import sqlite3
import threading
from typing import Any, Dict, Iterator, Optional, Tuple, Union

PRAGMAS: Dict[str, str] = {
    "journal_mode": "WAL",
    "synchronous": "NORMAL",
    "temp_store": "MEMORY",
}

_SCHEMA = "CREATE TABLE IF NOT EXISTS kv (k BLOB PRIMARY KEY, v BLOB NOT NULL)"
_UPSERT = "INSERT INTO kv(k, v) VALUES(?, ?) ON CONFLICT(k) DO UPDATE SET v = excluded.v"


def _next_prefix(prefix: bytes) -> Optional[bytes]:
    """Smallest key greater than every key starting with `prefix` (None if unbounded)."""
    p = bytearray(prefix)
    while p and p[-1] == 0xFF:
        p.pop()
    if not p:
        return None
    p[-1] += 1
    return bytes(p)


class SQLiteBatch:
    def __init__(self, conn: sqlite3.Connection, lock: threading.RLock) -> None:
        self._conn = conn
        self._lock = lock
        self._active = False

    def __enter__(self) -> "SQLiteBatch":
        if self._active:
            raise RuntimeError("batch is already active")
        self._lock.acquire()
        try:
            self._conn.execute("BEGIN IMMEDIATE")
        except BaseException:
            self._lock.release()
            raise
        self._active = True
        return self

    def __exit__(self, exc_type, exc, tb) -> Optional[bool]:
        if exc_type is None:
            self.commit()
        else:
            self.rollback()
        return None

    def _exec(self, sql: str, *args: Any) -> sqlite3.Cursor:
        if not self._active:
            raise RuntimeError("batch is not active")
        return self._conn.execute(sql, args)

    def put(self, key: bytes, value: bytes) -> None:
        self._exec(_UPSERT, bytes(key), bytes(value))

    def put_new(self, key: bytes, value: bytes) -> bool:
        cur = self._exec("INSERT OR IGNORE INTO kv(k, v) VALUES(?, ?)", bytes(key), bytes(value))
        return cur.rowcount == 1

    def delete(self, key: bytes) -> None:
        self._exec("DELETE FROM kv WHERE k = ?", bytes(key))

    def _end(self, stmt: str) -> None:
        if not self._active:
            return
        self._active = False
        try:
            self._conn.execute(stmt)
        finally:
            self._lock.release()

    def commit(self) -> None:
        self._end("COMMIT")

    def rollback(self) -> None:
        self._end("ROLLBACK")


class SQLiteKV:
    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn
        self._lock = threading.RLock()

    def _one(self, sql: str, key: bytes) -> Optional[Tuple[Any, ...]]:
        with self._lock:
            return self._conn.execute(sql, (bytes(key),)).fetchone()

    def get(self, key: bytes) -> Optional[bytes]:
        row = self._one("SELECT v FROM kv WHERE k = ?", key)
        return bytes(row[0]) if row else None

    def has(self, key: bytes) -> bool:
        return self._one("SELECT 1 FROM kv WHERE k = ?", key) is not None

    def iter_prefix(self, prefix: bytes) -> Iterator[Tuple[bytes, bytes]]:
        lo = bytes(prefix)
        hi = _next_prefix(lo)
        if hi is None:
            sql, args = "SELECT k, v FROM kv WHERE k >= ? ORDER BY k", (lo,)
        else:
            sql, args = "SELECT k, v FROM kv WHERE k >= ? AND k < ? ORDER BY k", (lo, hi)
        with self._lock:
            rows = self._conn.execute(sql, args).fetchall()
        return iter([(bytes(k), bytes(v)) for k, v in rows])

    def put(self, key: bytes, value: bytes) -> None:
        with self._lock:
            self._conn.execute(_UPSERT, (bytes(key), bytes(value)))

    def delete(self, key: bytes) -> None:
        with self._lock:
            self._conn.execute("DELETE FROM kv WHERE k = ?", (bytes(key),))

    def batch(self) -> SQLiteBatch:
        return SQLiteBatch(self._conn, self._lock)

    def close(self) -> None:
        with self._lock:
            self._conn.close()


def open_sqlite_kv(
    path: Union[str, "os.PathLike[str]"],
    *,
    pragmas: Optional[Dict[str, str]] = None,
    create: bool = True,
) -> SQLiteKV:
    """
    Open (or create) the KV database at `path`; ":memory:" gives a throwaway one.

    With create=False a missing file raises FileNotFoundError instead of being
    created.
    """
    target = os.fspath(path)
    if target.startswith("sqlite://"):
        target = target[len("sqlite://"):]
    if not create and target != ":memory:" and not os.path.exists(target):
        raise FileNotFoundError(f"no SQLite KV at {target}")

    # autocommit; batches issue their own BEGIN
    conn = sqlite3.connect(target, isolation_level=None, check_same_thread=False)
    for name, value in {**PRAGMAS, **(pragmas or {})}.items():
        conn.execute(f"PRAGMA {name}={value}")
    conn.execute(_SCHEMA)
    return SQLiteKV(conn)


__all__ = ["SQLiteKV", "SQLiteBatch", "open_sqlite_kv"]
