"""An ordered, persistent key/value store with optimistic transactions and checkpoints."""

from __future__ import annotations

import sqlite3
from collections.abc import Iterator
from pathlib import Path
from typing import Union

Key = Union[bytes, bytearray, memoryview, str]

_FILE_NAME = "store.sqlite3"


def _key(key: Key) -> bytes:
    if isinstance(key, str):
        return key.encode("utf-8")
    return bytes(key)


def _prefix_end(prefix: bytes) -> bytes | None:
    """The smallest key greater than every key starting with ``prefix``, if any."""
    stripped = prefix.rstrip(b"\xff")
    if not stripped:
        return None
    return stripped[:-1] + bytes([stripped[-1] + 1])


class Database:
    """A key/value store kept in a directory, created if missing; keys are ordered bytewise."""

    def __init__(self, path) -> None:
        self.path = Path(path)
        self.path.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(self.path / _FILE_NAME, isolation_level=None)
        self._conn.execute(
            "CREATE TABLE IF NOT EXISTS kv (key BLOB PRIMARY KEY, value BLOB NOT NULL)"
            " WITHOUT ROWID"
        )
        self._sequence = 0
        self._written_at: dict[bytes, int] = {}
        self._open_transactions = 0

    def get(self, key: Key) -> bytes | None:
        row = self._conn.execute("SELECT value FROM kv WHERE key = ?", (_key(key),)).fetchone()
        return None if row is None else bytes(row[0])

    def put(self, key: Key, value: bytes) -> None:
        self._apply({_key(key): bytes(value)})

    def delete(self, key: Key) -> None:
        self._apply({_key(key): None})

    def prefix_iterator(self, prefix: Key) -> Iterator[tuple[bytes, bytes]]:
        """Iterate, in key order, over a snapshot of the entries whose key starts with ``prefix``."""
        return iter(self._scan(_key(prefix)))

    def transaction(self) -> Transaction:
        self._open_transactions += 1
        return Transaction(self)

    def checkpoint(self, path) -> None:
        """Write a consistent copy of the database into the new directory ``path``."""
        target = Path(path)
        if target.exists():
            raise FileExistsError(f"checkpoint target already exists: {target}")
        target.mkdir(parents=True)
        dest = sqlite3.connect(target / _FILE_NAME)
        try:
            self._conn.backup(dest)
        finally:
            dest.close()

    def close(self) -> None:
        self._conn.close()

    def __enter__(self) -> Database:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _scan(self, prefix: bytes) -> list[tuple[bytes, bytes]]:
        end = _prefix_end(prefix)
        if end is None:
            rows = self._conn.execute(
                "SELECT key, value FROM kv WHERE key >= ? ORDER BY key", (prefix,)
            )
        else:
            rows = self._conn.execute(
                "SELECT key, value FROM kv WHERE key >= ? AND key < ? ORDER BY key",
                (prefix, end),
            )
        return [(bytes(k), bytes(v)) for k, v in rows]

    def _apply(self, writes: dict[bytes, bytes | None]) -> None:
        if not writes:
            return
        self._conn.execute("BEGIN")
        try:
            for key, value in writes.items():
                if value is None:
                    self._conn.execute("DELETE FROM kv WHERE key = ?", (key,))
                else:
                    self._conn.execute(
                        "INSERT OR REPLACE INTO kv (key, value) VALUES (?, ?)", (key, value)
                    )
            self._conn.execute("COMMIT")
        except BaseException:
            self._conn.execute("ROLLBACK")
            raise
        self._record_writes(writes)

    def _record_writes(self, keys) -> None:
        if self._open_transactions == 0:
            self._written_at.clear()
            return
        self._sequence += 1
        for key in keys:
            self._written_at[key] = self._sequence

    def _has_conflict(self, tracked: dict[bytes, int]) -> bool:
        return any(self._written_at.get(key, 0) > seen for key, seen in tracked.items())

    def _release(self) -> None:
        self._open_transactions -= 1
        if self._open_transactions == 0:
            self._written_at.clear()


class Transaction:
    """Buffered writes applied atomically on commit.

    Reads see the transaction's own writes. Commit fails if a key written by the
    transaction was changed in the database after the transaction first wrote it.
    """

    def __init__(self, db: Database) -> None:
        self._db = db
        self._writes: dict[bytes, bytes | None] = {}
        self._tracked: dict[bytes, int] = {}
        self._open = True

    def _ensure_open(self) -> None:
        if not self._open:
            raise RuntimeError("transaction is already finished")

    def _track(self, key: bytes) -> None:
        self._tracked.setdefault(key, self._db._sequence)

    def get(self, key: Key) -> bytes | None:
        self._ensure_open()
        k = _key(key)
        if k in self._writes:
            return self._writes[k]
        return self._db.get(k)

    def put(self, key: Key, value: bytes) -> None:
        self._ensure_open()
        k = _key(key)
        self._track(k)
        self._writes[k] = bytes(value)

    def delete(self, key: Key) -> None:
        self._ensure_open()
        k = _key(key)
        self._track(k)
        self._writes[k] = None

    def prefix_iterator(self, prefix: Key) -> Iterator[tuple[bytes, bytes]]:
        self._ensure_open()
        p = _key(prefix)
        merged = dict(self._db._scan(p))
        for key, value in self._writes.items():
            if not key.startswith(p):
                continue
            if value is None:
                merged.pop(key, None)
            else:
                merged[key] = value
        return iter(sorted(merged.items()))

    def commit(self) -> None:
        self._ensure_open()
        self._open = False
        try:
            if self._db._has_conflict(self._tracked):
                raise RuntimeError("transaction conflict: a written key was modified concurrently")
            self._db._apply(self._writes)
        finally:
            self._writes = {}
            self._tracked = {}
            self._db._release()

    def rollback(self) -> None:
        self._ensure_open()
        self._open = False
        self._writes = {}
        self._tracked = {}
        self._db._release()