"""Stake pool registrations, with parameter updates and retirements scheduled per epoch."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any

import cbor2

from amaru.common import as_key, as_value, decode

#: Key prefix of pool entries ("pool").
PREFIX = b"pool"

_log = logging.getLogger("amaru.ledger.store.pools")


def _pool_id(params: Any) -> bytes:
    """The pool id of registration parameters: their ``id``, or the first field of their array form."""
    pool_id = getattr(params, "id", None)
    if pool_id is not None:
        return pool_id
    return params[0]


@dataclass
class Row:
    """Current pool parameters and the updates scheduled for later epochs.

    A scheduled update of ``None`` means the pool retires at that epoch.
    """

    current_params: Any
    future_params: list[tuple[Any | None, int]] = field(default_factory=list)

    @classmethod
    def new(cls, params: Any) -> Row:
        return cls(params, [])

    def extend(self, update: tuple[Any | None, int]) -> Row:
        """A row with ``update`` appended to the scheduled updates."""
        params, epoch = update
        return Row(self.current_params, [*self.future_params, (params, epoch)])

    def to_cbor(self) -> list[Any]:
        return [self.current_params, [[params, epoch] for params, epoch in self.future_params]]

    @classmethod
    def from_cbor(cls, value: Any) -> Row:
        if not isinstance(value, (list, tuple)) or len(value) != 2:
            raise ValueError(f"malformed pool row: {value!r}")
        current, future = value
        if not isinstance(future, (list, tuple)):
            raise ValueError(f"malformed pool updates: {future!r}")
        updates = []
        for entry in future:
            if not isinstance(entry, (list, tuple)) or len(entry) != 2:
                raise ValueError(f"malformed pool update: {entry!r}")
            updates.append((entry[0], entry[1]))
        return cls(current, updates)


def _decode_row(raw: bytes) -> Row:
    try:
        return Row.from_cbor(decode(raw))
    except (ValueError, cbor2.CBORDecodeError) as exc:
        raise ValueError(f"unable to decode pool row ({raw.hex()}): {exc!r}") from exc


def get(db, pool: bytes) -> Row | None:
    raw = db.get(as_key(PREFIX, pool))
    return None if raw is None else _decode_row(raw)


def add(db, rows: Iterable[tuple[Any, int]]) -> None:
    """Register pools; parameters of already known pools are scheduled for the given epoch."""
    for params, epoch in rows:
        key = as_key(PREFIX, _pool_id(params))
        existing = db.get(key)
        row = Row.new(params) if existing is None else _decode_row(existing).extend((params, epoch))
        db.put(key, as_value(row))


def remove(db, rows: Iterable[tuple[bytes, int]]) -> None:
    """Schedule the retirement of pools at the given epochs."""
    for pool, epoch in rows:
        key = as_key(PREFIX, pool)
        existing = db.get(key)
        if existing is None:
            _log.error("remove.unknown pool=%r", pool)
            continue
        db.put(key, as_value(_decode_row(existing).extend((None, epoch))))