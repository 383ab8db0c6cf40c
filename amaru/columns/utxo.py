"""Unspent transaction outputs, indexed by transaction input."""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

import cbor2

from amaru.common import as_key, as_value, decode

#: Key prefix of UTxO entries ("utxo").
PREFIX = b"utxo"


def get(db, key: Any) -> Any | None:
    """The output stored for transaction input ``key``, or ``None``."""
    raw = db.get(as_key(PREFIX, key))
    if raw is None:
        return None
    try:
        return decode(raw)
    except (ValueError, cbor2.CBORDecodeError) as exc:
        raise ValueError(
            f"unable to decode TransactionOutput from CBOR ({raw.hex()}): {exc!r}"
        ) from exc


def add(db, rows: Iterable[tuple[Any, Any]]) -> None:
    for input_, output in rows:
        db.put(as_key(PREFIX, input_), as_value(output))


def remove(db, rows: Iterable[Any]) -> None:
    for input_ in rows:
        db.delete(as_key(PREFIX, input_))