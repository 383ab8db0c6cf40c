"""The protocol pots: treasury, reserves and collected fees."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import cbor2

from amaru.common import as_value, decode

#: Key of the pots entry ("pots").
PREFIX = b"pots"


@dataclass
class Row:
    treasury: int
    reserves: int
    fees: int

    def to_cbor(self) -> list[int]:
        return [self.treasury, self.reserves, self.fees]

    @classmethod
    def from_cbor(cls, value: Any) -> Row:
        if not isinstance(value, (list, tuple)) or len(value) != 3:
            raise ValueError(f"malformed pots row: {value!r}")
        return cls(*value)


def get(db) -> Row:
    """Read the pots; raise ``LookupError`` if they were never stored."""
    raw = db.get(PREFIX)
    if raw is None:
        raise LookupError("no protocol pots (treasury, reserves, fees, ...) found")
    try:
        return Row.from_cbor(decode(raw))
    except (ValueError, cbor2.CBORDecodeError) as exc:
        raise ValueError(f"unable to decode pots ({raw.hex()}): {exc!r}") from exc


def put(db, row: Row) -> None:
    db.put(PREFIX, as_value(row))