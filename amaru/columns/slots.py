"""Block issuers, indexed by slot."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import cbor2

from amaru.common import as_key, as_value, decode

#: Key prefix of slot entries ("slot").
PREFIX = b"slot"


@dataclass
class Row:
    """The pool that issued the block of a slot."""

    slot_leader: bytes

    def to_cbor(self) -> list[bytes]:
        return [self.slot_leader]

    @classmethod
    def from_cbor(cls, value: Any) -> Row:
        if not isinstance(value, (list, tuple)) or len(value) != 1:
            raise ValueError(f"malformed slot row: {value!r}")
        return cls(bytes(value[0]))


def get(db, key: int) -> Row | None:
    raw = db.get(as_key(PREFIX, key))
    if raw is None:
        return None
    try:
        return Row.from_cbor(decode(raw))
    except (ValueError, cbor2.CBORDecodeError) as exc:
        raise ValueError(f"unable to decode slot row ({raw.hex()}): {exc!r}") from exc


def put(db, key: int, value: Row) -> None:
    db.put(as_key(PREFIX, key), as_value(value))