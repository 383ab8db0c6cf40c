"""Points on the chain: the origin, or a slot together with a block header hash."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any

_U64_MAX = 2**64 - 1
_SLOT_RE = re.compile(r"\+?[0-9]+")
_HEX_RE = re.compile(r"(?:[0-9a-fA-F]{2})*")


class MalformedPointError(ValueError):
    """Raised when a textual point cannot be parsed."""

    def __init__(self, reason: str) -> None:
        super().__init__(f"malformed point: {reason}")
        self.reason = reason


@dataclass(frozen=True)
class Point:
    """A chain point. Both fields are ``None`` for the origin."""

    slot: int | None = None
    header_hash: bytes | None = None

    def __post_init__(self) -> None:
        if (self.slot is None) != (self.header_hash is None):
            raise ValueError("a point has either both a slot and a hash, or neither")
        if self.slot is not None and not 0 <= self.slot <= _U64_MAX:
            raise ValueError(f"slot out of range: {self.slot}")

    @classmethod
    def origin(cls) -> Point:
        return cls()

    @classmethod
    def specific(cls, slot: int, header_hash: bytes) -> Point:
        return cls(slot, bytes(header_hash))

    def is_origin(self) -> bool:
        return self.slot is None

    def slot_or_default(self) -> int:
        """The point's slot, or 0 for the origin."""
        return 0 if self.slot is None else self.slot

    def to_cbor(self) -> list[Any]:
        if self.slot is None:
            return []
        return [self.slot, self.header_hash]

    @classmethod
    def from_cbor(cls, value: Any) -> Point:
        if not isinstance(value, (list, tuple)):
            raise ValueError(f"expected an array for a point, got {type(value).__name__}")
        if len(value) == 0:
            return cls.origin()
        if len(value) == 2:
            slot, header_hash = value
            if not isinstance(slot, int) or not isinstance(header_hash, (bytes, bytearray)):
                raise ValueError("expected a slot and a byte string for a point")
            return cls.specific(slot, header_hash)
        raise ValueError(f"unexpected point array of length {len(value)}")


def parse_point(raw: str) -> Point:
    """Parse a point written as ``<slot>.<hex header hash>``."""
    parts = raw.split(".")

    slot_text = parts[0]
    if not _SLOT_RE.fullmatch(slot_text) or int(slot_text) > _U64_MAX:
        raise MalformedPointError("failed to parse point's slot as a non-negative integer")
    slot = int(slot_text)

    if len(parts) < 2:
        raise MalformedPointError("missing block header hash after '.'")
    hash_text = parts[1]
    if not _HEX_RE.fullmatch(hash_text):
        raise MalformedPointError("unable to decode block header hash from hex")

    return Point.specific(slot, bytes.fromhex(hash_text))