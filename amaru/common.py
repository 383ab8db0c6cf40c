"""CBOR helpers for building keys and values of the ledger key/value store."""

from __future__ import annotations

from typing import Any

import cbor2

#: Length of the table prefix placed in front of every key.
PREFIX_LEN = 4


def _encode_default(encoder: cbor2.CBOREncoder, value: Any) -> None:
    """Encode objects that know their own CBOR form through a ``to_cbor`` method."""
    to_cbor = getattr(value, "to_cbor", None)
    if to_cbor is None:
        raise TypeError(f"cannot serialize type {type(value).__name__}")
    encoder.encode(to_cbor())


def as_bytes(prefix: bytes, value: Any) -> bytes:
    """Encode ``value`` to CBOR and place ``prefix`` in front of it."""
    try:
        encoded = cbor2.dumps(value, default=_encode_default)
    except (cbor2.CBOREncodeError, TypeError, ValueError) as exc:
        raise ValueError(f"unable to encode value to CBOR: {exc!r}") from exc
    return bytes(prefix) + encoded


def as_key(prefix: bytes, key: Any) -> bytes:
    """Serialize ``key`` for use as a store key within the table named by ``prefix``."""
    return as_bytes(prefix, key)


def as_value(value: Any) -> bytes:
    """Serialize ``value`` to CBOR bytes."""
    return as_bytes(b"", value)


def decode(data: bytes) -> Any:
    """Decode CBOR bytes into Python values."""
    return cbor2.loads(bytes(data))