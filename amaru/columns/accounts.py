"""Stake credential registrations: delegation, deposit and accumulated rewards."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any

import cbor2

from amaru.common import as_key, as_value, decode

#: Key prefix of account entries ("acct").
PREFIX = b"acct"

_log = logging.getLogger("amaru.ledger.store.accounts")


@dataclass
class Row:
    """A registered stake credential."""

    delegatee: bytes | None
    deposit: int
    rewards: int

    def to_cbor(self) -> list[Any]:
        return [self.delegatee, self.deposit, self.rewards]

    @classmethod
    def from_cbor(cls, value: Any) -> Row:
        if not isinstance(value, (list, tuple)) or len(value) != 3:
            raise ValueError(f"malformed account row: {value!r}")
        delegatee, deposit, rewards = value
        return cls(None if delegatee is None else bytes(delegatee), deposit, rewards)


def _read(db, key: bytes) -> Row | None:
    raw = db.get(key)
    if raw is None:
        return None
    try:
        return Row.from_cbor(decode(raw))
    except (ValueError, cbor2.CBORDecodeError) as exc:
        raise ValueError(f"unable to decode account row ({raw.hex()}): {exc!r}") from exc


def add(db, rows: Iterable[tuple[Any, tuple[bytes | None, int | None, int]]]) -> None:
    """Register credentials, or update the delegation of existing ones while keeping rewards."""
    for credential, (delegatee, deposit, rewards) in rows:
        key = as_key(PREFIX, credential)
        row = _read(db, key)
        if row is not None:
            row.delegatee = delegatee
            if deposit is not None:
                row.deposit = deposit
            db.put(key, as_value(row))
        elif deposit is not None:
            db.put(key, as_value(Row(delegatee, deposit, rewards)))
        else:
            _log.error("add.register_no_deposit credential=%r", credential)


def reset(db, rows: Iterable[Any]) -> None:
    """Reset the rewards of the given credentials to zero."""
    for credential in rows:
        key = as_key(PREFIX, credential)
        row = _read(db, key)
        if row is None:
            _log.error("reset.no_account credential=%r", credential)
            continue
        row.rewards = 0
        db.put(key, as_value(row))


def remove(db, rows: Iterable[Any]) -> None:
    """Clear the registration of the given credentials."""
    for credential in rows:
        db.delete(as_key(PREFIX, credential))