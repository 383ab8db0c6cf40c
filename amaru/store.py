"""The ledger store: UTxO, pools, accounts, block issuers and pots, with per-epoch snapshots.

Entries are kept in a single ordered key/value database, keyed by a four-byte table
prefix followed by the CBOR encoding of the entry's key:

* ``tip``                    the most recently saved point
* ``pots``                   treasury, reserves and fees
* ``utxo`` + input           transaction output
* ``pool`` + pool id         current parameters and scheduled updates
* ``acct`` + credential      delegatee, deposit and rewards
* ``slot`` + slot            pool that issued the block at that slot
"""

from __future__ import annotations

import logging
import re
import shutil
import sqlite3
from collections.abc import Callable, Iterable, Iterator
from contextlib import contextmanager, suppress
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import cbor2

from amaru import iter_borrow
from amaru.columns import accounts, pools, pots, slots, utxo
from amaru.common import PREFIX_LEN, as_value, decode
from amaru.iter_borrow import BorrowableProxy
from amaru.kv import Database, Transaction
from amaru.point import Point

_log = logging.getLogger("amaru.ledger.store")

#: Key under which the tip of the database is kept.
KEY_TIP = b"tip"

#: Name of the directory holding the live ledger database.
DIR_LIVE_DB = "live"

_U64_MAX = 2**64 - 1
_EPOCH_RE = re.compile(r"\+?[0-9]+")
_BACKEND_ERRORS = (sqlite3.Error, OSError, RuntimeError)
_DECODE_ERRORS = (ValueError, cbor2.CBORDecodeError)


class StoreError(Exception):
    """An error raised by the underlying storage."""


class OpenError(StoreError):
    """The store could not be opened."""


class TipError(StoreError):
    """The tip of the store is missing or cannot be decoded."""


@dataclass
class Columns:
    """Entries to add to, or remove from, each column of the store."""

    utxo: Iterable[Any] = ()
    pools: Iterable[Any] = ()
    accounts: Iterable[Any] = ()


def _freeze(value: Any) -> Any:
    """Turn decoded CBOR arrays and maps into hashable equivalents."""
    if isinstance(value, (list, tuple)):
        return tuple(_freeze(item) for item in value)
    if isinstance(value, dict):
        return tuple(sorted((_freeze(k), _freeze(v)) for k, v in value.items()))
    return value


class RewardsSummary:
    """Rewards to distribute at an epoch boundary, with the pot adjustments that go with them."""

    def __init__(
        self,
        rewards: dict[Any, int] | None = None,
        *,
        delta_treasury: int = 0,
        delta_reserves: int = 0,
    ) -> None:
        self._rewards = {_freeze(k): v for k, v in (rewards or {}).items()}
        self._delta_treasury = delta_treasury
        self._delta_reserves = delta_reserves

    def extract_rewards(self, account: Any) -> int | None:
        """Remove and return the rewards due to ``account``, if any."""
        return self._rewards.pop(_freeze(account), None)

    def delta_treasury(self) -> int:
        return self._delta_treasury

    def delta_reserves(self) -> int:
        return self._delta_reserves

    def unclaimed_rewards(self) -> int:
        """The sum of the rewards that have not been extracted."""
        return sum(self._rewards.values())


@contextmanager
def _internal() -> Iterator[None]:
    try:
        yield
    except _BACKEND_ERRORS as exc:
        raise StoreError(f"internal store error: {exc}") from exc


@contextmanager
def _transaction(db: Database) -> Iterator[Transaction]:
    """A transaction that is rolled back unless the body commits it."""
    with _internal():
        txn = db.transaction()
    try:
        with _internal():
            yield txn
    finally:
        with suppress(RuntimeError):
            txn.rollback()


def _parse_epoch(name: str) -> int | None:
    if not _EPOCH_RE.fullmatch(name):
        return None
    epoch = int(name)
    return epoch if epoch <= _U64_MAX else None


def _decode_key(raw: bytes) -> Any:
    return _freeze(decode(raw))


def _decode_accounts_row(raw: bytes) -> accounts.Row:
    return accounts.Row.from_cbor(decode(raw))


def _decode_pools_row(raw: bytes) -> pools.Row:
    return pools.Row.from_cbor(decode(raw))


def _decode_slots_row(raw: bytes) -> slots.Row:
    return slots.Row.from_cbor(decode(raw))


class LedgerStore:
    """The ledger state kept on disk, with a live database and stable epoch snapshots."""

    def __init__(self, directory: Path, db: Database, snapshots: list[int]) -> None:
        self._directory = Path(directory)
        self._db = db
        self._snapshots = sorted(snapshots)

    @classmethod
    def open(cls, directory) -> LedgerStore:
        """Open an existing store; it must hold at least one stable snapshot."""
        directory = Path(directory)
        try:
            entries = list(directory.iterdir())
        except OSError as exc:
            raise OpenError(f"unable to read {directory}: {exc}") from exc

        snapshots: list[int] = []
        for entry in entries:
            epoch = _parse_epoch(entry.name)
            if epoch is not None:
                snapshots.append(epoch)
            elif entry.name != DIR_LIVE_DB:
                _log.warning("new.unexpected_file filename=%s", entry.name)

        snapshots.sort()
        _log.info("new.known_snapshots snapshots=%s", snapshots)

        if not snapshots:
            raise OpenError("no stable snapshot found")

        with _internal():
            db = Database(directory / DIR_LIVE_DB)
        return cls(directory, db, snapshots)

    @classmethod
    def empty(cls, directory) -> LedgerStore:
        """Open or create a store without requiring any snapshot."""
        directory = Path(directory)
        with _internal():
            db = Database(directory / DIR_LIVE_DB)
        return cls(directory, db, [])

    def close(self) -> None:
        self._db.close()

    def __enter__(self) -> LedgerStore:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def unsafe_transaction(self) -> Transaction:
        """A raw transaction on the live database."""
        return self._db.transaction()

    # Reads

    def most_recent_snapshot(self) -> int:
        if not self._snapshots:
            raise RuntimeError("called 'most_recent_snapshot' on empty database")
        return self._snapshots[-1]

    def pool(self, pool: bytes) -> pools.Row | None:
        with _internal():
            return pools.get(self._db, pool)

    def utxo(self, input: Any) -> Any | None:
        with _internal():
            return utxo.get(self._db, input)

    def _iter(self, prefix: bytes, decode_value: Callable[[bytes], Any]) -> Iterator[tuple[Any, Any]]:
        with _internal():
            entries = self._db.prefix_iterator(prefix)
        for raw_key, raw_value in entries:
            try:
                key = _decode_key(raw_key[PREFIX_LEN:])
            except _DECODE_ERRORS as exc:
                raise ValueError(f"unable to decode object ({raw_key.hex()}): {exc!r}") from exc
            try:
                value = decode_value(raw_value)
            except _DECODE_ERRORS as exc:
                raise ValueError(f"unable to decode object ({raw_value.hex()}): {exc!r}") from exc
            yield key, value

    def iter_utxos(self) -> Iterator[tuple[Any, Any]]:
        return self._iter(utxo.PREFIX, decode)

    def pots(self) -> pots.Row:
        with _internal():
            return pots.get(self._db)

    def iter_accounts(self) -> Iterator[tuple[Any, accounts.Row]]:
        return self._iter(accounts.PREFIX, _decode_accounts_row)

    def iter_block_issuers(self) -> Iterator[tuple[int, slots.Row]]:
        return self._iter(slots.PREFIX, _decode_slots_row)

    def iter_pools(self) -> Iterator[tuple[bytes, pools.Row]]:
        return self._iter(pools.PREFIX, _decode_pools_row)

    def for_epoch(self, epoch: int) -> LedgerStore:
        """Open the stable snapshot taken at ``epoch``."""
        path = self._directory / str(epoch)
        with _internal():
            if not path.exists():
                raise FileNotFoundError(f"no snapshot for epoch {epoch} at {path}")
            db = Database(path)
        return LedgerStore(self._directory, db, [epoch])

    def tip(self) -> Point:
        with _internal():
            raw = self._db.get(KEY_TIP)
        if raw is None:
            raise TipError("no tip found in the database")
        try:
            return Point.from_cbor(decode(raw))
        except _DECODE_ERRORS as exc:
            raise TipError(f"undecodable tip ({raw.hex()}): {exc!r}") from exc

    # Writes

    def save(
        self,
        point: Point,
        issuer: bytes | None = None,
        add: Columns | None = None,
        remove: Columns | None = None,
        withdrawals: Iterable[Any] = (),
    ) -> None:
        """Apply a block's changes, unless ``point`` is not newer than the current tip."""
        add = add if add is not None else Columns()
        remove = remove if remove is not None else Columns()

        with _transaction(self._db) as batch:
            raw = batch.get(KEY_TIP)
            tip = None
            if raw is not None:
                try:
                    tip = Point.from_cbor(decode(raw))
                except _DECODE_ERRORS as exc:
                    raise ValueError(
                        f"unable to decode database tip ({raw.hex()}): {exc!r}"
                    ) from exc

            if (
                point.slot is not None
                and tip is not None
                and tip.slot is not None
                and point.slot <= tip.slot
            ):
                _log.debug("save.point_already_known point=%r", point)
            else:
                batch.put(KEY_TIP, as_value(point))

                if issuer is not None:
                    slots.put(batch, point.slot_or_default(), slots.Row(bytes(issuer)))

                utxo.add(batch, add.utxo)
                pools.add(batch, add.pools)
                accounts.add(batch, add.accounts)

                accounts.reset(batch, withdrawals)

                utxo.remove(batch, remove.utxo)
                pools.remove(batch, remove.pools)
                accounts.remove(batch, remove.accounts)

            batch.commit()

    def next_snapshot(self, epoch: int, rewards_summary: RewardsSummary | None = None) -> None:
        """Close ``epoch``: distribute rewards, take a snapshot, reset block counts and fees.

        Nothing happens if ``epoch`` is not the epoch following the most recent snapshot.
        """
        snapshot = self._snapshots[-1] + 1 if self._snapshots else epoch
        if snapshot != epoch:
            _log.debug("next_snapshot.already_known epoch=%s", epoch)
            return

        if rewards_summary is not None:
            summary = rewards_summary

            def apply_rewards(iterator) -> None:
                for account, row in iterator:
                    rewards = summary.extract_rewards(account)
                    if rewards is not None and rewards > 0:
                        current = row.borrow_mut()
                        if current is not None:
                            current.rewards += rewards

            self.with_accounts(apply_rewards)

            delta_treasury = summary.delta_treasury()
            delta_reserves = summary.delta_reserves()
            unclaimed = summary.unclaimed_rewards()

            def adjust_pots(proxy: BorrowableProxy[pots.Row]) -> None:
                row = proxy.borrow_mut()
                row.treasury += delta_treasury + unclaimed
                row.reserves -= delta_reserves

            self.with_pots(adjust_pots)

        path = self._directory / str(snapshot)
        if path.exists():
            try:
                shutil.rmtree(path)
            except OSError as exc:
                raise StoreError("Unable to remove existing snapshot directory") from exc
        with _internal():
            self._db.checkpoint(path)

        def drop_all(iterator) -> None:
            for _, row in iterator:
                row.set(None)

        self.with_block_issuers(drop_all)

        def reset_fees(proxy: BorrowableProxy[pots.Row]) -> None:
            proxy.borrow_mut().fees = 0

        self.with_pots(reset_fees)

        self._snapshots.append(snapshot)

    def with_pots(self, with_: Callable[[BorrowableProxy[pots.Row]], None]) -> None:
        """Hand the pots to ``with_``; they are written back if mutably borrowed."""
        with _transaction(self._db) as txn:
            row = pots.get(txn)

            def persist(value: pots.Row) -> None:
                pots.put(txn, value)
                txn.commit()

            proxy = BorrowableProxy(row, persist)
            with_(proxy)
            proxy.close()

    def _with_prefix_iterator(
        self,
        prefix: bytes,
        decode_value: Callable[[bytes], Any],
        with_: Callable[[Iterator[tuple[Any, BorrowableProxy[Any]]]], None],
    ) -> None:
        with _transaction(self._db) as txn:
            iterator = iter_borrow.new(
                txn.prefix_iterator(prefix), PREFIX_LEN, _decode_key, decode_value
            )
            with_(iterator.as_iter_borrow())
            for key, value in iterator.into_iter_updates():
                if value is None:
                    txn.delete(key)
                else:
                    txn.put(key, as_value(value))
            txn.commit()

    def with_utxo(self, with_) -> None:
        self._with_prefix_iterator(utxo.PREFIX, decode, with_)

    def with_pools(self, with_) -> None:
        self._with_prefix_iterator(pools.PREFIX, _decode_pools_row, with_)

    def with_accounts(self, with_) -> None:
        self._with_prefix_iterator(accounts.PREFIX, _decode_accounts_row, with_)

    def with_block_issuers(self, with_) -> None:
        self._with_prefix_iterator(slots.PREFIX, _decode_slots_row, with_)