# amaru

Ledger state storage for a Cardano node.

The package keeps the stable part of a ledger in an on-disk key/value
database. Every kind of object lives under its own four-byte prefix, and both
keys and values are serialised as CBOR (with `cbor2`):

| key                         | value                                       |
|-----------------------------|---------------------------------------------|
| `tip`                       | the most recently saved point               |
| `pots`                      | treasury, reserves and fees                 |
| `utxo` + transaction input  | transaction output                          |
| `pool` + pool id            | current parameters and scheduled updates    |
| `acct` + stake credential   | delegatee, deposit and rewards              |
| `slot` + slot               | the pool that issued the block at that slot |

At each epoch boundary the live database is checkpointed into a directory
named after the epoch. Such a snapshot can be opened again with
`LedgerStore.for_epoch`.

## Points

A point is either the origin of the chain or a slot paired with a block
header hash. `parse_point` reads the `SLOT.HASH` form, where the hash is
hex-encoded:

```python
from amaru.point import MalformedPointError, Point, parse_point

point = parse_point("42.0123456789abcdef")
assert point == Point.specific(42, bytes.fromhex("0123456789abcdef"))
assert point.slot_or_default() == 42
assert Point.origin().slot_or_default() == 0
assert Point.from_cbor(point.to_cbor()) == point

try:
    parse_point("not-a-slot.00")
except MalformedPointError as err:
    print(err)  # malformed point: failed to parse point's slot as a non-negative integer
```

## Networks

```python
from amaru.config import NetworkName

network = NetworkName.parse("preprod")
assert network.network_magic() == 1
assert str(network) == "preprod"
print(NetworkName.possible_values())  # ('mainnet', 'preprod', 'preview')
```

An unknown name makes `NetworkName.parse` raise `ValueError`.

## The key/value database

`amaru.kv.Database` is an ordered key/value store kept in a directory (an
SQLite file inside it; the directory is created if missing). Keys are
compared bytewise and may be given as `bytes` or `str`.

```python
from amaru.kv import Database

with Database("./example.db") as db:
    db.put(b"fruit:apple", b"\x01")
    txn = db.transaction()
    txn.put(b"fruit:kiwi", b"\x03")
    assert txn.get(b"fruit:kiwi") == b"\x03"   # a transaction sees its own writes
    assert db.get(b"fruit:kiwi") is None       # nothing is visible before commit
    txn.commit()
    print(list(db.prefix_iterator(b"fruit:")))
    db.checkpoint("./example.db.copy")         # the target must not exist yet
```

Transactions buffer their writes and apply them atomically on `commit()`.
A commit fails with `RuntimeError` if a key the transaction wrote was changed
in the database after the transaction first wrote it; `rollback()` discards
the writes.

The `amaru.common` helpers build keys and values: `as_key(prefix, key)`,
`as_value(value)` and `as_bytes(prefix, value)` encode to CBOR (objects with
a `to_cbor()` method are encoded through it), and `decode(data)` decodes.

## The ledger store

`LedgerStore.empty(directory)` creates or opens the live database in
`directory/live` without requiring any snapshot. `LedgerStore.open(directory)`
additionally requires at least one epoch snapshot directory to be present and
raises `OpenError` otherwise. Failures of the underlying storage are raised as
`StoreError`; a missing or undecodable tip as `TipError`.

```python
from amaru.columns import pots
from amaru.point import Point
from amaru.store import Columns, LedgerStore, RewardsSummary

with LedgerStore.empty("./ledger.db") as store:
    txn = store.unsafe_transaction()
    pots.put(txn, pots.Row(treasury=0, reserves=1000, fees=10))
    txn.commit()

    store.save(
        Point.specific(100, bytes(32)),
        None,
        Columns(utxo=[([bytes(32), 0], [b"address", 5])]),
        Columns(),
        [],
    )
    print(store.tip())
    print(list(store.iter_utxos()))

    store.next_snapshot(3, RewardsSummary({}, delta_treasury=5, delta_reserves=5))
    assert store.most_recent_snapshot() == 3
    print(store.pots())  # Row(treasury=5, reserves=995, fees=0)
```

`save(point, issuer, add, remove, withdrawals)` writes the tip, records
`issuer` as the block issuer of the point's slot, adds UTxO entries, pools
and accounts, resets the rewards of withdrawn accounts, then removes entries,
all in one transaction. If `point` is not newer than the stored tip, nothing
is written. Pools already known get their new parameters scheduled rather
than applied, and removing a pool schedules its retirement.

`next_snapshot(epoch, rewards_summary)` only acts when `epoch` follows the
most recent snapshot (or when there is none yet). It credits rewards to
registered accounts, adjusts treasury and reserves (unclaimed rewards go to
the treasury), checkpoints the live database into `directory/<epoch>`,
clears the block issuers and resets the fees. The pots must have been stored
beforehand; `pots.get` raises `LookupError` otherwise.

Columns can be edited in bulk with `with_utxo`, `with_pools`,
`with_accounts` and `with_block_issuers`. The callback receives an iterator
of `(key, proxy)` pairs; values changed through a proxy (`borrow_mut()` to
change in place, `set()` to replace, `set(None)` to delete) are written back
in one transaction when the callback returns. `with_pots` hands the pots to
the callback through a single proxy in the same way.

```python
def drop_all(rows):
    for _key, row in rows:
        row.set(None)

with LedgerStore.empty("./ledger.db") as store:
    store.with_block_issuers(drop_all)
```

The same mechanism is available on its own in `amaru.iter_borrow`:
`BorrowableProxy` wraps a value and, when closed, calls a hook with the final
value only if it was mutably borrowed; `KeyValueIterator` (built with
`iter_borrow.new`) decodes raw `(key, value)` pairs, hands out such proxies
and returns the recorded updates from `into_iter_updates()`.

## Stake distribution

`amaru.stake_distribution` defines `HasStakeDistribution`, the lookup that
header validation needs (a pool's VRF key hash and stake as a
`PoolSummary`, KES periods, operational certificate counters), together with
`MockLedgerState`, which gives the same summary for every pool:

```python
from amaru.stake_distribution import MockLedgerState

ledger = MockLedgerState("00" * 32, stake=1, active_stake=100)
assert ledger.slot_to_kes_period(259200) == 2
assert ledger.max_kes_evolutions() == 62
```

## Process helpers

- `amaru.exit.hook_exit_event()`, called from a running event loop, returns
  an `asyncio.Event` that is set on the first SIGINT (or SIGTERM, where the
  platform has it).
- `amaru.panic.install_panic_handler()` replaces `sys.excepthook` so that an
  unhandled exception prints an indented crash report, built by
  `format_crash_report(message, location)`, with the operating system,
  architecture and `node_version(True)`.

## What this package does not do

It is a storage and utility library. It does not connect to peers, follow or
fetch the chain, validate blocks or headers, compute stake distributions or
rewards, or import ledger snapshots, and it installs no command-line program.