import logging
from dataclasses import dataclass

import pytest

from amaru.columns import pools
from amaru.columns.pools import Row
from amaru.common import as_key, as_value, decode
from amaru.kv import Database

POOL_A = b"\xaa" * 28
POOL_B = b"\xbb" * 28


@pytest.fixture
def db(tmp_path):
    with Database(tmp_path / "live") as database:
        yield database


def test_pools_stored_under_pool_prefix(db):
    txn = db.transaction()
    pools.add(txn, [([POOL_A, "v1"], 5)])
    txn.commit()
    entries = list(db.prefix_iterator(bytes([0x70, 0x6F, 0x6F, 0x6C])))
    assert [k for k, _ in entries] == [as_key(b"pool", POOL_A)]


def test_row_round_trip():
    row = Row([POOL_A, "v1"], [([POOL_A, "v2"], 10), (None, 12)])
    assert Row.from_cbor(decode(as_value(row))) == row


def test_extend_appends_without_mutating():
    row = Row.new([POOL_A, "v1"])
    extended = row.extend((None, 7))
    assert row.future_params == []
    assert extended.future_params == [(None, 7)]
    assert extended.current_params == [POOL_A, "v1"]


def test_get_unknown(db):
    assert pools.get(db, POOL_A) is None


def test_add_new_then_update(db):
    txn = db.transaction()
    pools.add(txn, [([POOL_A, "v1"], 5)])
    txn.commit()
    assert pools.get(db, POOL_A) == Row([POOL_A, "v1"], [])

    txn = db.transaction()
    pools.add(txn, [([POOL_A, "v2"], 6)])
    txn.commit()
    assert pools.get(db, POOL_A) == Row([POOL_A, "v1"], [([POOL_A, "v2"], 6)])


def test_add_with_id_attribute(db):
    @dataclass
    class Params:
        id: bytes
        pledge: int

        def to_cbor(self):
            return [self.id, self.pledge]

    txn = db.transaction()
    pools.add(txn, [(Params(POOL_B, 100), 3)])
    txn.commit()
    assert pools.get(db, POOL_B) == Row([POOL_B, 100], [])


def test_remove_schedules_retirement(db):
    txn = db.transaction()
    pools.add(txn, [([POOL_A, "v1"], 5)])
    pools.remove(txn, [(POOL_A, 9)])
    txn.commit()
    assert pools.get(db, POOL_A) == Row([POOL_A, "v1"], [(None, 9)])


def test_remove_unknown_logs(db, caplog):
    caplog.set_level(logging.ERROR)
    txn = db.transaction()
    pools.remove(txn, [(POOL_B, 9)])
    txn.commit()
    assert pools.get(db, POOL_B) is None
    assert "remove.unknown" in caplog.text


def test_from_cbor_rejects_garbage():
    with pytest.raises(ValueError):
        Row.from_cbor([POOL_A, [[1, 2, 3]]])