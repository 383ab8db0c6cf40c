import pytest

from amaru.columns import slots
from amaru.columns.slots import Row
from amaru.common import as_key, as_value, decode
from amaru.kv import Database

POOL = b"\xcc" * 28


@pytest.fixture
def db(tmp_path):
    with Database(tmp_path / "live") as database:
        yield database


def test_slots_stored_under_slot_prefix(db):
    slots.put(db, 42, Row(POOL))
    stored = db.get(as_key(bytes([0x73, 0x6C, 0x6F, 0x74]), 42))
    assert Row.from_cbor(decode(stored)) == Row(POOL)


def test_get_missing(db):
    assert slots.get(db, 42) is None


def test_put_then_get(db):
    txn = db.transaction()
    slots.put(txn, 42, Row(POOL))
    txn.commit()
    assert slots.get(db, 42) == Row(POOL)
    assert slots.get(db, 43) is None


def test_keys_iterate_under_prefix(db):
    slots.put(db, 1, Row(POOL))
    slots.put(db, 2, Row(POOL))
    keys = [k for k, _ in db.prefix_iterator(slots.PREFIX)]
    assert keys == [as_key(slots.PREFIX, 1), as_key(slots.PREFIX, 2)]


def test_row_round_trip():
    assert Row.from_cbor(decode(as_value(Row(POOL)))) == Row(POOL)


def test_malformed_row():
    with pytest.raises(ValueError):
        Row.from_cbor([])