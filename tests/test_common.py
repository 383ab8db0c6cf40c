import pytest

from amaru.common import PREFIX_LEN, as_bytes, as_key, as_value, decode


class _Pair:
    def __init__(self, left, right):
        self.left = left
        self.right = right

    def to_cbor(self):
        return [self.left, self.right]


def test_as_key_places_prefix_before_cbor_text():
    assert as_key(b"acct", "apple") == b"acct\x65apple"


def test_as_value_of_empty_array():
    assert as_value([]) == b"\x80"


def test_as_value_has_no_prefix():
    assert as_value("kiwi") == as_bytes(b"", "kiwi")


@pytest.mark.parametrize(
    "value",
    [0, 42, 2**40, "banana", b"\x01\x02", [1, [2, 3]], {"a": 1}, None, True],
)
def test_round_trip(value):
    assert decode(as_value(value)) == value


def test_key_round_trip_after_prefix():
    key = as_key(b"utxo", [b"\xaa" * 32, 3])
    assert key[:PREFIX_LEN] == b"utxo"
    assert decode(key[PREFIX_LEN:]) == [b"\xaa" * 32, 3]


def test_tuples_encode_as_arrays():
    assert as_value((1, 2, 3)) == as_value([1, 2, 3])


def test_objects_with_to_cbor_are_encoded():
    pair = _Pair(7, b"\x00")
    assert decode(as_value(pair)) == [7, b"\x00"]
    assert decode(as_value([pair, pair])) == [[7, b"\x00"], [7, b"\x00"]]


def test_unencodable_value_raises():
    with pytest.raises(ValueError, match="unable to encode value to CBOR"):
        as_bytes(b"pots", object())