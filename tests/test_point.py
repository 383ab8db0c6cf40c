import pytest

from amaru.common import as_value, decode
from amaru.point import MalformedPointError, Point, parse_point


def test_parse_point():
    point = parse_point("42.0123456789abcdef")
    assert not point.is_origin()
    assert point.slot == 42
    assert list(point.header_hash) == [1, 35, 69, 103, 137, 171, 205, 239]


def test_parse_real_point():
    point = parse_point(
        "70070379.d6fe6439aed8bddc10eec22c1575bf0648e4a76125387d9e985e9a3f8342870d"
    )
    assert point.slot == 70070379
    assert len(point.header_hash) == 32


@pytest.mark.parametrize(
    "raw, reason",
    [
        ("abc.00", "failed to parse point's slot as a non-negative integer"),
        ("-1.00", "failed to parse point's slot as a non-negative integer"),
        ("42", "missing block header hash after '.'"),
        ("42.zz", "unable to decode block header hash from hex"),
        ("42.abc", "unable to decode block header hash from hex"),
    ],
)
def test_parse_point_errors(raw, reason):
    with pytest.raises(MalformedPointError) as info:
        parse_point(raw)
    assert info.value.reason == reason
    assert str(info.value) == f"malformed point: {reason}"


def test_origin():
    origin = Point.origin()
    assert origin.is_origin()
    assert origin.slot_or_default() == 0
    assert origin.to_cbor() == []


def test_slot_or_default_for_specific():
    assert Point.specific(70070379, b"\x01").slot_or_default() == 70070379


@pytest.mark.parametrize(
    "point",
    [Point.origin(), Point.specific(42, bytes(range(8))), parse_point("7.ff")],
)
def test_cbor_round_trip(point):
    assert Point.from_cbor(decode(as_value(point))) == point


def test_from_cbor_rejects_bad_shapes():
    with pytest.raises(ValueError):
        Point.from_cbor([1, 2, 3])
    with pytest.raises(ValueError):
        Point.from_cbor(5)


def test_half_point_is_rejected():
    with pytest.raises(ValueError):
        Point(slot=3)