import pytest

from amaru.config import NetworkName


@pytest.mark.parametrize(
    "name, magic",
    [("mainnet", 764824073), ("preprod", 1), ("preview", 2)],
)
def test_network_magic(name, magic):
    assert NetworkName.parse(name).network_magic() == magic


def test_possible_values():
    assert NetworkName.possible_values() == ("mainnet", "preprod", "preview")


@pytest.mark.parametrize("name", ["mainnet", "preprod", "preview"])
def test_str_round_trip(name):
    network = NetworkName.parse(name)
    assert str(network) == name
    assert NetworkName.parse(str(network)) is network


def test_unknown_network():
    with pytest.raises(ValueError, match="unknown network name: sanchonet"):
        NetworkName.parse("sanchonet")


def test_parse_is_case_sensitive():
    with pytest.raises(ValueError):
        NetworkName.parse("Mainnet")