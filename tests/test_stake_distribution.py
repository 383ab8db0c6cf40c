import pytest

from amaru.stake_distribution import HasStakeDistribution, MockLedgerState, PoolSummary

VRF = "ab" * 32
POOL = b"\x01" * 28


@pytest.fixture
def ledger():
    return MockLedgerState(VRF, 25_000_000, 1_000_000_000)


def test_get_pool_returns_configured_summary(ledger):
    summary = ledger.get_pool(1234, POOL)
    assert summary == PoolSummary(
        vrf=bytes.fromhex(VRF), active_stake=1_000_000_000, stake=25_000_000
    )


def test_get_pool_ignores_slot_and_pool(ledger):
    assert ledger.get_pool(0, POOL) == ledger.get_pool(999, b"\x02" * 28)


def test_defaults(ledger):
    assert ledger.slots_per_kes_period == 129600
    assert ledger.max_kes_evolutions() == 62


def test_slot_to_kes_period(ledger):
    period = ledger.slots_per_kes_period
    assert ledger.slot_to_kes_period(0) == 0
    assert ledger.slot_to_kes_period(period - 1) == 0
    assert ledger.slot_to_kes_period(period) == 1


def test_opcert_sequence_numbers(ledger):
    assert ledger.latest_opcert_sequence_number(POOL) is None
    ledger.op_certs[POOL] = 5
    assert ledger.latest_opcert_sequence_number(POOL) == 5


def test_invalid_vrf_hash():
    with pytest.raises(ValueError):
        MockLedgerState("zz", 1, 1)
    with pytest.raises(ValueError):
        MockLedgerState("ab", 1, 1)


def test_interface_is_abstract():
    with pytest.raises(TypeError):
        HasStakeDistribution()