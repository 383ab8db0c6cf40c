"""Lookups of stake distribution information from the ledger."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass

_VRF_KEYHASH_LEN = 32

# 1.5 days, in seconds.
_DEFAULT_SLOTS_PER_KES_PERIOD = 129600
_DEFAULT_MAX_KES_EVOLUTIONS = 62


@dataclass(frozen=True)
class PoolSummary:
    """Stake and VRF key hash of a pool."""

    vrf: bytes
    """The blake2b-256 hash digest of the pool's VRF public key."""
    active_stake: int
    """Total stake, in Lovelace, delegated to registered pools."""
    stake: int
    """Stake of the pool; stake / active_stake is its relative stake."""


class HasStakeDistribution(ABC):
    """Lookup of ledger information needed to validate block headers."""

    @abstractmethod
    def get_pool(self, slot: int, pool: bytes) -> PoolSummary | None:
        """Information about ``pool`` as known by the ledger at ``slot``."""

    @abstractmethod
    def slot_to_kes_period(self, slot: int) -> int:
        """The KES period of an absolute slot."""

    @abstractmethod
    def max_kes_evolutions(self) -> int:
        """The maximum number of KES evolutions."""

    @abstractmethod
    def latest_opcert_sequence_number(self, pool: bytes) -> int | None:
        """The latest operational certificate sequence number seen for ``pool``."""


class MockLedgerState(HasStakeDistribution):
    """A fixed stake distribution where every pool has the same summary."""

    def __init__(self, vrf_vkey_hash: str, stake: int, active_stake: int) -> None:
        vrf = bytes.fromhex(vrf_vkey_hash)
        if len(vrf) != _VRF_KEYHASH_LEN:
            raise ValueError(
                f"VRF key hash must be {_VRF_KEYHASH_LEN} bytes, got {len(vrf)}"
            )
        self.vrf_vkey_hash = vrf
        self.stake = stake
        self.active_stake = active_stake
        self.op_certs: dict[bytes, int] = {}
        self.slots_per_kes_period = _DEFAULT_SLOTS_PER_KES_PERIOD
        self._max_kes_evolutions = _DEFAULT_MAX_KES_EVOLUTIONS

    def get_pool(self, slot: int, pool: bytes) -> PoolSummary | None:
        return PoolSummary(
            vrf=self.vrf_vkey_hash, active_stake=self.active_stake, stake=self.stake
        )

    def slot_to_kes_period(self, slot: int) -> int:
        return slot // self.slots_per_kes_period

    def max_kes_evolutions(self) -> int:
        return self._max_kes_evolutions

    def latest_opcert_sequence_number(self, pool: bytes) -> int | None:
        return self.op_certs.get(pool)