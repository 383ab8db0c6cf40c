"""Names of the supported networks."""

from __future__ import annotations

from enum import Enum

_MAGICS = {"mainnet": 764824073, "preprod": 1, "preview": 2}


class NetworkName(Enum):
    """A known network, identified by name."""

    MAINNET = "mainnet"
    PREPROD = "preprod"
    PREVIEW = "preview"

    @classmethod
    def parse(cls, value: str) -> NetworkName:
        try:
            return cls(value)
        except ValueError:
            raise ValueError(f"unknown network name: {value}") from None

    @classmethod
    def possible_values(cls) -> tuple[str, ...]:
        return tuple(member.value for member in cls)

    def network_magic(self) -> int:
        """The magic number identifying this network on the wire."""
        return _MAGICS[self.value]

    def __str__(self) -> str:
        return self.value