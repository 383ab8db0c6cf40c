"""Ledger state storage for a Cardano node, with chain points, network names and process helpers."""

__version__ = "0.1.0"