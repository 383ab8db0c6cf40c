"""Reads and writes of the prefixed tables of the ledger store: accounts, pools, pots, slots and UTxO."""