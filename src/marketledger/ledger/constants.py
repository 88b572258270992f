# src/marketledger/ledger/constants.py
from __future__ import annotations

"""Ledger-wide constants.

Amounts, timestamps, ids and counters are unsigned 256-bit integers. Arithmetic
that would leave [0, UINT256_MAX] fails instead of wrapping.
"""

UINT256_MAX: int = 2**256 - 1

# Reserved custodian of every listed asset.
DEFAULT_ESCROW_ACCOUNT: str = "MARKET_ESCROW"

# First id handed out by each sequential counter.
FIRST_ASSET_ID: int = 1
FIRST_USER_ID: int = 1

# Initial like count of a freshly minted asset (the creator's own like).
INITIAL_LIKES: int = 1

STATE_VERSION: int = 1
