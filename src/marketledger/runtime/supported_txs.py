# src/marketledger/runtime/supported_txs.py
"""Tx types this build can apply.

Admission rejects anything outside this set; the apply router independently
fails closed for tx types no domain applier claims.
"""

from __future__ import annotations

from typing import AbstractSet

from marketledger.runtime.apply.assets import ASSET_TX_TYPES
from marketledger.runtime.apply.market import MARKET_TX_TYPES
from marketledger.runtime.apply.social import SOCIAL_TX_TYPES
from marketledger.runtime.apply.subscriptions import SUBSCRIPTION_TX_TYPES

SUPPORTED_TX_TYPES: AbstractSet[str] = frozenset(
    set(ASSET_TX_TYPES) | set(MARKET_TX_TYPES) | set(SUBSCRIPTION_TX_TYPES) | set(SOCIAL_TX_TYPES)
)

# Tx types that may carry a non-zero attached value.
VALUE_BEARING_TX_TYPES: AbstractSet[str] = frozenset({"ASSET_PURCHASE"})


def is_supported(tx_type: str) -> bool:
    return str(tx_type or "").strip().upper() in SUPPORTED_TX_TYPES
