# src/marketledger/runtime/apply/market.py
from __future__ import annotations

"""
Escrow / marketplace apply semantics.

Covers:
- ASSET_LIST      owner hands custody to the escrow account at a price
- ASSET_PURCHASE  exact-price payment; buyer is appended to subscribers

Listing is list-once / subscribe-many: a purchase never moves the owner away
from escrow, so the asset stays for sale and every purchase grants another
subscription entry.

Payment release to the seller is NOT performed here. The applier only records
a settlement in its result; the executor pays it out after the new state is in
place.
"""

from typing import Any, Dict, Optional, Set

from marketledger.ledger.state import bump_counter, escrow_account, require_asset
from marketledger.runtime.errors import InvalidPayload, PriceMismatch, Unauthorized
from marketledger.runtime.hooks import ApplyHooks
from marketledger.runtime.tx_admission_types import TxEnvelope

Json = Dict[str, Any]


def _as_dict(x: Any) -> Json:
    return x if isinstance(x, dict) else {}


def _uint(payload: Json, key: str, tx_type: str) -> int:
    v = payload.get(key)
    if isinstance(v, bool) or not isinstance(v, int) or v < 0:
        raise InvalidPayload(f"bad_{key}", {"tx_type": tx_type, key: v})
    return int(v)


def _apply_asset_list(state: Json, env: TxEnvelope) -> Json:
    payload = _as_dict(env.payload)
    asset_id = _uint(payload, "asset_id", env.tx_type)
    price = _uint(payload, "price", env.tx_type)

    rec = require_asset(state, asset_id)
    if str(rec.get("owner") or "") != env.signer:
        raise Unauthorized("not_owner", {"asset_id": asset_id, "signer": env.signer})
    # price 0 means "not for sale"; escrowing at 0 would break owner==escrow <=> price>0
    if price <= 0:
        raise InvalidPayload("price_must_be_positive", {"asset_id": asset_id, "price": price})

    rec["owner"] = escrow_account(state)
    rec["price"] = price
    listed = bump_counter(state, "listed")
    return {"applied": "ASSET_LIST", "asset_id": asset_id, "price": price, "listed_count": listed}


def _apply_asset_purchase(state: Json, env: TxEnvelope) -> Json:
    payload = _as_dict(env.payload)
    asset_id = _uint(payload, "asset_id", env.tx_type)
    paid = int(env.value)

    rec = require_asset(state, asset_id)
    price = int(rec.get("price", 0))
    if paid != price:
        raise PriceMismatch("payment_must_equal_price", {"asset_id": asset_id, "price": price, "paid": paid})

    subs = rec.get("subscribers")
    if not isinstance(subs, list):
        subs = []
        rec["subscribers"] = subs
    subs.append(env.signer)

    seller = str(rec.get("seller") or "")
    settlements = [{"to": seller, "amount": paid, "asset_id": asset_id}] if paid > 0 else []
    return {
        "applied": "ASSET_PURCHASE",
        "asset_id": asset_id,
        "buyer": env.signer,
        "success": True,
        "settlements": settlements,
    }


MARKET_TX_TYPES: Set[str] = {
    "ASSET_LIST",
    "ASSET_PURCHASE",
}


def apply_market(state: Json, env: TxEnvelope, hooks: Optional[ApplyHooks] = None) -> Optional[Json]:
    t = str(env.tx_type or "").strip()
    if t not in MARKET_TX_TYPES:
        return None

    if t == "ASSET_LIST":
        return _apply_asset_list(state, env)
    if t == "ASSET_PURCHASE":
        return _apply_asset_purchase(state, env)

    return None
