# src/marketledger/runtime/apply/assets.py
from __future__ import annotations

"""
Asset registry apply semantics.

Covers:
- ASSET_CREATE  (mint; next sequential id, seller = owner = signer)
- ASSET_LIKE
- ASSET_DISLIKE (fails with underflow at zero, never wraps)

Asset record shape (state["assets"][str(asset_id)]):
  {asset_id, seller, owner, price, subscribers, likes, title, description, metadata_ref}

seller is fixed at mint. subscribers is append-only and may hold repeats.
"""

from typing import Any, Dict, Optional, Set

from marketledger.ledger.constants import INITIAL_LIKES
from marketledger.ledger.state import (
    bump_counter,
    checked_add,
    checked_sub,
    key_of,
    require_asset,
    table,
)
from marketledger.runtime.errors import InvalidPayload
from marketledger.runtime.events import ASSET_CREATED, make_event
from marketledger.runtime.hooks import ApplyHooks
from marketledger.runtime.tx_admission_types import TxEnvelope

Json = Dict[str, Any]


def _as_dict(x: Any) -> Json:
    return x if isinstance(x, dict) else {}


def _as_str(x: Any) -> str:
    return x if isinstance(x, str) else ""


def _asset_id(payload: Json, tx_type: str) -> int:
    v = payload.get("asset_id")
    if isinstance(v, bool) or not isinstance(v, int) or v < 0:
        raise InvalidPayload("bad_asset_id", {"tx_type": tx_type, "asset_id": v})
    return int(v)


def _apply_asset_create(state: Json, env: TxEnvelope) -> Json:
    payload = _as_dict(env.payload)
    assets = table(state, "assets")

    asset_id = bump_counter(state, "asset_id")
    rec: Json = {
        "asset_id": asset_id,
        "seller": env.signer,
        "owner": env.signer,
        "price": 0,
        "subscribers": [env.signer],
        "likes": INITIAL_LIKES,
        "title": _as_str(payload.get("title")),
        "description": _as_str(payload.get("description")),
        "metadata_ref": _as_str(payload.get("metadata_ref")),
    }
    assets[key_of(asset_id)] = rec

    ev = make_event(
        ASSET_CREATED,
        asset_id=asset_id,
        seller=rec["seller"],
        owner=rec["owner"],
        price=rec["price"],
        subscribers=list(rec["subscribers"]),
        likes=rec["likes"],
        title=rec["title"],
        description=rec["description"],
    )
    return {"applied": "ASSET_CREATE", "asset_id": asset_id, "events": [ev]}


def _apply_asset_like(state: Json, env: TxEnvelope) -> Json:
    asset_id = _asset_id(_as_dict(env.payload), env.tx_type)
    rec = require_asset(state, asset_id)
    rec["likes"] = checked_add(int(rec.get("likes", 0)), 1, what="likes")
    return {"applied": "ASSET_LIKE", "asset_id": asset_id, "likes": rec["likes"]}


def _apply_asset_dislike(state: Json, env: TxEnvelope) -> Json:
    asset_id = _asset_id(_as_dict(env.payload), env.tx_type)
    rec = require_asset(state, asset_id)
    rec["likes"] = checked_sub(int(rec.get("likes", 0)), 1, what="likes")
    return {"applied": "ASSET_DISLIKE", "asset_id": asset_id, "likes": rec["likes"]}


ASSET_TX_TYPES: Set[str] = {
    "ASSET_CREATE",
    "ASSET_LIKE",
    "ASSET_DISLIKE",
}


def apply_assets(state: Json, env: TxEnvelope, hooks: Optional[ApplyHooks] = None) -> Optional[Json]:
    t = str(env.tx_type or "").strip()
    if t not in ASSET_TX_TYPES:
        return None

    if t == "ASSET_CREATE":
        return _apply_asset_create(state, env)
    if t == "ASSET_LIKE":
        return _apply_asset_like(state, env)
    if t == "ASSET_DISLIKE":
        return _apply_asset_dislike(state, env)

    return None
