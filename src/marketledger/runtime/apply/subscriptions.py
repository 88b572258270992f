# src/marketledger/runtime/apply/subscriptions.py
from __future__ import annotations

"""
Subscription clock apply semantics.

Covers:
- SUBSCRIPTION_RENEW
- SUBSCRIPTION_CANCEL

State shape:
  state["subscriptions"][str(asset_id)] = {"expiration": int}

Rules:
- expiration 0 means "no active subscription".
- First renewal starts the window at `now`: expiration = now + duration.
- Later renewals stack onto the old expiration, even when it already lies in
  the past relative to `now`: expiration = old + duration. The renewal policy
  hook is consulted only for these.
- Cancel zeroes an existing entry; entries are never removed, and cancelling an
  id without an entry writes nothing.
- Nothing here expires a subscription; callers compare expiration to their
  own clock.
"""

from typing import Any, Dict, Optional, Set

from marketledger.ledger.state import checked_add, key_of, require_asset, table
from marketledger.runtime.errors import InvalidPayload, NotRenewable
from marketledger.runtime.events import SUBSCRIPTION_UPDATE, make_event
from marketledger.runtime.hooks import DEFAULT_HOOKS, ApplyHooks
from marketledger.runtime.tx_admission_types import TxEnvelope

Json = Dict[str, Any]


def _as_dict(x: Any) -> Json:
    return x if isinstance(x, dict) else {}


def _uint(payload: Json, key: str, tx_type: str) -> int:
    v = payload.get(key)
    if isinstance(v, bool) or not isinstance(v, int) or v < 0:
        raise InvalidPayload(f"bad_{key}", {"tx_type": tx_type, key: v})
    return int(v)


def expires_at(state: Json, asset_id: int) -> int:
    rec = table(state, "subscriptions").get(key_of(asset_id))
    if not isinstance(rec, dict):
        return 0
    try:
        return int(rec.get("expiration", 0))
    except Exception:
        return 0


def _set_expiration(state: Json, asset_id: int, expiration: int) -> None:
    subs = table(state, "subscriptions")
    rec = subs.get(key_of(asset_id))
    if not isinstance(rec, dict):
        rec = {}
        subs[key_of(asset_id)] = rec
    rec["expiration"] = int(expiration)


def _apply_subscription_renew(state: Json, env: TxEnvelope, hooks: ApplyHooks) -> Json:
    payload = _as_dict(env.payload)
    asset_id = _uint(payload, "asset_id", env.tx_type)
    duration = _uint(payload, "duration", env.tx_type)
    now = _uint(payload, "now", env.tx_type)

    require_asset(state, asset_id)

    old = expires_at(state, asset_id)
    if old == 0:
        new = checked_add(now, duration, what="expiration")
    else:
        if not hooks.is_renewable(state, asset_id):
            raise NotRenewable("renewal_denied_by_policy", {"asset_id": asset_id, "expiration": old})
        new = checked_add(old, duration, what="expiration")

    _set_expiration(state, asset_id, new)
    return {
        "applied": "SUBSCRIPTION_RENEW",
        "asset_id": asset_id,
        "expiration": new,
        "events": [make_event(SUBSCRIPTION_UPDATE, asset_id=asset_id, expiration=new)],
    }


def _apply_subscription_cancel(state: Json, env: TxEnvelope) -> Json:
    asset_id = _uint(_as_dict(env.payload), "asset_id", env.tx_type)
    # an id that never had a window reads 0 already; no row is created for it
    if key_of(asset_id) in table(state, "subscriptions"):
        _set_expiration(state, asset_id, 0)
    return {
        "applied": "SUBSCRIPTION_CANCEL",
        "asset_id": asset_id,
        "expiration": 0,
        "events": [make_event(SUBSCRIPTION_UPDATE, asset_id=asset_id, expiration=0)],
    }


SUBSCRIPTION_TX_TYPES: Set[str] = {
    "SUBSCRIPTION_RENEW",
    "SUBSCRIPTION_CANCEL",
}


def apply_subscriptions(state: Json, env: TxEnvelope, hooks: Optional[ApplyHooks] = None) -> Optional[Json]:
    t = str(env.tx_type or "").strip()
    if t not in SUBSCRIPTION_TX_TYPES:
        return None

    if t == "SUBSCRIPTION_RENEW":
        return _apply_subscription_renew(state, env, hooks or DEFAULT_HOOKS)
    if t == "SUBSCRIPTION_CANCEL":
        return _apply_subscription_cancel(state, env)

    return None
