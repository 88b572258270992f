from __future__ import annotations

"""Ledger state store.

State is a plain JSON dict passed explicitly to every operation:

    {
      "state_version": 1,
      "params":        {"escrow_account": "..."},
      "assets":        {"<asset_id>": {asset record}},
      "subscriptions": {"<asset_id>": {"expiration": int}},
      "profiles":      {"<user_id>": {profile record}},
      "profile_index": {"<account>": user_id},
      "counters":      {"asset_id": int, "listed": int, "user_id": int},
    }

Table keys are decimal strings so the snapshot round-trips through JSON
unchanged. Counters only ever grow.
"""

from typing import Any, Dict, Optional

from marketledger.ledger.constants import DEFAULT_ESCROW_ACCOUNT, STATE_VERSION, UINT256_MAX
from marketledger.runtime.errors import ArithmeticOverflow, ArithmeticUnderflow, NotFound

Json = Dict[str, Any]

_TABLES = ("assets", "subscriptions", "profiles", "profile_index")
_COUNTERS = ("asset_id", "listed", "user_id")


def new_state(*, escrow_account: str = DEFAULT_ESCROW_ACCOUNT) -> Json:
    st: Json = {"state_version": STATE_VERSION, "params": {"escrow_account": str(escrow_account)}}
    ensure_state(st)
    return st


def ensure_state(state: Json) -> Json:
    """Fill in any missing roots. Safe to call repeatedly."""
    state.setdefault("state_version", STATE_VERSION)
    params = state.get("params")
    if not isinstance(params, dict):
        params = {}
        state["params"] = params
    params.setdefault("escrow_account", DEFAULT_ESCROW_ACCOUNT)

    for name in _TABLES:
        if not isinstance(state.get(name), dict):
            state[name] = {}

    counters = state.get("counters")
    if not isinstance(counters, dict):
        counters = {}
        state["counters"] = counters
    for name in _COUNTERS:
        counters.setdefault(name, 0)
    return state


def table(state: Json, name: str) -> Json:
    ensure_state(state)
    return state[name]


def escrow_account(state: Json) -> str:
    params = state.get("params")
    if isinstance(params, dict):
        v = str(params.get("escrow_account") or "").strip()
        if v:
            return v
    return DEFAULT_ESCROW_ACCOUNT


def key_of(record_id: int) -> str:
    return str(int(record_id))


# ---------------------------------------------------------------------------
# Checked unsigned arithmetic
# ---------------------------------------------------------------------------


def checked_add(a: int, b: int, *, what: str) -> int:
    out = int(a) + int(b)
    if out > UINT256_MAX:
        raise ArithmeticOverflow(f"{what}_overflow", {"a": int(a), "b": int(b)})
    return out


def checked_sub(a: int, b: int, *, what: str) -> int:
    out = int(a) - int(b)
    if out < 0:
        raise ArithmeticUnderflow(f"{what}_underflow", {"a": int(a), "b": int(b)})
    return out


# ---------------------------------------------------------------------------
# Counters
# ---------------------------------------------------------------------------


def counter(state: Json, name: str) -> int:
    ensure_state(state)
    return int(state["counters"].get(name, 0) or 0)


def bump_counter(state: Json, name: str) -> int:
    """Increment a counter and return its new value."""
    ensure_state(state)
    nxt = checked_add(counter(state, name), 1, what=f"{name}_counter")
    state["counters"][name] = nxt
    return nxt


# ---------------------------------------------------------------------------
# Record lookup
# ---------------------------------------------------------------------------


def find_asset(state: Json, asset_id: int) -> Optional[Json]:
    rec = table(state, "assets").get(key_of(asset_id))
    return rec if isinstance(rec, dict) else None


def require_asset(state: Json, asset_id: int) -> Json:
    rec = find_asset(state, asset_id)
    if rec is None:
        raise NotFound("asset_not_found", {"asset_id": int(asset_id)})
    return rec


def profile_id_of(state: Json, account: str) -> Optional[int]:
    v = table(state, "profile_index").get(str(account))
    return int(v) if v is not None else None


def find_profile(state: Json, account: str) -> Optional[Json]:
    uid = profile_id_of(state, account)
    if uid is None:
        return None
    rec = table(state, "profiles").get(key_of(uid))
    return rec if isinstance(rec, dict) else None


def require_profile(state: Json, account: str) -> Json:
    rec = find_profile(state, account)
    if rec is None:
        raise NotFound("profile_not_found", {"account": str(account)})
    return rec
