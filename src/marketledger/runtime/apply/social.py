# src/marketledger/runtime/apply/social.py
from __future__ import annotations

"""
Social graph apply semantics.

Covers:
- PROFILE_REGISTER  one profile per account, sequential user ids
- FOLLOW            idempotent; adds both halves of the edge
- UNFOLLOW          removes both halves of the edge; no-op if absent

State shape:
  state["profiles"][str(user_id)] = {
      "user_id": int, "account": str,
      "followers": [sorted accounts], "following": [sorted accounts],
  }
  state["profile_index"][account] = user_id

followers/following are sets stored as sorted lists so snapshots stay
canonical. "A follows B" always means A in B.followers and B in A.following;
both halves change in the same call.
"""

from typing import Any, Dict, List, Optional, Set

from marketledger.ledger.state import bump_counter, key_of, profile_id_of, require_profile, table
from marketledger.runtime.errors import AlreadyExists, InvalidPayload
from marketledger.runtime.hooks import DEFAULT_HOOKS, ApplyHooks
from marketledger.runtime.tx_admission_types import TxEnvelope

Json = Dict[str, Any]


def _as_dict(x: Any) -> Json:
    return x if isinstance(x, dict) else {}


def _as_str(x: Any) -> str:
    return x if isinstance(x, str) else ""


def _as_list(x: Any) -> List[Any]:
    return x if isinstance(x, list) else []


def _set_add(rec: Json, key: str, account: str) -> bool:
    members = set(_as_list(rec.get(key)))
    if account in members:
        return False
    members.add(account)
    rec[key] = sorted(members)
    return True


def _set_discard(rec: Json, key: str, account: str) -> bool:
    members = set(_as_list(rec.get(key)))
    if account not in members:
        return False
    members.discard(account)
    rec[key] = sorted(members)
    return True


def _target(env: TxEnvelope) -> str:
    payload = _as_dict(env.payload)
    target = _as_str(payload.get("target")).strip()
    if not target:
        raise InvalidPayload("missing_target", {"tx_type": env.tx_type})
    if target == env.signer:
        raise InvalidPayload("cannot_follow_self", {"tx_type": env.tx_type})
    return target


# ---------------------------------------------------------------------------
# Registration
# ---------------------------------------------------------------------------


def _apply_profile_register(state: Json, env: TxEnvelope, hooks: ApplyHooks) -> Json:
    existing = profile_id_of(state, env.signer)
    if existing is not None:
        raise AlreadyExists("profile_exists", {"account": env.signer, "user_id": existing})

    user_id = bump_counter(state, "user_id")
    table(state, "profiles")[key_of(user_id)] = {
        "user_id": user_id,
        "account": env.signer,
        "followers": [],
        "following": [],
    }
    table(state, "profile_index")[env.signer] = user_id

    balance = int(hooks.balance_of(env.signer))
    return {"applied": "PROFILE_REGISTER", "user_id": user_id, "account": env.signer, "balance": balance}


# ---------------------------------------------------------------------------
# Follow / Unfollow
# ---------------------------------------------------------------------------


def _apply_follow(state: Json, env: TxEnvelope) -> Json:
    target = _target(env)
    me = require_profile(state, env.signer)
    them = require_profile(state, target)

    added = _set_add(me, "following", target)
    _set_add(them, "followers", env.signer)
    return {"applied": "FOLLOW", "from": env.signer, "to": target, "changed": added}


def _apply_unfollow(state: Json, env: TxEnvelope) -> Json:
    target = _target(env)
    me = require_profile(state, env.signer)
    them = require_profile(state, target)

    removed = _set_discard(me, "following", target)
    _set_discard(them, "followers", env.signer)
    return {"applied": "UNFOLLOW", "from": env.signer, "to": target, "changed": removed}


SOCIAL_TX_TYPES: Set[str] = {
    "PROFILE_REGISTER",
    "FOLLOW",
    "UNFOLLOW",
}


def apply_social(state: Json, env: TxEnvelope, hooks: Optional[ApplyHooks] = None) -> Optional[Json]:
    t = str(env.tx_type or "").strip()
    if t not in SOCIAL_TX_TYPES:
        return None

    if t == "PROFILE_REGISTER":
        return _apply_profile_register(state, env, hooks or DEFAULT_HOOKS)
    if t == "FOLLOW":
        return _apply_follow(state, env)
    if t == "UNFOLLOW":
        return _apply_unfollow(state, env)

    return None
