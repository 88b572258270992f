# src/marketledger/runtime/domain_apply.py
# ---------------------------------------------------------------------------
# Public, stable import path for applying tx envelopes.
# ---------------------------------------------------------------------------

from __future__ import annotations

import copy
from typing import Any, Dict, Optional, Tuple

from marketledger.runtime.domain_dispatch import apply_tx
from marketledger.runtime.errors import ApplyError
from marketledger.runtime.hooks import ApplyHooks
from marketledger.runtime.tx_admission_types import TxEnvelope

Json = Dict[str, Any]


def apply_tx_staged(
    state: Json,
    env: Any,
    *,
    hooks: Optional[ApplyHooks] = None,
) -> Tuple[Json, Json]:
    """Apply a tx to a deep copy of `state`.

    Returns (new_state, result). `state` itself is never touched, so a raised
    ApplyError means nothing happened.
    """
    env_norm = TxEnvelope.from_json(env)
    snapshot = copy.deepcopy(state)
    meta = apply_tx(snapshot, env_norm, hooks=hooks)
    return snapshot, meta


def apply_tx_atomic(
    state: Json,
    env: Any,
    *,
    hooks: Optional[ApplyHooks] = None,
) -> Json:
    """Apply a tx with fail-atomic semantics.

    On success:
      - state is updated as if apply_tx() ran directly.

    On ApplyError:
      - state remains unchanged.
    """
    snapshot, meta = apply_tx_staged(state, env, hooks=hooks)

    # Commit by replacing contents in-place so callers holding references
    # to `state` see the updated view.
    state.clear()
    state.update(snapshot)
    return meta


__all__ = ["ApplyError", "apply_tx", "apply_tx_atomic", "apply_tx_staged", "Json"]
