# src/marketledger/runtime/domain_dispatch.py

from __future__ import annotations

from typing import Any, Callable, Dict, Optional

from marketledger.ledger.state import ensure_state
from marketledger.runtime.apply.assets import apply_assets
from marketledger.runtime.apply.market import apply_market
from marketledger.runtime.apply.social import apply_social
from marketledger.runtime.apply.subscriptions import apply_subscriptions
from marketledger.runtime.errors import ApplyError
from marketledger.runtime.hooks import DEFAULT_HOOKS, ApplyHooks
from marketledger.runtime.tx_admission_types import TxEnvelope

Json = Dict[str, Any]
ApplyFn = Callable[[Json, TxEnvelope, ApplyHooks], Optional[Json]]


_APPLIERS: tuple[ApplyFn, ...] = (
    apply_assets,
    apply_market,
    apply_subscriptions,
    apply_social,
)


def apply_tx(state: Json, env: Any, *, hooks: Optional[ApplyHooks] = None) -> Json:
    """Dispatch a TxEnvelope to the first domain applier that claims it.

    Mutates `state` in place. Use domain_apply.apply_tx_atomic when a failure
    must leave the state untouched.
    """

    ensure_state(state)
    hk = hooks or DEFAULT_HOOKS

    env_norm = TxEnvelope.from_json(env)

    t = env_norm.tx_type
    if not t:
        raise ApplyError("invalid_tx", "missing_tx_type", {"tx_type": t})
    if not env_norm.signer:
        raise ApplyError("invalid_tx", "missing_signer", {"tx_type": t})

    for fn in _APPLIERS:
        try:
            out = fn(state, env_norm, hk)
        except ApplyError:
            raise
        except Exception as e:
            raise ApplyError(
                "domain_error",
                type(e).__name__,
                {"tx_type": t, "domain": fn.__name__, "error": str(e)},
            ) from e

        if out is not None:
            return out

    raise ApplyError("tx_unimplemented", "tx_type_not_implemented", {"tx_type": t})
