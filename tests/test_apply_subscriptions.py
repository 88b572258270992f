# tests/test_apply_subscriptions.py
from __future__ import annotations

import pytest

from marketledger.ledger.constants import UINT256_MAX
from marketledger.ledger.state import new_state
from marketledger.runtime.apply.subscriptions import expires_at
from marketledger.runtime.domain_apply import apply_tx, apply_tx_atomic
from marketledger.runtime.errors import ArithmeticOverflow, NotFound, NotRenewable
from marketledger.runtime.hooks import ApplyHooks

T = 1_700_000_000


def _state() -> dict:
    st = new_state()
    apply_tx(st, {"tx_type": "ASSET_CREATE", "signer": "alice", "payload": {"title": "Pass"}})
    return st


def _renew(st: dict, duration: int, now: int = T, hooks: ApplyHooks | None = None) -> dict:
    env = {
        "tx_type": "SUBSCRIPTION_RENEW",
        "signer": "alice",
        "payload": {"asset_id": 1, "duration": duration, "now": now},
    }
    return apply_tx_atomic(st, env, hooks=hooks)


def test_unknown_subscription_reads_zero() -> None:
    st = _state()
    assert expires_at(st, 1) == 0
    assert expires_at(st, 42) == 0


def test_first_renew_starts_at_now_then_stacks() -> None:
    st = _state()
    assert _renew(st, 1000)["expiration"] == T + 1000
    assert _renew(st, 500, now=T + 10)["expiration"] == T + 1500
    assert expires_at(st, 1) == T + 1500


def test_lapsed_window_still_stacks_on_old_expiration() -> None:
    st = _state()
    _renew(st, 10)
    out = _renew(st, 10, now=T + 10_000)
    assert out["expiration"] == T + 20


def test_cancel_zeroes_and_next_renew_restarts_from_now() -> None:
    st = _state()
    _renew(st, 1000)
    out = apply_tx(st, {"tx_type": "SUBSCRIPTION_CANCEL", "signer": "bob", "payload": {"asset_id": 1}})
    assert out["expiration"] == 0
    assert expires_at(st, 1) == 0
    assert _renew(st, 300, now=T + 50)["expiration"] == T + 350


def test_cancel_without_window_writes_nothing() -> None:
    st = new_state()
    out = apply_tx(st, {"tx_type": "SUBSCRIPTION_CANCEL", "signer": "bob", "payload": {"asset_id": 2**256 - 1}})
    assert out["expiration"] == 0
    assert out["events"] == [{"event": "SubscriptionUpdate", "asset_id": 2**256 - 1, "expiration": 0}]
    assert st["subscriptions"] == {}
    assert expires_at(st, 9) == 0


def test_renew_unknown_asset_is_not_found() -> None:
    st = new_state()
    with pytest.raises(NotFound):
        _renew(st, 10)


def test_policy_gates_only_stacking() -> None:
    deny = ApplyHooks(is_renewable=lambda state, asset_id: False)
    st = _state()
    # first window opens regardless of the policy
    assert _renew(st, 100, hooks=deny)["expiration"] == T + 100

    with pytest.raises(NotRenewable) as e:
        _renew(st, 100, hooks=deny)
    assert e.value.code == "not_renewable"
    assert expires_at(st, 1) == T + 100


def test_expiration_overflow_leaves_window() -> None:
    st = _state()
    _renew(st, 1)
    with pytest.raises(ArithmeticOverflow):
        _renew(st, UINT256_MAX)
    assert expires_at(st, 1) == T + 1


def test_renew_and_cancel_emit_subscription_update() -> None:
    st = _state()
    out = _renew(st, 5)
    assert out["events"] == [{"event": "SubscriptionUpdate", "asset_id": 1, "expiration": T + 5}]
    out = apply_tx(st, {"tx_type": "SUBSCRIPTION_CANCEL", "signer": "alice", "payload": {"asset_id": 1}})
    assert out["events"] == [{"event": "SubscriptionUpdate", "asset_id": 1, "expiration": 0}]
