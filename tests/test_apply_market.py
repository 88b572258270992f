# tests/test_apply_market.py
from __future__ import annotations

import copy

import pytest

from marketledger.ledger.state import new_state
from marketledger.runtime.domain_apply import apply_tx, apply_tx_atomic
from marketledger.runtime.errors import InvalidPayload, NotFound, PriceMismatch, Unauthorized
from marketledger.runtime.tx_admission_types import TxEnvelope

ESCROW = "ESCROW"


def _env(tx_type: str, signer: str, payload: dict, value: int = 0) -> TxEnvelope:
    return TxEnvelope(tx_type=tx_type, signer=signer, payload=payload, value=value)


def _state_with_asset() -> dict:
    st = new_state(escrow_account=ESCROW)
    apply_tx(st, _env("ASSET_CREATE", "creator", {"title": "Ticket"}))
    return st


def test_list_moves_custody_to_escrow_and_counts() -> None:
    st = _state_with_asset()
    out = apply_tx(st, _env("ASSET_LIST", "creator", {"asset_id": 1, "price": 100}))
    assert out["listed_count"] == 1

    rec = st["assets"]["1"]
    assert rec["owner"] == ESCROW
    assert rec["price"] == 100
    assert rec["seller"] == "creator"
    assert st["counters"]["listed"] == 1


def test_list_by_non_owner_is_unauthorized() -> None:
    st = _state_with_asset()
    before = copy.deepcopy(st)
    with pytest.raises(Unauthorized) as e:
        apply_tx_atomic(st, _env("ASSET_LIST", "mallory", {"asset_id": 1, "price": 100}))
    assert e.value.code == "unauthorized"
    assert st == before


def test_relist_after_escrow_is_unauthorized_for_seller() -> None:
    st = _state_with_asset()
    apply_tx(st, _env("ASSET_LIST", "creator", {"asset_id": 1, "price": 100}))
    with pytest.raises(Unauthorized):
        apply_tx(st, _env("ASSET_LIST", "creator", {"asset_id": 1, "price": 50}))


def test_list_at_zero_price_is_rejected() -> None:
    st = _state_with_asset()
    with pytest.raises(InvalidPayload):
        apply_tx_atomic(st, _env("ASSET_LIST", "creator", {"asset_id": 1, "price": 0}))
    assert st["assets"]["1"]["owner"] == "creator"
    assert st["counters"]["listed"] == 0


def test_list_unknown_asset_is_not_found() -> None:
    st = _state_with_asset()
    with pytest.raises(NotFound):
        apply_tx(st, _env("ASSET_LIST", "creator", {"asset_id": 9, "price": 5}))


def test_purchase_scenario() -> None:
    st = _state_with_asset()
    apply_tx(st, _env("ASSET_LIST", "creator", {"asset_id": 1, "price": 100}))

    out = apply_tx(st, _env("ASSET_PURCHASE", "buyer", {"asset_id": 1}, value=100))
    assert out["success"] is True
    assert out["settlements"] == [{"to": "creator", "amount": 100, "asset_id": 1}]
    assert st["assets"]["1"]["subscribers"] == ["creator", "buyer"]
    # list-once / subscribe-many: custody stays with escrow
    assert st["assets"]["1"]["owner"] == ESCROW

    before = copy.deepcopy(st)
    with pytest.raises(PriceMismatch) as e:
        apply_tx_atomic(st, _env("ASSET_PURCHASE", "buyer2", {"asset_id": 1}, value=99))
    assert e.value.code == "price_mismatch"
    assert e.value.details == {"asset_id": 1, "price": 100, "paid": 99}
    assert st == before


def test_overpayment_is_rejected() -> None:
    st = _state_with_asset()
    apply_tx(st, _env("ASSET_LIST", "creator", {"asset_id": 1, "price": 100}))
    with pytest.raises(PriceMismatch):
        apply_tx_atomic(st, _env("ASSET_PURCHASE", "buyer", {"asset_id": 1}, value=101))
    assert st["assets"]["1"]["subscribers"] == ["creator"]


def test_repeat_purchases_append_duplicate_subscribers() -> None:
    st = _state_with_asset()
    apply_tx(st, _env("ASSET_LIST", "creator", {"asset_id": 1, "price": 10}))
    apply_tx(st, _env("ASSET_PURCHASE", "buyer", {"asset_id": 1}, value=10))
    apply_tx(st, _env("ASSET_PURCHASE", "buyer", {"asset_id": 1}, value=10))
    assert st["assets"]["1"]["subscribers"] == ["creator", "buyer", "buyer"]


def test_purchase_of_unlisted_asset_at_zero_has_no_settlement() -> None:
    st = _state_with_asset()
    out = apply_tx(st, _env("ASSET_PURCHASE", "buyer", {"asset_id": 1}, value=0))
    assert out["success"] is True
    assert out["settlements"] == []
    assert st["assets"]["1"]["owner"] == "creator"
