# tests/test_apply_assets.py
from __future__ import annotations

import pytest

from marketledger.ledger.constants import UINT256_MAX
from marketledger.ledger.state import new_state
from marketledger.runtime.domain_apply import apply_tx, apply_tx_atomic
from marketledger.runtime.errors import ArithmeticOverflow, ArithmeticUnderflow, InvalidPayload, NotFound
from marketledger.runtime.tx_admission_types import TxEnvelope


def _env(tx_type: str, signer: str, payload: dict, value: int = 0) -> TxEnvelope:
    return TxEnvelope(tx_type=tx_type, signer=signer, payload=payload, value=value)


def _mint(st: dict, signer: str = "alice", title: str = "Ticket") -> int:
    out = apply_tx(st, _env("ASSET_CREATE", signer, {"metadata_ref": "ipfs://x", "title": title, "description": "d"}))
    return int(out["asset_id"])


def test_create_assigns_sequential_ids_and_defaults() -> None:
    st = new_state()
    a = _mint(st, "alice")
    b = _mint(st, "bob", title="Pass")
    assert (a, b) == (1, 2)

    rec = st["assets"]["1"]
    assert rec["seller"] == "alice"
    assert rec["owner"] == "alice"
    assert rec["price"] == 0
    assert rec["subscribers"] == ["alice"]
    assert rec["likes"] == 1
    assert rec["title"] == "Ticket"
    assert rec["metadata_ref"] == "ipfs://x"
    assert st["counters"]["asset_id"] == 2


def test_create_emits_asset_created_notification() -> None:
    st = new_state()
    out = apply_tx(st, _env("ASSET_CREATE", "alice", {"title": "Ticket"}))
    assert out["applied"] == "ASSET_CREATE"
    (ev,) = out["events"]
    assert ev["event"] == "AssetCreated"
    assert ev["asset_id"] == 1
    assert ev["seller"] == "alice"
    assert ev["owner"] == "alice"
    assert ev["price"] == 0
    assert ev["subscribers"] == ["alice"]
    assert ev["likes"] == 1
    assert ev["title"] == "Ticket"


def test_asset_id_counter_overflow_fails_instead_of_wrapping() -> None:
    st = new_state()
    st["counters"]["asset_id"] = UINT256_MAX
    with pytest.raises(ArithmeticOverflow):
        apply_tx_atomic(st, _env("ASSET_CREATE", "alice", {}))
    assert st["assets"] == {}
    assert st["counters"]["asset_id"] == UINT256_MAX


def test_like_and_dislike_adjust_counter() -> None:
    st = new_state()
    aid = _mint(st)
    assert apply_tx(st, _env("ASSET_LIKE", "bob", {"asset_id": aid}))["likes"] == 2
    assert apply_tx(st, _env("ASSET_DISLIKE", "bob", {"asset_id": aid}))["likes"] == 1
    assert apply_tx(st, _env("ASSET_DISLIKE", "carol", {"asset_id": aid}))["likes"] == 0


def test_dislike_at_zero_underflows_and_leaves_state() -> None:
    st = new_state()
    aid = _mint(st)
    apply_tx(st, _env("ASSET_DISLIKE", "alice", {"asset_id": aid}))
    assert st["assets"]["1"]["likes"] == 0

    with pytest.raises(ArithmeticUnderflow) as e:
        apply_tx_atomic(st, _env("ASSET_DISLIKE", "alice", {"asset_id": aid}))
    assert e.value.code == "underflow"
    assert st["assets"]["1"]["likes"] == 0


def test_like_unknown_asset_is_not_found() -> None:
    st = new_state()
    with pytest.raises(NotFound) as e:
        apply_tx(st, _env("ASSET_LIKE", "alice", {"asset_id": 7}))
    assert e.value.code == "not_found"
    assert e.value.details == {"asset_id": 7}


def test_like_rejects_non_int_asset_id() -> None:
    st = new_state()
    _mint(st)
    with pytest.raises(InvalidPayload):
        apply_tx(st, _env("ASSET_LIKE", "alice", {"asset_id": "1"}))
    with pytest.raises(InvalidPayload):
        apply_tx(st, _env("ASSET_LIKE", "alice", {"asset_id": True}))
