# tests/test_executor.py
from __future__ import annotations

from typing import List

import pytest

from marketledger.runtime.errors import ApplyError, PriceMismatch, SettlementFailed
from marketledger.runtime.events import LedgerEvent
from marketledger.runtime.executor import MarketExecutor
from marketledger.runtime.payments import InMemoryPaymentSink, PaymentSink

ESCROW = "ESCROW"


def _listed(ex: MarketExecutor, price: int = 100) -> int:
    aid = ex.create_asset("creator", title="Ticket")
    ex.list_for_sale("creator", aid, price)
    return aid


def test_purchase_pays_seller_exact_price() -> None:
    sink = InMemoryPaymentSink()
    ex = MarketExecutor(escrow_account=ESCROW, payments=sink)
    aid = _listed(ex)
    assert aid == 1

    assert ex.purchase("buyer", aid, 100) is True
    assert sink.balance_of("creator") == 100
    assert ex.get_asset(aid).subscribers == ("creator", "buyer")
    assert [a.asset_id for a in ex.for_sale()] == [1]

    with pytest.raises(PriceMismatch):
        ex.purchase("buyer2", aid, 99)
    assert sink.balance_of("creator") == 100
    assert ex.get_asset(aid).subscribers == ("creator", "buyer")


def test_admission_rejection_raises_apply_error() -> None:
    ex = MarketExecutor()
    with pytest.raises(ApplyError) as e:
        ex.submit({"tx_type": "ASSET_LIKE", "signer": "alice", "payload": {"asset_id": 1}, "value": 5})
    assert e.value.code == "invalid_tx"
    assert ex.read_state()["assets"] == {}


class _FailingSink:
    def transfer(self, to: str, amount: int) -> None:
        raise RuntimeError("bank offline")

    def balance_of(self, account: str) -> int:
        return 0


def test_failed_settlement_rolls_back_purchase() -> None:
    ex = MarketExecutor(escrow_account=ESCROW, payments=_FailingSink())
    aid = _listed(ex)
    before = ex.read_state()

    with pytest.raises(SettlementFailed) as e:
        ex.purchase("buyer", aid, 100)
    assert e.value.code == "settlement_failed"
    assert e.value.details["to"] == "creator"
    assert ex.read_state() == before


class _ReentrantSink:
    """Calls back into the executor while being paid."""

    def __init__(self) -> None:
        self.ex: MarketExecutor | None = None
        self.seen: List[tuple] = []
        self.balances = InMemoryPaymentSink()

    def transfer(self, to: str, amount: int) -> None:
        assert self.ex is not None
        self.seen.append(self.ex.get_asset(1).subscribers)
        self.ex.like(to, 1)
        self.balances.transfer(to, amount)

    def balance_of(self, account: str) -> int:
        return self.balances.balance_of(account)


def test_reentrant_sink_observes_effects() -> None:
    sink = _ReentrantSink()
    ex = MarketExecutor(escrow_account=ESCROW, payments=sink)
    sink.ex = ex
    aid = _listed(ex)

    ex.purchase("buyer", aid, 100)
    assert sink.seen == [("creator", "buyer")]
    assert ex.get_asset(aid).likes == 2
    assert ex.register("creator") == (1, 100)


def test_nested_call_is_rolled_back_with_outer_failure() -> None:
    class _LikeThenFail(_ReentrantSink):
        def transfer(self, to: str, amount: int) -> None:
            assert self.ex is not None
            self.ex.like(to, 1)
            raise RuntimeError("declined")

    sink = _LikeThenFail()
    ex = MarketExecutor(escrow_account=ESCROW, payments=sink)
    sink.ex = ex
    aid = _listed(ex)

    with pytest.raises(SettlementFailed):
        ex.purchase("buyer", aid, 100)
    assert ex.get_asset(aid).likes == 1


def test_notifications_published_after_commit() -> None:
    ex = MarketExecutor()
    got: List[LedgerEvent] = []
    unsubscribe = ex.events.subscribe(got.append)

    aid = ex.create_asset("alice", title="Pass", description="monthly")
    ex.renew("alice", aid, 1000, 5)
    ex.cancel_subscription("alice", aid)

    assert [e.name for e in got] == ["AssetCreated", "SubscriptionUpdate", "SubscriptionUpdate"]
    assert got[0].fields["title"] == "Pass"
    assert got[0].fields["likes"] == 1
    assert got[1].fields == {"asset_id": aid, "expiration": 1005}
    assert got[2].fields == {"asset_id": aid, "expiration": 0}

    unsubscribe()
    ex.like("bob", aid)
    assert len(got) == 3


def test_rejected_call_publishes_nothing() -> None:
    ex = MarketExecutor()
    got: List[LedgerEvent] = []
    ex.events.subscribe(got.append)
    with pytest.raises(ApplyError):
        ex.renew("alice", 1, 10, 0)
    assert got == []


def test_failing_listener_does_not_undo_call() -> None:
    ex = MarketExecutor()

    def _boom(ev: LedgerEvent) -> None:
        raise RuntimeError("listener down")

    ex.events.subscribe(_boom)
    aid = ex.create_asset("alice")
    assert ex.get_asset(aid).owner == "alice"
    assert ex.events.recent(1)[0].name == "AssetCreated"


def test_renewal_policy_is_injectable() -> None:
    ex = MarketExecutor(renewal_policy=lambda state, asset_id: False)
    aid = ex.create_asset("alice")
    assert ex.renew("alice", aid, 10, 100) == 110
    with pytest.raises(ApplyError) as e:
        ex.renew("alice", aid, 10, 100)
    assert e.value.code == "not_renewable"
    assert ex.expires_at(aid) == 110


def test_register_and_follow_through_executor() -> None:
    ex = MarketExecutor(payments=InMemoryPaymentSink({"alice": 5}))
    assert ex.register("alice") == (1, 5)
    assert ex.register("bob") == (2, 0)
    ex.follow("alice", "bob")
    assert ex.get_profile("bob").followers == ("alice",)
    ex.unfollow("alice", "bob")
    assert ex.get_profile("bob").followers == ()


def test_in_memory_sink_satisfies_protocol() -> None:
    assert isinstance(InMemoryPaymentSink(), PaymentSink)
    with pytest.raises(ValueError):
        InMemoryPaymentSink().transfer("", 1)


@pytest.mark.parametrize("payment", [100.9, 100.0, True, "100"])
def test_non_integer_payment_is_rejected(payment: object) -> None:
    sink = InMemoryPaymentSink()
    ex = MarketExecutor(escrow_account=ESCROW, payments=sink)
    aid = _listed(ex, price=1 if payment is True else 100)

    with pytest.raises(ApplyError) as e:
        ex.purchase("buyer", aid, payment)  # type: ignore[arg-type]
    assert e.value.code == "invalid_tx"
    assert e.value.reason == "malformed_envelope"
    assert sink.balance_of("creator") == 0
    assert ex.get_asset(aid).subscribers == ("creator",)
