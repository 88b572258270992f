from __future__ import annotations

import copy
import logging
import threading
from typing import Any, Dict, List, Optional, Tuple

from marketledger.ledger import query
from marketledger.ledger.state import ensure_state, new_state
from marketledger.ledger.state import escrow_account as escrow_account_of
from marketledger.ledger.types import Asset, Profile
from marketledger.runtime.domain_apply import apply_tx_staged
from marketledger.runtime.errors import ApplyError, SettlementFailed
from marketledger.runtime.events import EventBus, LedgerEvent
from marketledger.runtime.hooks import ApplyHooks, RenewalPolicy, always_renewable
from marketledger.runtime.ledger_config import LedgerConfig, load_ledger_config
from marketledger.runtime.payments import InMemoryPaymentSink, PaymentSink
from marketledger.runtime.sqlite_db import SqliteDB, SqliteLedgerStore
from marketledger.runtime.tx_admission import admit_tx
from marketledger.runtime.tx_admission_types import TxEnvelope
from marketledger.util.ledger_logging import log_event

Json = Dict[str, Any]

_log = logging.getLogger("marketledger.executor")


class ExecutorError(RuntimeError):
    pass


class MarketExecutor:
    """Single-writer ledger state machine.

    Each submit() runs to completion under one lock:
      admission -> apply on a copy (checks + effects) -> persist new state and
      receipt -> install it in memory -> settle payouts (interactions)
      -> publish notifications

    Payouts only run once the new state is durable, so a storage failure never
    leaves a payout behind. A payout that fails restores the pre-call state in
    memory and in the store, so the call either fully commits or leaves no
    trace. The lock is re-entrant: a payment sink that calls back into the
    executor sees the already-updated state. Nested calls are persisted as they
    run, published together with the outermost call, and rolled back with it.
    """

    def __init__(
        self,
        *,
        db_path: str = "",
        escrow_account: Optional[str] = None,
        payments: Optional[PaymentSink] = None,
        renewal_policy: Optional[RenewalPolicy] = None,
        events: Optional[EventBus] = None,
    ) -> None:
        self._lock = threading.RLock()
        self._depth = 0
        self._pending: List[Tuple[Json, Json]] = []
        self.payments: PaymentSink = payments if payments is not None else InMemoryPaymentSink()
        self.events = events if events is not None else EventBus()
        self.hooks = ApplyHooks(
            is_renewable=renewal_policy or always_renewable,
            balance_of=self.payments.balance_of,
        )

        self._store: Optional[SqliteLedgerStore] = None
        if str(db_path or "").strip():
            self._store = SqliteLedgerStore(db=SqliteDB(path=str(db_path)))

        if self._store is not None and self._store.exists():
            self.state = ensure_state(self._store.read())
            st_escrow = escrow_account_of(self.state)
            if escrow_account and st_escrow != escrow_account:
                raise ExecutorError(
                    f"escrow_account mismatch: db={st_escrow!r} executor={escrow_account!r}. Refuse to start."
                )
        else:
            self.state = new_state(escrow_account=escrow_account) if escrow_account else new_state()
            if self._store is not None:
                self._store.write(self.state)

    @classmethod
    def from_config(cls, cfg: Optional[LedgerConfig] = None, **kwargs: Any) -> "MarketExecutor":
        c = cfg or load_ledger_config()
        return cls(db_path=c.db_path, escrow_account=c.escrow_account, **kwargs)

    # ------------------------------------------------------------------
    # Core call path
    # ------------------------------------------------------------------

    def submit(self, tx: Any) -> Json:
        """Apply one call. Returns the applier's result or raises ApplyError."""
        verdict = admit_tx(tx)
        if not verdict.ok:
            log_event(_log, "tx_rejected", stage="admission", code=verdict.code, reason=verdict.reason)
            raise verdict.as_error()

        env = TxEnvelope.from_json(tx)
        with self._lock:
            outermost = self._depth == 0
            mark = len(self._pending)
            prior = self.state
            self._depth += 1
            try:
                try:
                    staged, result = apply_tx_staged(prior, env, hooks=self.hooks)
                except ApplyError as e:
                    log_event(
                        _log,
                        "tx_rejected",
                        stage="apply",
                        tx_type=env.tx_type,
                        signer=env.signer,
                        code=e.code,
                        reason=e.reason,
                    )
                    raise

                receipt = (env.to_json(), result)
                # durable before any payout; a failed write leaves nothing to undo
                seq = self._persist(staged, receipt)

                self.state = staged
                self._pending.append(receipt)
                try:
                    self._settle(env, result)
                except Exception:
                    self.state = prior
                    del self._pending[mark:]
                    self._revert(prior, seq)
                    raise

                committed: List[Tuple[Json, Json]] = []
                if outermost:
                    committed = list(self._pending)
                    self._pending.clear()
            finally:
                self._depth -= 1

        for envelope, res in committed:
            log_event(_log, "tx_applied", tx_type=envelope["tx_type"], signer=envelope["signer"])
            for ev in res.get("events", []) or []:
                self.events.publish(LedgerEvent.from_json(ev))
        return result

    def _persist(self, st: Json, receipt: Tuple[Json, Json]) -> int:
        if self._store is None:
            return 0
        return self._store.commit(st, [receipt])

    def _revert(self, st: Json, seq: int) -> None:
        """Put the store back to `st`, dropping receipt `seq` and everything after it.

        Receipts written by nested calls made during settlement are dropped too.
        """
        if self._store is None or seq <= 0:
            return
        self._store.revert(st, from_seq=seq)
        log_event(_log, "tx_reverted", from_seq=seq)

    def _settle(self, env: TxEnvelope, result: Json) -> None:
        for s in result.get("settlements", []) or []:
            to = str(s.get("to") or "")
            amount = int(s.get("amount", 0))
            try:
                self.payments.transfer(to, amount)
            except Exception as e:
                log_event(_log, "settlement_failed", tx_type=env.tx_type, to=to, amount=amount, error=str(e))
                raise SettlementFailed(
                    "payout_rejected", {"tx_type": env.tx_type, "to": to, "amount": amount, "error": str(e)}
                ) from e
            log_event(_log, "settlement", tx_type=env.tx_type, to=to, amount=amount)

    def read_state(self) -> Json:
        with self._lock:
            return copy.deepcopy(self.state)

    def recent_receipts(self, *, limit: int = 50, signer: Optional[str] = None) -> List[Json]:
        if self._store is None:
            return []
        return self._store.recent_receipts(limit=limit, signer=signer)

    # ------------------------------------------------------------------
    # Operation surface
    # ------------------------------------------------------------------

    def _call(self, tx_type: str, caller: str, payload: Json, value: int = 0) -> Json:
        return self.submit({"tx_type": tx_type, "signer": caller, "payload": payload, "value": value})

    def create_asset(self, caller: str, *, metadata_ref: str = "", title: str = "", description: str = "") -> int:
        out = self._call(
            "ASSET_CREATE", caller, {"metadata_ref": metadata_ref, "title": title, "description": description}
        )
        return int(out["asset_id"])

    def like(self, caller: str, asset_id: int) -> int:
        return int(self._call("ASSET_LIKE", caller, {"asset_id": asset_id})["likes"])

    def dislike(self, caller: str, asset_id: int) -> int:
        return int(self._call("ASSET_DISLIKE", caller, {"asset_id": asset_id})["likes"])

    def list_for_sale(self, caller: str, asset_id: int, price: int) -> int:
        return int(self._call("ASSET_LIST", caller, {"asset_id": asset_id, "price": price})["listed_count"])

    def purchase(self, caller: str, asset_id: int, payment: int) -> bool:
        return bool(self._call("ASSET_PURCHASE", caller, {"asset_id": asset_id}, value=payment)["success"])

    def renew(self, caller: str, asset_id: int, duration: int, now: int) -> int:
        out = self._call("SUBSCRIPTION_RENEW", caller, {"asset_id": asset_id, "duration": duration, "now": now})
        return int(out["expiration"])

    def cancel_subscription(self, caller: str, asset_id: int) -> None:
        self._call("SUBSCRIPTION_CANCEL", caller, {"asset_id": asset_id})

    def register(self, caller: str) -> tuple[int, int]:
        out = self._call("PROFILE_REGISTER", caller, {})
        return int(out["user_id"]), int(out["balance"])

    def follow(self, caller: str, target: str) -> None:
        self._call("FOLLOW", caller, {"target": target})

    def unfollow(self, caller: str, target: str) -> None:
        self._call("UNFOLLOW", caller, {"target": target})

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_asset(self, asset_id: int) -> Asset:
        with self._lock:
            return query.get_asset(self.state, asset_id)

    def expires_at(self, asset_id: int) -> int:
        with self._lock:
            return query.subscription_expiration(self.state, asset_id)

    def for_sale(self) -> List[Asset]:
        with self._lock:
            return query.for_sale(self.state)

    def subscribed_by(self, caller: str) -> List[Asset]:
        with self._lock:
            return query.subscribed_by(self.state, caller)

    def owned_by(self, caller: str) -> List[Asset]:
        with self._lock:
            return query.owned_by(self.state, caller)

    def get_by_id(self, asset_id: int) -> List[Asset]:
        with self._lock:
            return query.get_by_id(self.state, asset_id)

    def get_profile(self, account: str) -> Optional[Profile]:
        with self._lock:
            return query.get_profile(self.state, account)

    def get_profile_by_id(self, user_id: int) -> Optional[Profile]:
        with self._lock:
            return query.get_profile_by_id(self.state, user_id)

    def listed_count(self) -> int:
        with self._lock:
            return query.listed_count(self.state)
