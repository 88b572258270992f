from __future__ import annotations

"""Payment settlement collaborator.

Value transfer is outside the ledger: the executor hands each settlement
produced by an applier to a PaymentSink *after* all ledger effects are in
place. A sink may call back into the executor; it will observe the
post-effects state.
"""

import threading
from typing import Dict, Protocol, runtime_checkable

from marketledger.ledger.constants import UINT256_MAX


@runtime_checkable
class PaymentSink(Protocol):
    def transfer(self, to: str, amount: int) -> None:
        ...

    def balance_of(self, account: str) -> int:
        ...


class InMemoryPaymentSink:
    """Process-local balances. Payouts credit the receiving account."""

    def __init__(self, balances: Dict[str, int] | None = None) -> None:
        self._lock = threading.Lock()
        self._balances: Dict[str, int] = {str(k): int(v) for k, v in (balances or {}).items()}

    def transfer(self, to: str, amount: int) -> None:
        amt = int(amount)
        if amt < 0:
            raise ValueError(f"negative transfer amount: {amt}")
        if not str(to).strip():
            raise ValueError("transfer recipient must be non-empty")
        with self._lock:
            cur = self._balances.get(str(to), 0)
            if cur + amt > UINT256_MAX:
                raise OverflowError(f"balance overflow for {to!r}")
            self._balances[str(to)] = cur + amt

    def balance_of(self, account: str) -> int:
        with self._lock:
            return int(self._balances.get(str(account), 0))

    def balances(self) -> Dict[str, int]:
        with self._lock:
            return dict(self._balances)
