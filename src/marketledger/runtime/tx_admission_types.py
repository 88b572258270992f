# src/marketledger/runtime/tx_admission_types.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional

from marketledger.runtime.errors import ApplyError

Json = Dict[str, Any]


@dataclass(frozen=True)
class TxVerdict:
    """Admission outcome. Rejections keep the code/reason an ApplyError would carry."""

    ok: bool
    code: str = "ok"
    reason: str = "admitted"
    details: Optional[Json] = None

    @classmethod
    def admit(cls) -> "TxVerdict":
        return cls(True)

    @classmethod
    def reject(cls, code: str, reason: str, details: Optional[Json] = None) -> "TxVerdict":
        return cls(False, code, reason, details)

    def as_error(self) -> ApplyError:
        if self.ok:
            raise ValueError("admitted verdict has no error")
        return ApplyError(self.code, self.reason, self.details)


def _text(v: Any) -> str:
    return "" if v is None else str(v).strip()


def _amount(v: Any) -> int:
    # exact-price checks need a real int: no floats, numeric strings or bools
    if v is None:
        return 0
    if isinstance(v, bool) or not isinstance(v, int):
        raise ValueError(f"value must be an integer, got {type(v).__name__}")
    return v


@dataclass(frozen=True)
class TxEnvelope:
    """A single ledger call.

    signer: the calling account, authenticated by the hosting environment.
    value:  amount attached to the call (the payment for ASSET_PURCHASE).
    system: set only by internal callers; admission refuses it from outside.
    """

    tx_type: str
    signer: str
    payload: Json = field(default_factory=dict)
    value: int = 0
    system: bool = False

    @classmethod
    def from_json(cls, j: Any) -> "TxEnvelope":
        if isinstance(j, TxEnvelope):
            return j
        if not isinstance(j, Mapping):
            raise TypeError(f"tx envelope must be a mapping, got {type(j).__name__}")
        return cls(
            tx_type=_text(j.get("tx_type")).upper(),
            signer=_text(j.get("signer")),
            payload=dict(j.get("payload") or {}),
            value=_amount(j.get("value")),
            system=bool(j.get("system", False)),
        )

    def to_json(self) -> Json:
        return {
            "tx_type": self.tx_type,
            "signer": self.signer,
            "payload": dict(self.payload),
            "value": self.value,
            "system": self.system,
        }
