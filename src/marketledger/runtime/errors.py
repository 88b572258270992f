from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass
class ApplyError(Exception):
    """Canonical error type for domain apply and dispatch failures."""

    code: str
    reason: str
    details: Any | None = None

    def __str__(self) -> str:
        if self.details is None:
            return f"{self.code}:{self.reason}"
        return f"{self.code}:{self.reason}:{self.details}"


class _CodedError(ApplyError):
    """ApplyError whose code is fixed by the subclass."""

    CODE = "apply_error"

    def __init__(self, reason: str, details: Any | None = None) -> None:
        super().__init__(self.CODE, reason, details)


class Unauthorized(_CodedError):
    """Caller lacks the role the operation requires (e.g. not the owner)."""

    CODE = "unauthorized"


class NotFound(_CodedError):
    CODE = "not_found"


class PriceMismatch(_CodedError):
    """Attached payment differs from the listed price."""

    CODE = "price_mismatch"


class NotRenewable(_CodedError):
    CODE = "not_renewable"


class ArithmeticOverflow(_CodedError):
    CODE = "overflow"


class ArithmeticUnderflow(_CodedError):
    CODE = "underflow"


class AlreadyExists(_CodedError):
    CODE = "already_exists"


class InvalidPayload(_CodedError):
    CODE = "invalid_payload"


class SettlementFailed(_CodedError):
    """The payment collaborator refused a payout; the call was rolled back."""

    CODE = "settlement_failed"


__all__ = [
    "AlreadyExists",
    "ApplyError",
    "ArithmeticOverflow",
    "ArithmeticUnderflow",
    "InvalidPayload",
    "NotFound",
    "NotRenewable",
    "PriceMismatch",
    "SettlementFailed",
    "Unauthorized",
]
