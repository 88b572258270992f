from __future__ import annotations

"""Transaction payload schemas.

Strict shape checks run at admission, before apply:
- unknown keys are rejected
- ids, prices, durations and timestamps must be real ints in the unsigned
  256-bit range (no bools, no numeric strings)

Apply-layer code still enforces semantics (existence, ownership, price match).
"""

from typing import Any, Dict, Optional, Tuple, Type

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from marketledger.ledger.constants import UINT256_MAX

Json = Dict[str, Any]


class _StrictModel(BaseModel):
    """Strict model: reject unknown keys and type coercion."""

    model_config = ConfigDict(extra="forbid", strict=True)


class _AssetRefPayload(_StrictModel):
    asset_id: int = Field(..., ge=0, le=UINT256_MAX)


class AssetCreatePayload(_StrictModel):
    metadata_ref: str = ""
    title: str = ""
    description: str = ""


class AssetLikePayload(_AssetRefPayload):
    pass


class AssetDislikePayload(_AssetRefPayload):
    pass


class AssetListPayload(_AssetRefPayload):
    price: int = Field(..., ge=1, le=UINT256_MAX)


class AssetPurchasePayload(_AssetRefPayload):
    pass


class SubscriptionRenewPayload(_AssetRefPayload):
    duration: int = Field(..., ge=0, le=UINT256_MAX)
    now: int = Field(..., ge=0, le=UINT256_MAX)


class SubscriptionCancelPayload(_AssetRefPayload):
    pass


class ProfileRegisterPayload(_StrictModel):
    pass


class FollowPayload(_StrictModel):
    target: str = Field(..., min_length=1)


class UnfollowPayload(_StrictModel):
    target: str = Field(..., min_length=1)


Schema = Type[BaseModel]

_SCHEMA_BY_TX_TYPE: Dict[str, Schema] = {
    "ASSET_CREATE": AssetCreatePayload,
    "ASSET_LIKE": AssetLikePayload,
    "ASSET_DISLIKE": AssetDislikePayload,
    "ASSET_LIST": AssetListPayload,
    "ASSET_PURCHASE": AssetPurchasePayload,
    "SUBSCRIPTION_RENEW": SubscriptionRenewPayload,
    "SUBSCRIPTION_CANCEL": SubscriptionCancelPayload,
    "PROFILE_REGISTER": ProfileRegisterPayload,
    "FOLLOW": FollowPayload,
    "UNFOLLOW": UnfollowPayload,
}


def _schema_for(tx_type: str) -> Optional[Schema]:
    return _SCHEMA_BY_TX_TYPE.get(str(tx_type or "").strip().upper())


def validate_payload(*, tx_type: str, payload: Any) -> Tuple[bool, str, str, Optional[Json]]:
    """Validate payload against the tx type's schema.

    Returns: (ok, code, reason, details)
    """
    sch = _schema_for(tx_type)
    if sch is None:
        return False, "schema:unknown_tx_type", "no_schema_for_tx_type", {"tx_type": tx_type}

    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        return False, "schema:payload_not_object", "payload_must_be_object", None

    try:
        sch.model_validate(payload)
    except ValidationError as ve:
        errors = [
            {"loc": [str(p) for p in e.get("loc", ())], "type": str(e.get("type", "")), "msg": str(e.get("msg", ""))}
            for e in ve.errors(include_url=False)
        ]
        return False, "schema:validation_error", "payload_schema_mismatch", {"errors": errors}
    return True, "", "", None
