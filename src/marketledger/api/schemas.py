from __future__ import annotations

"""Pydantic request schemas for the public API.

The canonical tx payload schemas live in runtime.tx_schema; these exist only
for HTTP input validation.
"""

from typing import Any, Dict

from pydantic import BaseModel, Field

from marketledger.ledger.constants import UINT256_MAX


class AssetCreateRequest(BaseModel):
    metadata_ref: str = Field(default="", description="Opaque metadata reference (e.g. token URI)")
    title: str = Field(default="")
    description: str = Field(default="")


class AssetListRequest(BaseModel):
    price: int = Field(..., ge=1, le=UINT256_MAX, description="Sale price; must be > 0")


class AssetPurchaseRequest(BaseModel):
    payment: int = Field(..., strict=True, ge=0, le=UINT256_MAX, description="Attached payment; must equal the price")


class SubscriptionRenewRequest(BaseModel):
    duration: int = Field(..., ge=0, le=UINT256_MAX)
    now: int = Field(..., ge=0, le=UINT256_MAX, description="Caller's current timestamp")


class FollowRequest(BaseModel):
    target: str = Field(..., min_length=1, description="Account to (un)follow")


class TxSubmitRequest(BaseModel):
    tx_type: str
    payload: Dict[str, Any] = Field(default_factory=dict)
    value: int = Field(default=0, strict=True, ge=0, le=UINT256_MAX)
