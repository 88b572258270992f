from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Request

from marketledger.api.routes_public_parts.common import _caller, _executor, _run
from marketledger.api.schemas import SubscriptionRenewRequest

router = APIRouter()

Json = Dict[str, Any]


@router.get("/subscriptions/{asset_id}")
def subscription_get(asset_id: int, request: Request) -> Json:
    ex = _executor(request)
    return {"ok": True, "asset_id": asset_id, "expiration": ex.expires_at(asset_id)}


@router.post("/subscriptions/{asset_id}/renew")
def subscription_renew(asset_id: int, body: SubscriptionRenewRequest, request: Request) -> Json:
    ex = _executor(request)
    caller = _caller(request)
    expiration = _run(lambda: ex.renew(caller, asset_id, body.duration, body.now))
    return {"ok": True, "asset_id": asset_id, "expiration": expiration}


@router.post("/subscriptions/{asset_id}/cancel")
def subscription_cancel(asset_id: int, request: Request) -> Json:
    ex = _executor(request)
    caller = _caller(request)
    _run(lambda: ex.cancel_subscription(caller, asset_id))
    return {"ok": True, "asset_id": asset_id, "expiration": 0}
