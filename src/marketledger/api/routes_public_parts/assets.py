from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Request

from marketledger.api.routes_public_parts.common import _assets_json, _caller, _executor, _run
from marketledger.api.schemas import AssetCreateRequest, AssetListRequest, AssetPurchaseRequest

router = APIRouter()

Json = Dict[str, Any]


# Static paths first: /assets/{asset_id} would otherwise capture them.


@router.get("/assets/for-sale")
def assets_for_sale(request: Request) -> Json:
    ex = _executor(request)
    return {"ok": True, "assets": _assets_json(ex.for_sale())}


@router.get("/assets/owned")
def assets_owned(request: Request) -> Json:
    ex = _executor(request)
    return {"ok": True, "assets": _assets_json(ex.owned_by(_caller(request)))}


@router.get("/assets/subscribed")
def assets_subscribed(request: Request) -> Json:
    ex = _executor(request)
    return {"ok": True, "assets": _assets_json(ex.subscribed_by(_caller(request)))}


@router.post("/assets")
def asset_create(body: AssetCreateRequest, request: Request) -> Json:
    ex = _executor(request)
    caller = _caller(request)
    asset_id = _run(
        lambda: ex.create_asset(
            caller, metadata_ref=body.metadata_ref, title=body.title, description=body.description
        )
    )
    return {"ok": True, "asset_id": asset_id}


@router.get("/assets/{asset_id}")
def asset_get(asset_id: int, request: Request) -> Json:
    ex = _executor(request)
    asset = _run(lambda: ex.get_asset(asset_id))
    return {"ok": True, "asset": asset.to_json()}


@router.post("/assets/{asset_id}/like")
def asset_like(asset_id: int, request: Request) -> Json:
    ex = _executor(request)
    caller = _caller(request)
    likes = _run(lambda: ex.like(caller, asset_id))
    return {"ok": True, "asset_id": asset_id, "likes": likes}


@router.post("/assets/{asset_id}/dislike")
def asset_dislike(asset_id: int, request: Request) -> Json:
    ex = _executor(request)
    caller = _caller(request)
    likes = _run(lambda: ex.dislike(caller, asset_id))
    return {"ok": True, "asset_id": asset_id, "likes": likes}


@router.post("/assets/{asset_id}/list")
def asset_list(asset_id: int, body: AssetListRequest, request: Request) -> Json:
    ex = _executor(request)
    caller = _caller(request)
    listed = _run(lambda: ex.list_for_sale(caller, asset_id, body.price))
    return {"ok": True, "asset_id": asset_id, "listed_count": listed}


@router.post("/assets/{asset_id}/purchase")
def asset_purchase(asset_id: int, body: AssetPurchaseRequest, request: Request) -> Json:
    ex = _executor(request)
    caller = _caller(request)
    success = _run(lambda: ex.purchase(caller, asset_id, body.payment))
    return {"ok": True, "asset_id": asset_id, "success": success}
