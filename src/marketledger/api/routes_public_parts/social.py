from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Request

from marketledger.api.errors import ApiError
from marketledger.api.routes_public_parts.common import _caller, _executor, _run
from marketledger.api.schemas import FollowRequest

router = APIRouter()

Json = Dict[str, Any]


@router.post("/social/register")
def social_register(request: Request) -> Json:
    ex = _executor(request)
    caller = _caller(request)
    user_id, balance = _run(lambda: ex.register(caller))
    return {"ok": True, "user_id": user_id, "balance": balance}


@router.post("/social/follow")
def social_follow(body: FollowRequest, request: Request) -> Json:
    ex = _executor(request)
    caller = _caller(request)
    _run(lambda: ex.follow(caller, body.target))
    return {"ok": True, "from": caller, "to": body.target}


@router.post("/social/unfollow")
def social_unfollow(body: FollowRequest, request: Request) -> Json:
    ex = _executor(request)
    caller = _caller(request)
    _run(lambda: ex.unfollow(caller, body.target))
    return {"ok": True, "from": caller, "to": body.target}


@router.get("/social/{account}")
def social_profile(account: str, request: Request) -> Json:
    ex = _executor(request)
    prof = ex.get_profile(account)
    if prof is None:
        raise ApiError.not_found("not_found", "profile_not_found", {"account": account})
    return {"ok": True, "profile": prof.to_json()}
