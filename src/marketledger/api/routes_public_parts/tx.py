from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Query, Request

from marketledger.api.routes_public_parts.common import _caller, _executor, _run
from marketledger.api.schemas import TxSubmitRequest

router = APIRouter()

Json = Dict[str, Any]


@router.post("/tx")
def tx_submit(body: TxSubmitRequest, request: Request) -> Json:
    """Submit a raw call envelope.

    The signer is always the authenticated caller; a body cannot name another
    account. Returns the applier's result.
    """
    ex = _executor(request)
    env = {"tx_type": body.tx_type, "signer": _caller(request), "payload": body.payload, "value": body.value}
    result = _run(lambda: ex.submit(env))
    return {"ok": True, "result": result}


@router.get("/tx/receipts")
def tx_receipts(request: Request, limit: int = Query(default=50, ge=1, le=1000), mine: bool = False) -> Json:
    ex = _executor(request)
    signer = _caller(request) if mine else None
    return {"ok": True, "receipts": ex.recent_receipts(limit=limit, signer=signer)}
