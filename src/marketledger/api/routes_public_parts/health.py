from __future__ import annotations

import time
from typing import Any, Dict

from fastapi import APIRouter, Request

router = APIRouter()

Json = Dict[str, Any]


@router.get("/health")
def health(request: Request) -> Json:
    ex = getattr(request.app.state, "executor", None)
    out: Json = {"ok": True, "ts_ms": int(time.time() * 1000), "ready": ex is not None}
    if ex is not None:
        out["listed_count"] = ex.listed_count()
    return out
