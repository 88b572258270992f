from __future__ import annotations

from typing import Any, Callable, Dict, List, TypeVar

from fastapi import Request

from marketledger.api.errors import ApiError
from marketledger.ledger.types import Asset
from marketledger.runtime.errors import ApplyError

Json = Dict[str, Any]

T = TypeVar("T")

ACCOUNT_HEADER = "x-market-account"


def _executor(request: Request):
    ex = getattr(request.app.state, "executor", None)
    if ex is None:
        raise ApiError.internal("not_ready", "executor not attached to app.state", {})
    return ex


def _caller(request: Request) -> str:
    """Calling account, as authenticated by the hosting environment."""
    acct = (request.headers.get(ACCOUNT_HEADER) or "").strip()
    if not acct:
        raise ApiError.unauthorized("account_missing", f"{ACCOUNT_HEADER} header is required", {})
    return acct


def _run(fn: Callable[[], T]) -> T:
    """Run a ledger call, translating ApplyError into ApiError."""
    try:
        return fn()
    except ApplyError as e:
        raise ApiError.from_apply_error(e) from e


def _assets_json(items: List[Asset]) -> List[Json]:
    return [a.to_json() for a in items]
