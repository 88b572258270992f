# src/marketledger/api/structured_logging.py
from __future__ import annotations

import logging
import os
import time
import uuid
from typing import Any, Dict, Optional

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response

from marketledger.api.routes_public_parts.common import ACCOUNT_HEADER
from marketledger.util.ledger_logging import log_event

Json = Dict[str, Any]

REQUEST_ID_HEADER = "x-request-id"

_LOGGED_HEADERS = ("user-agent", "content-type", "content-length", ACCOUNT_HEADER)
_FALSY = {"0", "false", "no", "n", "off"}


def _env_flag(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() not in _FALSY


class RequestLogMiddleware(BaseHTTPMiddleware):
    """One `http_request` log event per request, tagged with a request id.

    The id is taken from an incoming x-request-id header or generated, stored on
    request.state.request_id and echoed back on the response.

    MARKET_LOG_REQUESTS=0 disables logging (ids are still assigned);
    MARKET_LOG_REQUEST_HEADERS=1 adds a small header subset to each event.
    """

    def __init__(self, app) -> None:
        super().__init__(app)
        self._enabled = _env_flag("MARKET_LOG_REQUESTS", True)
        self._with_headers = _env_flag("MARKET_LOG_REQUEST_HEADERS", False)
        self._logger = logging.getLogger("marketledger.http")

    def _headers(self, request: Request) -> Json:
        return {k: request.headers[k] for k in _LOGGED_HEADERS if request.headers.get(k)}

    def _log(self, request: Request, request_id: str, started: float, status: int, error: Optional[str]) -> None:
        fields: Json = {
            "request_id": request_id,
            "method": request.method,
            "path": request.url.path,
            "status": status,
            "duration_ms": int((time.monotonic() - started) * 1000),
            "client": request.client.host if request.client else "",
        }
        if self._with_headers:
            fields["headers"] = self._headers(request)
        if error is not None:
            fields["error"] = error
        log_event(self._logger, "http_request", **fields)

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
        request.state.request_id = request_id
        started = time.monotonic()

        try:
            response = await call_next(request)
        except Exception as e:
            if self._enabled:
                self._log(request, request_id, started, 500, str(e))
            raise

        if self._enabled:
            self._log(request, request_id, started, response.status_code, None)
        response.headers.setdefault(REQUEST_ID_HEADER, request_id)
        return response
