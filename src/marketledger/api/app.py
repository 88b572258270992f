from __future__ import annotations

from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from marketledger.api.errors import ApiError
from marketledger.api.routes_public import public_router
from marketledger.api.structured_logging import RequestLogMiddleware
from marketledger.runtime.executor import MarketExecutor
from marketledger.runtime.ledger_config import LedgerConfig, load_ledger_config
from marketledger.util.ledger_logging import configure_structured_logging


def build_executor(cfg: LedgerConfig) -> MarketExecutor:
    """Build the executor for API runtime.

    Kept as a module-level seam so tests can monkeypatch it.
    """
    return MarketExecutor.from_config(cfg)


def create_app(*, cfg: Optional[LedgerConfig] = None, executor: Optional[MarketExecutor] = None) -> FastAPI:
    """Create the FastAPI application.

    executor:
      - given: attached as-is (tests, embedding)
      - None: built from cfg (or the environment-loaded config)
    """
    c = cfg or load_ledger_config()
    configure_structured_logging(c.log_level)

    if c.mode == "prod":
        app = FastAPI(title="Market Ledger API", docs_url=None, redoc_url=None, openapi_url=None)
    else:
        app = FastAPI(title="Market Ledger API")

    app.state.cfg = c
    app.state.executor = executor if executor is not None else build_executor(c)

    @app.exception_handler(ApiError)
    async def _api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
        return JSONResponse(status_code=exc.status_code, content=exc.to_json())

    app.add_middleware(RequestLogMiddleware)

    if c.cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=list(c.cors_origins),
            allow_credentials="*" not in c.cors_origins,
            allow_methods=["GET", "POST", "OPTIONS"],
            allow_headers=["Content-Type", "X-Market-Account"],
        )

    app.include_router(public_router)
    return app
