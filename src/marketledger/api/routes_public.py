# src/marketledger/api/routes_public.py
from __future__ import annotations

from fastapi import APIRouter

from marketledger.api.routes_public_parts.assets import router as assets_router
from marketledger.api.routes_public_parts.health import router as health_router
from marketledger.api.routes_public_parts.social import router as social_router
from marketledger.api.routes_public_parts.subscriptions import router as subscriptions_router
from marketledger.api.routes_public_parts.tx import router as tx_router

public_router = APIRouter()

public_router.include_router(health_router, prefix="/v1", tags=["health"])
public_router.include_router(tx_router, prefix="/v1", tags=["tx"])
public_router.include_router(assets_router, prefix="/v1", tags=["assets"])
public_router.include_router(subscriptions_router, prefix="/v1", tags=["subscriptions"])
public_router.include_router(social_router, prefix="/v1", tags=["social"])
