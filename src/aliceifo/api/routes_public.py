# src/aliceifo/api/routes_public.py
from __future__ import annotations

from fastapi import APIRouter

from aliceifo.api.routes_public_parts.admin import router as admin_router
from aliceifo.api.routes_public_parts.claims import router as claims_router
from aliceifo.api.routes_public_parts.fund import router as fund_router
from aliceifo.api.routes_public_parts.health import router as health_router
from aliceifo.api.routes_public_parts.ifo import router as ifo_router
from aliceifo.api.routes_public_parts.metrics import router as metrics_router
from aliceifo.api.routes_public_parts.records import router as records_router

public_router = APIRouter()

public_router.include_router(health_router, prefix="/v1", tags=["health"])
public_router.include_router(ifo_router, prefix="/v1", tags=["ifo"])
public_router.include_router(records_router, prefix="/v1", tags=["records"])
public_router.include_router(claims_router, prefix="/v1", tags=["claims"])
public_router.include_router(fund_router, prefix="/v1", tags=["fund"])

# Operator (admin token)
public_router.include_router(admin_router, prefix="/v1/admin", tags=["admin"])

# Ops
public_router.include_router(metrics_router, prefix="/v1", tags=["metrics"])
