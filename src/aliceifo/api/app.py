from __future__ import annotations

import os
from typing import List

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from aliceifo.api.errors import ApiError, from_claim_error, from_ledger_error
from aliceifo.api.routes_public import public_router
from aliceifo.api.structured_logging import RequestLogMiddleware
from aliceifo.runtime.engine_boot import build_engine as _build_engine
from aliceifo.fund.locked import LockedFundError
from aliceifo.fund.reserve import FundError
from aliceifo.fund.token import TokenError
from aliceifo.ledger.timelock import TimeLockError
from aliceifo.runtime.errors import ClaimError


def build_engine():
    """Build the ClaimEngine for API runtime.

    This wrapper exists so tests can monkeypatch `aliceifo.api.app.build_engine`
    without reaching into runtime modules.
    """
    return _build_engine()


def _parse_cors_origins() -> List[str]:
    """Parse CORS origins.

    Policy:
      - If ALICEIFO_CORS_ORIGINS is unset/empty -> CORS disabled
      - Wildcard "*" is rejected in ALICEIFO_MODE=prod
    """
    raw = os.environ.get("ALICEIFO_CORS_ORIGINS", "").strip()
    mode = os.environ.get("ALICEIFO_MODE", "prod").strip().lower()

    if not raw:
        return []

    origins = [o.strip() for o in raw.split(",") if o.strip()]

    if "*" in origins:
        if mode == "prod":
            raise RuntimeError(
                "Unsafe CORS configuration: wildcard '*' not allowed in production. "
                "Set explicit origins in ALICEIFO_CORS_ORIGINS."
            )
        return ["*"]

    return origins


async def _api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=exc.to_json())


async def _claim_error_handler(request: Request, exc: ClaimError) -> JSONResponse:
    err = from_claim_error(exc)
    return JSONResponse(status_code=err.status_code, content=err.to_json())


async def _ledger_error_handler(request: Request, exc: Exception) -> JSONResponse:
    err = from_ledger_error(exc)
    return JSONResponse(status_code=err.status_code, content=err.to_json())


def create_app(*, boot_runtime: bool = True) -> FastAPI:
    """Create the FastAPI application.

    boot_runtime:
      - True (default): load IFO config, open the SQLite ledger and attach
        app.state.engine via build_engine()
      - False: no engine; routes answer 500 not_ready, /v1/health reports ready=false
    """
    mode = os.environ.get("ALICEIFO_MODE", "prod").strip().lower()

    # Disable docs in production.
    if mode == "prod":
        app = FastAPI(title="AliceIFO Claim API", docs_url=None, redoc_url=None, openapi_url=None)
    else:
        app = FastAPI(title="AliceIFO Claim API")

    app.state.mode = mode
    app.state.engine = build_engine() if boot_runtime else None

    # --- Middleware ---
    app.add_middleware(RequestLogMiddleware)

    cors_origins = _parse_cors_origins()
    if cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=cors_origins,
            allow_credentials=cors_origins != ["*"],
            allow_methods=["GET", "POST", "OPTIONS"],
            allow_headers=["Content-Type"],
        )

    # --- Errors ---
    app.add_exception_handler(ApiError, _api_error_handler)
    app.add_exception_handler(ClaimError, _claim_error_handler)
    for exc_type in (TokenError, FundError, LockedFundError, TimeLockError):
        app.add_exception_handler(exc_type, _ledger_error_handler)

    # --- Routers ---
    app.include_router(public_router)

    return app
