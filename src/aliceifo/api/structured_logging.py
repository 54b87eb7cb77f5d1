# src/aliceifo/api/structured_logging.py
from __future__ import annotations

import logging
import os
import sys
import time
import uuid
from typing import Any, Dict, Optional

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from aliceifo.runtime.runtime_logging import log_event

Json = Dict[str, Any]

_OFF = {"0", "false", "no", "n", "off"}
_ON = {"1", "true", "yes", "y", "on"}

_LOGGED_HEADERS = ("user-agent", "content-type", "content-length", "x-forwarded-for")

_handler: Optional[logging.Handler] = None


def configure_structured_logging(level_name: Optional[str] = None) -> None:
    """Send every log record to stdout as its bare message (JSON lines from log_event).

    Level: argument, else ALICEIFO_LOG_LEVEL, else INFO. Repeated calls only
    change the level.
    """
    global _handler
    name = (level_name or os.environ.get("ALICEIFO_LOG_LEVEL") or "INFO").strip().upper()
    level = logging.getLevelName(name)
    if not isinstance(level, int):
        level = logging.INFO

    root = logging.getLogger()
    if _handler is None:
        _handler = logging.StreamHandler(sys.stdout)
        _handler.setFormatter(logging.Formatter("%(message)s"))
        root.handlers = [_handler]
    _handler.setLevel(level)
    root.setLevel(level)


class RequestLogMiddleware(BaseHTTPMiddleware):
    """One `http_request` event per request, tagged with an x-request-id.

    ALICEIFO_LOG_REQUESTS=0 disables it; ALICEIFO_LOG_REQUEST_HEADERS=1 adds
    a few request headers to the event.
    """

    def __init__(self, app) -> None:
        super().__init__(app)
        self._enabled = (os.environ.get("ALICEIFO_LOG_REQUESTS") or "1").strip().lower() not in _OFF
        self._with_headers = (os.environ.get("ALICEIFO_LOG_REQUEST_HEADERS") or "").strip().lower() in _ON
        self._logger = logging.getLogger("aliceifo.http")

    def _headers(self, request: Request) -> Json:
        if not self._with_headers:
            return {}
        return {k: request.headers[k] for k in _LOGGED_HEADERS if request.headers.get(k)}

    async def dispatch(self, request: Request, call_next):
        if not self._enabled:
            return await call_next(request)

        request_id = request.headers.get("x-request-id") or uuid.uuid4().hex
        request.state.request_id = request_id
        t0 = time.monotonic()
        fields: Json = {
            "request_id": request_id,
            "method": request.method,
            "path": request.url.path,
            "client": request.client.host if request.client else "",
            "headers": self._headers(request),
        }

        try:
            response = await call_next(request)
        except Exception as e:
            log_event(self._logger, "http_request", status=500, error=str(e), duration_ms=_ms_since(t0), **fields)
            raise

        response.headers.setdefault("x-request-id", request_id)
        log_event(self._logger, "http_request", status=response.status_code, duration_ms=_ms_since(t0), **fields)
        return response


def _ms_since(t0: float) -> int:
    return int((time.monotonic() - t0) * 1000)
