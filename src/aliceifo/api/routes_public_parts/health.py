from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Request

from aliceifo.api.routes_public_parts.common import _mode

router = APIRouter()


@router.get("/health")
def health(request: Request) -> Dict[str, Any]:
    # never raises: health reports readiness instead
    eng = getattr(request.app.state, "engine", None)
    out: Dict[str, Any] = {"ok": True, "mode": _mode(request), "ready": eng is not None}
    if eng is not None:
        now = eng.now()
        out["ifo_id"] = eng.ifo_id
        out["now"] = now
        out["started"] = bool(eng.curve.started(now))
    return out
