from __future__ import annotations

import os
from typing import Any, Dict, Optional

from fastapi import Request

from aliceifo.api.errors import ApiError

Json = Dict[str, Any]


def _engine(request: Request):
    eng = getattr(request.app.state, "engine", None)
    if eng is None:
        raise ApiError.internal("not_ready", "engine not attached to app.state", {})
    return eng


def _mode(request: Request) -> str:
    mode = getattr(request.app.state, "mode", None) or os.environ.get("ALICEIFO_MODE") or "prod"
    return str(mode).strip().lower()


def _units(v: Any) -> Optional[str]:
    """Token quantities leave the API as decimal strings."""
    if v is None:
        return None
    return str(int(v))


def _claim_json(entry: Json) -> Json:
    return {
        "user": str(entry.get("user") or entry.get("owner") or ""),
        "record_id": int(entry.get("record_id", 0)),
        "balance": _units(entry.get("balance", 0)),
        "amount": _units(entry.get("amount", 0)),
        "claimed_at": int(entry.get("claimed_at", 0)),
    }
