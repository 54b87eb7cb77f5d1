from __future__ import annotations

import hmac
import os

from fastapi import Request

from aliceifo.api.errors import ApiError

ADMIN_TOKEN_HEADER = "x-aliceifo-admin-token"


def admin_token() -> str:
    return (os.environ.get("ALICEIFO_ADMIN_TOKEN") or "").strip()


def require_admin(request: Request) -> None:
    """Gate operator routes behind a shared secret.

    Client provides:
      - X-AliceIFO-Admin-Token: "..."

    Server compares it to ALICEIFO_ADMIN_TOKEN. With no token configured the
    operator surface is closed: every admin route answers 403 admin_disabled.
    Operator actions are then performed as the fund owner recorded in the ledger.
    """
    want = admin_token()
    if not want:
        raise ApiError.forbidden("admin_disabled", "set ALICEIFO_ADMIN_TOKEN to enable operator routes", {})

    got = (request.headers.get(ADMIN_TOKEN_HEADER) or "").strip()
    if not got:
        raise ApiError.forbidden("admin_token_missing", f"{ADMIN_TOKEN_HEADER} header is required", {})

    if not hmac.compare_digest(got.encode("utf-8"), want.encode("utf-8")):
        raise ApiError.forbidden("admin_token_invalid", "admin token rejected", {})
