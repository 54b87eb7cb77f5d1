from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional

from aliceifo.runtime.errors import (
    INSUFFICIENT_RESERVE,
    INVALID_RECORD,
    NOT_CLAIMABLE,
    NOT_OWNER,
    NOT_STARTED,
    TOO_SOON,
    ClaimError,
)


@dataclass
class ApiError(Exception):
    status_code: int
    code: str
    message: str
    details: Dict[str, Any]

    def to_json(self) -> Dict[str, Any]:
        return {"ok": False, "error": {"code": self.code, "message": self.message, "details": self.details}}

    @staticmethod
    def bad_request(code: str, message: str, details: Optional[Dict[str, Any]] = None) -> "ApiError":
        return ApiError(400, code, message, details or {})

    @staticmethod
    def forbidden(code: str, message: str, details: Optional[Dict[str, Any]] = None) -> "ApiError":
        return ApiError(403, code, message, details or {})

    @staticmethod
    def not_found(code: str, message: str, details: Optional[Dict[str, Any]] = None) -> "ApiError":
        return ApiError(404, code, message, details or {})

    @staticmethod
    def conflict(code: str, message: str, details: Optional[Dict[str, Any]] = None) -> "ApiError":
        return ApiError(409, code, message, details or {})

    @staticmethod
    def too_many(code: str, message: str, details: Optional[Dict[str, Any]] = None) -> "ApiError":
        return ApiError(429, code, message, details or {})

    @staticmethod
    def internal(code: str, message: str, details: Optional[Dict[str, Any]] = None) -> "ApiError":
        return ApiError(500, code, message, details or {})


_CLAIM_STATUS = {
    INVALID_RECORD: ApiError.not_found,
    NOT_STARTED: ApiError.conflict,
    NOT_OWNER: ApiError.forbidden,
    NOT_CLAIMABLE: ApiError.conflict,
    TOO_SOON: ApiError.too_many,
    INSUFFICIENT_RESERVE: ApiError.conflict,
}


def from_claim_error(e: ClaimError) -> ApiError:
    make = _CLAIM_STATUS.get(e.code, ApiError.bad_request)
    details = e.details if isinstance(e.details, dict) else ({} if e.details is None else {"details": e.details})
    return make(e.code, e.reason, details)


def from_ledger_error(e: Exception) -> ApiError:
    """Map token / fund / locked-fund errors (``code``, ``reason``, ``details``) to an HTTP error."""
    code = str(getattr(e, "code", "") or "ledger_error")
    reason = str(getattr(e, "reason", "") or code)
    details = getattr(e, "details", None)
    if not isinstance(details, dict):
        details = {} if details is None else {"details": details}

    if code == "forbidden":
        return ApiError.forbidden(code, reason, details)
    if code.startswith("invalid_"):
        return ApiError.bad_request(code, reason, details)
    return ApiError.conflict(code, reason, details)
