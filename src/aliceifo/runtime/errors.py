from __future__ import annotations

from dataclasses import dataclass
from typing import Any

INVALID_RECORD = "invalid_record"
NOT_STARTED = "not_started"
NOT_OWNER = "not_owner"
NOT_CLAIMABLE = "not_claimable"
TOO_SOON = "too_soon"
INSUFFICIENT_RESERVE = "insufficient_reserve"

CLAIM_ERROR_CODES = (
    INVALID_RECORD,
    NOT_STARTED,
    NOT_OWNER,
    NOT_CLAIMABLE,
    TOO_SOON,
    INSUFFICIENT_RESERVE,
)


@dataclass
class ClaimError(Exception):
    """Canonical rejection raised by the claim engine and its collaborators.

    Every rejection is synchronous and leaves no partial state behind.
    """

    code: str
    reason: str
    details: Any | None = None

    def __str__(self) -> str:  # pragma: no cover
        if self.details is None:
            return f"{self.code}:{self.reason}"
        return f"{self.code}:{self.reason}:{self.details}"
