from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Request

from aliceifo.api.errors import from_claim_error
from aliceifo.api.routes_public_parts.common import _claim_json, _engine, _units
from aliceifo.api.schemas import ClaimRequest
from aliceifo.runtime.errors import ClaimError

router = APIRouter()

Json = Dict[str, Any]


@router.post("/claims")
def claim_submit(request: Request, body: ClaimRequest) -> Json:
    """Claim the current round's payout for one savings record.

    Returns the Claimed event: { user, record_id, balance, amount, claimed_at }.
    """
    eng = _engine(request)
    try:
        event = eng.claim(body.record_id, body.caller)
    except ClaimError as e:
        raise from_claim_error(e) from e
    return {"ok": True, "event": _claim_json(event.to_json())}


@router.get("/users/{owner}/claims")
def user_claims(request: Request, owner: str) -> Json:
    eng = _engine(request)
    return {
        "ok": True,
        "owner": owner,
        "total": _units(eng.get_total_claims(owner)),
        "records": eng.get_records(owner),
        "claims": [_claim_json(c) for c in eng.get_claims(owner)],
    }
