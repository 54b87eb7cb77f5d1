from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import APIRouter, Query, Request

from aliceifo.api.errors import ApiError, from_claim_error
from aliceifo.api.routes_public_parts.common import _claim_json, _engine, _mode, _units
from aliceifo.api.schemas import SavingsRecordRequest
from aliceifo.runtime.errors import ClaimError

router = APIRouter()

Json = Dict[str, Any]


@router.get("/records/{record_id}/claimable")
def record_claimable(request: Request, record_id: int, now: Optional[int] = Query(default=None, ge=0)) -> Json:
    """Preview the payout of a claim on this record. Never mutates the ledger."""
    eng = _engine(request)
    try:
        amount = eng.get_claimable_amount(record_id, now)
    except ClaimError as e:
        raise from_claim_error(e) from e
    return {"ok": True, "record_id": record_id, "amount": _units(amount)}


@router.get("/records/{record_id}/claims")
def record_claims(request: Request, record_id: int) -> Json:
    eng = _engine(request)
    return {
        "ok": True,
        "record_id": record_id,
        "total": _units(eng.get_total_claims_by_savings(record_id)),
        "last_claim_at": eng.get_last_claim_timestamp(record_id),
        "claims": [_claim_json(c) for c in eng.get_claims_by_savings(record_id)],
    }


@router.post("/records")
def record_set(request: Request, body: SavingsRecordRequest) -> Json:
    """Dev/testnet only: register a savings record on the in-process money market."""
    if _mode(request) == "prod":
        raise ApiError.forbidden("dev_only", "savings records come from the money market in prod", {})

    market = _engine(request).get_money_market()
    setter = getattr(market, "set_savings_record", None)
    if not callable(setter):
        raise ApiError.bad_request("read_only_market", "money market does not accept records", {})

    rec = setter(body.record_id, body.owner, int(body.balance), body.created_at)
    return {
        "ok": True,
        "record_id": rec.record_id,
        "owner": rec.owner,
        "balance": _units(rec.balance),
        "created_at": rec.created_at,
    }
