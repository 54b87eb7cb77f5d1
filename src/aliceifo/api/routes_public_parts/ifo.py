from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import APIRouter, Query, Request

from aliceifo.api.errors import from_claim_error
from aliceifo.api.routes_public_parts.common import _engine, _units
from aliceifo.runtime.errors import ClaimError

router = APIRouter()

Json = Dict[str, Any]


@router.get("/ifo")
def ifo_params(request: Request) -> Json:
    """Curve parameters, the decay mapping and current custody totals.

    schedule.rounds_per_halving is log25(half_life) in 18-decimal fixed point:
    the rate halves every rounds_per_halving / 1e18 rounds.
    """
    eng = _engine(request)
    schedule = eng.curve.describe_schedule()
    rph = schedule.get("rounds_per_halving")
    return {
        "ok": True,
        "ifo_id": eng.ifo_id,
        "half_life": _units(eng.get_half_life()),
        "interval": eng.get_interval(),
        "starts_at": eng.get_starts_at(),
        "base_rate": _units(eng.curve.base_rate),
        "schedule": {"kind": schedule["kind"], "rounds_per_halving": _units(rph)},
        "reserve": _units(eng.reserve()),
        "total_claimed": _units(eng.total_claimed()),
        "now": eng.now(),
    }


@router.get("/ifo/round")
def ifo_round(request: Request, now: Optional[int] = Query(default=None, ge=0)) -> Json:
    eng = _engine(request)
    try:
        return {"ok": True, "round": eng.get_claim_round(now)}
    except ClaimError as e:
        raise from_claim_error(e) from e


@router.get("/ifo/rate")
def ifo_rate(request: Request, now: Optional[int] = Query(default=None, ge=0)) -> Json:
    eng = _engine(request)
    try:
        return {"ok": True, "round": eng.get_claim_round(now), "rate": _units(eng.get_claim_rate(now))}
    except ClaimError as e:
        raise from_claim_error(e) from e


@router.get("/ifo/total_claimed")
def ifo_total_claimed(request: Request) -> Json:
    return {"ok": True, "total_claimed": _units(_engine(request).total_claimed())}
