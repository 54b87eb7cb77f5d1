from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Request

from aliceifo.api.routes_public_parts.common import _engine, _units
from aliceifo.api.schemas import UnlockRequest

router = APIRouter()

Json = Dict[str, Any]


@router.get("/fund")
def fund_state(request: Request) -> Json:
    """Custody view: reserve fund and locked fund, as last committed."""
    eng = _engine(request)
    fund = eng.get_fund()
    locked = eng.get_locked_fund()
    now = eng.now()
    return {
        "ok": True,
        "reserve": {
            "owner": fund.owner,
            "account_id": fund.account_id,
            "ifo": fund.ifo,
            "balance": _units(fund.reserve()),
            "deposited": _units(fund.deposited),
            "total_claimed": _units(eng.total_claimed()),
        },
        "locked": {
            "owner": locked.owner,
            "account_id": locked.account_id,
            "balance": _units(locked.balance()),
            "locked_supply": _units(locked.locked.total_supply()),
            "still_locked": _units(locked.locked.locked_total_supply(now)),
        },
    }


@router.get("/accounts/{account}")
def account_balances(request: Request, account: str) -> Json:
    eng = _engine(request)
    locked = eng.get_locked_fund().locked
    now = eng.now()
    return {
        "ok": True,
        "account": account,
        "alice": _units(eng.balance_of(account)),
        "locked_alice": {
            "balance": _units(locked.balance_of(account)),
            "locked": _units(locked.locked_balance_of(account, now)),
            "unlocked": _units(locked.unlocked_balance_of(account, now)),
            "time_locks": [
                {"amount": _units(e.get("amount")), "release_at": int(e.get("release_at", 0))}
                for e in locked.time_locks(account)
            ],
        },
    }


@router.post("/locked/unlock")
def locked_unlock(request: Request, body: UnlockRequest) -> Json:
    """Redeem released locked ALICE for ALICE out of the locked fund."""
    eng = _engine(request)
    eng.treasury.unlock(int(body.amount), caller=body.caller)
    return {"ok": True, "caller": body.caller, "amount": _units(body.amount), "alice": _units(eng.balance_of(body.caller))}
