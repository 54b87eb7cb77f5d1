from __future__ import annotations

"""Operator routes (token mint/approve, reserve deposits, locked sale).

Every route requires the admin token (see api/security.py) and acts as the
owner recorded in the ledger: the reserve fund owner for token and reserve
operations, the locked fund owner for locked-sale operations.
"""

from typing import Any, Dict

from fastapi import APIRouter, Depends, Request

from aliceifo.api.routes_public_parts.common import _engine, _units
from aliceifo.api.schemas import (
    AmountRequest,
    ApproveRequest,
    ChangeIfoRequest,
    LockRequest,
    MintRequest,
    NewOwnerRequest,
    UnlockForRequest,
)
from aliceifo.api.security import require_admin

router = APIRouter(dependencies=[Depends(require_admin)])

Json = Dict[str, Any]


def _fund_owner(request: Request) -> str:
    return _engine(request).get_fund().owner


def _locked_owner(request: Request) -> str:
    return _engine(request).get_locked_fund().owner or ""


@router.post("/token/mint")
def token_mint(request: Request, body: MintRequest) -> Json:
    eng = _engine(request)
    eng.treasury.mint(body.to, int(body.amount), caller=_fund_owner(request))
    return {"ok": True, "to": body.to, "balance": _units(eng.balance_of(body.to))}


@router.post("/token/approve")
def token_approve(request: Request, body: ApproveRequest) -> Json:
    eng = _engine(request)
    owner = _fund_owner(request)
    eng.treasury.approve(body.spender, int(body.amount), caller=owner)
    return {"ok": True, "owner": owner, "spender": body.spender, "allowance": _units(eng.get_token().allowance(owner, body.spender))}


@router.post("/fund/deposit")
def fund_deposit(request: Request, body: AmountRequest) -> Json:
    """Move approved ALICE from the fund owner into the reserve."""
    eng = _engine(request)
    reserve = eng.treasury.deposit(int(body.amount), caller=_fund_owner(request))
    return {"ok": True, "reserve": _units(reserve), "deposited": _units(eng.get_fund().deposited)}


@router.post("/fund/ifo")
def fund_change_ifo(request: Request, body: ChangeIfoRequest) -> Json:
    eng = _engine(request)
    eng.treasury.change_ifo(body.ifo, caller=_fund_owner(request))
    return {"ok": True, "ifo": eng.get_fund().ifo}


@router.post("/fund/owner")
def fund_transfer_ownership(request: Request, body: NewOwnerRequest) -> Json:
    eng = _engine(request)
    eng.treasury.transfer_fund_ownership(body.new_owner, caller=_fund_owner(request))
    return {"ok": True, "owner": eng.get_fund().owner}


@router.post("/locked/deposit")
def locked_deposit(request: Request, body: AmountRequest) -> Json:
    eng = _engine(request)
    eng.treasury.locked_deposit(int(body.amount), caller=_locked_owner(request))
    return {"ok": True, "balance": _units(eng.get_locked_fund().balance())}


@router.post("/locked/lock")
def locked_lock(request: Request, body: LockRequest) -> Json:
    eng = _engine(request)
    eng.treasury.lock(body.to, int(body.amount), body.release_after, caller=_locked_owner(request))
    return {"ok": True, "to": body.to, "balance": _units(eng.get_locked_fund().balance())}


@router.post("/locked/unlock_for")
def locked_unlock_for(request: Request, body: UnlockForRequest) -> Json:
    eng = _engine(request)
    eng.treasury.unlock_for(body.holder, int(body.amount), caller=_locked_owner(request))
    return {"ok": True, "holder": body.holder, "alice": _units(eng.balance_of(body.holder))}


@router.post("/locked/withdraw")
def locked_withdraw(request: Request, body: AmountRequest) -> Json:
    eng = _engine(request)
    eng.treasury.locked_withdraw(int(body.amount), caller=_locked_owner(request))
    return {"ok": True, "balance": _units(eng.get_locked_fund().balance())}


@router.post("/locked/owner")
def locked_transfer_ownership(request: Request, body: NewOwnerRequest) -> Json:
    eng = _engine(request)
    eng.treasury.transfer_locked_ownership(body.new_owner, caller=_locked_owner(request))
    return {"ok": True, "owner": eng.get_locked_fund().owner}
