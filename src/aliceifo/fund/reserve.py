# src/aliceifo/fund/reserve.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from aliceifo.fund.token import Token, TokenError
from aliceifo.ledger.constants import FUND_ACCOUNT_ID
from aliceifo.runtime.errors import INSUFFICIENT_RESERVE, ClaimError
from aliceifo.runtime.runtime_logging import log_event

Json = Dict[str, Any]

log = logging.getLogger("aliceifo.fund")


@dataclass
class FundError(RuntimeError):
    code: str
    reason: str
    details: Json

    def __str__(self) -> str:
        return f"{self.code}:{self.reason}:{self.details}"


def _as_str(v: Any) -> str:
    return str(v).strip() if isinstance(v, (str, int)) else ""


def _as_int(x: Any, default: int = 0) -> int:
    try:
        return int(x)
    except Exception:
        return int(default)


def ensure_fund_root(state: Json, *, owner: str, account_id: str = FUND_ACCOUNT_ID) -> Json:
    root = state.get("fund")
    if isinstance(root, dict):
        return root
    o = _as_str(owner)
    if not o:
        raise ValueError("fund owner must be a non-empty string")
    root = {"owner": o, "account_id": _as_str(account_id) or FUND_ACCOUNT_ID, "ifo": None, "deposited": 0}
    state["fund"] = root
    return root


class ReserveFund:
    """Custodian of the IFO reserve, as a view over ``state["fund"]``.

    The fund holds ALICE in its own token account and keeps the active IFO
    approved for its entire balance. The token allowance is the only thing
    deciding whether a payout can be honoured. ``deposited`` counts every unit
    ever deposited, so ``reserve() + total_claimed == deposited`` holds for the
    lifetime of the ledger.
    """

    def __init__(self, state: Json, *, owner: str = "", account_id: str = FUND_ACCOUNT_ID) -> None:
        self.state = state
        self._root = ensure_fund_root(state, owner=owner, account_id=account_id)
        self.token = Token(state)

    @property
    def owner(self) -> str:
        return str(self._root.get("owner") or "")

    @property
    def account_id(self) -> str:
        return str(self._root.get("account_id") or FUND_ACCOUNT_ID)

    @property
    def ifo(self) -> Optional[str]:
        v = self._root.get("ifo")
        return str(v) if v else None

    @property
    def deposited(self) -> int:
        return _as_int(self._root.get("deposited"))

    def _require_owner(self, caller: str) -> None:
        if _as_str(caller) != self.owner:
            raise FundError("forbidden", "caller is not owner", {"caller": caller})

    def reserve(self) -> int:
        return self.token.balance_of(self.account_id)

    def transfer_ownership(self, new_owner: str, *, caller: str) -> None:
        self._require_owner(caller)
        nxt = _as_str(new_owner)
        if not nxt:
            raise FundError("invalid_owner", "new owner is zero address", {"new_owner": new_owner})
        prev = self.owner
        self._root["owner"] = nxt
        log_event(log, "fund_ownership_transferred", frm=prev, to=nxt)

    def change_ifo(self, new_ifo: str, *, caller: str) -> None:
        self._require_owner(caller)
        nxt = _as_str(new_ifo)
        if not nxt:
            raise FundError("invalid_ifo", "new IFO is zero address", {"new_ifo": new_ifo})

        prev = self.ifo
        if prev:
            self.token.approve(self.account_id, prev, 0)
        self.token.approve(self.account_id, nxt, self.reserve())
        self._root["ifo"] = nxt
        log_event(log, "fund_ifo_changed", frm=prev, to=nxt)

    def deposit(self, amount: int, *, caller: str) -> None:
        self._require_owner(caller)
        if not self.ifo:
            raise FundError("ifo_not_set", "IFO is not setted", {})

        try:
            self.token.transfer_from(self.account_id, caller, self.account_id, amount)
        except TokenError as e:
            raise FundError("allowance_not_met", "allowance not met", {"amount": repr(amount), "cause": e.code}) from e

        self._root["deposited"] = self.deposited + int(amount)
        self.token.approve(self.account_id, self.ifo, self.reserve())
        log_event(log, "fund_deposited", ifo=self.ifo, amount=int(amount), reserve=self.reserve())

    def payout(self, to: str, amount: int, *, spender: str) -> None:
        try:
            self.token.transfer_from(spender, self.account_id, to, amount)
        except TokenError as e:
            raise ClaimError(
                INSUFFICIENT_RESERVE,
                "fund_cannot_pay",
                {"to": str(to), "amount": int(amount), "reserve": self.reserve(), "cause": e.code},
            ) from e

    def check_custody(self, total_claimed: int) -> None:
        if self.reserve() + int(total_claimed) != self.deposited:
            raise FundError(
                "custody_mismatch",
                "reserve_plus_claimed_differs_from_deposited",
                {"reserve": self.reserve(), "total_claimed": int(total_claimed), "deposited": self.deposited},
            )
