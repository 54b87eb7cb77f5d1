# src/aliceifo/fund/locked.py
from __future__ import annotations

"""Locked ALICE fund (sale vesting).

The owner deposits ALICE and locks part of it to a user until a release time.
Locking mints locked-ALICE (``TimeLockLedger``) to the user; unlocking burns
released locked-ALICE and pays the same amount of ALICE out of the fund. The
fund's spendable ``balance()`` is the ALICE it holds minus the locked-ALICE
still outstanding.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from aliceifo.fund.token import Token, TokenError
from aliceifo.ledger.constants import LOCKED_FUND_ACCOUNT_ID
from aliceifo.ledger.timelock import TimeLockLedger
from aliceifo.runtime.runtime_logging import log_event

Json = Dict[str, Any]

log = logging.getLogger("aliceifo.locked_fund")


@dataclass
class LockedFundError(RuntimeError):
    code: str
    reason: str
    details: Json

    def __str__(self) -> str:
        return f"{self.code}:{self.reason}:{self.details}"


def _as_str(v: Any) -> str:
    return str(v).strip() if isinstance(v, (str, int)) else ""


def _amount(v: Any) -> int:
    try:
        amt = int(v)
    except (TypeError, ValueError) as e:
        raise LockedFundError("invalid_amount", "amount must be an integer", {"amount": repr(v)}) from e
    if isinstance(v, bool) or amt < 0:
        raise LockedFundError("invalid_amount", "amount must be non-negative", {"amount": repr(v)})
    return amt


def ensure_locked_fund_root(state: Json, *, owner: str, account_id: str = LOCKED_FUND_ACCOUNT_ID) -> Json:
    root = state.get("locked_fund")
    if isinstance(root, dict):
        return root
    o = _as_str(owner)
    if not o:
        raise ValueError("locked fund owner must be a non-empty string")
    root = {"owner": o, "account_id": _as_str(account_id) or LOCKED_FUND_ACCOUNT_ID}
    state["locked_fund"] = root
    return root


class LockedFund:
    def __init__(self, state: Json, *, owner: str = "", account_id: str = LOCKED_FUND_ACCOUNT_ID) -> None:
        self.state = state
        self._root = ensure_locked_fund_root(state, owner=owner, account_id=account_id)
        self.token = Token(state)
        self.locked = TimeLockLedger(state, owner=self.account_id)

    @property
    def owner(self) -> Optional[str]:
        v = self._root.get("owner")
        return str(v) if v else None

    @property
    def account_id(self) -> str:
        return str(self._root.get("account_id") or LOCKED_FUND_ACCOUNT_ID)

    def _require_owner(self, caller: str) -> None:
        if self.owner is None or _as_str(caller) != self.owner:
            raise LockedFundError("forbidden", "caller is not owner", {"caller": caller})

    def balance(self) -> int:
        return self.token.balance_of(self.account_id) - self.locked.total_supply()

    # ---- ownership ----

    def transfer_ownership(self, new_owner: str, *, caller: str) -> None:
        self._require_owner(caller)
        nxt = _as_str(new_owner)
        if not nxt:
            raise LockedFundError("invalid_owner", "new owner is zero address", {"new_owner": new_owner})
        prev = self.owner
        self._root["owner"] = nxt
        log_event(log, "locked_fund_ownership_transferred", frm=prev, to=nxt)

    def renounce_ownership(self, *, caller: str) -> None:
        self._require_owner(caller)
        prev = self.owner
        self._root["owner"] = None
        log_event(log, "locked_fund_ownership_transferred", frm=prev, to=None)

    # ---- ALICE in/out (owner only) ----

    def deposit(self, amount: int, *, caller: str) -> None:
        self._require_owner(caller)
        amt = _amount(amount)
        try:
            self.token.transfer_from(self.account_id, caller, self.account_id, amt)
        except TokenError as e:
            raise LockedFundError("allowance_not_met", "allowance not met", {"amount": amt, "cause": e.code}) from e
        log_event(log, "alice_deposited", frm=_as_str(caller), amount=amt)

    def withdraw(self, amount: int, *, caller: str) -> None:
        self._require_owner(caller)
        amt = _amount(amount)
        if amt > self.balance():
            raise LockedFundError(
                "insufficient_balance", "insufficient ALICE to withdraw", {"amount": amt, "balance": self.balance()}
            )
        self.token.transfer(self.account_id, _as_str(caller), amt)
        log_event(log, "alice_withdrawn", to=_as_str(caller), amount=amt)

    # ---- locking ----

    def lock(self, to: str, amount: int, release_after: int, *, caller: str) -> None:
        self._require_owner(caller)
        amt = _amount(amount)
        if amt > self.balance():
            raise LockedFundError("insufficient_balance", "insufficient ALICE to lock", {"amount": amt, "balance": self.balance()})
        self.locked.mint_with_lock(to, amt, int(release_after), caller=self.account_id)
        log_event(log, "alice_locked", to=_as_str(to), amount=amt, release_after=int(release_after))

    def unlock(self, amount: int, *, caller: str, now: int) -> None:
        self._unlock(_as_str(caller), amount, now)

    def unlock_for(self, holder: str, amount: int, *, caller: str, now: int) -> None:
        self._require_owner(caller)
        self._unlock(_as_str(holder), amount, now)

    def _unlock(self, holder: str, amount: int, now: int) -> None:
        amt = _amount(amount)
        if amt > self.locked.unlocked_balance_of(holder, now):
            raise LockedFundError(
                "insufficient_unlocked",
                "insufficient Locked ALICE",
                {"holder": holder, "amount": amt, "unlocked": self.locked.unlocked_balance_of(holder, now)},
            )
        self.locked.burn(holder, amt, now, caller=self.account_id)
        self.token.transfer(self.account_id, holder, amt)
        log_event(log, "alice_unlocked", frm=holder, amount=amt)
