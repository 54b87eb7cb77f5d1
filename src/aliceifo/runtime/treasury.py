# src/aliceifo/runtime/treasury.py
from __future__ import annotations

"""Operator-side writes against the ledger snapshot.

Minting, approvals, reserve deposits and locked-sale operations run through
the same store and the same writer lock as claims, so every one of them
commits atomically with the rest of the state. Ownership checks are enforced
by the fund views themselves; this layer only binds them to a transaction.
"""

import logging
import threading
from typing import Any, Callable, Dict, TypeVar

from aliceifo.fund.locked import LockedFund
from aliceifo.fund.reserve import FundError, ReserveFund
from aliceifo.fund.token import Token
from aliceifo.runtime.runtime_logging import log_event
from aliceifo.runtime.sqlite_db import LedgerStore

Json = Dict[str, Any]
T = TypeVar("T")

log = logging.getLogger("aliceifo.treasury")


class Treasury:
    def __init__(self, *, store: LedgerStore, lock: threading.Lock, clock: Callable[[], int]) -> None:
        self._store = store
        self._lock = lock
        self._clock = clock

    def _tx(self, op: str, mut: Callable[[Json], T], **fields: Any) -> T:
        with self._lock:
            out = self._store.update(mut)
        log_event(log, "treasury_op", op=op, **fields)
        return out

    # ---- ALICE token ----

    def mint(self, to: str, amount: int, *, caller: str) -> None:
        """Mint ALICE. Only the reserve fund owner may mint."""

        def _mut(st: Json) -> None:
            fund = ReserveFund(st)
            if str(caller) != fund.owner:
                raise FundError("forbidden", "caller is not owner", {"caller": caller})
            Token(st).mint(to, amount)

        self._tx("mint", _mut, caller=str(caller), to=str(to), amount=amount)

    def approve(self, spender: str, amount: int, *, caller: str) -> None:
        self._tx("approve", lambda st: Token(st).approve(caller, spender, amount), caller=str(caller), spender=str(spender))

    def transfer(self, to: str, amount: int, *, caller: str) -> None:
        self._tx("transfer", lambda st: Token(st).transfer(caller, to, amount), caller=str(caller), to=str(to))

    # ---- reserve fund ----

    def deposit(self, amount: int, *, caller: str) -> int:
        """Deposit ALICE the caller already approved to the fund. Returns the new reserve."""

        def _mut(st: Json) -> int:
            fund = ReserveFund(st)
            fund.deposit(amount, caller=caller)
            return fund.reserve()

        return self._tx("fund_deposit", _mut, caller=str(caller), amount=amount)

    def change_ifo(self, new_ifo: str, *, caller: str) -> None:
        self._tx("fund_change_ifo", lambda st: ReserveFund(st).change_ifo(new_ifo, caller=caller), to=str(new_ifo))

    def transfer_fund_ownership(self, new_owner: str, *, caller: str) -> None:
        self._tx(
            "fund_transfer_ownership",
            lambda st: ReserveFund(st).transfer_ownership(new_owner, caller=caller),
            to=str(new_owner),
        )

    # ---- locked fund ----

    def locked_deposit(self, amount: int, *, caller: str) -> None:
        self._tx("locked_deposit", lambda st: LockedFund(st).deposit(amount, caller=caller), amount=amount)

    def locked_withdraw(self, amount: int, *, caller: str) -> None:
        self._tx("locked_withdraw", lambda st: LockedFund(st).withdraw(amount, caller=caller), amount=amount)

    def lock(self, to: str, amount: int, release_after: int, *, caller: str) -> None:
        self._tx(
            "lock",
            lambda st: LockedFund(st).lock(to, amount, release_after, caller=caller),
            to=str(to),
            amount=amount,
            release_after=release_after,
        )

    def unlock(self, amount: int, *, caller: str) -> None:
        now = int(self._clock())
        self._tx("unlock", lambda st: LockedFund(st).unlock(amount, caller=caller, now=now), caller=str(caller))

    def unlock_for(self, holder: str, amount: int, *, caller: str) -> None:
        now = int(self._clock())
        self._tx(
            "unlock_for",
            lambda st: LockedFund(st).unlock_for(holder, amount, caller=caller, now=now),
            holder=str(holder),
        )

    def transfer_locked_ownership(self, new_owner: str, *, caller: str) -> None:
        self._tx(
            "locked_transfer_ownership",
            lambda st: LockedFund(st).transfer_ownership(new_owner, caller=caller),
            to=str(new_owner),
        )
