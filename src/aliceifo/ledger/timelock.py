# src/aliceifo/ledger/timelock.py
from __future__ import annotations

"""Time-locked balances (locked ALICE handed out by the sale).

Each holder has a free (unlocked) balance plus an append-only list of lock
entries ``{"amount", "release_at"}``. Nothing is released eagerly: locked
balances are summed lazily against the caller's ``now``, and ``prune`` folds
released entries into the free balance when a write needs them.

Supply changes (mint, mint_with_lock, burn) are reserved to the ledger owner,
which is the locked fund's account.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional

Json = Dict[str, Any]


@dataclass
class TimeLockError(RuntimeError):
    code: str
    reason: str
    details: Json

    def __str__(self) -> str:
        return f"{self.code}:{self.reason}:{self.details}"


def _as_int(x: Any, default: int = 0) -> int:
    try:
        return int(x)
    except Exception:
        return int(default)


def _require_holder(holder: str, *, op: str) -> str:
    h = str(holder or "").strip()
    if not h:
        raise TimeLockError("invalid_holder", f"{op} the zero address", {"holder": holder})
    return h


def _require_amount(amount: int) -> int:
    amt = -1 if isinstance(amount, bool) else _as_int(amount, -1)
    if amt < 0:
        raise TimeLockError("invalid_amount", "amount_must_be_non_negative", {"amount": amount})
    return amt


class TimeLockLedger:
    def __init__(self, state: Optional[Json] = None, *, owner: str = "") -> None:
        self.state: Json = state if isinstance(state, dict) else {}
        root = self.state.get("timelocks")
        if not isinstance(root, dict):
            root = {"owner": str(owner or "").strip()}
            self.state["timelocks"] = root
        root.setdefault("owner", "")
        root.setdefault("total_supply", 0)
        if not isinstance(root.get("holders"), dict):
            root["holders"] = {}
        if not isinstance(root.get("allowances"), dict):
            root["allowances"] = {}
        self._root = root

    @property
    def owner(self) -> str:
        return str(self._root.get("owner") or "")

    def _require_owner(self, caller: str) -> None:
        if not self.owner or str(caller or "").strip() != self.owner:
            raise TimeLockError("forbidden", "caller is not owner", {"caller": caller})

    def _holder(self, holder: str) -> Json:
        holders = self._root["holders"]
        h = holders.get(holder)
        if not isinstance(h, dict):
            h = {"free": 0, "locks": []}
            holders[holder] = h
        return h

    def _peek(self, holder: str) -> Json:
        h = self._root["holders"].get(str(holder))
        return h if isinstance(h, dict) else {"free": 0, "locks": []}

    # ---- supply (owner only) ----

    def mint(self, to: str, amount: int, *, caller: str) -> None:
        self._require_owner(caller)
        h = self._holder(_require_holder(to, op="mint to"))
        amt = _require_amount(amount)
        h["free"] = _as_int(h.get("free")) + amt
        self._root["total_supply"] = self.total_supply() + amt

    def mint_with_lock(self, to: str, amount: int, release_at: int, *, caller: str) -> None:
        self._require_owner(caller)
        h = self._holder(_require_holder(to, op="mint to"))
        amt = _require_amount(amount)
        h["locks"].append({"amount": amt, "release_at": int(release_at)})
        self._root["total_supply"] = self.total_supply() + amt

    def burn(self, frm: str, amount: int, now: int, *, caller: str) -> None:
        """Burn from the unlocked balance first, then from the earliest locks."""
        self._require_owner(caller)
        holder = _require_holder(frm, op="burn from")
        amt = _require_amount(amount)
        if amt > self.balance_of(holder):
            raise TimeLockError("insufficient_balance", "burn amount exceeds balance", {"holder": holder, "amount": amt})

        self.prune(holder, now)
        h = self._holder(holder)
        free = _as_int(h.get("free"))
        take = min(free, amt)
        h["free"] = free - take
        remaining = amt - take

        locks: List[Json] = sorted(h["locks"], key=lambda e: _as_int(e.get("release_at")))
        kept: List[Json] = []
        for entry in locks:
            a = _as_int(entry.get("amount"))
            if remaining > 0:
                cut = min(a, remaining)
                a -= cut
                remaining -= cut
            if a > 0:
                kept.append({"amount": a, "release_at": _as_int(entry.get("release_at"))})
        h["locks"] = kept
        self._root["total_supply"] = self.total_supply() - amt

    # ---- reads ----

    def total_supply(self) -> int:
        return _as_int(self._root.get("total_supply"))

    def locked_total_supply(self, now: int) -> int:
        return sum(self.locked_balance_of(h, now) for h in list(self._root["holders"].keys()))

    def balance_of(self, holder: str) -> int:
        h = self._peek(holder)
        return _as_int(h.get("free")) + sum(_as_int(e.get("amount")) for e in h.get("locks") or [])

    def locked_balance_of(self, holder: str, now: int) -> int:
        t = int(now)
        return sum(
            _as_int(e.get("amount")) for e in self._peek(holder).get("locks") or [] if _as_int(e.get("release_at")) > t
        )

    def unlocked_balance_of(self, holder: str, now: int) -> int:
        return self.balance_of(holder) - self.locked_balance_of(holder, now)

    def time_locks(self, holder: str) -> List[Json]:
        return [dict(e) for e in self._peek(holder).get("locks") or []]

    def allowance(self, owner: str, spender: str) -> int:
        per_owner = self._root["allowances"].get(str(owner))
        return _as_int(per_owner.get(str(spender))) if isinstance(per_owner, dict) else 0

    # ---- writes ----

    def prune(self, holder: str, now: int) -> int:
        """Fold released lock entries into the free balance. Returns the amount released."""
        h = self._holder(str(holder))
        t = int(now)
        released = 0
        kept: List[Json] = []
        for entry in h["locks"]:
            if _as_int(entry.get("release_at")) <= t:
                released += _as_int(entry.get("amount"))
            else:
                kept.append(entry)
        h["locks"] = kept
        h["free"] = _as_int(h.get("free")) + released
        return released

    def approve(self, owner: str, spender: str, amount: int) -> None:
        src = _require_holder(owner, op="approve from")
        dst = _require_holder(spender, op="approve to")
        self._root["allowances"].setdefault(src, {})[dst] = _require_amount(amount)

    def transfer(self, frm: str, to: str, amount: int, now: int) -> None:
        src = _require_holder(frm, op="transfer from")
        dst = _require_holder(to, op="transfer to")
        amt = _require_amount(amount)

        unlocked = self.unlocked_balance_of(src, now)
        if amt > unlocked:
            raise TimeLockError(
                "insufficient_unlocked",
                "transfer amount exceeds unlocked",
                {"holder": src, "amount": amt, "unlocked": unlocked},
            )

        self.prune(src, now)
        s = self._holder(src)
        s["free"] = _as_int(s.get("free")) - amt
        d = self._holder(dst)
        d["free"] = _as_int(d.get("free")) + amt

    def transfer_from(self, spender: str, frm: str, to: str, amount: int, now: int) -> None:
        amt = _require_amount(amount)
        allowed = self.allowance(frm, spender)
        if amt > allowed:
            raise TimeLockError(
                "insufficient_allowance",
                "transfer amount exceeds allowance",
                {"spender": str(spender), "from": str(frm), "amount": amt, "allowance": allowed},
            )
        self.transfer(frm, to, amt, now)
        self.approve(frm, spender, allowed - amt)
