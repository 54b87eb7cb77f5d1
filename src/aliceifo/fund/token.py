# src/aliceifo/fund/token.py
from __future__ import annotations

"""ALICE token ledger over a JSON-backed state dict.

Balances and allowances live under ``state["token"]`` next to the claim
ledger, so a payout and the claim it pays for are persisted by the same store
transaction:

  supply:     int
  balances:   {"<account>": int}
  allowances: {"<owner>": {"<spender>": int}}
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional

Json = Dict[str, Any]


@dataclass
class TokenError(RuntimeError):
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


def _as_account(v: Any, *, op: str) -> str:
    s = str(v or "").strip()
    if not s:
        raise TokenError("invalid_account", f"{op}_zero_address", {"account": v})
    return s


def _as_amount(v: Any) -> int:
    if isinstance(v, bool):
        raise TokenError("invalid_amount", "amount_not_int", {"amount": repr(v)})
    try:
        amt = int(v)
    except Exception as e:
        raise TokenError("invalid_amount", "amount_not_int", {"amount": repr(v)}) from e
    if amt < 0:
        raise TokenError("invalid_amount", "amount_must_be_non_negative", {"amount": repr(v)})
    return amt


def ensure_token_root(state: Json, *, symbol: str = "ALICE", decimals: int = 18) -> Json:
    root = state.get("token")
    if not isinstance(root, dict):
        root = {}
        state["token"] = root
    root.setdefault("symbol", str(symbol))
    root.setdefault("decimals", int(decimals))
    root.setdefault("supply", 0)
    if not isinstance(root.get("balances"), dict):
        root["balances"] = {}
    if not isinstance(root.get("allowances"), dict):
        root["allowances"] = {}
    return root


class Token:
    """Fungible token ledger (18-decimal ALICE by default)."""

    def __init__(self, state: Optional[Json] = None) -> None:
        self.state: Json = state if isinstance(state, dict) else {}
        self._root = ensure_token_root(self.state)

    @property
    def symbol(self) -> str:
        return str(self._root.get("symbol"))

    @property
    def decimals(self) -> int:
        return _as_int(self._root.get("decimals"), 18)

    def total_supply(self) -> int:
        return _as_int(self._root.get("supply"))

    def balance_of(self, account: str) -> int:
        return _as_int(self._root["balances"].get(str(account)))

    def allowance(self, owner: str, spender: str) -> int:
        per_owner = self._root["allowances"].get(str(owner))
        if not isinstance(per_owner, dict):
            return 0
        return _as_int(per_owner.get(str(spender)))

    def holders(self) -> Dict[str, int]:
        return {str(k): _as_int(v) for k, v in self._root["balances"].items() if _as_int(v) > 0}

    def _set_balance(self, account: str, amount: int) -> None:
        self._root["balances"][account] = int(amount)

    def mint(self, to: str, amount: int) -> None:
        acct = _as_account(to, op="mint_to")
        amt = _as_amount(amount)
        self._set_balance(acct, self.balance_of(acct) + amt)
        self._root["supply"] = self.total_supply() + amt

    def approve(self, owner: str, spender: str, amount: int) -> None:
        src = _as_account(owner, op="approve_from")
        dst = _as_account(spender, op="approve_to")
        per_owner = self._root["allowances"].setdefault(src, {})
        per_owner[dst] = _as_amount(amount)

    def transfer(self, frm: str, to: str, amount: int) -> None:
        src = _as_account(frm, op="transfer_from")
        dst = _as_account(to, op="transfer_to")
        amt = _as_amount(amount)
        have = self.balance_of(src)
        if amt > have:
            raise TokenError("insufficient_balance", "transfer_amount_exceeds_balance", {"from": src, "amount": amt})
        self._set_balance(src, have - amt)
        self._set_balance(dst, self.balance_of(dst) + amt)

    def transfer_from(self, spender: str, frm: str, to: str, amount: int) -> None:
        amt = _as_amount(amount)
        allowed = self.allowance(frm, spender)
        if amt > allowed:
            raise TokenError(
                "insufficient_allowance",
                "transfer_amount_exceeds_allowance",
                {"spender": str(spender), "from": str(frm), "amount": amt, "allowance": allowed},
            )
        self.transfer(frm, to, amt)
        self.approve(frm, spender, allowed - amt)

    def check_supply(self) -> None:
        held = sum(_as_int(v) for v in self._root["balances"].values())
        if held != self.total_supply():
            raise TokenError("supply_mismatch", "balances_do_not_sum_to_supply", {"supply": self.total_supply(), "held": held})
