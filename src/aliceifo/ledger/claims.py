# src/aliceifo/ledger/claims.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional

Json = Dict[str, Any]


@dataclass
class ClaimLedgerError(RuntimeError):
    code: str
    reason: str
    details: Json

    def __str__(self) -> str:
        return f"{self.code}:{self.reason}:{self.details}"


def _as_dict(x: Any) -> Json:
    return x if isinstance(x, dict) else {}


def _as_list(x: Any) -> List[Any]:
    return x if isinstance(x, list) else []


def _as_int(x: Any, default: int = 0) -> int:
    try:
        return int(x)
    except Exception:
        return int(default)


def _record_key(record_id: Any) -> str:
    return str(int(record_id))


def ensure_claims_root(state: Json) -> Json:
    root = state.get("claims")
    if not isinstance(root, dict):
        root = {}
        state["claims"] = root
    root.setdefault("total_claimed", 0)
    if not isinstance(root.get("records"), dict):
        root["records"] = {}
    if not isinstance(root.get("by_owner"), dict):
        root["by_owner"] = {}
    if not isinstance(root.get("owner_totals"), dict):
        root["owner_totals"] = {}
    if not isinstance(root.get("history"), list):
        root["history"] = []
    return root


class ClaimLedger:
    """Per-record claim bookkeeping over a JSON-backed state dict.

    The ledger never talks to collaborators; the engine hands it already
    validated values. Shape under ``state["claims"]``:

      total_claimed: int
      records:  {"<record_id>": {"owner", "last_claim_at", "total_claimed"}}
      by_owner: {"<owner>": [record_id, ...]}   (insertion ordered)
      owner_totals: {"<owner>": int}
      history:  [{"record_id", "owner", "balance", "amount", "claimed_at"}, ...]
    """

    def __init__(self, state: Optional[Json] = None) -> None:
        self.state: Json = state if isinstance(state, dict) else {}
        self._root = ensure_claims_root(self.state)

    # ---- writes ----

    def record_claim(self, record_id: int, owner: str, balance: int, amount: int, now: int) -> Json:
        rid = int(record_id)
        amt = int(amount)
        ts = int(now)
        if amt < 0:
            raise ClaimLedgerError("invalid_amount", "amount_must_be_non_negative", {"record_id": rid, "amount": amt})

        records = self._root["records"]
        key = _record_key(rid)
        rec = records.get(key)
        if not isinstance(rec, dict):
            rec = {"owner": str(owner), "last_claim_at": None, "total_claimed": 0}
            records[key] = rec

        prev = rec.get("last_claim_at")
        if prev is not None and ts < _as_int(prev):
            raise ClaimLedgerError(
                "clock_regression", "last_claim_at_must_not_decrease", {"record_id": rid, "prev": prev, "now": ts}
            )

        rec["owner"] = str(owner)
        rec["last_claim_at"] = ts
        rec["total_claimed"] = _as_int(rec.get("total_claimed")) + amt
        self._root["total_claimed"] = _as_int(self._root.get("total_claimed")) + amt

        by_owner = self._root["by_owner"]
        ids = by_owner.get(str(owner))
        if not isinstance(ids, list):
            ids = []
            by_owner[str(owner)] = ids
        if rid not in ids:
            ids.append(rid)

        totals = self._root["owner_totals"]
        totals[str(owner)] = _as_int(totals.get(str(owner))) + amt

        entry = {
            "record_id": rid,
            "owner": str(owner),
            "balance": int(balance),
            "amount": amt,
            "claimed_at": ts,
        }
        self._root["history"].append(entry)
        return entry

    # ---- reads ----

    @property
    def total_claimed(self) -> int:
        return _as_int(self._root.get("total_claimed"))

    def _record(self, record_id: int) -> Json:
        return _as_dict(self._root["records"].get(_record_key(record_id)))

    def last_claim_at(self, record_id: int) -> Optional[int]:
        v = self._record(record_id).get("last_claim_at")
        return None if v is None else _as_int(v)

    def time_since_last_claim(self, record_id: int, now: int, created_at: int) -> int:
        """Elapsed time since the last claim, or since record creation if never claimed."""
        last = self.last_claim_at(record_id)
        baseline = int(created_at) if last is None else last
        return int(now) - baseline

    def total_claims_by_record(self, record_id: int) -> int:
        return _as_int(self._record(record_id).get("total_claimed"))

    def records_of(self, owner: str) -> List[int]:
        return [_as_int(r) for r in _as_list(self._root["by_owner"].get(str(owner)))]

    def total_claims(self, owner: str) -> int:
        return _as_int(self._root["owner_totals"].get(str(owner)))

    def claims_of(self, owner: str) -> List[Json]:
        o = str(owner)
        return [dict(e) for e in self._root["history"] if isinstance(e, dict) and e.get("owner") == o]

    def claims_by_record(self, record_id: int) -> List[Json]:
        rid = int(record_id)
        return [dict(e) for e in self._root["history"] if isinstance(e, dict) and _as_int(e.get("record_id"), -1) == rid]

    def check_conservation(self) -> None:
        per_record = sum(_as_int(_as_dict(r).get("total_claimed")) for r in self._root["records"].values())
        if per_record != self.total_claimed:
            raise ClaimLedgerError(
                "conservation_violated",
                "total_claimed_mismatch",
                {"total_claimed": self.total_claimed, "sum_of_records": per_record},
            )
