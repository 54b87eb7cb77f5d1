# src/aliceifo/runtime/engine.py
from __future__ import annotations

"""Claim engine: validates a claim, prices it on the decay curve, pays it out
of the reserve fund and books it in the claim ledger.

Per claim:

  Requested -> Validated -> RatedAndComputed -> Settled

Token balances, the reserve fund and the claim ledger are all views over the
same store snapshot. A claim runs inside one ``store.update()``: the payout
and the ledger write commit together or not at all.

The genesis snapshot (params, empty ledger, fund approving this IFO, and the
optional reserve seed) is written once, when the store is new. Reopening an
existing store never mints again.

All writes are serialized through one lock (single writer). "now" is read
from an injectable clock at call time; the engine never schedules anything.
"""

import logging
import threading
import time
from dataclasses import asdict, dataclass
from typing import Any, Callable, Dict, List, Optional, Tuple

from aliceifo.fund.locked import LockedFund
from aliceifo.fund.market import MoneyMarket, SavingsRecord
from aliceifo.fund.reserve import ReserveFund
from aliceifo.fund.token import Token
from aliceifo.ledger.claims import ClaimLedger, ensure_claims_root
from aliceifo.ledger.constants import FUND_OWNER_ACCOUNT_ID, IFO_ACCOUNT_ID, SCALE
from aliceifo.ledger.curve import DecayCurve
from aliceifo.ledger.logarithm import mul_div
from aliceifo.runtime.errors import (
    INVALID_RECORD,
    NOT_CLAIMABLE,
    NOT_OWNER,
    TOO_SOON,
    ClaimError,
)
from aliceifo.runtime.metrics import observe_claim_rejected, observe_claim_settled
from aliceifo.runtime.runtime_logging import log_event
from aliceifo.runtime.sqlite_db import LedgerStore, MemoryLedgerStore
from aliceifo.runtime.treasury import Treasury

Json = Dict[str, Any]

log = logging.getLogger("aliceifo.engine")


@dataclass(frozen=True, slots=True)
class ClaimedEvent:
    user: str
    record_id: int
    balance: int
    amount: int
    claimed_at: int

    def to_json(self) -> Json:
        return asdict(self)


class ClaimEngine:
    def __init__(
        self,
        *,
        market: MoneyMarket,
        curve: DecayCurve,
        store: Optional[LedgerStore] = None,
        ifo_id: str = IFO_ACCOUNT_ID,
        fund_owner: str = FUND_OWNER_ACCOUNT_ID,
        reserve_seed: int = 0,
        clock: Optional[Callable[[], float]] = None,
    ) -> None:
        self.market = market
        self.curve = curve
        self.ifo_id = str(ifo_id)

        self._clock = clock or time.time
        self._lock = threading.Lock()
        self._listeners: List[Callable[[ClaimedEvent], None]] = []

        self._store: LedgerStore = store if store is not None else MemoryLedgerStore()

        self.created = False
        if not self._store.exists():
            self.created = self._store.create(self._genesis_state(str(fund_owner), int(reserve_seed)))
        if self.created:
            log_event(log, "ledger_created", ifo_id=self.ifo_id, reserve_seed=int(reserve_seed))
        else:
            self._check_params_fail_closed(self._store.read())

        self.treasury = Treasury(store=self._store, lock=self._lock, clock=self.now)

    # ---- lifecycle ----

    def _params(self) -> Json:
        return {
            "ifo_id": self.ifo_id,
            "starts_at": int(self.curve.starts_at),
            "interval": int(self.curve.interval),
            "half_life": int(self.curve.half_life),
            "base_rate": int(self.curve.base_rate),
        }

    def _genesis_state(self, fund_owner: str, reserve_seed: int) -> Json:
        st: Json = {"params": self._params()}
        ensure_claims_root(st)

        fund = ReserveFund(st, owner=fund_owner)
        fund.change_ifo(self.ifo_id, caller=fund_owner)
        LockedFund(st, owner=fund_owner)

        if reserve_seed > 0:
            fund.token.mint(fund_owner, reserve_seed)
            fund.token.approve(fund_owner, fund.account_id, reserve_seed)
            fund.deposit(reserve_seed, caller=fund_owner)
        return st

    def _check_params_fail_closed(self, st: Json) -> None:
        """Curve parameters are fixed at deployment; refuse to reopen a ledger built with others."""
        stored = st.get("params")
        if stored != self._params():
            raise RuntimeError(
                f"persisted IFO params do not match configuration: stored={stored!r} configured={self._params()!r}"
            )

    def subscribe(self, listener: Callable[[ClaimedEvent], None]) -> None:
        self._listeners.append(listener)

    def now(self) -> int:
        return int(self._clock())

    def _ts(self, now: Optional[int]) -> int:
        return self.now() if now is None else int(now)

    def _ledger(self) -> ClaimLedger:
        return ClaimLedger(self._store.read())

    # ---- claim ----

    def _fetch_record(self, record_id: int) -> SavingsRecord:
        rec = self.market.get_record(int(record_id))
        if rec is None:
            raise ClaimError(INVALID_RECORD, "invalid recordId", {"record_id": int(record_id)})
        return rec

    def _validate(self, ledger: ClaimLedger, record_id: int, caller: str, now: int) -> SavingsRecord:
        rec = self._fetch_record(record_id)

        # raises not_started
        self.curve.claim_round(now)

        if str(caller) != rec.owner:
            raise ClaimError(NOT_OWNER, "caller is not owner of this record", {"record_id": rec.record_id})

        if int(rec.balance) <= 0:
            raise ClaimError(NOT_CLAIMABLE, "this record is not claimable", {"record_id": rec.record_id})

        elapsed = ledger.time_since_last_claim(rec.record_id, now, rec.created_at)
        if elapsed < int(self.curve.interval):
            raise ClaimError(
                TOO_SOON,
                "time not passed",
                {"record_id": rec.record_id, "elapsed": elapsed, "interval": int(self.curve.interval)},
            )
        return rec

    def _apply_claim(self, st: Json, record_id: int, caller: str, now: int) -> Tuple[ClaimedEvent, int]:
        ledger = ClaimLedger(st)
        rec = self._validate(ledger, record_id, caller, now)

        rate = self.curve.claim_rate(now)
        amount = mul_div(rec.balance, rate, SCALE)

        if amount > 0:
            ReserveFund(st).payout(str(caller), amount, spender=self.ifo_id)

        ledger.record_claim(rec.record_id, rec.owner, rec.balance, amount, now)
        event = ClaimedEvent(
            user=str(caller),
            record_id=rec.record_id,
            balance=int(rec.balance),
            amount=int(amount),
            claimed_at=now,
        )
        return event, ledger.total_claimed

    def claim(self, record_id: int, caller: str, now: Optional[int] = None) -> ClaimedEvent:
        ts = self._ts(now)
        with self._lock:
            try:
                event, total = self._store.update(lambda st: self._apply_claim(st, int(record_id), str(caller), ts))
            except ClaimError as e:
                observe_claim_rejected(e.code)
                log_event(log, "claim_rejected", record_id=int(record_id), caller=str(caller), code=e.code, reason=e.reason)
                raise

        observe_claim_settled(event.amount, total)
        log_event(log, "claim_settled", **event.to_json())

        for listener in list(self._listeners):
            listener(event)
        return event

    # ---- queries ----

    def get_money_market(self) -> MoneyMarket:
        return self.market

    def get_fund(self) -> ReserveFund:
        """Read-only view of the reserve fund at the latest committed snapshot."""
        return ReserveFund(self._store.read())

    def get_token(self) -> Token:
        return Token(self._store.read())

    def get_locked_fund(self) -> LockedFund:
        return LockedFund(self._store.read())

    def reserve(self) -> int:
        return self.get_fund().reserve()

    def balance_of(self, account: str) -> int:
        return self.get_token().balance_of(account)

    def get_half_life(self) -> int:
        return int(self.curve.half_life)

    def get_interval(self) -> int:
        return int(self.curve.interval)

    def get_starts_at(self) -> int:
        return int(self.curve.starts_at)

    def get_claim_round(self, now: Optional[int] = None) -> int:
        return self.curve.claim_round(self._ts(now))

    def get_claim_rate(self, now: Optional[int] = None) -> int:
        return self.curve.claim_rate(self._ts(now))

    def get_claimable_amount(self, record_id: int, now: Optional[int] = None) -> int:
        """Payout a claim on this record would receive at ``now``; 0 before the IFO starts.

        Read-only: does not check cadence or ownership and never touches the ledger.
        """
        ts = self._ts(now)
        rec = self._fetch_record(record_id)
        if not self.curve.started(ts):
            return 0
        return mul_div(rec.balance, self.curve.claim_rate(ts), SCALE)

    def get_total_claims(self, owner: str) -> int:
        return self._ledger().total_claims(owner)

    def get_claims(self, owner: str) -> List[Json]:
        return self._ledger().claims_of(owner)

    def get_records(self, owner: str) -> List[int]:
        return self._ledger().records_of(owner)

    def get_claims_by_savings(self, record_id: int) -> List[Json]:
        return self._ledger().claims_by_record(record_id)

    def get_total_claims_by_savings(self, record_id: int) -> int:
        return self._ledger().total_claims_by_record(record_id)

    def get_last_claim_timestamp(self, record_id: int) -> Optional[int]:
        return self._ledger().last_claim_at(record_id)

    def total_claimed(self) -> int:
        return self._ledger().total_claimed

    def check_conservation(self) -> None:
        """Claim totals agree, token supply is fully held, and reserve + total_claimed == deposited."""
        st = self._store.read()
        ledger = ClaimLedger(st)
        ledger.check_conservation()
        Token(st).check_supply()
        ReserveFund(st).check_custody(ledger.total_claimed)
