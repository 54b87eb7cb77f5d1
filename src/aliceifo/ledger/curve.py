# src/aliceifo/ledger/curve.py
from __future__ import annotations

"""Claim round / claim rate curve.

A claim round is the number of whole intervals elapsed since the IFO start.
The rate paid per unit of principal halves every ``log25(half_life)`` rounds:

  halvings(round) = round / log25(half_life)
  rate(round)     = base_rate * 2 ** -halvings(round)

With the mainnet half-life (8.75e7 ALICE) that is one halving every ~5.7
rounds; with ``half_life == 25 * SCALE`` the rate is exactly
``base_rate >> round``. Everything is evaluated in the log domain on integers,
so very late rounds degrade to a rate of 0 rather than overflowing.
"""

from dataclasses import dataclass, field
from typing import Optional, Protocol

from aliceifo.ledger.constants import BASE_CLAIM_RATE, SCALE
from aliceifo.ledger.logarithm import log25, mul_div, mul_exp2_neg
from aliceifo.runtime.errors import NOT_STARTED, ClaimError


class RateSchedule(Protocol):
    def rate(self, claim_round: int) -> int:
        ...


@dataclass(frozen=True, slots=True)
class HalfLifeSchedule:
    half_life: int
    base_rate: int = BASE_CLAIM_RATE
    rounds_per_halving: int = field(init=False)

    def __post_init__(self) -> None:
        if int(self.half_life) <= SCALE:
            raise ValueError(f"half_life must exceed {SCALE}; got: {self.half_life}")
        if int(self.base_rate) <= 0:
            raise ValueError(f"base_rate must be > 0; got: {self.base_rate}")
        object.__setattr__(self, "rounds_per_halving", log25(int(self.half_life)))

    def rate(self, claim_round: int) -> int:
        r = int(claim_round)
        if r < 0:
            raise ValueError(f"claim_round must be >= 0; got: {r}")
        if r == 0:
            return int(self.base_rate)
        halvings = mul_div(r, SCALE * SCALE, self.rounds_per_halving)
        return mul_exp2_neg(int(self.base_rate), halvings)


@dataclass(frozen=True)
class DecayCurve:
    starts_at: int
    interval: int
    half_life: int
    base_rate: int = BASE_CLAIM_RATE
    schedule: Optional[RateSchedule] = None
    # schedule actually used: the injected one, else HalfLifeSchedule(half_life, base_rate)
    rate_schedule: RateSchedule = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        if int(self.interval) < 1:
            raise ValueError(f"interval must be >= 1; got: {self.interval}")
        if int(self.starts_at) < 0:
            raise ValueError(f"starts_at must be >= 0; got: {self.starts_at}")
        resolved = self.schedule if self.schedule is not None else HalfLifeSchedule(int(self.half_life), int(self.base_rate))
        object.__setattr__(self, "rate_schedule", resolved)

    def started(self, now: int) -> bool:
        return int(now) >= int(self.starts_at)

    def claim_round(self, now: int) -> int:
        n = int(now)
        if not self.started(n):
            raise ClaimError(NOT_STARTED, "ifo_not_started", {"now": n, "starts_at": int(self.starts_at)})
        return (n - int(self.starts_at)) // int(self.interval)

    def claim_rate(self, now: int) -> int:
        return int(self.rate_schedule.rate(self.claim_round(now)))

    def describe_schedule(self) -> dict:
        """How the rate decays: schedule kind plus, for half-life schedules, rounds per halving (fixed point)."""
        sched = self.rate_schedule
        if isinstance(sched, HalfLifeSchedule):
            return {"kind": "half_life", "rounds_per_halving": int(sched.rounds_per_halving)}
        return {"kind": type(sched).__name__, "rounds_per_halving": getattr(sched, "rounds_per_halving", None)}
