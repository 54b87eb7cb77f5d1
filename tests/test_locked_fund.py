from __future__ import annotations

import json
import logging

import pytest

from aliceifo.fund import LockedFund, LockedFundError
from aliceifo.ledger.constants import LOCKED_FUND_ACCOUNT_ID, SCALE
from aliceifo.ledger.timelock import TimeLockError

ADMIN = "admin"
A1 = 100 * SCALE
A2 = 200 * SCALE
A3 = 300 * SCALE
NOW = 1_000_000
DAY = 86_400


def _locker(deposit: int = 0) -> LockedFund:
    locker = LockedFund({}, owner=ADMIN)
    if deposit:
        locker.token.mint(ADMIN, 10**9 * SCALE)
        locker.token.approve(ADMIN, locker.account_id, deposit)
        locker.deposit(deposit, caller=ADMIN)
    return locker


def test_initial_values() -> None:
    locker = _locker()
    assert locker.owner == ADMIN
    assert locker.account_id == LOCKED_FUND_ACCOUNT_ID
    assert locker.balance() == 0
    assert locker.locked.owner == LOCKED_FUND_ACCOUNT_ID


def test_ownership_transfer_and_renounce(caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.INFO, logger="aliceifo.locked_fund")
    locker = _locker()

    with pytest.raises(LockedFundError) as ei:
        locker.transfer_ownership("", caller=ADMIN)
    assert ei.value.reason == "new owner is zero address"

    locker.transfer_ownership("newAdmin", caller=ADMIN)
    assert locker.owner == "newAdmin"

    locker.renounce_ownership(caller="newAdmin")
    assert locker.owner is None
    with pytest.raises(LockedFundError) as ei:
        locker.lock("u1", 0, NOW, caller="newAdmin")
    assert ei.value.code == "forbidden"

    events = [json.loads(r.getMessage()) for r in caplog.records if r.name == "aliceifo.locked_fund"]
    assert [(e["frm"], e["to"]) for e in events] == [(ADMIN, "newAdmin"), ("newAdmin", None)]


def test_deposit_moves_alice_into_the_fund() -> None:
    locker = _locker(deposit=A1)
    assert locker.balance() == A1
    assert locker.token.balance_of(locker.account_id) == A1


def test_deposit_is_owner_only_and_needs_allowance() -> None:
    locker = _locker()
    locker.token.mint("notAdmin", A1)
    locker.token.approve("notAdmin", locker.account_id, A1)
    with pytest.raises(LockedFundError) as ei:
        locker.deposit(A1, caller="notAdmin")
    assert ei.value.reason == "caller is not owner"

    locker.token.mint(ADMIN, A1)
    with pytest.raises(LockedFundError) as ei:
        locker.deposit(A1, caller=ADMIN)
    assert ei.value.code == "allowance_not_met"


def test_lock_then_unlock_after_release() -> None:
    locker = _locker(deposit=A1 + A2 + A3)
    release = NOW + DAY

    locker.lock("u1", A1, release, caller=ADMIN)
    assert locker.balance() == A2 + A3
    assert locker.locked.balance_of("u1") == A1
    assert locker.locked.locked_balance_of("u1", NOW) == A1
    assert locker.locked.unlocked_balance_of("u1", NOW) == 0
    assert locker.token.balance_of("u1") == 0

    with pytest.raises(LockedFundError) as ei:
        locker.unlock(A1, caller="u1", now=release - 1)
    assert ei.value.reason == "insufficient Locked ALICE"

    locker.unlock(A1, caller="u1", now=release)
    assert locker.balance() == A2 + A3
    assert locker.locked.balance_of("u1") == 0
    assert locker.locked.locked_balance_of("u1", release) == 0
    assert locker.token.balance_of("u1") == A1
    locker.token.check_supply()


def test_withdraw_only_the_unlocked_amount() -> None:
    locker = _locker(deposit=A1 + A2 + A3)
    locker.lock("u1", A1, NOW + 60, caller=ADMIN)

    with pytest.raises(LockedFundError) as ei:
        locker.withdraw(A1 + A2 + A3, caller=ADMIN)
    assert ei.value.reason == "insufficient ALICE to withdraw"

    before = locker.token.balance_of(ADMIN)
    locker.withdraw(A2 + A3, caller=ADMIN)
    assert locker.balance() == 0
    assert locker.token.balance_of(ADMIN) == before + A2 + A3

    with pytest.raises(LockedFundError) as ei:
        locker.withdraw(1, caller="u1")
    assert ei.value.code == "forbidden"


def test_lock_remaining_balance_only() -> None:
    locker = _locker(deposit=A1 + A2 + A3)
    release = NOW + 60
    locker.lock("u1", A1, release, caller=ADMIN)
    locker.lock("u2", A2, release, caller=ADMIN)
    locker.lock("u3", A3, release, caller=ADMIN)

    with pytest.raises(LockedFundError) as ei:
        locker.lock("u1", A1, release, caller=ADMIN)
    assert ei.value.reason == "insufficient ALICE to lock"
    assert locker.locked.total_supply() == A1 + A2 + A3


def test_unlock_for_is_owner_only() -> None:
    locker = _locker(deposit=A1 + A2 + A3)

    with pytest.raises(LockedFundError) as ei:
        locker.lock("u1", A1, 0, caller="u2")
    assert ei.value.reason == "caller is not owner"

    locker.lock("u1", A1, 0, caller=ADMIN)
    with pytest.raises(LockedFundError) as ei:
        locker.unlock_for("u1", A1, caller="u2", now=NOW)
    assert ei.value.reason == "caller is not owner"

    locker.unlock_for("u1", A1, caller=ADMIN, now=NOW)
    assert locker.token.balance_of("u1") == A1
    assert locker.locked.balance_of("u1") == 0


def test_unlock_only_released_tranches() -> None:
    locker = _locker(deposit=A1 + A2 + A3)
    release = NOW + 60
    locker.lock("u1", A1, release, caller=ADMIN)
    locker.lock("u1", A2, release + 60, caller=ADMIN)

    locker.unlock(A1, caller="u1", now=release)
    with pytest.raises(LockedFundError) as ei:
        locker.unlock(A2, caller="u1", now=release)
    assert ei.value.reason == "insufficient Locked ALICE"

    assert locker.locked.balance_of("u1") == A2
    assert locker.token.balance_of("u1") == A1


def test_locked_alice_supply_is_fund_controlled() -> None:
    locker = _locker(deposit=A1)
    with pytest.raises(TimeLockError) as ei:
        locker.locked.mint("u1", A1, caller=ADMIN)
    assert ei.value.code == "forbidden"
    assert locker.balance() == A1
