from __future__ import annotations

import pytest

from aliceifo.ledger.timelock import TimeLockError, TimeLockLedger

OWNER = "LOCKED_FUND"


def _ledger() -> TimeLockLedger:
    return TimeLockLedger({}, owner=OWNER)


def test_locked_balance_releases_at_release_time() -> None:
    tl = _ledger()
    tl.mint("bob", 30, caller=OWNER)
    tl.mint_with_lock("bob", 100, release_at=50, caller=OWNER)
    tl.mint_with_lock("bob", 20, release_at=80, caller=OWNER)

    assert tl.total_supply() == 150
    assert tl.balance_of("bob") == 150

    assert tl.locked_balance_of("bob", 49) == 120
    assert tl.locked_balance_of("bob", 50) == 20
    assert tl.locked_balance_of("bob", 80) == 0

    assert tl.unlocked_balance_of("bob", 49) == 30
    assert tl.unlocked_balance_of("bob", 50) == 130
    assert tl.locked_total_supply(60) == 20


def test_mint_and_burn_back_to_zero() -> None:
    tl = _ledger()
    for amount in (100, 200, 300):
        tl.mint("u1", amount, caller=OWNER)
    assert tl.balance_of("u1") == 600
    assert tl.total_supply() == 600

    tl.burn("u1", 100, now=0, caller=OWNER)
    assert tl.balance_of("u1") == 500
    tl.burn("u1", 100, now=0, caller=OWNER)
    tl.burn("u1", 400, now=0, caller=OWNER)
    assert tl.balance_of("u1") == 0
    assert tl.total_supply() == 0


def test_supply_changes_are_owner_only() -> None:
    tl = _ledger()
    for call in (
        lambda: tl.mint("u1", 1, caller="notAdmin"),
        lambda: tl.mint_with_lock("u1", 1, release_at=60, caller="notAdmin"),
    ):
        with pytest.raises(TimeLockError) as ei:
            call()
        assert ei.value.code == "forbidden"
        assert ei.value.reason == "caller is not owner"

    tl.mint("u1", 1, caller=OWNER)
    with pytest.raises(TimeLockError) as ei:
        tl.burn("u1", 1, now=0, caller="notAdmin")
    assert ei.value.code == "forbidden"
    assert tl.balance_of("u1") == 1


def test_ledger_without_owner_refuses_minting() -> None:
    tl = TimeLockLedger({})
    assert tl.owner == ""
    with pytest.raises(TimeLockError) as ei:
        tl.mint("u1", 1, caller="")
    assert ei.value.code == "forbidden"


def test_reads_do_not_prune_lock_list() -> None:
    tl = _ledger()
    tl.mint_with_lock("bob", 5, release_at=10, caller=OWNER)
    assert tl.locked_balance_of("bob", 1000) == 0
    assert tl.time_locks("bob") == [{"amount": 5, "release_at": 10}]

    assert tl.prune("bob", 1000) == 5
    assert tl.time_locks("bob") == []
    assert tl.balance_of("bob") == 5


def test_transfer_is_limited_to_unlocked_balance() -> None:
    tl = _ledger()
    tl.mint("bob", 10, caller=OWNER)
    tl.mint_with_lock("bob", 100, release_at=50, caller=OWNER)

    with pytest.raises(TimeLockError) as ei:
        tl.transfer("bob", "carol", 11, now=49)
    assert ei.value.code == "insufficient_unlocked"
    assert ei.value.reason == "transfer amount exceeds unlocked"
    assert tl.balance_of("carol") == 0

    tl.transfer("bob", "carol", 110, now=50)
    assert tl.balance_of("bob") == 0
    assert tl.balance_of("carol") == 110
    assert tl.total_supply() == 110


def test_transfer_from_spends_allowance() -> None:
    tl = _ledger()
    tl.mint("bob", 10, caller=OWNER)

    with pytest.raises(TimeLockError) as ei:
        tl.transfer_from("spender", "bob", "carol", 1, now=0)
    assert ei.value.code == "insufficient_allowance"

    tl.approve("bob", "spender", 6)
    tl.transfer_from("spender", "bob", "carol", 4, now=0)
    assert tl.allowance("bob", "spender") == 2
    assert tl.balance_of("carol") == 4


def test_burn_takes_free_balance_then_earliest_locks() -> None:
    tl = _ledger()
    tl.mint("bob", 10, caller=OWNER)
    tl.mint_with_lock("bob", 100, release_at=90, caller=OWNER)
    tl.mint_with_lock("bob", 50, release_at=70, caller=OWNER)

    tl.burn("bob", 40, now=0, caller=OWNER)
    assert tl.balance_of("bob") == 120
    assert tl.time_locks("bob") == [{"amount": 20, "release_at": 70}, {"amount": 100, "release_at": 90}]
    assert tl.total_supply() == 120

    with pytest.raises(TimeLockError) as ei:
        tl.burn("bob", 121, now=0, caller=OWNER)
    assert ei.value.code == "insufficient_balance"
    assert ei.value.reason == "burn amount exceeds balance"


def test_zero_holder_is_rejected() -> None:
    tl = _ledger()
    with pytest.raises(TimeLockError) as ei:
        tl.mint("", 1, caller=OWNER)
    assert ei.value.code == "invalid_holder"
    assert ei.value.reason == "mint to the zero address"

    with pytest.raises(TimeLockError) as ei:
        tl.burn("", 1, now=0, caller=OWNER)
    assert ei.value.reason == "burn from the zero address"

    with pytest.raises(TimeLockError):
        tl.mint_with_lock("bob", -1, release_at=5, caller=OWNER)
