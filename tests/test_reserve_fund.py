from __future__ import annotations

import pytest

from aliceifo.fund import FundError, ReserveFund, Token, TokenError
from aliceifo.ledger.constants import SCALE
from aliceifo.runtime.errors import INSUFFICIENT_RESERVE, ClaimError


def _fund(st: dict | None = None) -> ReserveFund:
    return ReserveFund({} if st is None else st, owner="admin")


def _deposit(fund: ReserveFund, amount: int) -> None:
    fund.token.mint("admin", amount)
    fund.token.approve("admin", fund.account_id, amount)
    fund.deposit(amount, caller="admin")


def test_token_transfer_and_allowance() -> None:
    t = Token()
    t.mint("a", 100)
    t.approve("a", "spender", 40)

    t.transfer_from("spender", "a", "b", 30)
    assert t.balance_of("a") == 70
    assert t.balance_of("b") == 30
    assert t.allowance("a", "spender") == 10
    assert t.total_supply() == 100
    t.check_supply()

    with pytest.raises(TokenError) as ei:
        t.transfer_from("spender", "a", "b", 11)
    assert ei.value.code == "insufficient_allowance"

    with pytest.raises(TokenError) as ei:
        t.transfer("b", "a", 31)
    assert ei.value.code == "insufficient_balance"

    with pytest.raises(TokenError) as ei:
        t.mint("", 1)
    assert ei.value.code == "invalid_account"

    with pytest.raises(TokenError) as ei:
        t.transfer("a", "b", -1)
    assert ei.value.code == "invalid_amount"

    with pytest.raises(TokenError) as ei:
        t.mint("a", True)
    assert ei.value.code == "invalid_amount"


def test_token_lives_in_the_state_dict() -> None:
    st: dict = {}
    Token(st).mint("a", 5)
    Token(st).approve("a", "b", 2)

    assert st["token"]["balances"] == {"a": 5}
    assert st["token"]["allowances"] == {"a": {"b": 2}}
    assert Token(st).balance_of("a") == 5
    assert Token(st).holders() == {"a": 5}


def test_token_supply_mismatch_is_detected() -> None:
    st: dict = {}
    Token(st).mint("a", 5)
    st["token"]["balances"]["a"] = 6

    with pytest.raises(TokenError) as ei:
        Token(st).check_supply()
    assert ei.value.code == "supply_mismatch"


def test_fund_root_needs_an_owner() -> None:
    with pytest.raises(ValueError):
        ReserveFund({})

    st: dict = {}
    _fund(st)
    # an existing root is reused as-is
    assert ReserveFund(st).owner == "admin"


def test_deposit_requires_ifo() -> None:
    fund = _fund()
    fund.token.mint("admin", 10)
    fund.token.approve("admin", fund.account_id, 10)

    with pytest.raises(FundError) as ei:
        fund.deposit(10, caller="admin")
    assert ei.value.code == "ifo_not_set"
    assert ei.value.reason == "IFO is not setted"


def test_deposit_requires_allowance() -> None:
    fund = _fund()
    fund.change_ifo("IFO", caller="admin")
    fund.token.mint("admin", 10)

    with pytest.raises(FundError) as ei:
        fund.deposit(10, caller="admin")
    assert ei.value.code == "allowance_not_met"
    assert fund.reserve() == 0
    assert fund.deposited == 0


def test_deposit_approves_ifo_for_whole_reserve() -> None:
    fund = _fund()
    fund.change_ifo("IFO", caller="admin")
    _deposit(fund, 7 * SCALE)
    _deposit(fund, 3 * SCALE)

    assert fund.reserve() == 10 * SCALE
    assert fund.deposited == 10 * SCALE
    assert fund.token.allowance(fund.account_id, "IFO") == 10 * SCALE


def test_deposit_is_owner_only() -> None:
    fund = _fund()
    fund.change_ifo("IFO", caller="admin")
    fund.token.mint("mallory", 10)
    fund.token.approve("mallory", fund.account_id, 10)

    with pytest.raises(FundError) as ei:
        fund.deposit(10, caller="mallory")
    assert ei.value.code == "forbidden"


def test_change_ifo_moves_allowance() -> None:
    fund = _fund()
    fund.change_ifo("IFO", caller="admin")
    _deposit(fund, 5 * SCALE)

    fund.change_ifo("IFO2", caller="admin")
    assert fund.ifo == "IFO2"
    assert fund.token.allowance(fund.account_id, "IFO") == 0
    assert fund.token.allowance(fund.account_id, "IFO2") == 5 * SCALE

    with pytest.raises(ClaimError):
        fund.payout("alice", 1, spender="IFO")
    fund.payout("alice", 1, spender="IFO2")
    assert fund.token.balance_of("alice") == 1


def test_owner_only_admin_calls() -> None:
    fund = _fund()
    with pytest.raises(FundError) as ei:
        fund.change_ifo("IFO", caller="mallory")
    assert ei.value.code == "forbidden"

    with pytest.raises(FundError) as ei:
        fund.change_ifo("", caller="admin")
    assert ei.value.code == "invalid_ifo"

    with pytest.raises(FundError):
        fund.transfer_ownership("", caller="admin")

    fund.transfer_ownership("ops", caller="admin")
    assert fund.owner == "ops"
    with pytest.raises(FundError):
        fund.transfer_ownership("admin", caller="admin")


def test_payout_beyond_reserve_is_a_claim_error() -> None:
    fund = _fund()
    fund.change_ifo("IFO", caller="admin")
    _deposit(fund, SCALE)

    with pytest.raises(ClaimError) as ei:
        fund.payout("alice", SCALE + 1, spender="IFO")
    assert ei.value.code == INSUFFICIENT_RESERVE
    assert ei.value.details["reserve"] == SCALE
    assert fund.reserve() == SCALE


def test_custody_holds_across_payouts() -> None:
    fund = _fund()
    fund.change_ifo("IFO", caller="admin")
    _deposit(fund, 10 * SCALE)

    fund.payout("alice", 3 * SCALE, spender="IFO")
    fund.check_custody(3 * SCALE)

    with pytest.raises(FundError) as ei:
        fund.check_custody(2 * SCALE)
    assert ei.value.code == "custody_mismatch"
