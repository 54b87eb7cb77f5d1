from __future__ import annotations

import pytest

from aliceifo.ledger.constants import SCALE
from aliceifo.ledger.logarithm import log25, mul_div, mul_exp2_neg


def test_log25_is_exact_at_powers_of_25() -> None:
    assert log25(SCALE) == 0
    assert log25(25 * SCALE) == SCALE
    assert log25(625 * SCALE) == 2 * SCALE
    assert log25(15625 * SCALE) == 3 * SCALE
    assert log25(390625 * SCALE) == 4 * SCALE
    assert log25(25**10 * SCALE) == 10 * SCALE


# Neighbours of 25**k, within 1e-14 (10_000 units of 1e-18).
LOG25_LANDMARKS = [
    (24 * SCALE, 987317934353082163),
    (26 * SCALE, 1012184599620237516),
    (624 * SCALE, 1999502533973320192),
    (626 * SCALE, 2000496670716945664),
    (15624 * SCALE, 2999980116645820416),
    (15626 * SCALE, 3000019882081687040),
    (390624 * SCALE, 3999999204690265600),
    (390626 * SCALE, 4000000795307699200),
]


@pytest.mark.parametrize("x,expected", LOG25_LANDMARKS)
def test_log25_matches_known_landmarks(x: int, expected: int) -> None:
    assert abs(log25(x) - expected) <= 10_000


def test_log25_landmarks_bracket_exact_powers() -> None:
    for k in range(1, 5):
        p = 25**k * SCALE
        assert log25(p - SCALE) < k * SCALE == log25(p) < log25(p + SCALE)
    assert log25(5 * SCALE) == pytest.approx(SCALE // 2, abs=10)


def test_log25_below_one_is_negative() -> None:
    assert log25(SCALE // 2) < 0
    assert log25(SCALE // 25) == pytest.approx(-SCALE, abs=10)
    assert log25(1) < log25(2) < 0


def test_log25_is_monotonic() -> None:
    xs = [1, 7, SCALE // 3, SCALE - 1, SCALE, SCALE + 1, 2 * SCALE, 24 * SCALE, 25 * SCALE, 26 * SCALE, 10**30]
    ys = [log25(x) for x in xs]
    assert ys == sorted(ys)
    assert log25(SCALE) < log25(2 * SCALE) < log25(24 * SCALE)


@pytest.mark.parametrize("bad", [0, -1, -SCALE, True])
def test_log25_rejects_non_positive_input(bad: int) -> None:
    with pytest.raises(ValueError):
        log25(bad)


def test_mul_div_floors() -> None:
    assert mul_div(3, 5, 2) == 7
    assert mul_div(100 * SCALE, SCALE // 2, SCALE) == 50 * SCALE
    assert mul_div(1, SCALE // 2, SCALE) == 0

    with pytest.raises(ValueError):
        mul_div(1, 1, 0)
    with pytest.raises(ValueError):
        mul_div(-1, 1, 1)


def test_mul_exp2_neg_whole_exponents_are_shifts() -> None:
    v = 123_456_789 * SCALE
    assert mul_exp2_neg(v, 0) == v
    for k in range(0, 70):
        assert mul_exp2_neg(v, k * SCALE) == v >> k


def test_mul_exp2_neg_fractional_exponent() -> None:
    # 2**-0.5 == 0.70710678118654752440...
    assert mul_exp2_neg(SCALE, SCALE // 2) == pytest.approx(707106781186547524, abs=2)
    # 2**-1.5
    assert mul_exp2_neg(SCALE, 3 * SCALE // 2) == pytest.approx(353553390593273762, abs=2)


def test_mul_exp2_neg_is_non_increasing_in_exponent() -> None:
    prev = mul_exp2_neg(SCALE, 0)
    for e in range(0, 5 * SCALE, SCALE // 7):
        cur = mul_exp2_neg(SCALE, e)
        assert cur <= prev
        prev = cur


def test_mul_exp2_neg_huge_exponent_reaches_zero() -> None:
    assert mul_exp2_neg(SCALE, 10**6 * SCALE) == 0
    assert mul_exp2_neg(0, SCALE // 3) == 0

    with pytest.raises(ValueError):
        mul_exp2_neg(-1, 0)
    with pytest.raises(ValueError):
        mul_exp2_neg(1, -1)
