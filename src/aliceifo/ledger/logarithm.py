# src/aliceifo/ledger/logarithm.py
from __future__ import annotations

"""Integer-only fixed-point math for the IFO decay curve.

Every value crossing this module's API is an 18-decimal fixed-point integer
(``SCALE == 10**18`` means 1.0). Internally we work in binary fixed point with
127 fractional bits so intermediate truncation stays far below 1 / SCALE.

Nothing here touches floats: results are identical on every platform and
every Python build.
"""

from math import isqrt
from typing import Tuple

from aliceifo.ledger.constants import SCALE

_FRAC_BITS: int = 127
_ONE: int = 1 << _FRAC_BITS
_TWO: int = _ONE << 1
_TWENTY_FIVE: int = 25 * _ONE

# Fractional log2 bits resolved per call (2**-64 is below 1 / SCALE).
_LOG_BITS: int = 64


def mul_div(a: int, b: int, d: int) -> int:
    """Return floor(a * b / d) for non-negative a, b and positive d."""
    a_i, b_i, d_i = int(a), int(b), int(d)
    if d_i <= 0:
        raise ValueError("mul_div divisor must be positive")
    if a_i < 0 or b_i < 0:
        raise ValueError("mul_div operands must be non-negative")
    return (a_i * b_i) // d_i


def _log2_binary(y: int) -> int:
    """log2(y / _ONE) in units of 2**-_LOG_BITS, for y >= _ONE."""
    n = y.bit_length() - 1 - _FRAC_BITS
    if n > 0:
        y >>= n
    result = n << _LOG_BITS
    for i in range(_LOG_BITS - 1, -1, -1):
        y = (y * y) >> _FRAC_BITS
        if y >= _TWO:
            y >>= 1
            result |= 1 << i
    return result


def _neg_roots() -> Tuple[int, ...]:
    # 2**(-1 / 2**i) for i = 1.._LOG_BITS, by repeated integer square roots.
    out = []
    c = _ONE >> 1
    for _ in range(_LOG_BITS):
        c = isqrt(c << _FRAC_BITS)
        out.append(c)
    return tuple(out)


_LOG2_25: int = _log2_binary(_TWENTY_FIVE)
_NEG_ROOTS: Tuple[int, ...] = _neg_roots()


def _reduce25(x: int) -> Tuple[int, int]:
    """Split x into (k, y) with x / SCALE == 25**k * y / _ONE and _ONE <= y < 25 * _ONE."""
    y = (x << _FRAC_BITS) // SCALE
    k = 0
    while y >= _TWENTY_FIVE:
        y //= 25
        k += 1
    while y < _ONE:
        y *= 25
        k -= 1
    return k, y


def log25(x: int) -> int:
    """Return log_25(x / SCALE) * SCALE.

    Exact at integral powers of 25 (``log25(625 * SCALE) == 2 * SCALE``),
    monotonic non-decreasing, negative for x < SCALE.

    Raises ValueError for x <= 0.
    """
    if isinstance(x, bool):
        raise ValueError("log25 expects an int")
    x_i = int(x)
    if x_i <= 0:
        raise ValueError(f"log25 undefined for non-positive input: {x_i}")

    k, y = _reduce25(x_i)
    return k * SCALE + (_log2_binary(y) * SCALE) // _LOG2_25


def mul_exp2_neg(value: int, e: int) -> int:
    """Return floor(value * 2**(-e / SCALE)) for value >= 0 and e >= 0.

    The whole part of ``e`` is applied as a right shift, so arbitrarily large
    exponents cost nothing and simply reach 0.
    """
    v = int(value)
    e_i = int(e)
    if v < 0 or e_i < 0:
        raise ValueError("mul_exp2_neg expects non-negative value and exponent")

    whole, frac = divmod(e_i, SCALE)
    if v == 0 or whole >= v.bit_length():
        return 0

    bits = (frac << _LOG_BITS) // SCALE
    acc = _ONE
    for i, root in enumerate(_NEG_ROOTS):
        if bits & (1 << (_LOG_BITS - 1 - i)):
            acc = (acc * root) >> _FRAC_BITS

    return (v * acc) >> (_FRAC_BITS + whole)
