"""Fixed-point integer arithmetic.

Amounts are plain ints in base units. Scaled quantities (slopes, ratios) use
``ONE = 10**18``. Every helper fails loudly instead of going negative or past
``MAX_UINT``.
"""

from __future__ import annotations

import math
from enum import Enum

from forecast_core.market.errors import ArithmeticFault

ONE = 10**18
BPS = 10_000
MAX_UINT = 2**256 - 1


class Rounding(str, Enum):
    DOWN = "down"
    UP = "up"


def _check_range(value: int, op: str) -> int:
    if value < 0 or value > MAX_UINT:
        raise ArithmeticFault(op=op, value=value)
    return value


def checked_add(a: int, b: int) -> int:
    _check_range(a, "add")
    _check_range(b, "add")
    return _check_range(a + b, "add")


def checked_sub(a: int, b: int) -> int:
    """a - b, refusing to go below zero."""
    _check_range(a, "sub")
    _check_range(b, "sub")
    return _check_range(a - b, "sub")


def mul_div(a: int, b: int, denominator: int, rounding: Rounding = Rounding.DOWN) -> int:
    """Compute ``a * b / denominator`` with the product kept at full precision."""
    _check_range(a, "mul_div")
    _check_range(b, "mul_div")
    if denominator <= 0:
        raise ArithmeticFault(op="mul_div", denominator=denominator)
    quotient, remainder = divmod(a * b, denominator)
    if rounding is Rounding.UP and remainder:
        quotient += 1
    return _check_range(quotient, "mul_div")


def isqrt(n: int) -> int:
    """Floor of the square root of *n*."""
    if n < 0:
        raise ArithmeticFault(op="isqrt", value=n)
    return math.isqrt(n)


def bps_of(amount: int, bps: int) -> int:
    """Floor of ``amount * bps / 10_000``."""
    if bps > BPS:
        raise ArithmeticFault(op="bps_of", bps=bps)
    return mul_div(amount, bps, BPS)
