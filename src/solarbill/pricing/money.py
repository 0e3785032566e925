"""Decimal money helpers.

All arithmetic in the engine is Decimal; figures are clamped at zero and
quantized with ROUND_HALF_UP only when they leave a calculator as money.
Multipliers and rates are never quantized.
"""

from __future__ import annotations

from collections.abc import Iterable
from decimal import ROUND_HALF_UP, Decimal

ZERO = Decimal("0")
ONE = Decimal("1")
HUNDRED = Decimal("100")
MONTHS_PER_YEAR = Decimal("12")
KWP_PER_MW = Decimal("1000")

DEFAULT_MONEY_PRECISION = 2


def money_quantum(precision: int = DEFAULT_MONEY_PRECISION) -> Decimal:
    """Return the quantization step for a precision, e.g. 2 -> Decimal('0.01')."""
    return ONE.scaleb(-precision)


def clamp_non_negative(value: Decimal) -> Decimal:
    return value if value > ZERO else ZERO


def to_money(value: Decimal, precision: int = DEFAULT_MONEY_PRECISION) -> Decimal:
    """Clamp a cost at zero and quantize it to the money precision.

    Args:
        value: Raw Decimal cost.
        precision: Number of decimal places.

    Returns:
        Non-negative Decimal with exactly ``precision`` places.
    """
    return clamp_non_negative(value).quantize(money_quantum(precision), rounding=ROUND_HALF_UP)


def sum_money(values: Iterable[Decimal]) -> Decimal:
    return sum(values, ZERO)


def percent_of(amount: Decimal, percent: Decimal) -> Decimal:
    return amount * percent / HUNDRED
