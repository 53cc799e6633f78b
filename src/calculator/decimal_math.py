"""
Decimal Math Utilities for Tax Calculations.

Amounts are integer cents. Intermediate products are computed in Decimal
and rounded once with ROUND_HALF_UP, so the same inputs always produce
the same cents.
"""

from decimal import Decimal, ROUND_HALF_UP
from typing import Sequence, Tuple, Union

Numeric = Union[int, float, str, Decimal]

# (upper bound in cents or None for the top bracket, rate)
Bracket = Tuple[Union[int, None], Decimal]


def to_decimal(value: Numeric) -> Decimal:
    """
    Convert a numeric value to Decimal.

    Floats go through str() to preserve their printed representation.
    """
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(str(value))
    return Decimal(value)


def round_cents(value: Numeric) -> int:
    """Round to whole cents using ROUND_HALF_UP (IRS standard)."""
    return int(to_decimal(value).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def apply_rate(amount_cents: int, rate: Numeric) -> int:
    """Multiply cents by a rate and round to whole cents."""
    return round_cents(Decimal(amount_cents) * to_decimal(rate))


def progressive_tax(amount_cents: int, brackets: Sequence[Bracket]) -> int:
    """
    Tax an amount through progressive brackets.

    Args:
        amount_cents: Taxable amount in cents
        brackets: Ascending (upper_bound, rate) pairs; the last bound is None

    Returns:
        Tax in cents
    """
    if amount_cents <= 0:
        return 0

    tax = Decimal(0)
    lower = 0
    for upper, rate in brackets:
        if amount_cents <= lower:
            break
        top = amount_cents if upper is None else min(amount_cents, upper)
        tax += Decimal(top - lower) * rate
        if upper is None:
            break
        lower = upper
    return round_cents(tax)


def format_dollars(cents: int) -> str:
    """Format cents as a dollar string, e.g. -123456 -> "-$1,234.56"."""
    sign = "-" if cents < 0 else ""
    return f"{sign}${abs(cents) / 100:,.2f}"
