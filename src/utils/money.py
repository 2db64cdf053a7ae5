"""Money utilities shared by every export format.

All currency values leave the engine rounded to cents using half-away-from-zero
rounding. Rounding goes through ``Decimal`` on the shortest decimal
representation of the float so that values such as ``1.005`` round the way a
person reading the ledger expects (``1.01``) instead of following the binary
float expansion.
"""
from __future__ import annotations

import math
from decimal import ROUND_HALF_UP, Decimal, localcontext
from typing import Optional, Union

Number = Union[int, float, Decimal]

CENT = Decimal("0.01")
ESTIMATED_RATE_LABEL = "estimated"


def _is_finite(value: Number) -> bool:
    if isinstance(value, Decimal):
        return value.is_finite()
    return math.isfinite(value)


def to_decimal_cents(value: Number) -> Decimal:
    """Return ``value`` as a ``Decimal`` quantized to cents.

    Raises:
        ValueError: If the value is NaN or infinite.
    """
    if not _is_finite(value):
        raise ValueError(f"Cannot convert non-finite value {value!r} to cents")
    if isinstance(value, Decimal):
        raw = value
    else:
        raw = Decimal(repr(float(value)))
    with localcontext() as ctx:
        # Enough digits for the integer part plus two decimals
        ctx.prec = max(ctx.prec, raw.adjusted() + 3)
        return raw.quantize(CENT, rounding=ROUND_HALF_UP)


def round_cents(value: Optional[Number]) -> float:
    """Round to 2 decimals, half away from zero.

    ``None`` is treated as zero. NaN and infinities propagate as NaN so that a
    malformed row is visible downstream rather than silently zeroed.

    Examples:
        >>> round_cents(1.005)
        1.01
        >>> round_cents(-2.675)
        -2.68
    """
    if value is None:
        return 0.0
    if not _is_finite(value):
        return float("nan")
    rounded = float(to_decimal_cents(value))
    # Normalise negative zero
    return rounded + 0.0


def format_cents(value: Optional[Number]) -> str:
    """Format as a plain two-decimal string, e.g. ``"1234.50"``."""
    rounded = round_cents(value)
    if math.isnan(rounded):
        return "NaN"
    return f"{rounded:.2f}"


def format_currency(value: Optional[Number]) -> str:
    """Format as US dollars with exactly two decimals, e.g. ``"$1,234.50"``."""
    rounded = round_cents(value)
    if math.isnan(rounded):
        return "$NaN"
    if rounded < 0:
        return f"-${abs(rounded):,.2f}"
    return f"${rounded:,.2f}"


def format_accounting(value: Optional[Number]) -> str:
    """Format with losses in parentheses, e.g. ``"($400.00)"``."""
    rounded = round_cents(value)
    if not math.isnan(rounded) and rounded < 0:
        return f"({format_currency(abs(rounded))})"
    return format_currency(rounded)


def format_percentage(value: Number, decimals: int = 1) -> str:
    """Format a ratio (``0.141``) or a whole percentage (``14.1``) as ``"14.1%"``."""
    numeric = float(value)
    percentage = numeric * 100 if abs(numeric) < 1 else numeric
    return f"{percentage:.{decimals}f}%"


def effective_tax_rate_label(total_tax: Number, net_before_tax: Number, decimals: int = 1) -> str:
    """Describe ``total_tax / net_before_tax`` as a percentage.

    A zero, negative, or non-finite base has no meaningful rate, so the
    ``"estimated"`` sentinel is returned instead of NaN or infinity.
    """
    if not _is_finite(total_tax) or not _is_finite(net_before_tax):
        return ESTIMATED_RATE_LABEL
    if float(net_before_tax) <= 0:
        return ESTIMATED_RATE_LABEL
    ratio = float(total_tax) / float(net_before_tax)
    return f"{ratio * 100:.{decimals}f}%"


__all__ = [
    "CENT",
    "ESTIMATED_RATE_LABEL",
    "effective_tax_rate_label",
    "format_accounting",
    "format_cents",
    "format_currency",
    "format_percentage",
    "round_cents",
    "to_decimal_cents",
]
