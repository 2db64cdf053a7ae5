import math
import sys
from decimal import Decimal
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

import pytest

from src.utils.money import (
    effective_tax_rate_label,
    format_accounting,
    format_cents,
    format_currency,
    format_percentage,
    round_cents,
    to_decimal_cents,
)


@pytest.mark.parametrize(
    "value, expected",
    [
        (1.005, 1.01),
        (-2.675, -2.68),
        (0.125, 0.13),
        (2.5, 2.5),
        (10, 10.0),
        (53.6, 53.6),
        (-0.001, 0.0),
    ],
)
def test_round_cents_half_away_from_zero(value, expected) -> None:
    assert round_cents(value) == expected


def test_round_cents_is_idempotent() -> None:
    for value in (1.005, 214.29723303, -400.0, 0.1 + 0.2, 1400.63551):
        once = round_cents(value)
        assert round_cents(once) == once


def test_round_cents_handles_none_and_non_finite() -> None:
    assert round_cents(None) == 0.0
    assert math.isnan(round_cents(float("nan")))
    assert math.isnan(round_cents(float("inf")))


def test_round_cents_never_returns_negative_zero() -> None:
    assert math.copysign(1.0, round_cents(-0.001)) == 1.0


def test_to_decimal_cents() -> None:
    assert to_decimal_cents(1.005) == Decimal("1.01")
    assert to_decimal_cents(Decimal("2.345")) == Decimal("2.35")
    with pytest.raises(ValueError):
        to_decimal_cents(float("nan"))


def test_currency_formatting() -> None:
    assert format_cents(1234.5) == "1234.50"
    assert format_currency(1234.5) == "$1,234.50"
    assert format_currency(-1234.5) == "-$1,234.50"
    assert format_currency(0) == "$0.00"
    assert format_accounting(-400) == "($400.00)"
    assert format_accounting(400) == "$400.00"


def test_format_percentage_accepts_ratio_or_percent() -> None:
    assert format_percentage(0.141) == "14.1%"
    assert format_percentage(14.1) == "14.1%"
    assert format_percentage(0.2528, decimals=2) == "25.28%"


def test_effective_tax_rate_label() -> None:
    assert effective_tax_rate_label(383.44, 1516.66) == "25.3%"
    assert effective_tax_rate_label(100, 0) == "estimated"
    assert effective_tax_rate_label(0, -400) == "estimated"
    assert effective_tax_rate_label(100, float("nan")) == "estimated"


def test_very_large_values_round_without_precision_errors() -> None:
    assert to_decimal_cents(1e27) == Decimal("1000000000000000000000000000.00")
    assert round_cents(1e27) == 1e27
    assert round_cents(-1.5e300) == -1.5e300
    assert to_decimal_cents(Decimal("123456789012345678901234567890.125")) == Decimal(
        "123456789012345678901234567890.13"
    )
