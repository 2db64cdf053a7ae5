"""
Schedule C aggregation for GigLedger tax exports.
Turns gigs, expenses and mileage into the one canonical ScheduleCSummary that
every export format is rendered from.
"""
from __future__ import annotations

import logging
import math
from typing import Dict, List, Optional, Union

from src.categorization.category_utils import (
    CAR_TRUCK_BUCKET,
    COMMISSIONS_BUCKET,
    EXPENSE_BUCKET_NAMES,
    classify_expense,
    empty_buckets,
    get_standard_mileage_rate,
    mileage_deduction,
)
from src.reporting.schemas import ScheduleCCalculationInput, ScheduleCSummary, TaxBreakdown
from src.utils.config import AppConfig
from src.utils.money import round_cents

logger = logging.getLogger(__name__)

SE_TAX_MULTIPLIER = 0.9235
SS_WAGE_BASE = 168600  # 2025 Social Security wage base
SS_TAX_RATE = 0.124
MEDICARE_TAX_RATE = 0.029
SIMPLIFIED_FEDERAL_RATE = 0.12  # 12% bracket assumption

# States without a broad personal income tax
NO_INCOME_TAX_STATES = frozenset({"AK", "FL", "NV", "NH", "SD", "TN", "TX", "WA", "WY"})


def _floor_zero(value: float) -> float:
    """``max(0, value)`` that lets NaN through."""
    if math.isnan(value):
        return value
    return max(0.0, value)


def _state_tax_warning(state_of_residence: Optional[str]) -> Optional[str]:
    state = (state_of_residence or "").strip().upper()
    if state in NO_INCOME_TAX_STATES:
        return None
    if not state:
        return (
            "State of residence not provided; state income tax is not included "
            "in this estimate."
        )
    return (
        f"State income tax for {state} is not included in this estimate. "
        "Provide a tax breakdown for a state-specific figure."
    )


def simplified_tax_estimate(
    net_profit: float, state_of_residence: Optional[str] = None
) -> Dict[str, Union[float, List[str]]]:
    """Simplified self-employment and federal estimate for a net profit.

    SE tax is 12.4% Social Security on the basis up to the wage base plus 2.9%
    Medicare on the whole basis. Federal income tax assumes the 12% bracket on
    net profit less half the SE tax. State income tax is never guessed: it is
    reported as 0 with a warning unless the state has no income tax.

    Args:
        net_profit: Schedule C net profit (already rounded to cents)
        state_of_residence: Two-letter state code

    Returns:
        Dictionary with rounded ``se_tax_basis``, ``est_se_tax``,
        ``est_federal_income_tax``, ``est_state_income_tax``, ``est_total_tax``
        and a ``warnings`` list.
    """
    se_tax_basis = _floor_zero(net_profit * SE_TAX_MULTIPLIER)
    ss_tax = min(se_tax_basis, SS_WAGE_BASE) * SS_TAX_RATE
    medicare_tax = se_tax_basis * MEDICARE_TAX_RATE
    se_tax = ss_tax + medicare_tax
    federal_tax = _floor_zero((net_profit - se_tax * 0.5) * SIMPLIFIED_FEDERAL_RATE)

    se_tax_r = round_cents(se_tax)
    federal_r = round_cents(federal_tax)
    state_r = 0.0

    warnings: List[str] = []
    state_warning = _state_tax_warning(state_of_residence)
    if state_warning:
        warnings.append(state_warning)

    return {
        "se_tax_basis": round_cents(se_tax_basis),
        "est_se_tax": se_tax_r,
        "est_federal_income_tax": federal_r,
        "est_state_income_tax": state_r,
        "est_total_tax": round_cents(se_tax_r + federal_r + state_r),
        "warnings": warnings,
    }


def resolve_tax_estimate(
    net_profit: float,
    state_of_residence: Optional[str] = None,
    tax_breakdown: Optional[Union[TaxBreakdown, dict]] = None,
) -> Dict[str, Union[float, str, List[str]]]:
    """Tax estimate fields for a summary.

    A supplied breakdown is used verbatim (rounded to cents). Otherwise the
    simplified estimate applies and any state tax warning is logged.

    Returns:
        Dictionary keyed by the ScheduleCSummary tax field names, including
        ``tax_estimate_source`` and ``tax_estimate_warnings``.
    """
    simplified = simplified_tax_estimate(net_profit, state_of_residence)
    if tax_breakdown is not None:
        if not isinstance(tax_breakdown, TaxBreakdown):
            tax_breakdown = TaxBreakdown.model_validate(tax_breakdown)
        source = "provided"
        est_se_tax = round_cents(tax_breakdown.self_employment)
        est_federal = round_cents(tax_breakdown.federal_income)
        est_state = round_cents(tax_breakdown.state_income)
        est_total = round_cents(tax_breakdown.total)
        warnings: List[str] = []
    else:
        source = "simplified"
        est_se_tax = simplified["est_se_tax"]
        est_federal = simplified["est_federal_income_tax"]
        est_state = simplified["est_state_income_tax"]
        est_total = simplified["est_total_tax"]
        warnings = list(simplified["warnings"])
        for warning in warnings:
            logger.warning(warning)

    return {
        "se_tax_basis": simplified["se_tax_basis"],
        "est_se_tax": est_se_tax,
        "est_federal_income_tax": est_federal,
        "est_state_income_tax": est_state,
        "est_total_tax": est_total,
        "set_aside_suggested": round_cents(_floor_zero(est_total)),
        "tax_estimate_source": source,
        "tax_estimate_warnings": warnings,
    }


def calculate_schedule_c_summary(
    calc_input: Union[ScheduleCCalculationInput, dict],
    default_mileage_rate: Optional[float] = None,
) -> ScheduleCSummary:
    """Aggregate raw rows into a Schedule C summary.

    Args:
        calc_input: Calculation input (model or plain dict)
        default_mileage_rate: Per-mile rate for trips with neither an explicit
            ``mileage_rate`` override nor their own ``standard_rate``. Defaults
            to the IRS standard rate for the tax year.

    Returns:
        ScheduleCSummary with every currency field rounded to cents and
        ``total_income - total_expenses == net_profit`` exactly.
    """
    if not isinstance(calc_input, ScheduleCCalculationInput):
        calc_input = ScheduleCCalculationInput.model_validate(calc_input)

    if default_mileage_rate is None:
        default_mileage_rate = get_standard_mileage_rate(calc_input.tax_year)

    logger.debug(
        f"Aggregating Schedule C for {calc_input.tax_year}: {len(calc_input.gigs)} gigs, "
        f"{len(calc_input.expenses)} expenses, {len(calc_input.mileage)} trips"
    )

    # Part I: Income
    gross_amount_total = 0.0
    tips_total = 0.0
    per_diem_total = 0.0
    other_income_total = 0.0
    fees_total = 0.0
    for gig in calc_input.gigs:
        gross_amount_total += gig.gross_amount
        if calc_input.include_tips:
            tips_total += gig.tips
        per_diem_total += gig.per_diem
        other_income_total += gig.other_income
        fees_total += gig.fees

    gross_receipts = round_cents(gross_amount_total + tips_total + per_diem_total + other_income_total)
    returns_and_allowances = 0.0 if calc_input.include_fees_as_deduction else round_cents(fees_total)
    total_income = round_cents(gross_receipts - returns_and_allowances)

    # Part II: Expenses
    buckets = empty_buckets()
    for expense in calc_input.expenses:
        bucket, amount = classify_expense(expense)
        buckets[bucket] += amount

    buckets[CAR_TRUCK_BUCKET] += mileage_deduction(
        calc_input.mileage,
        override_rate=calc_input.mileage_rate,
        default_rate=default_mileage_rate,
    )

    if calc_input.include_fees_as_deduction:
        buckets[COMMISSIONS_BUCKET] += fees_total

    rounded_buckets = {name: round_cents(buckets[name]) for name in EXPENSE_BUCKET_NAMES}
    total_expenses = round_cents(sum(rounded_buckets.values()))

    net_profit = round_cents(total_income - total_expenses)

    # Tax estimates (informational only)
    estimate = resolve_tax_estimate(net_profit, calc_input.state_of_residence, calc_input.tax_breakdown)

    summary = ScheduleCSummary(
        tax_year=calc_input.tax_year,
        filing_status=calc_input.filing_status,
        state_of_residence=calc_input.state_of_residence,
        standard_or_itemized=calc_input.standard_or_itemized,
        gross_receipts=gross_receipts,
        returns_and_allowances=returns_and_allowances,
        other_income=0.0,
        total_income=total_income,
        total_expenses=total_expenses,
        net_profit=net_profit,
        **estimate,
        **rounded_buckets,
    )

    logger.debug(f"Schedule C {calc_input.tax_year}: net profit {summary.net_profit:.2f}")
    return summary


class ScheduleCReporter:
    """Calculates Schedule C summaries using application configuration."""

    def __init__(self, config: Optional[AppConfig] = None):
        """Initialize the reporter.

        Args:
            config: Application configuration. Its ``default_mileage_rate``
                overrides the IRS standard rate for the tax year.
        """
        self.config = config

    def default_mileage_rate(self, tax_year: int) -> float:
        if self.config is not None and self.config.default_mileage_rate is not None:
            return self.config.default_mileage_rate
        return get_standard_mileage_rate(tax_year)

    def calculate(self, calc_input: Union[ScheduleCCalculationInput, dict]) -> ScheduleCSummary:
        if not isinstance(calc_input, ScheduleCCalculationInput):
            calc_input = ScheduleCCalculationInput.model_validate(calc_input)
        return calculate_schedule_c_summary(
            calc_input, default_mileage_rate=self.default_mileage_rate(calc_input.tax_year)
        )
