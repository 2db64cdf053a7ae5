"""
Spreadsheet export for GigLedger tax packages.

``build_workbook_data`` assembles a five-sheet workbook as plain rows
(array-of-arrays) so it can be inspected or tested without a spreadsheet
library. ``write_workbook`` turns that structure into an ``.xlsx`` file with
openpyxl.
"""
from __future__ import annotations

import io
import logging
from dataclasses import dataclass, field
from datetime import date
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Union

from openpyxl import Workbook
from openpyxl.styles import Alignment, Font, PatternFill
from openpyxl.utils import get_column_letter

from src.categorization.category_utils import (
    CAR_TRUCK_BUCKET,
    COMMISSIONS_BUCKET,
    EXPENSE_BUCKETS,
    MEALS_BUCKET,
    bucket_for_line,
    empty_buckets,
    get_standard_mileage_rate,
    meals_percent,
    mileage_deduction,
    trip_rate,
)
from src.reporting.schemas import (
    ExpenseExportRow,
    GigExportRow,
    MileageExportRow,
    PayerExportRow,
    ScheduleCCalculationInput,
    ScheduleCSummary,
    TaxBreakdown,
    coerce_rows,
)
from src.reporting.tax_reports import resolve_tax_estimate
from src.utils.date_helpers import safe_format_date
from src.utils.money import round_cents

logger = logging.getLogger(__name__)

SUMMARY_SHEET = "Schedule C Summary"
GIGS_SHEET = "Gigs"
EXPENSES_SHEET = "Expenses"
MILEAGE_SHEET = "Mileage"
PAYERS_SHEET = "Payers"
SHEET_NAMES = (SUMMARY_SHEET, GIGS_SHEET, EXPENSES_SHEET, MILEAGE_SHEET, PAYERS_SHEET)

GIGS_SHEET_HEADERS = [
    "Date", "Payer", "Title", "City", "State", "Gross", "Tips", "Fees",
    "Per Diem", "Other Income", "Net", "Paid", "Notes",
]
EXPENSES_SHEET_HEADERS = [
    "Date", "Category", "Merchant", "Description", "Amount",
    "Schedule C Line", "Meals %", "Notes",
]
MILEAGE_SHEET_HEADERS = [
    "Date", "Origin", "Destination", "Miles", "Purpose", "Vehicle", "Rate",
    "Deduction", "Notes",
]
PAYERS_SHEET_HEADERS = [
    "Name", "Contact", "Email", "Phone", "City", "State", "EIN/SSN", "Notes",
]

SECTION_LABELS = ("INCOME", "EXPENSES", "NET PROFIT", "TAX ESTIMATES")

MAX_COLUMN_WIDTH = 50

Row = List[Any]


@dataclass
class WorkbookInput:
    """Rows, calculation options and (optionally) a precomputed summary for one tax year."""

    tax_year: int
    gigs: List[Any] = field(default_factory=list)
    expenses: List[Any] = field(default_factory=list)
    mileage: List[Any] = field(default_factory=list)
    payers: List[Any] = field(default_factory=list)
    summary: Optional[ScheduleCSummary] = None
    filing_status: str = "single"
    state_of_residence: str = ""
    standard_or_itemized: str = "standard"
    include_tips: bool = True
    include_fees_as_deduction: bool = False
    mileage_rate: Optional[float] = None
    # Rate for trips with no override and no rate of their own
    default_mileage_rate: Optional[float] = None
    tax_breakdown: Optional[Union[TaxBreakdown, dict]] = None
    generated_date: Optional[date] = None

    @classmethod
    def for_calculation(
        cls,
        calc_input: ScheduleCCalculationInput,
        summary: Optional[ScheduleCSummary] = None,
        payers: Optional[Iterable[Any]] = None,
        default_mileage_rate: Optional[float] = None,
        generated_date: Optional[date] = None,
    ) -> "WorkbookInput":
        """Build the workbook input from a calculation input and its summary."""
        return cls(
            tax_year=calc_input.tax_year,
            gigs=list(calc_input.gigs),
            expenses=list(calc_input.expenses),
            mileage=list(calc_input.mileage),
            payers=list(payers or []),
            summary=summary,
            filing_status=calc_input.filing_status,
            state_of_residence=calc_input.state_of_residence,
            standard_or_itemized=calc_input.standard_or_itemized,
            include_tips=calc_input.include_tips,
            include_fees_as_deduction=calc_input.include_fees_as_deduction,
            mileage_rate=calc_input.mileage_rate,
            default_mileage_rate=default_mileage_rate,
            tax_breakdown=calc_input.tax_breakdown,
            generated_date=generated_date,
        )

    def resolved_default_mileage_rate(self) -> float:
        if self.default_mileage_rate is not None:
            return self.default_mileage_rate
        return get_standard_mileage_rate(self.tax_year)


def recalculate_summary_for_workbook(
    gigs: Iterable[Any],
    expenses: Iterable[Any],
    mileage: Iterable[Any],
    tax_year: int,
    state_of_residence: str = "",
    mileage_rate: Optional[float] = None,
    default_mileage_rate: Optional[float] = None,
    include_tips: bool = True,
    include_fees_as_deduction: bool = False,
    filing_status: str = "single",
    standard_or_itemized: str = "standard",
    tax_breakdown: Optional[Union[TaxBreakdown, dict]] = None,
) -> ScheduleCSummary:
    """
    Rebuild a Schedule C summary from raw rows for the spreadsheet.

    Used when the workbook is built without a usable summary. The rows go
    through the same line-code table, meals percentage, mileage rates and tax
    estimate as the canonical aggregator, so for the same options both paths
    agree to the cent.

    Args:
        gigs: Gig rows (models or dicts)
        expenses: Expense rows (models or dicts)
        mileage: Mileage rows (models or dicts)
        tax_year: Tax year for the summary
        state_of_residence: Used for the state tax warning
        mileage_rate: Optional per-mile override for every trip
        default_mileage_rate: Rate for trips with no override and no rate of
            their own (defaults to the tax year's standard rate)
        include_tips: Add tips to gross receipts
        include_fees_as_deduction: Report fees under commissions instead of
            returns and allowances
        filing_status: Copied onto the summary
        standard_or_itemized: Copied onto the summary
        tax_breakdown: Externally computed tax, used verbatim when given

    Returns:
        ScheduleCSummary with rounded values
    """
    gig_rows = coerce_rows(gigs, GigExportRow)
    expense_rows = coerce_rows(expenses, ExpenseExportRow)
    trip_rows = coerce_rows(mileage, MileageExportRow)
    if default_mileage_rate is None:
        default_mileage_rate = get_standard_mileage_rate(tax_year)

    gross_amount = sum(g.gross_amount for g in gig_rows)
    tips = sum(g.tips for g in gig_rows) if include_tips else 0.0
    per_diem = sum(g.per_diem for g in gig_rows)
    other_income = sum(g.other_income for g in gig_rows)
    fees = sum(g.fees for g in gig_rows)

    totals = empty_buckets()
    for expense in expense_rows:
        bucket = bucket_for_line(expense.irs_schedule_c_line, expense.gl_category)
        if bucket == MEALS_BUCKET:
            totals[bucket] += expense.amount * meals_percent(expense)
        else:
            totals[bucket] += expense.amount
    totals[CAR_TRUCK_BUCKET] += mileage_deduction(trip_rows, mileage_rate, default_mileage_rate)
    if include_fees_as_deduction:
        totals[COMMISSIONS_BUCKET] += fees

    rounded = {name: round_cents(value) for name, value in totals.items()}
    gross_receipts = round_cents(gross_amount + tips + per_diem + other_income)
    returns_and_allowances = 0.0 if include_fees_as_deduction else round_cents(fees)
    total_income = round_cents(gross_receipts - returns_and_allowances)
    total_expenses = round_cents(sum(rounded.values()))
    net_profit = round_cents(total_income - total_expenses)

    estimate = resolve_tax_estimate(net_profit, state_of_residence, tax_breakdown)
    return ScheduleCSummary(
        tax_year=tax_year,
        filing_status=filing_status,
        state_of_residence=state_of_residence,
        standard_or_itemized=standard_or_itemized,
        gross_receipts=gross_receipts,
        returns_and_allowances=returns_and_allowances,
        total_income=total_income,
        total_expenses=total_expenses,
        net_profit=net_profit,
        **estimate,
        **rounded,
    )


def _summary_needs_recalculation(summary: Optional[ScheduleCSummary]) -> bool:
    return summary is None or not summary.gross_receipts > 0


def _summary_sheet(summary: ScheduleCSummary, tax_year: int, generated: str) -> List[Row]:
    rows: List[Row] = [
        ["Schedule C Summary", "", ""],
        ["Tax Year", tax_year, ""],
        ["Generated", generated, ""],
        ["", "", ""],
        ["INCOME", "", ""],
        ["Line 1", "Gross receipts or sales", round_cents(summary.gross_receipts)],
        ["Line 2", "Returns and allowances", round_cents(summary.returns_and_allowances)],
        ["Line 6", "Other income", round_cents(summary.other_income)],
        ["Line 7", "Gross income", round_cents(summary.total_income)],
        ["", "", ""],
        ["EXPENSES", "", ""],
    ]
    for bucket in EXPENSE_BUCKETS:
        rows.append([f"Line {bucket.line}", bucket.label, round_cents(getattr(summary, bucket.name))])
    rows.extend([
        ["Line 28", "Total expenses", round_cents(summary.total_expenses)],
        ["", "", ""],
        ["NET PROFIT", "", ""],
        ["Line 31", "Net profit or (loss)", round_cents(summary.net_profit)],
        ["", "", ""],
        ["TAX ESTIMATES", "", ""],
        ["", "Self-employment tax basis", round_cents(summary.se_tax_basis)],
        ["", "Self-employment tax", round_cents(summary.est_se_tax)],
        ["", "Federal income tax", round_cents(summary.est_federal_income_tax)],
        ["", "State income tax", round_cents(summary.est_state_income_tax)],
        ["", "Total estimated tax", round_cents(summary.est_total_tax)],
        ["", "Suggested set aside", round_cents(summary.set_aside_suggested)],
    ])
    for warning in summary.tax_estimate_warnings:
        rows.append(["Note", warning, ""])
    return rows


def _gigs_sheet(gigs: List[GigExportRow]) -> List[Row]:
    rows: List[Row] = [list(GIGS_SHEET_HEADERS)]
    for gig in gigs:
        rows.append([
            gig.date,
            gig.payer_name,
            gig.title,
            gig.city or "",
            gig.state or "",
            round_cents(gig.gross_amount),
            round_cents(gig.tips),
            round_cents(gig.fees),
            round_cents(gig.per_diem),
            round_cents(gig.other_income),
            round_cents(gig.net_amount),
            "Yes" if gig.paid else "No",
            gig.notes or "",
        ])
    return rows


def _expenses_sheet(expenses: List[ExpenseExportRow]) -> List[Row]:
    rows: List[Row] = [list(EXPENSES_SHEET_HEADERS)]
    for expense in expenses:
        rows.append([
            expense.date,
            expense.gl_category,
            expense.merchant or "",
            expense.description,
            round_cents(expense.amount),
            expense.irs_schedule_c_line or "27a",
            "" if expense.meals_percent_allowed is None else expense.meals_percent_allowed,
            expense.notes or "",
        ])
    return rows


def _mileage_sheet(
    mileage: List[MileageExportRow], mileage_rate: Optional[float], default_rate: float
) -> List[Row]:
    rows: List[Row] = [list(MILEAGE_SHEET_HEADERS)]
    for trip in mileage:
        rate = trip_rate(trip, mileage_rate, default_rate)
        deduction = trip.business_miles * rate
        rows.append([
            trip.date,
            trip.origin,
            trip.destination,
            trip.business_miles,
            trip.purpose,
            trip.vehicle or "",
            rate,
            round_cents(deduction),
            trip.notes or "",
        ])
    return rows


def _payers_sheet(payers: List[PayerExportRow]) -> List[Row]:
    rows: List[Row] = [list(PAYERS_SHEET_HEADERS)]
    for payer in payers:
        rows.append([
            payer.payer_name,
            payer.contact_name or "",
            payer.email or "",
            payer.phone or "",
            payer.city or "",
            payer.state or "",
            payer.ein_or_ssn or "",
            payer.notes or "",
        ])
    return rows


def build_workbook_data(workbook_input: WorkbookInput) -> Dict[str, List[Row]]:
    """
    Build the five workbook sheets as lists of rows.

    If the supplied summary is missing or has no gross receipts, a summary is
    recalculated from the raw rows with ``recalculate_summary_for_workbook``.

    Returns:
        Ordered mapping of sheet name to rows
    """
    gigs = coerce_rows(workbook_input.gigs, GigExportRow)
    expenses = coerce_rows(workbook_input.expenses, ExpenseExportRow)
    mileage = coerce_rows(workbook_input.mileage, MileageExportRow)
    payers = coerce_rows(workbook_input.payers, PayerExportRow)

    default_rate = workbook_input.resolved_default_mileage_rate()

    summary = workbook_input.summary
    if _summary_needs_recalculation(summary):
        logger.info(f"Recalculating Schedule C summary for workbook ({workbook_input.tax_year})")
        summary = recalculate_summary_for_workbook(
            gigs,
            expenses,
            mileage,
            workbook_input.tax_year,
            state_of_residence=workbook_input.state_of_residence,
            mileage_rate=workbook_input.mileage_rate,
            default_mileage_rate=default_rate,
            include_tips=workbook_input.include_tips,
            include_fees_as_deduction=workbook_input.include_fees_as_deduction,
            filing_status=workbook_input.filing_status,
            standard_or_itemized=workbook_input.standard_or_itemized,
            tax_breakdown=workbook_input.tax_breakdown,
        )

    generated = safe_format_date(workbook_input.generated_date or date.today(), "%Y-%m-%d")

    return {
        SUMMARY_SHEET: _summary_sheet(summary, workbook_input.tax_year, generated),
        GIGS_SHEET: _gigs_sheet(gigs),
        EXPENSES_SHEET: _expenses_sheet(expenses),
        MILEAGE_SHEET: _mileage_sheet(mileage, workbook_input.mileage_rate, default_rate),
        PAYERS_SHEET: _payers_sheet(payers),
    }


def column_widths(rows: List[Row], max_width: int = MAX_COLUMN_WIDTH) -> List[int]:
    """Width per column: longest stringified value plus padding, capped at ``max_width``."""
    column_count = max((len(row) for row in rows), default=0)
    widths: List[int] = []
    for col_idx in range(column_count):
        max_length = 0
        for row in rows:
            if col_idx < len(row) and row[col_idx] not in (None, ""):
                max_length = max(max_length, len(str(row[col_idx])))
        widths.append(min(max_length + 2, max_width))
    return widths


def _build_workbook(data: Dict[str, List[Row]]) -> Workbook:
    header_font = Font(name='Calibri', size=11, bold=True, color='FFFFFF')
    header_fill = PatternFill(start_color='2563EB', end_color='2563EB', fill_type='solid')
    title_font = Font(name='Calibri', size=14, bold=True, color='1E40AF')
    section_font = Font(name='Calibri', size=11, bold=True)

    wb = Workbook()
    wb.remove(wb.active)

    for sheet_name, rows in data.items():
        ws = wb.create_sheet(sheet_name)
        for row in rows:
            ws.append(row)

        if sheet_name == SUMMARY_SHEET:
            ws['A1'].font = title_font
            for row_idx, row in enumerate(rows, start=1):
                if row and row[0] in SECTION_LABELS:
                    ws.cell(row=row_idx, column=1).font = section_font
                elif len(row) > 2 and isinstance(row[2], float):
                    ws.cell(row=row_idx, column=3).number_format = '$#,##0.00'
        elif rows:
            for col_idx in range(1, len(rows[0]) + 1):
                cell = ws.cell(row=1, column=col_idx)
                cell.font = header_font
                cell.fill = header_fill
                cell.alignment = Alignment(horizontal='center', vertical='center')
            ws.freeze_panes = 'A2'

        for col_idx, width in enumerate(column_widths(rows), start=1):
            ws.column_dimensions[get_column_letter(col_idx)].width = width

    return wb


def write_workbook(data: Dict[str, List[Row]], path: Union[str, Path]) -> Path:
    """Write workbook data to an ``.xlsx`` file and return its path."""
    file_path = Path(path)
    file_path.parent.mkdir(parents=True, exist_ok=True)
    _build_workbook(data).save(file_path)
    logger.info(f"Workbook saved to {file_path}")
    return file_path


def workbook_bytes(data: Dict[str, List[Row]]) -> bytes:
    """Serialize workbook data to ``.xlsx`` bytes."""
    buffer = io.BytesIO()
    _build_workbook(data).save(buffer)
    return buffer.getvalue()
