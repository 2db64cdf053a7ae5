"""
Manual-entry packs for online tax software, plus the JSON backup.

TurboTax Online and TaxAct do not import TXF files. Each pack is a ZIP holding
a line-by-line Schedule C CSV, detail CSVs, the printable summary and a README
with entry instructions. Every figure in a pack comes from the same
ScheduleCSummary as the other export formats.
"""
from __future__ import annotations

import io
import json
import logging
import zipfile
from collections import OrderedDict
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, List, Optional

from src.categorization.category_utils import (
    EXPENSE_BUCKETS,
    MEALS_BUCKET,
    classify_expense,
    meals_percent,
    mileage_deduction,
    normalize_line_code,
    trip_rate,
)
from src.reporting.csv_export import to_csv
from src.reporting.schemas import (
    PayerExportRow,
    ScheduleCCalculationInput,
    ScheduleCSummary,
)
from src.reporting.summary_renderer import render_summary
from src.reporting.txf_export import TXF_EXPLANATIONS
from src.utils.date_helpers import safe_format_date
from src.utils.money import format_accounting, format_currency, round_cents

logger = logging.getLogger(__name__)

# IRS de minimis safe harbor: purchases at or above this may need depreciation
ASSET_REVIEW_THRESHOLD = 2500.0
DEPRECIATION_BUCKET = "depreciation"

TURBOTAX_SUMMARY_HEADERS = ("line_description", "schedule_c_line", "amount", "notes")
TAXACT_SUMMARY_HEADERS = (
    "schedule_c_line",
    "line_description",
    "raw_signed_amount",
    "amount_for_entry",
    "notes",
)
INCOME_DETAIL_HEADERS = (
    "gig_id",
    "date",
    "payer_name",
    "payer_ein_or_ssn",
    "title",
    "gross_amount",
    "tips",
    "per_diem",
    "other_income",
    "fees",
    "net_amount",
    "paid",
)
EXPENSE_DETAIL_HEADERS = (
    "expense_id",
    "date",
    "merchant",
    "description",
    "gl_category",
    "schedule_c_line",
    "amount",
    "deductible_percent",
    "deductible_amount",
    "receipt_url",
    "notes",
    "linked_gig_id",
)
TAXACT_EXPENSE_DETAIL_HEADERS = EXPENSE_DETAIL_HEADERS + (
    "potential_asset_review",
    "potential_asset_reason",
)
MILEAGE_DETAIL_HEADERS = (
    "trip_id",
    "date",
    "origin",
    "destination",
    "purpose",
    "business_miles",
    "rate",
    "deduction_amount",
    "notes",
)
PAYER_SUMMARY_HEADERS = (
    "payer_name",
    "payer_ein_or_ssn",
    "payer_email",
    "payer_phone",
    "payments_count",
    "gross_amount",
    "fees_total",
    "net_amount",
    "first_payment_date",
    "last_payment_date",
)
MILEAGE_SUMMARY_HEADERS = (
    "tax_year",
    "total_business_miles",
    "standard_rate_used",
    "mileage_deduction_amount",
    "entries_count",
    "notes",
)

UNKNOWN_PAYER = "(no payer)"


@dataclass
class TaxPackInput:
    """Calculation input, its summary, and what the packs need beyond them."""

    calc_input: ScheduleCCalculationInput
    summary: ScheduleCSummary
    default_mileage_rate: float
    payers: List[PayerExportRow] = field(default_factory=list)
    taxpayer_name: Optional[str] = None
    generated_date: date = field(default_factory=date.today)

    @property
    def tax_year(self) -> int:
        return self.calc_input.tax_year


def schedule_c_line_items(summary: ScheduleCSummary) -> List[Dict[str, Any]]:
    """
    Schedule C lines for manual entry.

    Income lines carry a positive signed amount; returns and expense lines a
    negative one. ``amount_for_entry`` is always the positive figure to type
    in. Expense lines are listed only when nonzero.
    """
    items = [
        {
            "schedule_c_line": "1",
            "line_description": "Gross receipts or sales",
            "raw_signed_amount": round_cents(summary.gross_receipts),
            "amount_for_entry": round_cents(summary.gross_receipts),
            "notes": "Cash basis. Money received only.",
        },
        {
            "schedule_c_line": "2",
            "line_description": "Returns and allowances",
            "raw_signed_amount": round_cents(-summary.returns_and_allowances),
            "amount_for_entry": round_cents(summary.returns_and_allowances),
            "notes": "Negative amount.",
        },
    ]
    if summary.other_income:
        items.append({
            "schedule_c_line": "6",
            "line_description": "Other income",
            "raw_signed_amount": round_cents(summary.other_income),
            "amount_for_entry": round_cents(summary.other_income),
            "notes": "Positive amount.",
        })
    for bucket in EXPENSE_BUCKETS:
        amount = getattr(summary, bucket.name)
        if not amount:
            continue
        note = TXF_EXPLANATIONS.get(bucket.name)
        items.append({
            "schedule_c_line": bucket.line,
            "line_description": bucket.label,
            "raw_signed_amount": round_cents(-amount),
            "amount_for_entry": round_cents(amount),
            "notes": f"Negative amount. {note}." if note else "Negative amount.",
        })
    return items


def _income_detail_rows(pack: TaxPackInput) -> List[Dict[str, Any]]:
    return [
        {
            "gig_id": gig.gig_id,
            "date": gig.date,
            "payer_name": gig.payer_name,
            "payer_ein_or_ssn": gig.payer_ein_or_ssn,
            "title": gig.title,
            "gross_amount": round_cents(gig.gross_amount),
            "tips": round_cents(gig.tips),
            "per_diem": round_cents(gig.per_diem),
            "other_income": round_cents(gig.other_income),
            "fees": round_cents(gig.fees),
            "net_amount": round_cents(gig.net_amount),
            "paid": gig.paid,
        }
        for gig in pack.calc_input.gigs
    ]


def _expense_detail_rows(pack: TaxPackInput, asset_review: bool = False) -> List[Dict[str, Any]]:
    rows = []
    for expense in pack.calc_input.expenses:
        bucket, deductible = classify_expense(expense)
        row = {
            "expense_id": expense.expense_id,
            "date": expense.date,
            "merchant": expense.merchant,
            "description": expense.description,
            "gl_category": expense.gl_category,
            "schedule_c_line": normalize_line_code(expense.irs_schedule_c_line, expense.gl_category),
            "amount": round_cents(expense.amount),
            "deductible_percent": meals_percent(expense) if bucket == MEALS_BUCKET else 1.0,
            "deductible_amount": round_cents(deductible),
            "receipt_url": expense.receipt_url,
            "notes": expense.notes,
            "linked_gig_id": expense.linked_gig_id,
        }
        if asset_review:
            flagged = bucket != DEPRECIATION_BUCKET and expense.amount >= ASSET_REVIEW_THRESHOLD
            row["potential_asset_review"] = flagged
            row["potential_asset_reason"] = (
                f"Purchase of {format_currency(expense.amount)} is at or above the "
                f"{format_currency(ASSET_REVIEW_THRESHOLD)} de minimis limit; it may need depreciation."
                if flagged else ""
            )
        rows.append(row)
    return rows


def _mileage_detail_rows(pack: TaxPackInput) -> List[Dict[str, Any]]:
    rows = []
    for trip in pack.calc_input.mileage:
        rate = trip_rate(trip, pack.calc_input.mileage_rate, pack.default_mileage_rate)
        rows.append({
            "trip_id": trip.trip_id,
            "date": trip.date,
            "origin": trip.origin,
            "destination": trip.destination,
            "purpose": trip.purpose,
            "business_miles": trip.business_miles,
            "rate": rate,
            "deduction_amount": round_cents(trip.business_miles * rate),
            "notes": trip.notes,
        })
    return rows


def payer_summary_rows(pack: TaxPackInput) -> List[Dict[str, Any]]:
    """Per-payer totals for 1099 reconciliation, in first-seen order."""
    directory = {
        payer.payer_name.strip().lower(): payer
        for payer in pack.payers
        if payer.payer_name.strip()
    }
    include_tips = pack.calc_input.include_tips

    grouped: "OrderedDict[str, Dict[str, Any]]" = OrderedDict()
    for gig in pack.calc_input.gigs:
        name = gig.payer_name.strip() or UNKNOWN_PAYER
        key = name.lower()
        entry = grouped.get(key)
        if entry is None:
            payer = directory.get(key)
            entry = {
                "payer_name": name,
                "payer_ein_or_ssn": gig.payer_ein_or_ssn or (payer.ein_or_ssn if payer else None),
                "payer_email": payer.email if payer else None,
                "payer_phone": payer.phone if payer else None,
                "payments_count": 0,
                "gross_amount": 0.0,
                "fees_total": 0.0,
                "dates": [],
            }
            grouped[key] = entry
        elif not entry["payer_ein_or_ssn"] and gig.payer_ein_or_ssn:
            entry["payer_ein_or_ssn"] = gig.payer_ein_or_ssn

        entry["payments_count"] += 1
        entry["gross_amount"] += (
            gig.gross_amount + (gig.tips if include_tips else 0.0) + gig.per_diem + gig.other_income
        )
        entry["fees_total"] += gig.fees
        if gig.date:
            entry["dates"].append(gig.date)

    rows = []
    for entry in grouped.values():
        dates = sorted(entry.pop("dates"))
        gross = round_cents(entry["gross_amount"])
        fees = round_cents(entry["fees_total"])
        entry.update({
            "gross_amount": gross,
            "fees_total": fees,
            "net_amount": round_cents(gross - fees),
            "first_payment_date": dates[0] if dates else "",
            "last_payment_date": dates[-1] if dates else "",
        })
        rows.append(entry)
    return rows


def mileage_summary_row(pack: TaxPackInput) -> Dict[str, Any]:
    """Trip totals for the vehicle expense section."""
    trips = pack.calc_input.mileage
    override = pack.calc_input.mileage_rate
    rate_used = override if override is not None else pack.default_mileage_rate
    own_rates = override is None and any(trip.standard_rate is not None for trip in trips)
    return {
        "tax_year": pack.tax_year,
        "total_business_miles": round_cents(sum(trip.business_miles for trip in trips)),
        "standard_rate_used": rate_used,
        "mileage_deduction_amount": round_cents(
            mileage_deduction(trips, override_rate=override, default_rate=pack.default_mileage_rate)
        ),
        "entries_count": len(trips),
        "notes": "Some trips use their own per-mile rate; see the mileage log." if own_rates else "",
    }


def _zip_files(files: Dict[str, str], stamp: date) -> bytes:
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", zipfile.ZIP_DEFLATED) as zipf:
        for name, content in files.items():
            info = zipfile.ZipInfo(name, date_time=(stamp.year, stamp.month, stamp.day, 0, 0, 0))
            info.compress_type = zipfile.ZIP_DEFLATED
            zipf.writestr(info, content)
    return buffer.getvalue()


def _summary_block(summary: ScheduleCSummary) -> List[str]:
    return [
        f"SCHEDULE C SUMMARY ({summary.tax_year})",
        "-------------------------------",
        f"Gross receipts:           {format_currency(summary.gross_receipts)}",
        f"Returns and allowances:   {format_currency(summary.returns_and_allowances)}",
        f"Other income:             {format_currency(summary.other_income)}",
        f"Total expenses:           {format_currency(summary.total_expenses)}",
        f"NET PROFIT:               {format_accounting(summary.net_profit)}",
    ]


def _notes_block(summary: ScheduleCSummary) -> List[str]:
    if not summary.tax_estimate_warnings:
        return []
    return ["", "NOTES", "-----"] + [f"- {warning}" for warning in summary.tax_estimate_warnings]


def _disclaimer_block(year: int) -> List[str]:
    return [
        "IMPORTANT",
        "---------",
        "- Cash basis accounting (income when received, expenses when paid)",
        "- All amounts are in USD, rounded to cents",
        "- Meals are already limited to the deductible percentage (50% unless set per expense)",
        f"- Mileage uses the IRS standard rate for {year} unless a trip has its own rate",
        "- This is NOT tax advice. Verify all totals and consult a tax professional.",
    ]


def turbotax_readme(pack: TaxPackInput) -> str:
    """Manual entry instructions for TurboTax Online."""
    year = pack.tax_year
    summary = pack.summary
    lines = [
        f"GigLedger TurboTax Online Manual Entry Pack ({year})",
        f"Generated: {safe_format_date(pack.generated_date, '%Y-%m-%d')}",
        "",
        "TurboTax Online does NOT support TXF import. Enter these totals manually.",
        "",
        "CONTENTS",
        "--------",
        f"1. ScheduleC_Summary_{year}.csv - Schedule C totals by line (expenses negative)",
        f"2. Income_Detail_{year}.csv - Income by gig",
        f"3. Expense_Detail_{year}.csv - Expenses with deductible amounts",
        f"4. Mileage_{year}.csv - Mileage log with the standard rate deduction",
        f"5. Summary_{year}.html - Printable summary for verification",
        "6. This README",
        "",
        "HOW TO USE WITH TURBOTAX ONLINE",
        "-------------------------------",
        f"Step 1: Open ScheduleC_Summary_{year}.csv.",
        "Step 2: In TurboTax Online, go to Business Income and Expenses (Schedule C).",
        f"Step 3: Enter gross receipts of {format_currency(summary.gross_receipts)}, then each",
        "        expense line as a positive amount.",
        "Step 4: Keep the detail CSVs for your records and your CPA.",
        f"Step 5: Check that TurboTax shows a net profit of {format_accounting(summary.net_profit)}.",
        "",
    ]
    lines += _disclaimer_block(year)
    lines += [""] + _summary_block(summary) + _notes_block(summary)
    return "\n".join(lines) + "\n"


def taxact_readme(pack: TaxPackInput) -> str:
    """Manual entry instructions for TaxAct."""
    year = pack.tax_year
    summary = pack.summary
    mileage = mileage_summary_row(pack)
    lines = [
        f"GigLedger TaxAct Tax Prep Pack ({year})",
        f"Generated: {safe_format_date(pack.generated_date, '%Y-%m-%d')}",
        "Basis: cash",
        "Currency: USD",
        "Rounding: 2 decimals",
        "",
        "CONTENTS",
        "--------",
        f"1. ScheduleC_Summary_{year}.csv - Schedule C totals by line (use amount_for_entry)",
        f"2. Payer_Summary_{year}.csv - Payer totals for 1099 reconciliation",
        f"3. Mileage_Summary_{year}.csv - Mileage totals",
        f"4. Income_Detail_{year}.csv - Income by gig",
        f"5. Expense_Detail_{year}.csv - Expenses with asset review flags",
        f"6. Mileage_{year}.csv - Mileage log",
        f"7. Summary_{year}.html - Printable summary for verification",
        "8. This README",
        "",
        "HOW TO USE WITH TAXACT",
        "----------------------",
        f"Step 1: Open ScheduleC_Summary_{year}.csv and use the amount_for_entry column.",
        "Step 2: In TaxAct, go to Business Income (Schedule C).",
        f"Step 3: Enter gross receipts of {format_currency(summary.gross_receipts)}. Enter every",
        "        expense as a POSITIVE amount; TaxAct subtracts it.",
        "Step 4: For vehicle expenses use Mileage_Summary:",
        f"        {mileage['total_business_miles']:.2f} business miles at "
        f"${mileage['standard_rate_used']:.3f}/mile = "
        f"{format_currency(mileage['mileage_deduction_amount'])}",
        "Step 5: Expenses flagged potential_asset_review may need depreciation instead.",
        f"Step 6: Check that TaxAct shows a net profit of {format_accounting(summary.net_profit)}.",
        "",
    ]
    lines += _disclaimer_block(year)
    lines += [""] + _summary_block(summary)
    lines += [
        "",
        "DATA",
        "----",
        f"Gigs: {len(pack.calc_input.gigs)}",
        f"Expenses: {len(pack.calc_input.expenses)}",
        f"Mileage entries: {len(pack.calc_input.mileage)}",
        f"Payers: {len(payer_summary_rows(pack))}",
    ]
    lines += _notes_block(summary)
    return "\n".join(lines) + "\n"


def _summary_html(pack: TaxPackInput) -> str:
    return render_summary(
        pack.summary, pack.tax_year, taxpayer_name=pack.taxpayer_name, generated_date=pack.generated_date
    )


def generate_turbotax_online_pack(pack: TaxPackInput) -> bytes:
    """
    Build the TurboTax Online manual entry ZIP.

    Returns:
        ZIP archive bytes
    """
    year = pack.tax_year
    items = schedule_c_line_items(pack.summary)
    files = {
        f"ScheduleC_Summary_{year}.csv": to_csv(
            [
                {
                    "line_description": item["line_description"],
                    "schedule_c_line": item["schedule_c_line"],
                    "amount": item["raw_signed_amount"],
                    "notes": item["notes"],
                }
                for item in items
            ],
            TURBOTAX_SUMMARY_HEADERS,
        ),
        f"Income_Detail_{year}.csv": to_csv(_income_detail_rows(pack), INCOME_DETAIL_HEADERS),
        f"Expense_Detail_{year}.csv": to_csv(_expense_detail_rows(pack), EXPENSE_DETAIL_HEADERS),
        f"Mileage_{year}.csv": to_csv(_mileage_detail_rows(pack), MILEAGE_DETAIL_HEADERS),
        f"Summary_{year}.html": _summary_html(pack),
        f"README_TurboTax_Online_{year}.txt": turbotax_readme(pack),
    }
    logger.info(f"Built TurboTax Online pack for {year} with {len(files)} files")
    return _zip_files(files, pack.generated_date)


def generate_taxact_pack(pack: TaxPackInput) -> bytes:
    """
    Build the TaxAct ZIP: Schedule C, payer and mileage summaries plus detail.

    Returns:
        ZIP archive bytes
    """
    year = pack.tax_year
    files = {
        f"ScheduleC_Summary_{year}.csv": to_csv(schedule_c_line_items(pack.summary), TAXACT_SUMMARY_HEADERS),
        f"Payer_Summary_{year}.csv": to_csv(payer_summary_rows(pack), PAYER_SUMMARY_HEADERS),
        f"Mileage_Summary_{year}.csv": to_csv([mileage_summary_row(pack)], MILEAGE_SUMMARY_HEADERS),
        f"Income_Detail_{year}.csv": to_csv(_income_detail_rows(pack), INCOME_DETAIL_HEADERS),
        f"Expense_Detail_{year}.csv": to_csv(
            _expense_detail_rows(pack, asset_review=True), TAXACT_EXPENSE_DETAIL_HEADERS
        ),
        f"Mileage_{year}.csv": to_csv(_mileage_detail_rows(pack), MILEAGE_DETAIL_HEADERS),
        f"Summary_{year}.html": _summary_html(pack),
        f"README_TaxAct_{year}.txt": taxact_readme(pack),
    }
    logger.info(f"Built TaxAct pack for {year} with {len(files)} files")
    return _zip_files(files, pack.generated_date)


def generate_json_backup(pack: TaxPackInput) -> str:
    """Complete JSON backup: metadata, calculation options, summary and every row."""
    calc_input = pack.calc_input
    document = {
        "metadata": {
            "app": "GigLedger",
            "tax_year": pack.tax_year,
            "generated": safe_format_date(pack.generated_date, "%Y-%m-%d"),
            "taxpayer_name": pack.taxpayer_name,
            "basis": "cash",
            "currency": "USD",
            "rounding_precision": 2,
            "default_mileage_rate": pack.default_mileage_rate,
        },
        "options": calc_input.model_dump(mode="json", exclude={"gigs", "expenses", "mileage"}),
        "summary": pack.summary.model_dump(mode="json"),
        "gigs": [gig.model_dump(mode="json") for gig in calc_input.gigs],
        "expenses": [expense.model_dump(mode="json") for expense in calc_input.expenses],
        "mileage": [trip.model_dump(mode="json") for trip in calc_input.mileage],
        "payers": [payer.model_dump(mode="json") for payer in pack.payers],
    }
    return json.dumps(document, indent=2)
