"""
TXF (Tax Exchange Format) export for desktop tax software.

Plain text, one field per line, records separated by ``^`` lines, version
V042. Only desktop tax software imports TXF; online editions do not.
"""
from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Dict, List, Optional, Union

from src.categorization.category_utils import CAR_TRUCK_BUCKET, EXPENSE_BUCKETS, MEALS_BUCKET
from src.reporting.schemas import ScheduleCSummary
from src.utils.date_helpers import safe_format_date
from src.utils.money import format_cents

logger = logging.getLogger(__name__)

TXF_VERSION = "V042"
TXF_APPLICATION = "AGigLedger"
TXF_RECORD_TYPE = "TD"
TXF_CATEGORY = "C1"
RECORD_SEPARATOR = "^"

TXF_LABELS: Dict[str, str] = {
    "advertising": "Schedule C - Advertising",
    "car_truck": "Schedule C - Car and Truck Expenses",
    "commissions": "Schedule C - Commissions and Fees",
    "contract_labor": "Schedule C - Contract Labor",
    "depreciation": "Schedule C - Depreciation",
    "employee_benefit": "Schedule C - Employee Benefit Programs",
    "insurance_other": "Schedule C - Insurance",
    "interest_mortgage": "Schedule C - Interest (Mortgage)",
    "interest_other": "Schedule C - Interest (Other)",
    "legal_professional": "Schedule C - Legal and Professional Services",
    "office_expense": "Schedule C - Office Expense",
    "rent_vehicles": "Schedule C - Rent or Lease (Vehicles)",
    "rent_other": "Schedule C - Rent or Lease (Other)",
    "repairs_maintenance": "Schedule C - Repairs and Maintenance",
    "supplies": "Schedule C - Supplies",
    "taxes_licenses": "Schedule C - Taxes and Licenses",
    "travel": "Schedule C - Travel",
    "meals_allowed": "Schedule C - Meals (50% deductible)",
    "utilities": "Schedule C - Utilities",
    "wages": "Schedule C - Wages",
    "other_expenses_total": "Schedule C - Other Expenses",
}

TXF_EXPLANATIONS: Dict[str, str] = {
    CAR_TRUCK_BUCKET: "Standard mileage rate deduction",
    MEALS_BUCKET: "50% limitation already applied",
}


def _record(label: str, amount: float, export_date: str, explanation: Optional[str] = None) -> List[str]:
    lines = [
        RECORD_SEPARATOR,
        TXF_RECORD_TYPE,
        TXF_CATEGORY,
        "L" + label,
        "D" + export_date,
        "$" + format_cents(amount),
    ]
    if explanation:
        lines.append("X" + explanation)
    lines.append(RECORD_SEPARATOR)
    return lines


def generate_txf(
    summary: ScheduleCSummary,
    tax_year: int,
    taxpayer_name: str,
    taxpayer_ssn: Optional[str] = None,
    export_date: Optional[Union[date, datetime, str]] = None,
) -> str:
    """
    Generate TXF content for a Schedule C summary.

    Args:
        summary: Canonical Schedule C summary
        tax_year: Tax year being exported
        taxpayer_name: Name written to the taxpayer section
        taxpayer_ssn: Optional SSN; omitted from the file when not given
        export_date: Date stamped on each record (defaults to today)

    Returns:
        TXF file content with LF line endings
    """
    stamp = safe_format_date(export_date or date.today(), "%m/%d/%Y")

    lines: List[str] = [
        TXF_VERSION,
        TXF_APPLICATION,
        RECORD_SEPARATOR,
        "D" + stamp,
        RECORD_SEPARATOR,
        "TS",
        RECORD_SEPARATOR,
        "N" + taxpayer_name,
        RECORD_SEPARATOR,
    ]
    if taxpayer_ssn:
        lines.extend(["S" + taxpayer_ssn, RECORD_SEPARATOR])

    if summary.gross_receipts > 0:
        lines.extend(_record("Schedule C - Gross Receipts", summary.gross_receipts, stamp))
    if summary.other_income > 0:
        lines.extend(_record("Schedule C - Other Income", summary.other_income, stamp))

    record_count = 0
    for bucket in EXPENSE_BUCKETS:
        amount = getattr(summary, bucket.name)
        if amount > 0:
            lines.extend(_record(TXF_LABELS[bucket.name], amount, stamp, TXF_EXPLANATIONS.get(bucket.name)))
            record_count += 1

    logger.info(f"Generated TXF for tax year {tax_year} with {record_count} expense records")
    return "\n".join(lines)


def get_txf_import_instructions() -> str:
    """Plain-text instructions for importing the TXF file."""
    return """TXF Import Instructions (desktop tax software only):

1. Open your desktop tax software (Windows or Mac application)
2. Go to File > Import > From TXF Files
3. Select the downloaded .txf file
4. Review all imported data carefully
5. Amounts are placed on the matching Schedule C lines

IMPORTANT NOTES:
- Online tax software editions do NOT support TXF imports
- Always review imported data for accuracy
- Keep your CSV exports as backup documentation
- Consult a tax professional if you have questions

LIMITATIONS:
- This is a simplified Schedule C import
- Does not include Form 4562 (depreciation details)
- Does not include vehicle expense details (Part IV)
- Does not include home office deduction (Form 8829)
- Net profit must be verified in your tax software"""
