"""
Schedule C category mapping for expenses and mileage.

This module owns the one lookup table that turns an IRS Schedule C line code
into a named expense bucket. The canonical aggregator and the spreadsheet
fallback both classify through it, so the classification rules live in one
place even though the two code paths are separate.
"""

from typing import Dict, Iterable, NamedTuple, Optional, Tuple
import logging

logger = logging.getLogger(__name__)


# IRS Schedule C (Form 1040) Part II line codes
IRS_SCHEDULE_C_LINE_CODES: Dict[str, str] = {
    "ADVERTISING": "8",
    "CAR_TRUCK": "9",  # Actual vehicle expenses OR standard mileage
    "COMMISSIONS": "10",
    "CONTRACT_LABOR": "11",
    "DEPLETION": "12",
    "DEPRECIATION": "13",
    "EMPLOYEE_BENEFIT": "14",
    "INSURANCE": "15",
    "INTEREST_MORTGAGE": "16a",
    "INTEREST_OTHER": "16b",
    "LEGAL_PROFESSIONAL": "17",
    "OFFICE_EXPENSE": "18",
    "PENSION_PROFIT_SHARING": "19",
    "RENT_VEHICLES": "20a",
    "RENT_OTHER": "20b",
    "REPAIRS_MAINTENANCE": "21",
    "SUPPLIES": "22",
    "TAXES_LICENSES": "23",
    "TRAVEL": "24a",
    "MEALS": "24b",  # Subject to 50% limitation
    "UTILITIES": "25",
    "WAGES": "26",
    "OTHER": "27a",
}

MEALS_LINE_CODE = IRS_SCHEDULE_C_LINE_CODES["MEALS"]
OTHER_LINE_CODE = IRS_SCHEDULE_C_LINE_CODES["OTHER"]

MEALS_BUCKET = "meals_allowed"
CAR_TRUCK_BUCKET = "car_truck"
COMMISSIONS_BUCKET = "commissions"
OTHER_BUCKET = "other_expenses_total"

DEFAULT_MEALS_PERCENT = 0.5
DEFAULT_MILEAGE_RATE = 0.67  # 2025 IRS standard mileage rate

STANDARD_MILEAGE_RATES: Dict[int, float] = {
    2023: 0.655,
    2024: 0.67,
    2025: 0.67,
}


class ExpenseBucket(NamedTuple):
    """A Schedule C Part II expense bucket as it appears on every export."""

    name: str
    line: str
    label: str


# Ordered as on the form; drives the spreadsheet, HTML and TXF layouts
EXPENSE_BUCKETS: Tuple[ExpenseBucket, ...] = (
    ExpenseBucket("advertising", "8", "Advertising"),
    ExpenseBucket("car_truck", "9", "Car and truck expenses"),
    ExpenseBucket("commissions", "10", "Commissions and fees"),
    ExpenseBucket("contract_labor", "11", "Contract labor"),
    ExpenseBucket("depreciation", "13", "Depreciation"),
    ExpenseBucket("employee_benefit", "14", "Employee benefit programs"),
    ExpenseBucket("insurance_other", "15", "Insurance (other than health)"),
    ExpenseBucket("interest_mortgage", "16a", "Interest - Mortgage"),
    ExpenseBucket("interest_other", "16b", "Interest - Other"),
    ExpenseBucket("legal_professional", "17", "Legal and professional services"),
    ExpenseBucket("office_expense", "18", "Office expense"),
    ExpenseBucket("rent_vehicles", "20a", "Rent or lease - Vehicles, machinery, equipment"),
    ExpenseBucket("rent_other", "20b", "Rent or lease - Other business property"),
    ExpenseBucket("repairs_maintenance", "21", "Repairs and maintenance"),
    ExpenseBucket("supplies", "22", "Supplies"),
    ExpenseBucket("taxes_licenses", "23", "Taxes and licenses"),
    ExpenseBucket("travel", "24a", "Travel"),
    ExpenseBucket("meals_allowed", "24b", "Meals (deductible amount after 50% limitation)"),
    ExpenseBucket("utilities", "25", "Utilities"),
    ExpenseBucket("wages", "26", "Wages"),
    ExpenseBucket("other_expenses_total", "27a", "Other expenses"),
)

EXPENSE_BUCKET_NAMES: Tuple[str, ...] = tuple(bucket.name for bucket in EXPENSE_BUCKETS)

# Line code -> bucket. Lines without a dedicated bucket (depletion, pension
# plans) and unknown codes fall through to other_expenses_total.
LINE_CODE_TO_BUCKET: Dict[str, str] = {
    bucket.line: bucket.name for bucket in EXPENSE_BUCKETS
}


# GigLedger category names -> IRS line codes
CATEGORY_TO_IRS_LINE: Dict[str, str] = {
    # Equipment & Gear
    "equipment": IRS_SCHEDULE_C_LINE_CODES["SUPPLIES"],
    "equipment/gear": IRS_SCHEDULE_C_LINE_CODES["SUPPLIES"],
    "instruments": IRS_SCHEDULE_C_LINE_CODES["SUPPLIES"],
    "gear": IRS_SCHEDULE_C_LINE_CODES["SUPPLIES"],
    "supplies": IRS_SCHEDULE_C_LINE_CODES["SUPPLIES"],

    # Marketing & Promotion
    "marketing": IRS_SCHEDULE_C_LINE_CODES["ADVERTISING"],
    "marketing/promotion": IRS_SCHEDULE_C_LINE_CODES["ADVERTISING"],
    "advertising": IRS_SCHEDULE_C_LINE_CODES["ADVERTISING"],
    "website": IRS_SCHEDULE_C_LINE_CODES["ADVERTISING"],

    # Professional Services
    "legal": IRS_SCHEDULE_C_LINE_CODES["LEGAL_PROFESSIONAL"],
    "accounting": IRS_SCHEDULE_C_LINE_CODES["LEGAL_PROFESSIONAL"],
    "professional services": IRS_SCHEDULE_C_LINE_CODES["LEGAL_PROFESSIONAL"],
    "professional fees": IRS_SCHEDULE_C_LINE_CODES["LEGAL_PROFESSIONAL"],

    # Travel & Meals
    "travel": IRS_SCHEDULE_C_LINE_CODES["TRAVEL"],
    "lodging": IRS_SCHEDULE_C_LINE_CODES["TRAVEL"],
    "meals": MEALS_LINE_CODE,
    "meals & entertainment": MEALS_LINE_CODE,
    "food": MEALS_LINE_CODE,

    # Office & Supplies
    "office supplies": IRS_SCHEDULE_C_LINE_CODES["OFFICE_EXPENSE"],
    "software": IRS_SCHEDULE_C_LINE_CODES["OFFICE_EXPENSE"],
    "software/subscriptions": IRS_SCHEDULE_C_LINE_CODES["OFFICE_EXPENSE"],
    "subscriptions": IRS_SCHEDULE_C_LINE_CODES["OFFICE_EXPENSE"],

    # Utilities & Communications
    "phone": IRS_SCHEDULE_C_LINE_CODES["UTILITIES"],
    "internet": IRS_SCHEDULE_C_LINE_CODES["UTILITIES"],
    "utilities": IRS_SCHEDULE_C_LINE_CODES["UTILITIES"],

    # Insurance
    "insurance": IRS_SCHEDULE_C_LINE_CODES["INSURANCE"],
    "health insurance": IRS_SCHEDULE_C_LINE_CODES["EMPLOYEE_BENEFIT"],

    # Repairs & Maintenance
    "repairs": IRS_SCHEDULE_C_LINE_CODES["REPAIRS_MAINTENANCE"],
    "maintenance": IRS_SCHEDULE_C_LINE_CODES["REPAIRS_MAINTENANCE"],

    # Rent
    "rent": IRS_SCHEDULE_C_LINE_CODES["RENT_OTHER"],
    "rent/studio": IRS_SCHEDULE_C_LINE_CODES["RENT_OTHER"],
    "equipment rental": IRS_SCHEDULE_C_LINE_CODES["RENT_VEHICLES"],

    # Taxes & Licenses
    "licenses": IRS_SCHEDULE_C_LINE_CODES["TAXES_LICENSES"],
    "permits": IRS_SCHEDULE_C_LINE_CODES["TAXES_LICENSES"],
    "taxes": IRS_SCHEDULE_C_LINE_CODES["TAXES_LICENSES"],

    # Labor
    "contract labor": IRS_SCHEDULE_C_LINE_CODES["CONTRACT_LABOR"],
    "subcontractors": IRS_SCHEDULE_C_LINE_CODES["CONTRACT_LABOR"],
    "wages": IRS_SCHEDULE_C_LINE_CODES["WAGES"],

    # Fees
    "fees": IRS_SCHEDULE_C_LINE_CODES["COMMISSIONS"],
    "commissions": IRS_SCHEDULE_C_LINE_CODES["COMMISSIONS"],
    "platform fees": IRS_SCHEDULE_C_LINE_CODES["COMMISSIONS"],

    # Everything else
    "education": OTHER_LINE_CODE,
    "education/training": OTHER_LINE_CODE,
    "other": OTHER_LINE_CODE,
}

_KNOWN_LINE_CODES = frozenset(IRS_SCHEDULE_C_LINE_CODES.values())


def normalize_line_code(line_code: Optional[str], gl_category: Optional[str] = None) -> str:
    """
    Normalize an IRS Schedule C line code.

    Handles:
    - Case and whitespace (" 24B " -> "24b")
    - A "Line " prefix ("Line 24b" -> "24b")
    - Missing codes, resolved through the expense's GigLedger category

    Args:
        line_code: Raw line code from the expense row
        gl_category: GigLedger category used when the line code is blank

    Returns:
        Normalized line code. Unknown codes are returned cleaned but unchanged
        so the caller can decide how to bucket them.
    """
    if line_code is not None and str(line_code).strip():
        cleaned = str(line_code).strip().lower()
        if cleaned.startswith("line"):
            cleaned = cleaned[len("line"):].strip()
        return cleaned

    if gl_category and str(gl_category).strip():
        mapped = CATEGORY_TO_IRS_LINE.get(str(gl_category).strip().lower())
        if mapped:
            return mapped
        logger.warning(f"Unknown expense category '{gl_category}' mapped to line {OTHER_LINE_CODE}")

    return OTHER_LINE_CODE


def bucket_for_line(line_code: Optional[str], gl_category: Optional[str] = None) -> str:
    """Return the Schedule C bucket name for a line code."""
    normalized = normalize_line_code(line_code, gl_category)
    return LINE_CODE_TO_BUCKET.get(normalized, OTHER_BUCKET)


def is_known_line_code(line_code: Optional[str]) -> bool:
    return normalize_line_code(line_code) in _KNOWN_LINE_CODES


def _field(record, name: str, default=None):
    if isinstance(record, dict):
        value = record.get(name, default)
    else:
        value = getattr(record, name, default)
    return default if value is None else value


def meals_percent(expense) -> float:
    """Deductible share of a meals expense; ``None`` falls back to 50%."""
    return float(_field(expense, "meals_percent_allowed", DEFAULT_MEALS_PERCENT))


def classify_expense(expense) -> Tuple[str, float]:
    """
    Classify one expense row.

    Args:
        expense: Expense row (model or dict) with ``amount``,
            ``irs_schedule_c_line`` and optionally ``gl_category`` and
            ``meals_percent_allowed``

    Returns:
        Tuple of (bucket name, deductible amount). Meals land in
        ``meals_allowed`` at the allowed percentage and never in another bucket.
    """
    amount = float(_field(expense, "amount", 0.0))
    line_code = normalize_line_code(
        _field(expense, "irs_schedule_c_line"),
        _field(expense, "gl_category"),
    )

    if line_code == MEALS_LINE_CODE:
        return MEALS_BUCKET, amount * meals_percent(expense)

    return LINE_CODE_TO_BUCKET.get(line_code, OTHER_BUCKET), amount


def empty_buckets() -> Dict[str, float]:
    return {name: 0.0 for name in EXPENSE_BUCKET_NAMES}


def get_standard_mileage_rate(tax_year: Optional[int]) -> float:
    """IRS standard mileage rate for a tax year (0.67 when unknown)."""
    if tax_year is None:
        return DEFAULT_MILEAGE_RATE
    return STANDARD_MILEAGE_RATES.get(int(tax_year), DEFAULT_MILEAGE_RATE)


def trip_rate(trip, override_rate: Optional[float] = None, default_rate: float = DEFAULT_MILEAGE_RATE) -> float:
    """Per-mile rate for a trip: explicit override, then the trip's own rate, then the default."""
    if override_rate is not None:
        return float(override_rate)
    own_rate = _field(trip, "standard_rate")
    if own_rate is not None:
        return float(own_rate)
    return float(default_rate)


def mileage_deduction(
    trips: Iterable,
    override_rate: Optional[float] = None,
    default_rate: float = DEFAULT_MILEAGE_RATE,
) -> float:
    """Sum of business miles times the applicable rate (unrounded)."""
    return sum(
        float(_field(trip, "business_miles", 0.0)) * trip_rate(trip, override_rate, default_rate)
        for trip in trips
    )
