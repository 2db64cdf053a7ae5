"""
Pre-export validation for GigLedger tax exports.

Catches rows that would produce a wrong or unfileable Schedule C before any
export is generated. Errors block the export; warnings are informational.
"""

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

from src.categorization.category_utils import MEALS_LINE_CODE, is_known_line_code, normalize_line_code
from src.reporting.schemas import ExpenseExportRow, GigExportRow, MileageExportRow, coerce_rows
from src.utils.date_helpers import is_valid_iso_date

logger = logging.getLogger(__name__)


@dataclass
class ValidationIssue:
    """Represents a single validation issue found in export data."""

    severity: str  # 'error' | 'warning'
    category: str  # 'expense' | 'gig' | 'mileage'
    record_id: str
    field: str
    message: str

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for API response."""
        return {
            "severity": self.severity,
            "category": self.category,
            "record_id": self.record_id,
            "field": self.field,
            "message": self.message,
        }


@dataclass
class ValidationResult:
    """Results from validating export data."""

    errors: List[ValidationIssue] = field(default_factory=list)
    warnings: List[ValidationIssue] = field(default_factory=list)

    @property
    def valid(self) -> bool:
        return not self.errors

    @property
    def error_count(self) -> int:
        return len(self.errors)

    @property
    def warning_count(self) -> int:
        return len(self.warnings)

    @property
    def issues(self) -> List[ValidationIssue]:
        return self.errors + self.warnings

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for API response."""
        return {
            "valid": self.valid,
            "error_count": self.error_count,
            "warning_count": self.warning_count,
            "total_issues": self.error_count + self.warning_count,
            "errors": [issue.to_dict() for issue in self.errors],
            "warnings": [issue.to_dict() for issue in self.warnings],
            "summary": get_validation_summary(self),
        }


def _blank(value: Optional[str]) -> bool:
    return value is None or not str(value).strip()


class ExportValidator:
    """
    Validates gigs, expenses and mileage before a tax export.

    Blocking errors:
    - Expense missing its IRS Schedule C line
    - Negative expense amount, gross amount or miles
    - Dates not in YYYY-MM-DD form

    Warnings:
    - Meals expense without a deductible percentage (defaults to 50%)
    - Unrecognized Schedule C line (reported as other expenses)
    - Gig without a payer name, or a paid gig without payer EIN/SSN
    - Trip without a purpose, origin or destination
    """

    def __init__(self):
        """Initialize the validator."""
        self.logger = logging.getLogger(self.__class__.__name__)

    def validate_export_data(
        self,
        gigs: Optional[Iterable[Any]] = None,
        expenses: Optional[Iterable[Any]] = None,
        mileage: Optional[Iterable[Any]] = None,
    ) -> ValidationResult:
        """
        Validate all export rows.

        Args:
            gigs: Gig rows (models or dicts)
            expenses: Expense rows (models or dicts)
            mileage: Mileage rows (models or dicts)

        Returns:
            ValidationResult with every issue found
        """
        result = ValidationResult()

        for expense in coerce_rows(expenses, ExpenseExportRow):
            self._check_expense(expense, result)
        for gig in coerce_rows(gigs, GigExportRow):
            self._check_gig(gig, result)
        for trip in coerce_rows(mileage, MileageExportRow):
            self._check_trip(trip, result)

        self.logger.info(
            f"Export validation finished: {result.error_count} error(s), "
            f"{result.warning_count} warning(s)"
        )
        return result

    def _check_expense(self, expense: ExpenseExportRow, result: ValidationResult) -> None:
        def error(field_name: str, message: str) -> None:
            result.errors.append(ValidationIssue('error', 'expense', expense.expense_id, field_name, message))

        def warning(field_name: str, message: str) -> None:
            result.warnings.append(ValidationIssue('warning', 'expense', expense.expense_id, field_name, message))

        if _blank(expense.irs_schedule_c_line):
            error(
                'irs_schedule_c_line',
                f'Expense "{expense.description}" is missing IRS Schedule C line code. '
                'This is required for tax filing.',
            )
        elif not is_known_line_code(expense.irs_schedule_c_line):
            warning(
                'irs_schedule_c_line',
                f'Expense "{expense.description}" has unrecognized Schedule C line '
                f'"{expense.irs_schedule_c_line}". It will be reported as other expenses.',
            )

        if expense.amount < 0:
            error(
                'amount',
                f'Expense "{expense.description}" has negative amount: ${expense.amount}. '
                'Amounts must be positive.',
            )

        if not is_valid_iso_date(expense.date):
            error('date', f'Expense "{expense.description}" has invalid date: {expense.date}')

        is_meals = (
            not _blank(expense.irs_schedule_c_line)
            and normalize_line_code(expense.irs_schedule_c_line) == MEALS_LINE_CODE
        )
        if is_meals and expense.meals_percent_allowed is None:
            warning(
                'meals_percent_allowed',
                f'Meals expense "{expense.description}" missing deduction percentage. '
                'Will default to 50%.',
            )

    def _check_gig(self, gig: GigExportRow, result: ValidationResult) -> None:
        if gig.gross_amount < 0:
            result.errors.append(ValidationIssue(
                'error', 'gig', gig.gig_id, 'gross_amount',
                f'Gig "{gig.title}" has negative gross amount: ${gig.gross_amount}',
            ))

        if not is_valid_iso_date(gig.date):
            result.errors.append(ValidationIssue(
                'error', 'gig', gig.gig_id, 'date', f'Gig "{gig.title}" has invalid date: {gig.date}',
            ))

        if _blank(gig.payer_name):
            result.warnings.append(ValidationIssue(
                'warning', 'gig', gig.gig_id, 'payer_name',
                f'Gig "{gig.title}" is missing payer name. This may be needed for 1099 reconciliation.',
            ))

        if gig.paid and _blank(gig.payer_ein_or_ssn):
            result.warnings.append(ValidationIssue(
                'warning', 'gig', gig.gig_id, 'payer_ein_or_ssn',
                f'Paid gig "{gig.title}" is missing payer EIN/SSN. This is needed for 1099 reconciliation.',
            ))

    def _check_trip(self, trip: MileageExportRow, result: ValidationResult) -> None:
        if trip.business_miles < 0:
            result.errors.append(ValidationIssue(
                'error', 'mileage', trip.trip_id, 'business_miles',
                f'Mileage trip has negative miles: {trip.business_miles}',
            ))

        if not is_valid_iso_date(trip.date):
            result.errors.append(ValidationIssue(
                'error', 'mileage', trip.trip_id, 'date', f'Mileage trip has invalid date: {trip.date}',
            ))

        if _blank(trip.purpose):
            result.warnings.append(ValidationIssue(
                'warning', 'mileage', trip.trip_id, 'purpose',
                f'Mileage trip from "{trip.origin}" to "{trip.destination}" is missing business purpose.',
            ))
        if _blank(trip.origin):
            result.warnings.append(ValidationIssue(
                'warning', 'mileage', trip.trip_id, 'origin', 'Mileage trip is missing origin location.',
            ))
        if _blank(trip.destination):
            result.warnings.append(ValidationIssue(
                'warning', 'mileage', trip.trip_id, 'destination', 'Mileage trip is missing destination location.',
            ))


def get_validation_summary(result: ValidationResult) -> str:
    """User-facing one-line summary of a validation result."""
    if result.valid and not result.warnings:
        return "All checks passed! Your data is ready to export."
    if not result.valid:
        return f"{result.error_count} blocking error(s) found. Please fix these before exporting."
    return f"{result.warning_count} warning(s) found. You can still export, but review these issues."


def group_issues_by_category(issues: Iterable[ValidationIssue]) -> Dict[str, List[ValidationIssue]]:
    """Group issues by record category ('expense', 'gig', 'mileage')."""
    grouped: Dict[str, List[ValidationIssue]] = defaultdict(list)
    for issue in issues:
        grouped[issue.category].append(issue)
    return dict(grouped)
