import json
import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

import pytest

from src.utils.validation import (
    ExportValidator,
    ValidationResult,
    get_validation_summary,
    group_issues_by_category,
)

FIXTURE_DIR = Path(__file__).resolve().parent / "fixtures"


@pytest.fixture()
def export_document() -> dict:
    with open(FIXTURE_DIR / "gigledger_2025.json", "r", encoding="utf-8") as handle:
        return json.load(handle)


@pytest.fixture()
def validator() -> ExportValidator:
    return ExportValidator()


def test_fixture_has_warnings_only(validator: ExportValidator, export_document: dict) -> None:
    result = validator.validate_export_data(
        export_document["gigs"], export_document["expenses"], export_document["mileage"]
    )

    assert result.valid
    assert result.error_count == 0
    assert result.warning_count == 2
    fields = {(issue.record_id, issue.field) for issue in result.warnings}
    assert fields == {("e-002", "meals_percent_allowed"), ("e-004", "irs_schedule_c_line")}
    assert get_validation_summary(result) == (
        "2 warning(s) found. You can still export, but review these issues."
    )


def test_blocking_expense_errors(validator: ExportValidator) -> None:
    result = validator.validate_export_data(expenses=[
        {"expense_id": "e1", "date": "2025-01-01", "description": "Cables", "amount": 10},
        {"expense_id": "e2", "date": "01/02/2025", "description": "Refund", "amount": -5,
         "irs_schedule_c_line": "22"},
    ])

    assert not result.valid
    assert [(issue.record_id, issue.field) for issue in result.errors] == [
        ("e1", "irs_schedule_c_line"),
        ("e2", "amount"),
        ("e2", "date"),
    ]
    assert "missing IRS Schedule C line code" in result.errors[0].message
    assert get_validation_summary(result) == (
        "3 blocking error(s) found. Please fix these before exporting."
    )


def test_meals_with_explicit_percent_is_clean(validator: ExportValidator) -> None:
    result = validator.validate_export_data(expenses=[
        {"expense_id": "e1", "date": "2025-01-01", "description": "Dinner", "amount": 40,
         "irs_schedule_c_line": "Line 24b", "meals_percent_allowed": 0.5},
    ])
    assert result.issues == []
    assert get_validation_summary(result) == "All checks passed! Your data is ready to export."


def test_gig_checks(validator: ExportValidator) -> None:
    result = validator.validate_export_data(gigs=[
        {"gig_id": "g1", "date": "2025-13-01", "title": "Bad", "gross_amount": -1, "payer_name": "X"},
        {"gig_id": "g2", "date": "2025-02-01", "title": "Anon", "gross_amount": 100, "paid": True},
    ])

    assert {(issue.record_id, issue.field) for issue in result.errors} == {
        ("g1", "gross_amount"),
        ("g1", "date"),
    }
    assert {(issue.record_id, issue.field) for issue in result.warnings} == {
        ("g2", "payer_name"),
        ("g2", "payer_ein_or_ssn"),
    }


def test_trip_checks(validator: ExportValidator) -> None:
    result = validator.validate_export_data(mileage=[
        {"trip_id": "t1", "date": "2025-03-01", "business_miles": -3},
    ])

    assert [issue.field for issue in result.errors] == ["business_miles"]
    assert [issue.field for issue in result.warnings] == ["purpose", "origin", "destination"]


def test_result_to_dict_and_grouping(validator: ExportValidator) -> None:
    result = validator.validate_export_data(
        gigs=[{"gig_id": "g1", "date": "2025-01-01", "title": "Set", "gross_amount": 10}],
        mileage=[{"trip_id": "t1", "date": "bad", "business_miles": 1,
                  "origin": "A", "destination": "B", "purpose": "Gig"}],
    )
    payload = result.to_dict()

    assert payload["valid"] is False
    assert payload["error_count"] == 1
    assert payload["warning_count"] == 1
    assert payload["total_issues"] == 2
    assert payload["errors"][0]["category"] == "mileage"
    assert payload["warnings"][0]["severity"] == "warning"

    grouped = group_issues_by_category(result.issues)
    assert set(grouped) == {"gig", "mileage"}


def test_empty_result_is_valid() -> None:
    result = ValidationResult()
    assert result.valid
    assert result.to_dict()["total_issues"] == 0
