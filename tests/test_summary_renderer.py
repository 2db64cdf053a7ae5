import json
import sys
from datetime import date
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

import pytest

from src.reporting.summary_renderer import render_summary
from src.reporting.tax_reports import calculate_schedule_c_summary

FIXTURE_DIR = Path(__file__).resolve().parent / "fixtures"


@pytest.fixture()
def export_document() -> dict:
    with open(FIXTURE_DIR / "gigledger_2025.json", "r", encoding="utf-8") as handle:
        return json.load(handle)


def test_render_fixture_summary(export_document: dict) -> None:
    summary = calculate_schedule_c_summary(export_document)
    html = render_summary(summary, 2025, taxpayer_name="Jordan Rivera", generated_date=date(2026, 1, 15))

    assert html.startswith("<!DOCTYPE html>")
    assert "@page" in html
    assert "size: letter" in html
    assert "page-break-inside: avoid" in html
    assert "Jordan Rivera" in html
    assert "January 15, 2026" in html
    assert "$1,865.50" in html
    assert "($60.00)" in html
    assert "$1,516.66" in html
    assert "$383.44" in html
    assert "Informational Only" in html
    assert "25.3%" in html


def test_only_nonzero_expense_lines_are_listed(export_document: dict) -> None:
    summary = calculate_schedule_c_summary(export_document)
    html = render_summary(summary, 2025, generated_date=date(2026, 1, 15))

    assert "Supplies" in html
    assert "Line 24b" in html
    assert "Depreciation" not in html
    assert "Wages" not in html
    assert "Taxpayer Name" not in html


def test_loss_rendered_in_parentheses_with_estimated_rate() -> None:
    summary = calculate_schedule_c_summary({
        "tax_year": 2025,
        "state_of_residence": "TX",
        "gigs": [{"gig_id": "g1", "date": "2025-01-01", "gross_amount": 100}],
        "expenses": [{"expense_id": "e1", "date": "2025-01-02", "amount": 500, "irs_schedule_c_line": "18"}],
    })
    html = render_summary(summary, 2025, generated_date="2026-01-15")

    assert "($400.00)" in html
    assert ">estimated<" in html
    assert "NaN" not in html
    assert "Infinity" not in html


def test_estimate_warnings_are_shown_and_escaped() -> None:
    summary = calculate_schedule_c_summary({
        "tax_year": 2025,
        "state_of_residence": "CA",
        "gigs": [{"gig_id": "g1", "date": "2025-01-01", "gross_amount": 1000}],
    })
    html = render_summary(summary, 2025, taxpayer_name="<Ann & Co>", generated_date=date(2026, 1, 15))

    assert "State income tax for CA is not included" in html
    assert "&lt;Ann &amp; Co&gt;" in html
    assert "<Ann & Co>" not in html
