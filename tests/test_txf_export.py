import json
import sys
from datetime import date
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

import pytest

from src.reporting.schemas import ScheduleCSummary
from src.reporting.tax_reports import calculate_schedule_c_summary
from src.reporting.txf_export import generate_txf, get_txf_import_instructions

FIXTURE_DIR = Path(__file__).resolve().parent / "fixtures"


@pytest.fixture()
def export_document() -> dict:
    with open(FIXTURE_DIR / "gigledger_2025.json", "r", encoding="utf-8") as handle:
        return json.load(handle)


@pytest.fixture()
def txf_lines(export_document: dict) -> list:
    summary = calculate_schedule_c_summary(export_document)
    content = generate_txf(summary, 2025, "Jordan Rivera", export_date=date(2026, 1, 15))
    return content.split("\n")


def test_header_and_taxpayer_section(txf_lines: list) -> None:
    assert txf_lines[:9] == ["V042", "AGigLedger", "^", "D01/15/2026", "^", "TS", "^", "NJordan Rivera", "^"]
    assert not any(line.startswith("S") for line in txf_lines)


def test_ssn_written_when_given(export_document: dict) -> None:
    summary = calculate_schedule_c_summary(export_document)
    lines = generate_txf(summary, 2025, "Jordan Rivera", "123-45-6789", date(2026, 1, 15)).split("\n")
    assert lines[9:11] == ["S123-45-6789", "^"]


def test_gross_receipts_record(txf_lines: list) -> None:
    start = txf_lines.index("LSchedule C - Gross Receipts")
    assert txf_lines[start - 3:start + 4] == [
        "^", "TD", "C1", "LSchedule C - Gross Receipts", "D01/15/2026", "$1865.50", "^",
    ]


def test_expense_records_only_for_positive_buckets(txf_lines: list) -> None:
    labels = [line[1:] for line in txf_lines if line.startswith("L")]
    assert labels == [
        "Schedule C - Gross Receipts",
        "Schedule C - Advertising",
        "Schedule C - Car and Truck Expenses",
        "Schedule C - Supplies",
        "Schedule C - Meals (50% deductible)",
        "Schedule C - Other Expenses",
    ]
    assert "$53.60" in txf_lines
    assert "$50.00" in txf_lines


def test_explanation_lines(txf_lines: list) -> None:
    car = txf_lines.index("LSchedule C - Car and Truck Expenses")
    assert txf_lines[car + 3] == "XStandard mileage rate deduction"
    meals = txf_lines.index("LSchedule C - Meals (50% deductible)")
    assert txf_lines[meals + 3] == "X50% limitation already applied"
    supplies = txf_lines.index("LSchedule C - Supplies")
    assert txf_lines[supplies + 3] == "^"


def test_empty_summary_has_no_records() -> None:
    content = generate_txf(ScheduleCSummary(tax_year=2025), 2025, "Nobody", export_date="2026-01-15")
    assert "TD" not in content.split("\n")
    assert not content.endswith("\n")


def test_import_instructions_mention_desktop_only() -> None:
    instructions = get_txf_import_instructions()
    assert "desktop" in instructions
    assert "Online tax software editions do NOT support TXF imports" in instructions
