import csv
import io
import json
import sys
import zipfile
from datetime import date
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

import pytest

from src.reporting.schemas import PayerExportRow, ScheduleCCalculationInput, coerce_rows
from src.reporting.tax_packs import (
    TaxPackInput,
    generate_json_backup,
    generate_taxact_pack,
    generate_turbotax_online_pack,
    mileage_summary_row,
    payer_summary_rows,
    schedule_c_line_items,
)
from src.reporting.tax_reports import calculate_schedule_c_summary

FIXTURE_DIR = Path(__file__).resolve().parent / "fixtures"


@pytest.fixture()
def export_document() -> dict:
    with open(FIXTURE_DIR / "gigledger_2025.json", "r", encoding="utf-8") as handle:
        return json.load(handle)


def make_pack(document: dict, default_mileage_rate: float = 0.67) -> TaxPackInput:
    calc_input = ScheduleCCalculationInput.model_validate(
        {key: value for key, value in document.items() if key not in ("payers", "taxpayer_name")}
    )
    return TaxPackInput(
        calc_input=calc_input,
        summary=calculate_schedule_c_summary(calc_input, default_mileage_rate=default_mileage_rate),
        default_mileage_rate=default_mileage_rate,
        payers=coerce_rows(document.get("payers"), PayerExportRow),
        taxpayer_name=document.get("taxpayer_name"),
        generated_date=date(2026, 1, 15),
    )


@pytest.fixture()
def pack(export_document: dict) -> TaxPackInput:
    return make_pack(export_document)


def read_zip(content: bytes) -> dict:
    with zipfile.ZipFile(io.BytesIO(content)) as archive:
        return {name: archive.read(name).decode("utf-8") for name in archive.namelist()}


def csv_rows(text: str) -> list:
    return list(csv.DictReader(io.StringIO(text)))


def test_line_items_sign_expenses_and_returns(pack: TaxPackInput) -> None:
    items = schedule_c_line_items(pack.summary)
    by_line = {item["schedule_c_line"]: item for item in items}

    assert [item["schedule_c_line"] for item in items] == ["1", "2", "8", "9", "22", "24b", "27a"]
    assert by_line["1"]["raw_signed_amount"] == 1865.5
    assert by_line["2"]["raw_signed_amount"] == -60.0
    assert by_line["9"]["raw_signed_amount"] == -53.6
    assert by_line["9"]["amount_for_entry"] == 53.6
    assert "Standard mileage rate deduction" in by_line["9"]["notes"]
    expense_total = sum(item["amount_for_entry"] for item in items[2:])
    assert expense_total == pytest.approx(pack.summary.total_expenses)


def test_returns_line_has_no_negative_zero(export_document: dict) -> None:
    for gig in export_document["gigs"]:
        gig["fees"] = 0
    items = schedule_c_line_items(make_pack(export_document).summary)
    assert str(items[1]["raw_signed_amount"]) == "0.0"


def test_turbotax_pack_contents(pack: TaxPackInput) -> None:
    files = read_zip(generate_turbotax_online_pack(pack))

    assert sorted(files) == sorted([
        "ScheduleC_Summary_2025.csv",
        "Income_Detail_2025.csv",
        "Expense_Detail_2025.csv",
        "Mileage_2025.csv",
        "Summary_2025.html",
        "README_TurboTax_Online_2025.txt",
    ])

    summary_rows = csv_rows(files["ScheduleC_Summary_2025.csv"])
    assert list(summary_rows[0]) == ["line_description", "schedule_c_line", "amount", "notes"]
    amounts = {row["schedule_c_line"]: float(row["amount"]) for row in summary_rows}
    assert amounts["1"] == 1865.5
    assert amounts["24b"] == -50.0

    meals = next(row for row in csv_rows(files["Expense_Detail_2025.csv"]) if row["expense_id"] == "e-002")
    assert meals["deductible_percent"] == "0.5"
    assert meals["deductible_amount"] == "50"

    mileage = csv_rows(files["Mileage_2025.csv"])
    assert [row["deduction_amount"] for row in mileage] == ["33.5", "20.1"]

    readme = files["README_TurboTax_Online_2025.txt"]
    assert "TurboTax Online does NOT support TXF import" in readme
    assert "NET PROFIT:               $1,516.66" in readme
    assert "Jordan Rivera" in files["Summary_2025.html"]


def test_taxact_pack_contents(pack: TaxPackInput) -> None:
    files = read_zip(generate_taxact_pack(pack))

    assert "README_TaxAct_2025.txt" in files
    assert "Payer_Summary_2025.csv" in files
    assert "Mileage_Summary_2025.csv" in files

    summary_rows = csv_rows(files["ScheduleC_Summary_2025.csv"])
    supplies = next(row for row in summary_rows if row["schedule_c_line"] == "22")
    assert float(supplies["raw_signed_amount"]) == -89.99
    assert float(supplies["amount_for_entry"]) == 89.99

    readme = files["README_TaxAct_2025.txt"]
    assert "80.00 business miles at $0.670/mile = $53.60" in readme
    assert "Payers: 2" in readme

    expenses = csv_rows(files["Expense_Detail_2025.csv"])
    assert {row["potential_asset_review"] for row in expenses} == {"false"}


def test_payer_summary_groups_by_payer(pack: TaxPackInput) -> None:
    rows = payer_summary_rows(pack)

    assert [row["payer_name"] for row in rows] == ["Smith Events", "Blue Note Cafe"]
    smith, blue_note = rows
    assert smith["payments_count"] == 1
    assert smith["gross_amount"] == 1350.0
    assert smith["fees_total"] == 60.0
    assert smith["net_amount"] == 1290.0
    assert smith["payer_email"] == "dana@smithevents.example"
    assert smith["payer_ein_or_ssn"] == "12-3456789"
    assert blue_note["gross_amount"] == 515.5
    assert blue_note["first_payment_date"] == blue_note["last_payment_date"] == "2025-05-02"


def test_payer_summary_excludes_tips_when_configured(export_document: dict) -> None:
    export_document["include_tips"] = False
    rows = payer_summary_rows(make_pack(export_document))
    assert rows[0]["gross_amount"] == 1200.0


def test_mileage_summary_uses_default_rate(export_document: dict) -> None:
    row = mileage_summary_row(make_pack(export_document, default_mileage_rate=0.7))

    assert row["total_business_miles"] == 80.0
    assert row["standard_rate_used"] == 0.7
    assert row["mileage_deduction_amount"] == 56.0
    assert row["entries_count"] == 2


def test_large_purchases_are_flagged_for_asset_review(export_document: dict) -> None:
    export_document["expenses"].extend([
        {"expense_id": "e-500", "date": "2025-06-01", "description": "Keyboard",
         "amount": 3000, "irs_schedule_c_line": "22"},
        {"expense_id": "e-501", "date": "2025-06-02", "description": "Van",
         "amount": 9000, "irs_schedule_c_line": "13"},
    ])
    files = read_zip(generate_taxact_pack(make_pack(export_document)))
    flags = {
        row["expense_id"]: row["potential_asset_review"]
        for row in csv_rows(files["Expense_Detail_2025.csv"])
    }

    assert flags["e-500"] == "true"
    assert flags["e-501"] == "false"
    assert flags["e-001"] == "false"


def test_packs_are_reproducible(pack: TaxPackInput) -> None:
    assert generate_taxact_pack(pack) == generate_taxact_pack(pack)
    with zipfile.ZipFile(io.BytesIO(generate_turbotax_online_pack(pack))) as archive:
        assert {info.date_time for info in archive.infolist()} == {(2026, 1, 15, 0, 0, 0)}


def test_json_backup(pack: TaxPackInput) -> None:
    backup = json.loads(generate_json_backup(pack))

    assert backup["metadata"]["tax_year"] == 2025
    assert backup["metadata"]["generated"] == "2026-01-15"
    assert backup["metadata"]["currency"] == "USD"
    assert backup["summary"]["net_profit"] == 1516.66
    assert backup["options"]["include_tips"] is True
    assert "gigs" not in backup["options"]
    assert [gig["gig_id"] for gig in backup["gigs"]] == ["g-001", "g-002"]
    assert len(backup["expenses"]) == 4
    assert len(backup["mileage"]) == 2
    assert backup["payers"][0]["payer_name"] == "Smith Events"
