import csv
import importlib
import io
import json
import sys
import zipfile
from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from openpyxl import load_workbook

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

FIXTURE_DIR = Path(__file__).resolve().parent / "fixtures"


@pytest.fixture()
def export_payload() -> dict:
    with open(FIXTURE_DIR / "gigledger_2025.json", "r", encoding="utf-8") as handle:
        payload = json.load(handle)
    payload["generated_date"] = "2026-01-15"
    return payload


@pytest.fixture()
def api_client(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> TestClient:
    monkeypatch.setenv("GIGLEDGER_OUTPUT_DIR", str(tmp_path / "exports"))
    monkeypatch.delenv("GIGLEDGER_DEFAULT_MILEAGE_RATE", raising=False)

    module = importlib.import_module("src.api.server")
    module = importlib.reload(module)

    return TestClient(module.app)


def test_health(api_client: TestClient) -> None:
    response = api_client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_schedule_c_endpoint(api_client: TestClient, export_payload: dict) -> None:
    response = api_client.post("/export/schedule-c", json=export_payload)

    assert response.status_code == 200
    summary = response.json()
    assert summary["tax_year"] == 2025
    assert summary["gross_receipts"] == pytest.approx(1865.5)
    assert summary["car_truck"] == pytest.approx(53.6)
    assert summary["net_profit"] == pytest.approx(1516.66)
    assert summary["est_total_tax"] == pytest.approx(383.44)
    assert summary["tax_estimate_source"] == "simplified"


def test_schedule_c_requires_tax_year(api_client: TestClient, export_payload: dict) -> None:
    export_payload.pop("tax_year")
    response = api_client.post("/export/schedule-c", json=export_payload)
    assert response.status_code == 422


def test_csv_endpoints(api_client: TestClient, export_payload: dict) -> None:
    gigs = api_client.post("/export/csv/gigs", json=export_payload)
    assert gigs.status_code == 200
    assert gigs.headers["content-type"].startswith("text/csv")
    assert "gigledger_2025_gigs.csv" in gigs.headers["content-disposition"]
    rows = list(csv.DictReader(io.StringIO(gigs.text)))
    assert [row["gig_id"] for row in rows] == ["g-001", "g-002"]

    payers = api_client.post("/export/csv/payers", json=export_payload)
    assert payers.status_code == 200
    assert len(list(csv.DictReader(io.StringIO(payers.text)))) == 2

    summary = api_client.post("/export/csv/schedule-c", json=export_payload)
    assert summary.status_code == 200
    assert "gigledger_2025_schedule_c_summary.csv" in summary.headers["content-disposition"]
    summary_rows = list(csv.DictReader(io.StringIO(summary.text)))
    assert summary_rows[0]["net_profit"] == "1516.66"


def test_unknown_csv_dataset_returns_404(api_client: TestClient, export_payload: dict) -> None:
    response = api_client.post("/export/csv/invoices", json=export_payload)
    assert response.status_code == 404
    assert response.json()["detail"] == "Dataset not found."


def test_excel_endpoint(api_client: TestClient, export_payload: dict) -> None:
    response = api_client.post("/export/excel", json=export_payload)

    assert response.status_code == 200
    assert "spreadsheetml" in response.headers["content-type"]
    assert "gigledger_2025_export.xlsx" in response.headers["content-disposition"]
    wb = load_workbook(io.BytesIO(response.content))
    assert wb.sheetnames == ["Schedule C Summary", "Gigs", "Expenses", "Mileage", "Payers"]


def test_summary_endpoint(api_client: TestClient, export_payload: dict) -> None:
    response = api_client.post("/export/summary", json=export_payload)

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/html")
    assert "Jordan Rivera" in response.text
    assert "January 15, 2026" in response.text
    assert "$1,516.66" in response.text


def test_txf_endpoint(api_client: TestClient, export_payload: dict) -> None:
    response = api_client.post("/export/txf", json=export_payload)

    assert response.status_code == 200
    lines = response.text.split("\n")
    assert lines[0] == "V042"
    assert "D01/15/2026" in lines
    assert "NJordan Rivera" in lines
    assert "$1865.50" in lines


def test_tax_pack_endpoints(api_client: TestClient, export_payload: dict) -> None:
    turbotax = api_client.post("/export/turbotax-pack", json=export_payload)
    assert turbotax.status_code == 200
    assert turbotax.headers["content-type"] == "application/zip"
    assert "gigledger_2025_turbotax_online_pack.zip" in turbotax.headers["content-disposition"]
    with zipfile.ZipFile(io.BytesIO(turbotax.content)) as archive:
        assert "README_TurboTax_Online_2025.txt" in archive.namelist()

    taxact = api_client.post("/export/taxact-pack", json=export_payload)
    assert taxact.status_code == 200
    with zipfile.ZipFile(io.BytesIO(taxact.content)) as archive:
        payers = list(csv.DictReader(io.StringIO(archive.read("Payer_Summary_2025.csv").decode("utf-8"))))
    assert [row["payer_name"] for row in payers] == ["Smith Events", "Blue Note Cafe"]


def test_json_backup_endpoint(api_client: TestClient, export_payload: dict) -> None:
    response = api_client.post("/export/json-backup", json=export_payload)

    assert response.status_code == 200
    assert "gigledger_2025_backup.json" in response.headers["content-disposition"]
    backup = response.json()
    assert backup["metadata"]["generated"] == "2026-01-15"
    assert backup["summary"]["net_profit"] == pytest.approx(1516.66)


def test_excel_endpoint_honors_configured_mileage_rate(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setenv("GIGLEDGER_OUTPUT_DIR", str(tmp_path / "exports"))
    monkeypatch.setenv("GIGLEDGER_DEFAULT_MILEAGE_RATE", "0.7")
    module = importlib.reload(importlib.import_module("src.api.server"))
    client = TestClient(module.app)

    payload = {"tax_year": 2025, "mileage": [{"trip_id": "t1", "date": "2025-02-01", "business_miles": 100}]}
    response = client.post("/export/excel", json=payload)

    assert response.status_code == 200
    wb = load_workbook(io.BytesIO(response.content))
    assert wb["Mileage"]["H2"].value == 70.0


def test_validate_endpoint(api_client: TestClient, export_payload: dict) -> None:
    response = api_client.post("/export/validate", json=export_payload)

    assert response.status_code == 200
    payload = response.json()
    assert payload["valid"] is True
    assert payload["warning_count"] == 2
    assert payload["total_issues"] == 2

    export_payload["expenses"].append(
        {"expense_id": "e-bad", "date": "2025-07-01", "description": "Mystery", "amount": 5}
    )
    blocked = api_client.post("/export/validate", json=export_payload).json()
    assert blocked["valid"] is False
    assert blocked["errors"][0]["record_id"] == "e-bad"
    assert blocked["summary"].startswith("1 blocking error(s)")
