"""Tax export routes: Schedule C summary, CSV, Excel, printable HTML, TXF and tax packs."""
from __future__ import annotations

import io
import logging
from datetime import date

from fastapi import APIRouter, HTTPException
from fastapi.responses import HTMLResponse, PlainTextResponse, StreamingResponse

from src.api.dependencies import get_reporter, get_validator
from src.api.models import ExportRequest, ValidationRequest, ValidationResponse
from src.reporting.csv_export import (
    generate_expenses_csv,
    generate_gigs_csv,
    generate_mileage_csv,
    generate_payers_csv,
    generate_schedule_c_summary_csv,
)
from src.reporting.excel_reports import WorkbookInput, build_workbook_data, workbook_bytes
from src.reporting.schemas import ScheduleCSummary
from src.reporting.summary_renderer import render_summary
from src.reporting.tax_packs import (
    TaxPackInput,
    generate_json_backup,
    generate_taxact_pack,
    generate_turbotax_online_pack,
)
from src.reporting.txf_export import generate_txf

router = APIRouter()
logger = logging.getLogger(__name__)

CSV_DATASETS = ("gigs", "expenses", "mileage", "payers", "schedule-c")
XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
ZIP_MEDIA_TYPE = "application/zip"


def _calculate(request: ExportRequest) -> ScheduleCSummary:
    return get_reporter().calculate(request.calculation_input())


@router.post("/schedule-c", response_model=ScheduleCSummary)
def export_schedule_c(request: ExportRequest) -> ScheduleCSummary:
    """Calculate the Schedule C summary for the supplied rows."""
    summary = _calculate(request)
    logger.info(f"Schedule C summary calculated for {request.tax_year}")
    return summary


@router.post("/csv/{dataset}")
def export_csv(dataset: str, request: ExportRequest) -> StreamingResponse:
    """Export one dataset (gigs, expenses, mileage, payers, schedule-c) as CSV."""
    dataset_key = dataset.lower()
    if dataset_key not in CSV_DATASETS:
        raise HTTPException(status_code=404, detail="Dataset not found.")

    if dataset_key == "gigs":
        content = generate_gigs_csv(request.gigs)
    elif dataset_key == "expenses":
        content = generate_expenses_csv(request.expenses)
    elif dataset_key == "mileage":
        content = generate_mileage_csv(request.mileage)
    elif dataset_key == "payers":
        content = generate_payers_csv(request.payers)
    else:
        content = generate_schedule_c_summary_csv(_calculate(request))

    filename = f"gigledger_{request.tax_year}_{dataset_key.replace('-', '_')}.csv"
    if dataset_key == "schedule-c":
        filename = f"gigledger_{request.tax_year}_schedule_c_summary.csv"

    return StreamingResponse(
        io.StringIO(content),
        media_type="text/csv",
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )


@router.post("/excel")
def export_excel(request: ExportRequest) -> StreamingResponse:
    """Export the five-sheet workbook as an .xlsx download."""
    calc_input = request.calculation_input()
    reporter = get_reporter()
    data = build_workbook_data(WorkbookInput.for_calculation(
        calc_input,
        summary=reporter.calculate(calc_input),
        payers=request.payers,
        default_mileage_rate=reporter.default_mileage_rate(calc_input.tax_year),
        generated_date=request.generated_date,
    ))
    filename = f"gigledger_{request.tax_year}_export.xlsx"
    return StreamingResponse(
        io.BytesIO(workbook_bytes(data)),
        media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )


@router.post("/summary", response_class=HTMLResponse)
def export_summary(request: ExportRequest) -> HTMLResponse:
    """Render the printable Schedule C summary."""
    html = render_summary(
        _calculate(request),
        request.tax_year,
        taxpayer_name=request.taxpayer_name,
        generated_date=request.generated_date or date.today(),
    )
    return HTMLResponse(content=html)


@router.post("/txf", response_class=PlainTextResponse)
def export_txf(request: ExportRequest) -> PlainTextResponse:
    """Export a TXF file for desktop tax software."""
    content = generate_txf(
        _calculate(request),
        request.tax_year,
        request.taxpayer_name or "Taxpayer",
        taxpayer_ssn=request.taxpayer_ssn,
        export_date=request.generated_date,
    )
    filename = f"gigledger_{request.tax_year}_schedule_c.txf"
    return PlainTextResponse(
        content,
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )


def _tax_pack_input(request: ExportRequest) -> TaxPackInput:
    calc_input = request.calculation_input()
    reporter = get_reporter()
    return TaxPackInput(
        calc_input=calc_input,
        summary=reporter.calculate(calc_input),
        default_mileage_rate=reporter.default_mileage_rate(calc_input.tax_year),
        payers=list(request.payers),
        taxpayer_name=request.taxpayer_name,
        generated_date=request.generated_date or date.today(),
    )


@router.post("/turbotax-pack")
def export_turbotax_pack(request: ExportRequest) -> StreamingResponse:
    """Export the TurboTax Online manual entry pack as a ZIP."""
    content = generate_turbotax_online_pack(_tax_pack_input(request))
    filename = f"gigledger_{request.tax_year}_turbotax_online_pack.zip"
    return StreamingResponse(
        io.BytesIO(content),
        media_type=ZIP_MEDIA_TYPE,
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )


@router.post("/taxact-pack")
def export_taxact_pack(request: ExportRequest) -> StreamingResponse:
    """Export the TaxAct pack as a ZIP."""
    content = generate_taxact_pack(_tax_pack_input(request))
    filename = f"gigledger_{request.tax_year}_taxact_pack.zip"
    return StreamingResponse(
        io.BytesIO(content),
        media_type=ZIP_MEDIA_TYPE,
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )


@router.post("/json-backup")
def export_json_backup(request: ExportRequest) -> StreamingResponse:
    """Export every row, the options and the summary as one JSON document."""
    content = generate_json_backup(_tax_pack_input(request))
    filename = f"gigledger_{request.tax_year}_backup.json"
    return StreamingResponse(
        io.StringIO(content),
        media_type="application/json",
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )


@router.post("/validate", response_model=ValidationResponse)
def validate_export(request: ValidationRequest) -> dict:
    """Check rows for blocking errors and warnings before exporting."""
    result = get_validator().validate_export_data(request.gigs, request.expenses, request.mileage)
    return result.to_dict()
