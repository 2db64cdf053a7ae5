"""
Tax export bundle: every artifact for one tax year, rendered from one summary.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Union

from src.reporting.csv_export import (
    generate_expenses_csv,
    generate_gigs_csv,
    generate_mileage_csv,
    generate_payers_csv,
    generate_schedule_c_summary_csv,
)
from src.reporting.excel_reports import WorkbookInput, build_workbook_data, workbook_bytes
from src.reporting.schemas import PayerExportRow, ScheduleCCalculationInput, ScheduleCSummary, coerce_rows
from src.reporting.summary_renderer import render_summary
from src.reporting.tax_packs import (
    TaxPackInput,
    generate_json_backup,
    generate_taxact_pack,
    generate_turbotax_online_pack,
)
from src.reporting.tax_reports import ScheduleCReporter
from src.reporting.txf_export import generate_txf
from src.utils.config import AppConfig
from src.utils.validation import ExportValidator, ValidationResult

logger = logging.getLogger(__name__)

DEFAULT_TAXPAYER_NAME = "Taxpayer"
BINARY_ARTIFACTS = frozenset({"turbotax_pack", "taxact_pack"})


@dataclass
class ExportBundle:
    """All export artifacts for a tax year."""

    tax_year: int
    summary: ScheduleCSummary
    validation: ValidationResult
    gigs_csv: str
    expenses_csv: str
    mileage_csv: str
    payers_csv: str
    schedule_c_summary_csv: str
    workbook: Dict[str, List[List[Any]]]
    summary_html: str
    txf: str
    turbotax_pack: bytes
    taxact_pack: bytes
    json_backup: str
    files: Dict[str, Path] = field(default_factory=dict)

    def file_names(self) -> Dict[str, str]:
        """Artifact key -> file name, in the order files are written."""
        prefix = f"gigledger_{self.tax_year}"
        return {
            "gigs_csv": f"{prefix}_gigs.csv",
            "expenses_csv": f"{prefix}_expenses.csv",
            "mileage_csv": f"{prefix}_mileage.csv",
            "payers_csv": f"{prefix}_payers.csv",
            "schedule_c_summary_csv": f"{prefix}_schedule_c_summary.csv",
            "workbook": f"{prefix}_export.xlsx",
            "summary_html": f"{prefix}_schedule_c_summary.html",
            "txf": f"{prefix}_schedule_c.txf",
            "turbotax_pack": f"{prefix}_turbotax_online_pack.zip",
            "taxact_pack": f"{prefix}_taxact_pack.zip",
            "json_backup": f"{prefix}_backup.json",
        }


def build_export_bundle(
    calc_input: Union[ScheduleCCalculationInput, dict],
    payers: Optional[Iterable[Any]] = None,
    taxpayer_name: Optional[str] = None,
    generated_date: Optional[date] = None,
    config: Optional[AppConfig] = None,
) -> ExportBundle:
    """
    Validate the rows, aggregate once, and render every export format.

    Args:
        calc_input: Schedule C calculation input
        payers: Payer rows for the payers CSV and sheet
        taxpayer_name: Name for the printable summary and TXF
        generated_date: Date stamped on generated documents (defaults to today)
        config: Application configuration (default mileage rate)

    Returns:
        ExportBundle whose artifacts all derive from the same summary
    """
    if not isinstance(calc_input, ScheduleCCalculationInput):
        calc_input = ScheduleCCalculationInput.model_validate(calc_input)
    payer_rows = coerce_rows(payers, PayerExportRow)
    generated_date = generated_date or date.today()

    validation = ExportValidator().validate_export_data(
        calc_input.gigs, calc_input.expenses, calc_input.mileage
    )
    reporter = ScheduleCReporter(config)
    default_mileage_rate = reporter.default_mileage_rate(calc_input.tax_year)
    summary = reporter.calculate(calc_input)
    logger.info(
        f"Building export bundle for {calc_input.tax_year}: net profit {summary.net_profit:.2f}"
    )

    workbook = build_workbook_data(WorkbookInput.for_calculation(
        calc_input,
        summary=summary,
        payers=payer_rows,
        default_mileage_rate=default_mileage_rate,
        generated_date=generated_date,
    ))
    pack = TaxPackInput(
        calc_input=calc_input,
        summary=summary,
        default_mileage_rate=default_mileage_rate,
        payers=payer_rows,
        taxpayer_name=taxpayer_name,
        generated_date=generated_date,
    )

    return ExportBundle(
        tax_year=calc_input.tax_year,
        summary=summary,
        validation=validation,
        gigs_csv=generate_gigs_csv(calc_input.gigs),
        expenses_csv=generate_expenses_csv(calc_input.expenses),
        mileage_csv=generate_mileage_csv(calc_input.mileage),
        payers_csv=generate_payers_csv(payer_rows),
        schedule_c_summary_csv=generate_schedule_c_summary_csv(summary),
        workbook=workbook,
        summary_html=render_summary(
            summary, calc_input.tax_year, taxpayer_name=taxpayer_name, generated_date=generated_date
        ),
        txf=generate_txf(
            summary,
            calc_input.tax_year,
            taxpayer_name or DEFAULT_TAXPAYER_NAME,
            export_date=generated_date,
        ),
        turbotax_pack=generate_turbotax_online_pack(pack),
        taxact_pack=generate_taxact_pack(pack),
        json_backup=generate_json_backup(pack),
    )


def write_export_bundle(bundle: ExportBundle, out_dir: Union[str, Path]) -> Dict[str, Path]:
    """
    Write every artifact of ``bundle`` into ``out_dir``.

    Returns:
        Mapping of artifact key to written file path
    """
    output_dir = Path(out_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    written: Dict[str, Path] = {}
    for key, file_name in bundle.file_names().items():
        path = output_dir / file_name
        if key == "workbook":
            path.write_bytes(workbook_bytes(bundle.workbook))
        elif key in BINARY_ARTIFACTS:
            path.write_bytes(getattr(bundle, key))
        else:
            path.write_text(getattr(bundle, key), encoding="utf-8", newline="\n")
        written[key] = path

    bundle.files = written
    logger.info(f"Wrote {len(written)} export files to {output_dir}")
    return written
