"""Command-line entrypoints for GigLedger tax exports."""
from __future__ import annotations

import json
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

import pandas as pd
import typer
from pydantic import ValidationError

from src.categorization.category_utils import EXPENSE_BUCKETS
from src.reporting.export_bundle import build_export_bundle, write_export_bundle
from src.reporting.schemas import ScheduleCCalculationInput
from src.reporting.tax_reports import ScheduleCReporter
from src.utils.config import AppConfig, configure_logging, load_config
from src.utils.money import format_accounting
from src.utils.validation import ExportValidator, get_validation_summary

app = typer.Typer(help="Schedule C summaries and CPA-ready export bundles for GigLedger data.")

CSV_INPUT_FILES = {
    "gigs": "gigs.csv",
    "expenses": "expenses.csv",
    "mileage": "mileage.csv",
    "payers": "payers.csv",
}


def _read_csv_rows(path: Path) -> List[Dict[str, Any]]:
    """Read a CSV as string records, dropping blank cells so row defaults apply."""
    df = pd.read_csv(path, dtype=str, keep_default_na=False)
    return [
        {key: value for key, value in record.items() if value != ""}
        for record in df.to_dict(orient="records")
    ]


def load_export_document(input_path: Path) -> Dict[str, Any]:
    """
    Load export rows from a JSON document or a directory of CSV files.

    A directory may hold ``gigs.csv``, ``expenses.csv``, ``mileage.csv`` and
    ``payers.csv``; missing files mean no rows of that kind.

    Raises:
        typer.BadParameter: If the input cannot be read
    """
    if input_path.is_dir():
        document: Dict[str, Any] = {}
        for key, file_name in CSV_INPUT_FILES.items():
            csv_path = input_path / file_name
            if not csv_path.exists():
                continue
            try:
                document[key] = _read_csv_rows(csv_path)
            except (pd.errors.ParserError, UnicodeDecodeError) as exc:
                raise typer.BadParameter(f"Could not read {csv_path}: {exc}") from exc
            except pd.errors.EmptyDataError:
                document[key] = []
        return document

    try:
        with open(input_path, "r", encoding="utf-8") as handle:
            document = json.load(handle)
    except (OSError, json.JSONDecodeError) as exc:
        raise typer.BadParameter(f"Could not read {input_path}: {exc}") from exc

    if not isinstance(document, dict):
        raise typer.BadParameter(f"{input_path} must contain a JSON object")
    return document


def build_calculation_input(
    document: Dict[str, Any],
    config: AppConfig,
    tax_year: Optional[int] = None,
    state: Optional[str] = None,
    mileage_rate: Optional[float] = None,
) -> ScheduleCCalculationInput:
    """Combine loaded rows with command-line options into a calculation input."""
    payload = {key: value for key, value in document.items() if key != "payers"}
    if tax_year is not None:
        payload["tax_year"] = tax_year
    payload.setdefault("tax_year", config.tax_year or datetime.now().year - 1)
    if state is not None:
        payload["state_of_residence"] = state
    if mileage_rate is not None:
        payload["mileage_rate"] = mileage_rate

    try:
        return ScheduleCCalculationInput.model_validate(payload)
    except ValidationError as exc:
        raise typer.BadParameter(f"Invalid export data: {exc}") from exc


def _echo_issues(result) -> None:
    for issue in result.errors:
        typer.echo(f"  ERROR   [{issue.category} {issue.record_id}] {issue.message}")
    for issue in result.warnings:
        typer.echo(f"  WARNING [{issue.category} {issue.record_id}] {issue.message}")


@app.callback()
def initialize(level: Optional[str] = typer.Option(None, "--log-level", help="Log level override")) -> None:
    """Initialize logging from configuration or CLI overrides."""

    config = load_config()
    if level is not None:
        configure_logging(level)
    else:
        configure_logging(config.log_level)


@app.command()
def summary(
    input_path: Path = typer.Argument(..., exists=True, help="JSON document or directory of CSV files."),
    tax_year: Optional[int] = typer.Option(None, "--tax-year", help="Tax year (defaults to GIGLEDGER_TAX_YEAR or prior year)."),
    state: Optional[str] = typer.Option(None, "--state", help="Two-letter state of residence."),
    mileage_rate: Optional[float] = typer.Option(None, "--mileage-rate", help="Per-mile rate override."),
    as_json: bool = typer.Option(False, "--json", help="Print the summary as JSON."),
) -> None:
    """Calculate and print the Schedule C summary."""

    config = load_config()
    calc_input = build_calculation_input(
        load_export_document(input_path), config, tax_year=tax_year, state=state, mileage_rate=mileage_rate
    )
    result = ScheduleCReporter(config).calculate(calc_input)

    if as_json:
        typer.echo(result.model_dump_json(indent=2))
        return

    typer.echo(f"\n{'='*60}")
    typer.echo(f"Schedule C Summary - {result.tax_year}")
    typer.echo(f"{'='*60}")
    typer.echo(f"Gross receipts:          ${result.gross_receipts:>15,.2f}")
    typer.echo(f"Returns and allowances:  ${result.returns_and_allowances:>15,.2f}")
    typer.echo(f"Gross income:            ${result.total_income:>15,.2f}")
    for bucket in EXPENSE_BUCKETS:
        amount = getattr(result, bucket.name)
        if amount:
            typer.echo(f"  Line {bucket.line:<4} {bucket.label[:30]:<30} ${amount:>12,.2f}")
    typer.echo(f"Total expenses:          ${result.total_expenses:>15,.2f}")
    typer.echo(f"Net profit:              {format_accounting(result.net_profit):>16}")
    typer.echo(f"Estimated total tax:     ${result.est_total_tax:>15,.2f}")
    for warning in result.tax_estimate_warnings:
        typer.echo(f"Note: {warning}")
    typer.echo(f"{'='*60}\n")


@app.command()
def validate(
    input_path: Path = typer.Argument(..., exists=True, help="JSON document or directory of CSV files."),
) -> None:
    """Check export rows for blocking errors and warnings."""

    document = load_export_document(input_path)
    calc_input = build_calculation_input(document, load_config())
    result = ExportValidator().validate_export_data(calc_input.gigs, calc_input.expenses, calc_input.mileage)

    typer.echo(get_validation_summary(result))
    _echo_issues(result)
    if not result.valid:
        raise typer.Exit(code=1)


@app.command("export-bundle")
def export_bundle(
    input_path: Path = typer.Argument(..., exists=True, help="JSON document or directory of CSV files."),
    output_dir: Optional[Path] = typer.Option(None, "--output-dir", help="Directory for export files."),
    tax_year: Optional[int] = typer.Option(None, "--tax-year", help="Tax year (defaults to GIGLEDGER_TAX_YEAR or prior year)."),
    state: Optional[str] = typer.Option(None, "--state", help="Two-letter state of residence."),
    taxpayer_name: Optional[str] = typer.Option(None, "--taxpayer-name", help="Name printed on the summary and TXF."),
    force: bool = typer.Option(False, "--force", help="Export even when validation finds blocking errors."),
) -> None:
    """Write CSV, Excel, HTML, TXF, tax pack and backup exports for one tax year."""

    config = load_config(str(output_dir) if output_dir else None)
    document = load_export_document(input_path)
    calc_input = build_calculation_input(document, config, tax_year=tax_year, state=state)

    bundle = build_export_bundle(
        calc_input,
        payers=document.get("payers") or [],
        taxpayer_name=taxpayer_name or document.get("taxpayer_name"),
        config=config,
    )

    if not bundle.validation.valid:
        typer.echo(get_validation_summary(bundle.validation))
        _echo_issues(bundle.validation)
        if not force:
            raise typer.Exit(code=1)
        typer.echo("Continuing because --force was given.")

    written = write_export_bundle(bundle, config.output_dir)
    typer.echo(f"Net profit for {bundle.tax_year}: {format_accounting(bundle.summary.net_profit)}")
    for path in written.values():
        typer.echo(f"✓ {path}")


def main() -> None:
    """CLI entrypoint for console_scripts."""

    app()


if __name__ == "__main__":
    main()
