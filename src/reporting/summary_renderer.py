"""
Printable Schedule C summary.

Renders a self-contained HTML document (embedded print CSS, letter page size)
that a user can print or save as PDF from a browser. Rasterizing to PDF is left
to the browser.
"""
from __future__ import annotations

import logging
from datetime import date, datetime
from pathlib import Path
from typing import Dict, List, Optional, Union

from jinja2 import Environment, FileSystemLoader, select_autoescape

from src.categorization.category_utils import EXPENSE_BUCKETS
from src.reporting.schemas import ScheduleCSummary
from src.utils.date_helpers import long_date
from src.utils.money import effective_tax_rate_label, format_accounting, format_currency

logger = logging.getLogger(__name__)

TEMPLATES_DIR = Path(__file__).resolve().parent / "templates"
SUMMARY_TEMPLATE = "schedule_c_summary.html"

FILING_STATUS_LABELS: Dict[str, str] = {
    "single": "Single",
    "married_joint": "Married Filing Jointly",
    "married_separate": "Married Filing Separately",
    "head": "Head of Household",
}

_environment = Environment(
    loader=FileSystemLoader(str(TEMPLATES_DIR)),
    autoescape=select_autoescape(["html"]),
    trim_blocks=True,
    lstrip_blocks=True,
)


def _income_lines(summary: ScheduleCSummary) -> List[Dict]:
    lines = [{"label": "Gross receipts or sales", "line": "1", "amount": format_currency(summary.gross_receipts)}]
    if summary.returns_and_allowances > 0:
        lines.append({
            "label": "Returns and allowances",
            "line": "2",
            "amount": format_accounting(-summary.returns_and_allowances),
            "css": "negative",
        })
    if summary.other_income > 0:
        lines.append({"label": "Other income", "line": "6", "amount": format_currency(summary.other_income)})
    lines.append({
        "label": "Gross income",
        "line": "7",
        "amount": format_currency(summary.total_income),
        "css": "positive",
        "total": True,
    })
    return lines


def _expense_lines(summary: ScheduleCSummary) -> List[Dict]:
    return [
        {"label": bucket.label, "line": bucket.line, "amount": format_currency(getattr(summary, bucket.name))}
        for bucket in EXPENSE_BUCKETS
        if getattr(summary, bucket.name) != 0
    ]


def _tax_lines(summary: ScheduleCSummary) -> List[Dict]:
    return [
        {"label": "Self-Employment Tax Basis (92.35% of net profit)", "amount": format_currency(summary.se_tax_basis)},
        {"label": "Estimated Self-Employment Tax", "amount": format_currency(summary.est_se_tax)},
        {"label": "Estimated Federal Income Tax", "amount": format_currency(summary.est_federal_income_tax)},
        {"label": "Estimated State Income Tax", "amount": format_currency(summary.est_state_income_tax)},
        {"label": "Total Estimated Tax", "amount": format_currency(summary.est_total_tax), "total": True},
        {"label": "Suggested Amount to Set Aside", "amount": format_currency(summary.set_aside_suggested)},
    ]


def render_summary(
    summary: ScheduleCSummary,
    tax_year: int,
    taxpayer_name: Optional[str] = None,
    generated_date: Optional[Union[date, datetime, str]] = None,
) -> str:
    """
    Render the printable Schedule C summary.

    Args:
        summary: Canonical Schedule C summary
        tax_year: Tax year shown in the header
        taxpayer_name: Optional name for the information block
        generated_date: Date shown in the header and footer (defaults to today)

    Returns:
        Complete HTML document as a string
    """
    template = _environment.get_template(SUMMARY_TEMPLATE)
    html = template.render(
        summary=summary,
        tax_year=tax_year,
        taxpayer_name=taxpayer_name,
        generated_date=long_date(generated_date or date.today()),
        filing_status=FILING_STATUS_LABELS.get(summary.filing_status, summary.filing_status),
        deduction_method=(
            "Standard Deduction" if summary.standard_or_itemized == "standard" else "Itemized Deduction"
        ),
        income_lines=_income_lines(summary),
        expense_lines=_expense_lines(summary),
        total_expenses=format_currency(summary.total_expenses),
        net_profit=format_accounting(summary.net_profit),
        is_loss=summary.net_profit < 0,
        tax_lines=_tax_lines(summary),
        effective_rate=effective_tax_rate_label(summary.est_total_tax, summary.net_profit),
    )
    logger.debug(f"Rendered Schedule C summary HTML for {tax_year} ({len(html)} bytes)")
    return html
