"""
CSV serialization for GigLedger export datasets.

Every CSV is UTF-8, comma-delimited, LF-separated, with one header row. Fields
are looked up by header name on dicts or attribute objects; missing fields
serialize as empty strings.
"""
from __future__ import annotations

import logging
import math
from typing import Any, Iterable, Optional, Sequence

from src.reporting.schemas import (
    EXPENSES_CSV_HEADERS,
    GIGS_CSV_HEADERS,
    MILEAGE_CSV_HEADERS,
    PAYERS_CSV_HEADERS,
    SCHEDULE_C_SUMMARY_CSV_HEADERS,
    ScheduleCSummary,
)

logger = logging.getLogger(__name__)

_QUOTE_TRIGGERS = (",", '"', "\n", "\r")


def _stringify(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        if math.isnan(value):
            return "NaN"
        if math.isinf(value):
            return "Infinity" if value > 0 else "-Infinity"
        if value.is_integer():
            return str(int(value))
        return repr(value)
    return str(value)


def escape_csv_field(value: Any) -> str:
    """
    Escape one CSV field.

    ``None`` becomes an empty string. Text containing a comma, a double quote or
    a line break is wrapped in double quotes with internal quotes doubled.

    Examples:
        >>> escape_csv_field('Wedding, Reception')
        '"Wedding, Reception"'
        >>> escape_csv_field('12" snare')
        '"12"" snare"'
    """
    text = _stringify(value)
    if any(trigger in text for trigger in _QUOTE_TRIGGERS):
        return '"' + text.replace('"', '""') + '"'
    return text


def _lookup(row: Any, field: str) -> Any:
    if isinstance(row, dict):
        return row.get(field)
    return getattr(row, field, None)


def to_csv(rows: Optional[Iterable[Any]], headers: Sequence[str]) -> str:
    """Serialize rows under ``headers``; an empty collection yields just the header line."""
    lines = [",".join(headers)]
    for row in rows or []:
        lines.append(",".join(escape_csv_field(_lookup(row, header)) for header in headers))
    return "\n".join(lines)


def generate_gigs_csv(gigs: Optional[Iterable[Any]]) -> str:
    return to_csv(gigs, GIGS_CSV_HEADERS)


def generate_expenses_csv(expenses: Optional[Iterable[Any]]) -> str:
    return to_csv(expenses, EXPENSES_CSV_HEADERS)


def generate_mileage_csv(mileage: Optional[Iterable[Any]]) -> str:
    return to_csv(mileage, MILEAGE_CSV_HEADERS)


def generate_payers_csv(payers: Optional[Iterable[Any]]) -> str:
    return to_csv(payers, PAYERS_CSV_HEADERS)


def generate_schedule_c_summary_csv(summary: ScheduleCSummary) -> str:
    """Single-row CSV of the Schedule C summary."""
    logger.debug(f"Serializing Schedule C summary for {summary.tax_year}")
    return to_csv([summary], SCHEDULE_C_SUMMARY_CSV_HEADERS)
