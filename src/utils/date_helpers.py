"""Date handling utilities for consistent date formatting across exports."""
from __future__ import annotations

import re
from datetime import datetime, date
from typing import Union, Optional
import pandas as pd

ISO_DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def safe_format_date(
    date_value: Union[datetime, date, pd.Timestamp, str, None],
    format_str: str = '%m/%d/%Y'
) -> str:
    """
    Safely format a date value to string, handling various input types.

    Args:
        date_value: Date value in various formats (datetime, date, pandas Timestamp, string, or None)
        format_str: strftime format string (default: MM/DD/YYYY)

    Returns:
        Formatted date string, or empty string if missing

    Examples:
        >>> safe_format_date(datetime(2025, 1, 15))
        '01/15/2025'
        >>> safe_format_date('2025-01-15')
        '01/15/2025'
        >>> safe_format_date(None)
        ''
    """
    if date_value is None:
        return ''

    if isinstance(date_value, pd.Timestamp):
        if pd.isna(date_value):
            return ''
        return date_value.strftime(format_str)

    if isinstance(date_value, (datetime, date)):
        return date_value.strftime(format_str)

    if isinstance(date_value, str):
        if not date_value.strip():
            return ''
        try:
            parsed = pd.to_datetime(date_value)
            return parsed.strftime(format_str)
        except (ValueError, TypeError):
            # Return as-is if can't parse
            return str(date_value)

    return str(date_value)


def is_valid_iso_date(value: Optional[str]) -> bool:
    """Return True for a real calendar date written as ``YYYY-MM-DD``."""
    if not isinstance(value, str) or not ISO_DATE_PATTERN.match(value):
        return False
    try:
        datetime.strptime(value, '%Y-%m-%d')
    except ValueError:
        return False
    return True


def long_date(value: Union[datetime, date, pd.Timestamp, str, None]) -> str:
    """Format as ``January 15, 2025`` for printed documents."""
    if isinstance(value, (datetime, date, pd.Timestamp)):
        return f"{value.strftime('%B')} {value.day}, {value.year}"
    if isinstance(value, str) and value.strip():
        try:
            parsed = pd.to_datetime(value)
        except (ValueError, TypeError):
            return value
        return f"{parsed.strftime('%B')} {parsed.day}, {parsed.year}"
    return ''
