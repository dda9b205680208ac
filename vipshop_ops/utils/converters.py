from __future__ import annotations

import math
from datetime import date, datetime
from typing import Any

import pandas as pd

"""Cell value converters.

Workbook cells reach the pipeline as whatever the reader produced: str, int,
float, numpy scalars, ``datetime`` or pandas ``Timestamp``. The helpers here
turn them into the canonical forms used downstream:

- numbers -> ``int`` / ``float`` (``None`` when not numeric)
- dates   -> ``datetime.date`` or the ``YYYY-MM-DD`` string form
- text    -> ``str`` (``None`` when blank)

A leading apostrophe is the spreadsheet text marker ("'2024-01-15" keeps the
cell from being turned into a serial number); it is stripped before parsing.
"""

__all__ = [
    "DATE_FORMAT",
    "TEXT_MARKER",
    "is_empty",
    "to_number",
    "to_string",
    "parse_date",
    "to_date_str",
]

DATE_FORMAT = "%Y-%m-%d"
TEXT_MARKER = "'"
# Excel serial day 0 (1900 leap-year bug included)
EXCEL_EPOCH = pd.Timestamp("1899-12-30")


def is_empty(value: Any) -> bool:
    """Return True for the values validation treats as "not provided"."""
    return value is None or (isinstance(value, str) and value == "")


def to_number(value: Any) -> int | float | None:
    """Parse ``value`` as a finite number.

    Booleans, blanks and anything that does not parse return ``None``.
    Whole floats are returned as ``int`` so that ``"5"`` and ``5.0`` both
    become ``5``.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        num = value
    else:
        text = str(value).strip()
        if not text:
            return None
        try:
            num = float(text)
        except ValueError:
            return None
    if not math.isfinite(num):
        return None
    if isinstance(num, float) and num.is_integer():
        return int(num)
    return num


def to_string(value: Any) -> str | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, float) and value.is_integer():
        # 货号 cells typed as numbers come back as 1001.0
        return str(int(value))
    text = str(value).strip()
    return text or None


def parse_date(value: Any) -> date | None:
    """Parse a cell value into a calendar date.

    Accepts ``date``/``datetime``/``Timestamp`` objects, Excel serial numbers
    and strings pandas can parse (optionally carrying the text marker).
    Returns ``None`` for anything that is not a valid date.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        if pd.isna(value):
            return None
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, (int, float)):
        if not math.isfinite(value):
            return None
        try:
            return (EXCEL_EPOCH + pd.Timedelta(days=value)).date()
        except (OverflowError, ValueError):
            return None

    text = str(value).strip()
    if text.startswith(TEXT_MARKER):
        text = text[1:]
    if not text:
        return None
    try:
        ts = pd.to_datetime(text)
    except (ValueError, TypeError, OverflowError):
        return None
    if pd.isna(ts):
        return None
    return ts.date()


def to_date_str(value: Any) -> str | None:
    """Canonical ``YYYY-MM-DD`` form of ``value`` (``None`` if not a date)."""
    parsed = parse_date(value)
    if parsed is None:
        return None
    return parsed.strftime(DATE_FORMAT)
