from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import pandas as pd

from vipshop_ops.models.row_data import RowData

"""Workbook reader.

Row 1 of every sheet is the header row; rows 2.. are records. Each record
keeps its spreadsheet row number so that validation errors can point at the
row the user sees.

Cells are read raw (``header=None``, no dtype inference on the header) with
pandas + openpyxl; blanks become ``None`` and cells matching one of the
configured null sentinels (compared upper-cased) are treated as blank too.
"""

__all__ = [
    "SheetHeaderError",
    "SheetData",
    "read_workbook",
    "normalize_sheet",
]


class SheetHeaderError(Exception):
    """Raised when a sheet has no usable header row."""


@dataclass
class SheetData:
    sheet_name: str
    columns: list[str]
    rows: list[RowData]


def read_workbook(path: Path, target_sheets: Iterable[str] | None = None) -> dict[str, pd.DataFrame]:
    """Read an .xlsx file returning raw DataFrames keyed by sheet name.

    Parameters
    ----------
    path: workbook path
    target_sheets: restrict to these sheet names (None = all sheets)
    """
    wanted = set(target_sheets) if target_sheets is not None else None
    dfs: dict[str, pd.DataFrame] = {}
    with pd.ExcelFile(path, engine="openpyxl") as xls:
        for name in xls.sheet_names:
            if wanted is not None and str(name) not in wanted:
                continue
            # keep_default_na=False: "NA" / "N/A" stay text unless configured as sentinels
            dfs[str(name)] = xls.parse(name, header=None, keep_default_na=False, na_values=[""])
    return dfs


def _cell(value: Any, null_sentinels: frozenset[str] | set[str] | None) -> Any:
    if value is None or (not isinstance(value, str) and pd.isna(value)):
        return None
    if isinstance(value, pd.Timestamp):
        return value.to_pydatetime()
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            return None
        if null_sentinels and stripped.upper() in null_sentinels:
            return None
        return stripped
    return value


def normalize_sheet(
    df: pd.DataFrame,
    sheet_name: str,
    null_sentinels: frozenset[str] | set[str] | None = None,
) -> SheetData:
    """Turn a raw DataFrame into header titles plus numbered rows.

    Steps:
    1. Validate a header row exists and has at least one title
    2. Extract titles from the first row (trimmed; blank -> "")
    3. Remaining rows become RowData (row_number = DataFrame index + 1)
    4. Rows whose cells are all blank are skipped
    """
    if df.shape[0] < 1:
        raise SheetHeaderError(f"sheet '{sheet_name}' has no header row")
    columns = ["" if _cell(c, None) is None else str(_cell(c, None)) for c in df.iloc[0].tolist()]
    if not any(columns):
        raise SheetHeaderError(f"sheet '{sheet_name}' header row is empty")

    rows: list[RowData] = []
    for position, raw in enumerate(df.iloc[1:].itertuples(index=False, name=None), start=2):
        values: dict[str, Any] = {}
        for title, val in zip(columns, raw, strict=False):
            if not title:
                continue
            values[title] = _cell(val, null_sentinels)
        if all(v is None for v in values.values()):
            continue
        rows.append(RowData(row_number=position, values=values))

    return SheetData(sheet_name=sheet_name, columns=columns, rows=rows)
