from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

"""RowData model: one sheet row keyed by column title.

The reader produces RowData with the column titles exactly as they appear in
the header row. Once the sheet's entity is known, ``to_entity`` re-keys the
row by field name and attaches the origin row number under ``ROW_NUMBER_KEY``
so that validation errors can point back at the spreadsheet row.
"""

__all__ = [
    "ROW_NUMBER_KEY",
    "RowData",
]

ROW_NUMBER_KEY = "_rowNumber"


@dataclass(frozen=True)
class RowData:
    """A single data row of a sheet.

    row_number is the spreadsheet row (header is row 1, first data row is 2).
    """
    row_number: int
    values: dict[str, Any]  # column title -> cell value

    def to_entity(self, title_map: Mapping[str, str]) -> dict[str, Any]:
        """Build an entity mapping (field name -> value) from this row.

        Columns not present in ``title_map`` are dropped.
        """
        entity: dict[str, Any] = {}
        for title, value in self.values.items():
            field_name = title_map.get(title)
            if field_name is not None:
                entity[field_name] = value
        entity[ROW_NUMBER_KEY] = self.row_number
        return entity
