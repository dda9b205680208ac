from __future__ import annotations

from dataclasses import dataclass

from .schema import ImportMode
from .validation_result import BatchResult

"""ImportResult: outcome of importing one sheet."""

__all__ = [
    "ImportResult",
]


@dataclass(frozen=True)
class ImportResult:
    """Outcome of one identify -> validate -> ingest run.

    ``success=False`` covers unrecognised sheets and validation failures; in
    both cases nothing was written to the repository and ``message`` holds the
    user-facing explanation.
    """
    success: bool
    sheet_name: str
    message: str
    entity_name: str | None = None
    worksheet: str | None = None  # display name of the entity
    mode: ImportMode | None = None
    total: int = 0  # rows read from the sheet
    new: int = 0  # append mode: records added
    updated: int = 0  # append mode: records replaced
    validation: BatchResult | None = None
