from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path

from .import_result import ImportResult

"""ExcelFile domain model and FileStatus enum.

Tracks one workbook through the import run: which sheets were imported,
which were rejected (unrecognised header or invalid rows) and how long it
took.
"""


class FileStatus(Enum):
    """Status of a workbook import.

    State transitions: pending -> processing -> (success | failed)

    - SUCCESS: every non-empty sheet was imported
    - FAILED: the workbook could not be read, or at least one sheet was rejected
    """
    PENDING = "pending"
    PROCESSING = "processing"
    SUCCESS = "success"
    FAILED = "failed"


@dataclass(frozen=True)
class ExcelFile:
    path: Path
    name: str
    sheets: list[ImportResult] = field(default_factory=list)
    start_time: datetime | None = None
    end_time: datetime | None = None
    status: FileStatus = FileStatus.PENDING
    imported_rows: int = 0  # rows written to the repository
    rejected_sheets: int = 0
    skipped_sheets: int = 0  # sheets with a header but no data rows
    error: str | None = None  # failure summary

    @property
    def imported_sheets(self) -> int:
        return sum(1 for s in self.sheets if s.success)
