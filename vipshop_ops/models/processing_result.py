from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

"""Processing result models for a directory import run.

Aggregates per-workbook outcomes into the figures rendered on the SUMMARY
line.
"""


@dataclass(frozen=True)
class FileStat:
    """Per-workbook statistics."""
    file_name: str
    status: str  # success/failed
    imported_rows: int
    imported_sheets: int
    rejected_sheets: int
    elapsed_seconds: float


@dataclass(frozen=True)
class ProcessingResult:
    """Aggregated results of one ``process_all`` run."""
    success_files: int
    failed_files: int
    total_imported_rows: int
    imported_sheets: int
    rejected_sheets: int
    skipped_sheets: int  # sheets without data rows
    start_time: datetime
    end_time: datetime
    elapsed_seconds: float
    file_stats: list[FileStat] | None = None

    @property
    def total_files(self) -> int:
        return self.success_files + self.failed_files
