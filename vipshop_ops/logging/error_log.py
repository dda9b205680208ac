from __future__ import annotations

from datetime import UTC, datetime
from pathlib import Path

from vipshop_ops.models.error_record import ErrorRecord

"""Error log buffering.

Rejected rows are collected in memory during a run and written once as JSON
Lines to ``<log_dir>/errors-YYYYMMDD-HHMMSS.log`` (UTC). Nothing is written
when the run produced no errors.
"""

__all__ = [
    "ErrorRecord",
    "ErrorLogBuffer",
]

DEFAULT_LOGS_DIR = Path("./logs")
TIMESTAMP_FMT = "%Y%m%d-%H%M%S"


class ErrorLogBuffer:
    """In-memory buffer for error records. ``flush`` appends JSON Lines.

    The file path is fixed on first access; serial use only.
    """
    def __init__(self, log_dir: Path | str | None = None) -> None:
        self._records: list[ErrorRecord] = []
        self._log_dir = Path(log_dir) if log_dir is not None else DEFAULT_LOGS_DIR
        self._file_path: Path | None = None

    @property
    def file_path(self) -> Path:
        if self._file_path is None:
            self._log_dir.mkdir(parents=True, exist_ok=True)
            stamp = datetime.now(UTC).strftime(TIMESTAMP_FMT)
            self._file_path = self._log_dir / f"errors-{stamp}.log"
        return self._file_path

    @property
    def records(self) -> list[ErrorRecord]:
        return list(self._records)

    def append(self, record: ErrorRecord) -> None:
        self._records.append(record)

    def extend(self, records: list[ErrorRecord]) -> None:
        self._records.extend(records)

    def __len__(self) -> int:  # pragma: no cover (trivial)
        return len(self._records)

    def flush(self) -> Path | None:
        """Write buffered records; returns the log path, or None if empty."""
        if not self._records:
            return None
        fp = self.file_path
        with fp.open("a", encoding="utf-8") as f:
            for r in self._records:
                f.write(r.to_json_line() + "\n")
        self._records.clear()
        return fp
