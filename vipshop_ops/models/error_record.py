from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from datetime import UTC, datetime

"""ErrorRecord model for the import error log.

One record per rejected row (or per sheet / file failure). Row numbers are
the 1-based spreadsheet rows the user sees, so a record can be traced back
to the exact cell range. ``row=-1`` marks sheet or file level errors where no
single row is at fault.
"""

__all__ = [
    "ErrorRecord",
]


@dataclass(frozen=True)
class ErrorRecord:
    """Structured error record for JSON Lines logging.

    Attributes:
        timestamp: ISO8601 UTC timestamp with 'Z' suffix
        file: workbook filename being imported
        sheet: sheet name within the workbook
        row: spreadsheet row number (1-based), -1 when not row specific
        error_type: classification in UPPER_SNAKE_CASE (VALIDATION_ERROR, ...)
        message: user-facing message (e.g. 【销量】不能为负数)
    """
    timestamp: str
    file: str
    sheet: str
    row: int
    error_type: str
    message: str

    @staticmethod
    def create(file: str, sheet: str, row: int, error_type: str, message: str) -> ErrorRecord:
        """Create a new ErrorRecord stamped with the current UTC time."""
        ts = datetime.now(UTC).isoformat().replace("+00:00", "Z")
        return ErrorRecord(
            timestamp=ts,
            file=file,
            sheet=sheet,
            row=row,
            error_type=error_type,
            message=message,
        )

    def to_json_line(self) -> str:
        # ensure_ascii=False keeps Chinese titles readable in the log
        return json.dumps(asdict(self), ensure_ascii=False)
