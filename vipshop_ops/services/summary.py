from __future__ import annotations

from ..models.processing_result import ProcessingResult

"""SUMMARY line rendering.

Format::

    SUMMARY files={done}/{total} success={s} failed={f} rows={rows}
    imported_sheets={i} rejected_sheets={r} skipped_sheets={k} elapsed_sec={e}

(on one line; fields separated by single spaces)
"""

__all__ = [
    "render_summary_line",
    "format_elapsed",
]


def format_elapsed(seconds: float) -> str:
    """Render seconds without scientific notation; whole values as ints."""
    if seconds == 0:
        return "0"
    if seconds == int(seconds):
        return str(int(seconds))
    if seconds < 0.01:
        return f"{seconds:.6f}".rstrip("0").rstrip(".")
    return str(round(seconds, 3))


def render_summary_line(total_files: int, result: ProcessingResult) -> str:
    """Render the SUMMARY line for a finished run.

    Examples:
        >>> from datetime import datetime, timezone
        >>> start = datetime(2024, 5, 10, 9, 0, 0, tzinfo=timezone.utc)
        >>> end = datetime(2024, 5, 10, 9, 0, 2, tzinfo=timezone.utc)
        >>> result = ProcessingResult(
        ...     success_files=1, failed_files=0, total_imported_rows=120,
        ...     imported_sheets=2, rejected_sheets=0, skipped_sheets=1,
        ...     start_time=start, end_time=end, elapsed_seconds=2.0,
        ... )
        >>> render_summary_line(1, result)
        'SUMMARY files=1/1 success=1 failed=0 rows=120 imported_sheets=2 rejected_sheets=0 skipped_sheets=1 elapsed_sec=2'
    """
    return (
        f"SUMMARY files={result.total_files}/{total_files} "
        f"success={result.success_files} "
        f"failed={result.failed_files} "
        f"rows={result.total_imported_rows} "
        f"imported_sheets={result.imported_sheets} "
        f"rejected_sheets={result.rejected_sheets} "
        f"skipped_sheets={result.skipped_sheets} "
        f"elapsed_sec={format_elapsed(result.elapsed_seconds)}"
    )
