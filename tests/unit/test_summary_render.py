from __future__ import annotations

import re
from datetime import datetime, timezone

import pytest

from vipshop_ops.models.processing_result import FileStat, ProcessingResult
from vipshop_ops.services.summary import format_elapsed, render_summary_line

"""Unit tests for SUMMARY line rendering."""

SUMMARY_PATTERN = re.compile(
    r"^SUMMARY\s+files=([0-9]+)/([0-9]+)\s+success=([0-9]+)\s+failed=([0-9]+)\s+"
    r"rows=([0-9]+)\s+imported_sheets=([0-9]+)\s+rejected_sheets=([0-9]+)\s+"
    r"skipped_sheets=([0-9]+)\s+elapsed_sec=([0-9]+\.?[0-9]*)$"
)

START = datetime(2024, 5, 10, 9, 0, 0, tzinfo=timezone.utc)
END = datetime(2024, 5, 10, 9, 0, 2, tzinfo=timezone.utc)


def _result(**overrides) -> ProcessingResult:
    values = dict(
        success_files=2,
        failed_files=0,
        total_imported_rows=1000,
        imported_sheets=3,
        rejected_sheets=0,
        skipped_sheets=1,
        start_time=START,
        end_time=END,
        elapsed_seconds=2.0,
    )
    values.update(overrides)
    return ProcessingResult(**values)


def test_render_summary_line_all_success():
    """Test SUMMARY rendering when every workbook imported."""
    summary_line = render_summary_line(2, _result())

    assert summary_line == (
        "SUMMARY files=2/2 success=2 failed=0 rows=1000 imported_sheets=3 "
        "rejected_sheets=0 skipped_sheets=1 elapsed_sec=2"
    )
    assert SUMMARY_PATTERN.match(summary_line)


def test_render_summary_line_partial_failure():
    """Test SUMMARY rendering with rejected sheets and failed workbooks."""
    result = _result(success_files=1, failed_files=2, rejected_sheets=2, elapsed_seconds=1.23456)
    summary_line = render_summary_line(3, result)

    match = SUMMARY_PATTERN.match(summary_line)
    assert match is not None
    assert match.group(1) == "3" and match.group(2) == "3"
    assert match.group(4) == "2"
    assert match.group(7) == "2"
    assert match.group(9) == "1.235"


def test_render_summary_line_no_files():
    """Test SUMMARY rendering for an empty source directory."""
    result = _result(success_files=0, total_imported_rows=0, imported_sheets=0, skipped_sheets=0, elapsed_seconds=0.0)
    assert render_summary_line(0, result) == (
        "SUMMARY files=0/0 success=0 failed=0 rows=0 imported_sheets=0 "
        "rejected_sheets=0 skipped_sheets=0 elapsed_sec=0"
    )


def test_render_summary_line_with_file_stats():
    """Test that per-file statistics do not change the line."""
    stats = [FileStat("a.xlsx", "success", 10, 1, 0, 0.5), FileStat("b.xlsx", "success", 990, 2, 0, 1.5)]
    assert render_summary_line(2, _result(file_stats=stats)) == render_summary_line(2, _result())


@pytest.mark.parametrize(
    "seconds, expected",
    [(0, "0"), (3.0, "3"), (1.5, "1.5"), (0.12345, "0.123"), (0.0012, "0.0012"), (0.0000026, "0.000003")],
)
def test_format_elapsed(seconds, expected):
    """Test that elapsed seconds never render in scientific notation."""
    assert format_elapsed(seconds) == expected
