from __future__ import annotations

from datetime import UTC, datetime
from pathlib import Path

import pytest

from vipshop_ops.models.excel_file import ExcelFile, FileStatus
from vipshop_ops.models.import_result import ImportResult
from vipshop_ops.models.processing_result import FileStat, ProcessingResult

"""Unit tests for the run-level result models."""


def _result(success_files: int = 2, failed_files: int = 1, **kw) -> ProcessingResult:
    now = datetime.now(UTC)
    return ProcessingResult(
        success_files=success_files,
        failed_files=failed_files,
        total_imported_rows=kw.get("rows", 10),
        imported_sheets=3,
        rejected_sheets=1,
        skipped_sheets=0,
        start_time=now,
        end_time=now,
        elapsed_seconds=0.0,
        file_stats=kw.get("file_stats"),
    )


def test_total_files_counts_success_and_failed():
    assert _result(2, 1).total_files == 3
    assert _result(0, 0).total_files == 0


def test_file_stats_default_none():
    assert _result().file_stats is None
    stat = FileStat("a.xlsx", "success", imported_rows=4, imported_sheets=1, rejected_sheets=0, elapsed_seconds=0.1)
    assert _result(file_stats=[stat]).file_stats == [stat]


def test_processing_result_is_frozen():
    result = _result()
    with pytest.raises(AttributeError):
        result.success_files = 5  # type: ignore[misc]


def test_excel_file_imported_sheets_counts_successes():
    sheets = [
        ImportResult(success=True, sheet_name="商品销售", message="ok", entity_name="ProductSales"),
        ImportResult(success=False, sheet_name="Sheet1", message="无法识别工作表"),
        ImportResult(success=True, sheet_name="组合", message="ok", entity_name="ComboProduct"),
    ]
    ef = ExcelFile(path=Path("a.xlsx"), name="a.xlsx", sheets=sheets, status=FileStatus.FAILED)

    assert ef.imported_sheets == 2
    assert ef.status.value == "failed"


def test_excel_file_defaults():
    ef = ExcelFile(path=Path("b.xlsx"), name="b.xlsx")
    assert ef.status is FileStatus.PENDING
    assert ef.sheets == []
    assert ef.imported_sheets == 0
    assert ef.error is None
