from __future__ import annotations

import logging
import zipfile
from datetime import UTC, datetime
from pathlib import Path

from ..config.catalog import SchemaCatalog, default_catalog, load_catalog
from ..db.repository import InMemoryRepository, RepositoryError
from ..excel.reader import SheetHeaderError, normalize_sheet, read_workbook
from ..logging.error_log import ErrorLogBuffer, ErrorRecord
from ..models.config_models import AppConfig
from ..models.excel_file import ExcelFile, FileStatus
from ..models.import_result import ImportResult
from ..models.processing_result import FileStat, ProcessingResult
from .importer import DataImportService
from .progress import ProgressTracker, SheetProgressIndicator

"""Directory-level import orchestration.

``process_all`` scans the configured directory for workbooks and imports
every sheet of every workbook through ``DataImportService``:

- sheets without a header or without data rows are skipped
- a sheet that is unrecognised or has invalid rows is rejected (nothing of
  it reaches the repository); the other sheets still import
- a workbook that cannot be opened fails as a whole

All rejected rows / sheets / files end up in one JSON Lines error log that is
flushed when the run ends.
"""

__all__ = [
    "ProcessingError",
    "scan_excel_files",
    "process_all",
]

logger = logging.getLogger(__name__)

FILE_LEVEL_SHEET = "<FILE_LEVEL>"


class ProcessingError(Exception):
    """Fatal error that stops the whole run."""


def scan_excel_files(directory: Path) -> list[Path]:
    """Scan directory for .xlsx files (non-recursive, sorted by name).

    Office lock files (``~$name.xlsx``) are ignored.

    Raises:
        ProcessingError: If directory doesn't exist or can't be read
    """
    if not directory.exists():
        raise ProcessingError(f"Directory not found: {directory}")

    if not directory.is_dir():
        raise ProcessingError(f"Path is not a directory: {directory}")

    try:
        return sorted(
            p
            for p in directory.iterdir()
            if p.is_file() and p.suffix == ".xlsx" and not p.name.startswith("~$")
        )
    except OSError as e:
        raise ProcessingError(f"Error reading directory {directory}: {e}") from e


def _resolve_catalog(config: AppConfig) -> SchemaCatalog:
    if config.catalog_path is None:
        return default_catalog()
    return load_catalog(config.catalog_path)


def process_all(
    config: AppConfig,
    repository: InMemoryRepository | None = None,
    *,
    catalog: SchemaCatalog | None = None,
) -> ProcessingResult:
    """Import every workbook found in ``config.source_directory``.

    Args:
        config: application configuration
        repository: target store (a fresh in-memory one when omitted)
        catalog: entity catalog (defaults to ``config.catalog_path`` or the
            packaged catalog)

    Returns:
        ProcessingResult with aggregated counters and per-file stats

    Raises:
        ProcessingError: source directory missing or unreadable
        ConfigError: the configured catalog cannot be loaded
    """
    start_time = datetime.now(UTC)
    if catalog is None:
        catalog = _resolve_catalog(config)
    repository = repository or InMemoryRepository(catalog)
    error_log = ErrorLogBuffer(config.error_log_dir)
    importer = DataImportService(repository, catalog=catalog, error_log=error_log)

    file_paths = scan_excel_files(Path(config.source_directory))

    file_stats: list[FileStat] = []
    success_count = failed_count = total_rows = 0
    imported_sheets = rejected_sheets = skipped_sheets = 0

    with ProgressTracker(len(file_paths)) as progress:
        for file_path in file_paths:
            progress.start_file(file_path)
            excel_file = _process_single_file(file_path, importer, error_log, config)

            if excel_file.status == FileStatus.SUCCESS:
                success_count += 1
            else:
                failed_count += 1
            total_rows += excel_file.imported_rows
            imported_sheets += excel_file.imported_sheets
            rejected_sheets += excel_file.rejected_sheets
            skipped_sheets += excel_file.skipped_sheets

            progress.set_postfix(rows=total_rows, rejected=rejected_sheets)
            progress.finish_file(success=excel_file.status == FileStatus.SUCCESS)

            elapsed = 0.0
            if excel_file.start_time and excel_file.end_time:
                elapsed = (excel_file.end_time - excel_file.start_time).total_seconds()
            file_stats.append(
                FileStat(
                    file_name=excel_file.name,
                    status=excel_file.status.value,
                    imported_rows=excel_file.imported_rows,
                    imported_sheets=excel_file.imported_sheets,
                    rejected_sheets=excel_file.rejected_sheets,
                    elapsed_seconds=elapsed,
                )
            )

    try:
        log_path = error_log.flush()
    except OSError as e:
        logger.error("failed to write error log: %s", e)
    else:
        if log_path is not None:
            logger.warning("rejected rows written to %s", log_path)

    end_time = datetime.now(UTC)
    return ProcessingResult(
        success_files=success_count,
        failed_files=failed_count,
        total_imported_rows=total_rows,
        imported_sheets=imported_sheets,
        rejected_sheets=rejected_sheets,
        skipped_sheets=skipped_sheets,
        start_time=start_time,
        end_time=end_time,
        elapsed_seconds=(end_time - start_time).total_seconds(),
        file_stats=file_stats,
    )


def _process_single_file(
    file_path: Path,
    importer: DataImportService,
    error_log: ErrorLogBuffer,
    config: AppConfig,
) -> ExcelFile:
    """Import all sheets of one workbook, in workbook order."""
    start_time = datetime.now(UTC)
    try:
        raw_sheets = read_workbook(file_path)
    except (OSError, ValueError, zipfile.BadZipFile) as e:
        logger.error("%s: cannot read workbook: %s", file_path.name, e)
        error_log.append(
            ErrorRecord.create(
                file=file_path.name,
                sheet=FILE_LEVEL_SHEET,
                row=-1,
                error_type="FILE_READ_ERROR",
                message=str(e),
            )
        )
        return ExcelFile(
            path=file_path,
            name=file_path.name,
            start_time=start_time,
            end_time=datetime.now(UTC),
            status=FileStatus.FAILED,
            error=f"cannot read workbook: {e}",
        )

    results: list[ImportResult] = []
    skipped = 0
    sheet_progress = SheetProgressIndicator(file_path.name, len(raw_sheets))

    for sheet_name, df in raw_sheets.items():
        sheet_progress.start_sheet(sheet_name)
        try:
            sheet = normalize_sheet(df, sheet_name, config.null_sentinels)
        except SheetHeaderError as e:
            logger.info("%s/%s: skipped (%s)", file_path.name, sheet_name, e)
            skipped += 1
            sheet_progress.finish_sheet(success=True)
            continue
        if not sheet.rows:
            logger.info("%s/%s: skipped (no data rows)", file_path.name, sheet_name)
            skipped += 1
            sheet_progress.finish_sheet(success=True)
            continue

        try:
            result = importer.import_sheet(sheet, file_name=file_path.name)
        except RepositoryError as e:
            logger.error("%s/%s: %s", file_path.name, sheet_name, e)
            error_log.append(
                ErrorRecord.create(
                    file=file_path.name,
                    sheet=sheet_name,
                    row=-1,
                    error_type="REPOSITORY_ERROR",
                    message=str(e),
                )
            )
            result = ImportResult(success=False, sheet_name=sheet_name, message=str(e))
        results.append(result)
        sheet_progress.finish_sheet(
            success=result.success,
            rows_processed=result.total if result.success else 0,
            entity=result.worksheet,
        )

    rejected = sum(1 for r in results if not r.success)
    imported_rows = sum(r.total for r in results if r.success)
    return ExcelFile(
        path=file_path,
        name=file_path.name,
        sheets=results,
        start_time=start_time,
        end_time=datetime.now(UTC),
        status=FileStatus.FAILED if rejected else FileStatus.SUCCESS,
        imported_rows=imported_rows,
        rejected_sheets=rejected,
        skipped_sheets=skipped,
        error=f"{rejected} sheet(s) rejected" if rejected else None,
    )
