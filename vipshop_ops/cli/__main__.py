from __future__ import annotations

import argparse
import logging
import os
import sys
from pathlib import Path

from dotenv import load_dotenv

from vipshop_ops.config.catalog import SchemaCatalog, default_catalog, load_catalog
from vipshop_ops.config.loader import ConfigError, load_config
from vipshop_ops.db.repository import InMemoryRepository
from vipshop_ops.logging.init import log_summary, setup_logging
from vipshop_ops.models.config_models import AppConfig
from vipshop_ops.services.entity_identifier import EntityIdentifier
from vipshop_ops.services.orchestrator import ProcessingError, process_all, scan_excel_files
from vipshop_ops.services.sales_statistics import SalesStatisticsService
from vipshop_ops.services.summary import render_summary_line

"""CLI entrypoint.

Flow:
- Load .env (``VIPSHOP_OPS_CONFIG`` may point at another config file)
- Load config/import.yml and the entity catalog
- Import every workbook of ``source_directory`` into an in-memory repository
- Print a SUMMARY line; with ``--item`` also print that SKU's recent sales

Exit codes: 0 everything imported, 2 some sheet / workbook rejected,
1 fatal (config, catalog or directory problem).
"""

EXIT_SUCCESS_ALL = 0
EXIT_PARTIAL_FAILURE = 2
EXIT_FATAL = 1

CONFIG_ENV = "VIPSHOP_OPS_CONFIG"
DEFAULT_CONFIG_PATH = Path("config/import.yml")


def _load_env_file(path: Path) -> None:
    """Load .env with python-dotenv; variables already set win."""
    if path.exists():
        load_dotenv(dotenv_path=path, override=False)


def _parse_args(argv: list[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(prog="vipshop-ops", description="Vipshop operations workbook importer")
    p.add_argument("--config", type=Path, default=None, help="Path to import.yml")
    p.add_argument("--debug", action="store_true", help="Enable debug logging")
    p.add_argument(
        "--inspect",
        action="store_true",
        help="Print each sheet's header, identified entity and first rows, then exit",
    )
    p.add_argument("--item", default=None, help="SKU (货号) to report sales for after the import")
    p.add_argument("--days", type=int, default=7, help="Window for --item daily sales (default: 7)")
    return p.parse_args(argv)


def _inspect(cfg: AppConfig, catalog: SchemaCatalog) -> int:
    from vipshop_ops.excel.reader import SheetHeaderError, normalize_sheet, read_workbook

    identifier = EntityIdentifier(catalog)
    for f in scan_excel_files(Path(cfg.source_directory)):
        print(f"FILE: {f.name}")
        for sname, df in read_workbook(f).items():
            try:
                sd = normalize_sheet(df, sname, cfg.null_sentinels)
            except SheetHeaderError as e:
                print(f"  SHEET: {sname} error={e}")
                continue
            entity = identifier.identify(sd.columns)
            print(f"  SHEET: {sname} entity={entity or '-'} rows={len(sd.rows)} cols={sd.columns}")
            if entity is None:
                closest = min(
                    identifier.get_importable_entities(),
                    key=lambda name: len(identifier.missing_titles(name, sd.columns)),
                    default=None,
                )
                if closest is not None:
                    missing = "、".join(identifier.missing_titles(closest, sd.columns))
                    print(f"    closest: {closest} missing={missing}")
            for row in sd.rows[:3]:
                safe = {k: (v.isoformat() if hasattr(v, "isoformat") else v) for k, v in row.values.items()}
                print(f"    row {row.row_number}: {safe}")
    return EXIT_SUCCESS_ALL


def _report_item(repository: InMemoryRepository, item: str, days: int) -> None:
    stats = SalesStatisticsService(repository)
    years = stats.get_year_range()
    print(f"ITEM {item}")
    for year in (years.before_last, years.last, years.current):
        print(f"  {year}: {stats.get_year_total_sales(item, year)}")
    print(f"  last {days} days: {stats.get_last_n_days_sum(item, days)}")
    for day in stats.get_last_n_days_daily_sales(item, days):
        print(f"    {stats.format_display_date(day.date)} ({day.date_str}): {day.sales}")


def main(argv: list[str] | None = None) -> int:
    logger = setup_logging()

    # only None reads sys.argv; tests call main([])
    if argv is None:
        argv = sys.argv[1:]
    args = _parse_args(argv)
    _load_env_file(Path(".env"))

    if args.debug:
        for h in logger.handlers:
            h.setLevel(logging.DEBUG)
        logger.setLevel(logging.DEBUG)
        logger.debug("debug mode enabled")

    config_path = args.config or Path(os.getenv(CONFIG_ENV) or DEFAULT_CONFIG_PATH)
    try:
        cfg = load_config(config_path)
        catalog = load_catalog(cfg.catalog_path) if cfg.catalog_path else default_catalog()
    except ConfigError as e:
        logger.error(f"config: {e}")
        return EXIT_FATAL

    directory = Path(cfg.source_directory)
    if not directory.exists():
        logger.error(f"directory not found: {directory}")
        return EXIT_FATAL

    if args.inspect:
        return _inspect(cfg, catalog)

    logger.info(f"Processing files from: {directory}")
    repository = InMemoryRepository(catalog)
    try:
        result = process_all(cfg, repository, catalog=catalog)
    except ProcessingError as e:
        logger.error(f"processing: {e}")
        return EXIT_FATAL

    summary_line = render_summary_line(result.total_files, result)
    # log_summary adds the "SUMMARY " label itself
    log_summary(summary_line.removeprefix("SUMMARY "))

    if args.item:
        _report_item(repository, args.item, args.days)

    if result.failed_files > 0 or result.rejected_sheets > 0:
        return EXIT_PARTIAL_FAILURE
    return EXIT_SUCCESS_ALL


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
