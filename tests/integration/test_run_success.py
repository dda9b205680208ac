from __future__ import annotations

import re
from datetime import date, datetime
from pathlib import Path
from typing import Any

import pandas as pd
import pytest

from vipshop_ops.cli.__main__ import main as cli_main
from vipshop_ops.config.loader import load_config
from vipshop_ops.db.repository import InMemoryRepository
from vipshop_ops.services.orchestrator import process_all
from vipshop_ops.services.sales_statistics import SalesStatisticsService

from conftest import TODAY, regular_product_row

"""Integration test: a multi-workbook run feeding the sales statistics.

Two workbooks, five sheets (sales, products, inventory, combos and an empty
notes sheet) go through the whole pipeline; the resulting repository is then
queried the way the analytics views query it.
"""

pytestmark = pytest.mark.integration

INVENTORY_HEADER = ["商品编码", "数量", "进货仓库存", "后整车间", "超卖车间", "备货车间", "销退仓库存", "采购在途数"]


def _make_excel_file(path: Path, sheets: dict[str, list[list[object]]]) -> Path:
    with pd.ExcelWriter(path, engine="openpyxl") as writer:
        for sheet_name, rows in sheets.items():
            pd.DataFrame(rows).to_excel(writer, sheet_name=sheet_name, header=False, index=False)
    return path


@pytest.fixture
def workbooks(temp_workdir: Path, write_config: Path, regular_product_headers) -> dict[str, Any]:
    data_dir = temp_workdir / "data"
    _make_excel_file(
        data_dir / "master.xlsx",
        {
            "常态商品": [regular_product_headers, regular_product_row("P1", "1001"), regular_product_row("P2", "1002")],
            "库存": [INVENTORY_HEADER, ["P1", 5, 1, 0, 0, 0, 0, 2], ["P2", "N/A", 3, 0, 0, 0, 0, 0]],
            "组合": [["组合商品实体编码", "商品编码", "数量"], ["C1", "P1", 1], ["C1", "P2", 2]],
            "备注": [["说明"]],
        },
    )
    _make_excel_file(
        data_dir / "sales.xlsx",
        {
            "商品销售": [
                ["货号", "销售日期", "销量", "销售额"],
                [1001, datetime(2024, 5, 10), 2, 398],
                [1001, "2024-05-09", 3, 597],
                [1001, "'2024-05-03", 4, 796],
                [1001, datetime(2024, 4, 30), 10, 1990],
                [1002, datetime(2023, 12, 31), 7, 1393],
            ],
        },
    )
    return {"sheets": 5, "imported_sheets": 4, "rows": 2 + 2 + 2 + 5}


def test_process_all_then_statistics(write_config: Path, workbooks: dict[str, Any], catalog) -> None:
    repository = InMemoryRepository(catalog, clock=lambda: TODAY)

    result = process_all(load_config(write_config), repository, catalog=catalog)

    assert (result.success_files, result.failed_files) == (2, 0)
    assert result.total_imported_rows == workbooks["rows"]
    assert result.imported_sheets == workbooks["imported_sheets"]
    assert result.skipped_sheets == 1

    # inventory: "N/A" is a null sentinel, so the default applies
    assert repository.find_one("Inventory", {"productCode": "P2"})["mainInventory"] == 0
    assert len(repository.find("ComboProduct", {"productCode": "C1"})) == 2
    assert repository.find_one("RegularProduct", {"itemNumber": "1001"})["productCode"] == "P1"

    stats = SalesStatisticsService(repository, current_date=TODAY)
    assert stats.get_year_total_sales("1001", 2024) == 19
    assert stats.get_month_sales("1001", 2024, 5) == 9
    assert stats.get_month_sales("1001", 2024, 4) == 10
    assert stats.get_week_sales("1001", 2024, 19) == 2 + 3
    assert stats.get_day_sales("1001", date(2024, 5, 3)) == 4
    assert stats.get_last_n_days_sum("1001", 7) == 9
    assert [d.sales for d in stats.get_last_n_days_daily_sales("1001", 3)] == [0, 3, 2]
    assert stats.get_year_total_sales("1002", 2023) == 7
    assert stats.get_year_total_sales("1001", 2024, field="salesAmount") == 3781
    assert stats.get_range_sales("1001", "2024-04-30", "2024-05-03") == 14


def test_reimport_merges_sales(write_config: Path, workbooks: dict[str, Any], catalog, temp_workdir: Path) -> None:
    repository = InMemoryRepository(catalog, clock=lambda: TODAY)
    config = load_config(write_config)
    process_all(config, repository, catalog=catalog)

    _make_excel_file(
        temp_workdir / "data" / "sales.xlsx",
        {"商品销售": [["货号", "销售日期", "销量"], [1001, "2024-05-10", 20], [1001, "2024-05-11", 1]]},
    )
    process_all(config, repository, catalog=catalog)

    stats = SalesStatisticsService(repository, current_date=TODAY)
    assert stats.get_day_sales("1001", "2024-05-10") == 20
    assert len(repository.find("ProductSales", {"itemNumber": "1001"})) == 5
    # master data is a snapshot: the second run replaced it with the same rows
    assert len(repository.find_all("RegularProduct")) == 2


def test_cli_run_success(workbooks: dict[str, Any], capsys: Any) -> None:
    exit_code = cli_main([])

    output = capsys.readouterr().out
    assert exit_code == 0

    summary_pattern = re.compile(
        r"^SUMMARY\s+files=(\d+)/(\d+)\s+success=(\d+)\s+failed=(\d+)\s+rows=(\d+)\s+"
        r"imported_sheets=(\d+)\s+rejected_sheets=(\d+)\s+skipped_sheets=(\d+)\s+elapsed_sec=(\d+\.?\d*)$",
        re.MULTILINE,
    )
    match = summary_pattern.search(output)
    assert match is not None, output
    files_done, files_total, success, failed, rows, imported, rejected, skipped, _ = match.groups()
    assert (files_done, files_total, success, failed) == ("2", "2", "2", "0")
    assert int(rows) == workbooks["rows"]
    assert (int(imported), int(rejected), int(skipped)) == (workbooks["imported_sheets"], 0, 1)
    assert "INFO master.xlsx/库存: 成功导入 2 条数据到【商品库存】" in output
    assert "INFO sales.xlsx/商品销售: 销售数据导入完成：新增5条，更新0条" in output
    assert not list(Path("logs").glob("*.log"))
