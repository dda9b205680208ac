from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from pathlib import Path
from unittest.mock import patch

import pandas as pd

from vipshop_ops.cli.__main__ import main as cli_main
from vipshop_ops.models.processing_result import ProcessingResult


def _write_sales(path: Path, rows: list[list[object]]) -> None:
    with pd.ExcelWriter(path) as writer:
        pd.DataFrame([["货号", "销售日期", "销量"], *rows]).to_excel(
            writer, sheet_name="商品销售", header=False, index=False
        )


def test_cli_no_files_success(write_config, temp_workdir: Path, capsys):
    code = cli_main([])
    out = capsys.readouterr().out
    assert code == 0
    assert "INFO Processing files from: data" in out
    assert "SUMMARY files=0/0 success=0 failed=0 rows=0" in out


def test_cli_directory_missing(write_config, temp_workdir: Path, capsys):
    text = write_config.read_text(encoding="utf-8").replace("./data", "./missing_dir")
    write_config.write_text(text, encoding="utf-8")

    code = cli_main([])

    out = capsys.readouterr().out
    assert code == 1
    assert "ERROR directory not found:" in out


def test_cli_config_flag_and_env(temp_workdir: Path, capsys, monkeypatch):
    other = temp_workdir / "config" / "other.yml"
    other.write_text("source_directory: ./data\n", encoding="utf-8")

    assert cli_main(["--config", str(other)]) == 0

    monkeypatch.setenv("VIPSHOP_OPS_CONFIG", str(other))
    assert cli_main([]) == 0
    assert capsys.readouterr().out.count("SUMMARY ") == 2


def test_cli_env_file_points_at_config(temp_workdir: Path, capsys, monkeypatch):
    # registered so that the value loaded from .env is undone afterwards
    monkeypatch.setenv("VIPSHOP_OPS_CONFIG", "unused.yml")
    monkeypatch.delenv("VIPSHOP_OPS_CONFIG")
    (temp_workdir / "config" / "from_env.yml").write_text("source_directory: ./data\n", encoding="utf-8")
    (temp_workdir / ".env").write_text("VIPSHOP_OPS_CONFIG=config/from_env.yml\n", encoding="utf-8")

    code = cli_main([])

    assert code == 0
    assert "SUMMARY files=0/0" in capsys.readouterr().out


def test_cli_debug_mode(write_config, temp_workdir: Path, capsys):
    """--debug turns on DEBUG lines for the whole package."""
    now = datetime.now(timezone.utc)
    mock_result = ProcessingResult(
        success_files=0,
        failed_files=0,
        total_imported_rows=0,
        imported_sheets=0,
        rejected_sheets=0,
        skipped_sheets=0,
        start_time=now,
        end_time=now + timedelta(seconds=0.01),
        elapsed_seconds=0.01,
    )

    with patch("vipshop_ops.cli.__main__.process_all", return_value=mock_result) as mock_process:
        code = cli_main(["--debug"])

    out = capsys.readouterr().out
    assert code == 0
    assert "DEBUG debug mode enabled" in out
    assert "SUMMARY files=0/0 success=0 failed=0 rows=0 imported_sheets=0 rejected_sheets=0 skipped_sheets=0 elapsed_sec=0.01" in out
    mock_process.assert_called_once()


def test_cli_inspect(write_config, temp_workdir: Path, capsys):
    _write_sales(temp_workdir / "data" / "sales.xlsx", [["A", "2024-05-10", 2]])

    code = cli_main(["--inspect"])

    out = capsys.readouterr().out
    assert code == 0
    assert "FILE: sales.xlsx" in out
    assert "  SHEET: 商品销售 entity=ProductSales rows=1" in out
    assert "    row 2: " in out
    assert "SUMMARY" not in out


def test_cli_item_report(write_config, temp_workdir: Path, capsys):
    today = date.today()
    yesterday = today - timedelta(days=1)
    _write_sales(
        temp_workdir / "data" / "sales.xlsx",
        [["A", today.isoformat(), 2], ["A", yesterday.isoformat(), 3], ["B", today.isoformat(), 9]],
    )

    code = cli_main(["--item", "A", "--days", "3"])

    out = capsys.readouterr().out
    assert code == 0
    assert "ITEM A" in out
    assert "  last 3 days: 5" in out
    assert f"({today.isoformat()}): 2" in out
    assert f"({yesterday.isoformat()}): 3" in out
    assert f"({(today - timedelta(days=2)).isoformat()}): 0" in out


def test_cli_inspect_unrecognised_sheet_shows_closest_entity(write_config, temp_workdir: Path, capsys):
    with pd.ExcelWriter(temp_workdir / "data" / "partial.xlsx") as writer:
        pd.DataFrame([["货号", "销售日期"], ["A", "2024-05-10"]]).to_excel(
            writer, sheet_name="Sheet1", header=False, index=False
        )

    assert cli_main(["--inspect"]) == 0

    out = capsys.readouterr().out
    assert "  SHEET: Sheet1 entity=- rows=1" in out
    assert "    closest: ProductSales missing=销量" in out
