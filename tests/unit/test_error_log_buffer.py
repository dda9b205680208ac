from __future__ import annotations
import json
from pathlib import Path
from vipshop_ops.logging.error_log import ErrorRecord, ErrorLogBuffer

KEYS = {"timestamp", "file", "sheet", "row", "error_type", "message"}


def test_error_record_creation_and_json_line():
    rec = ErrorRecord.create(
        file="sales.xlsx",
        sheet="商品销售",
        row=10,
        error_type="VALIDATION_ERROR",
        message="【销量】不能为负数",
    )
    line = rec.to_json_line()
    data = json.loads(line)
    assert data["file"] == "sales.xlsx"
    assert data["sheet"] == "商品销售"
    assert data["row"] == 10
    assert data["error_type"] == "VALIDATION_ERROR"
    assert "timestamp" in data and data["timestamp"].endswith("Z")
    assert set(data.keys()) == KEYS
    # titles stay readable in the log file
    assert "【销量】" in line


def test_error_log_buffer_flush(temp_workdir: Path):
    buf = ErrorLogBuffer()
    buf.append(ErrorRecord.create("f1.xlsx", "S", 2, "VALIDATION_ERROR", "【货号】不能为空"))
    buf.extend([ErrorRecord.create("f1.xlsx", "S", -1, "UNKNOWN_SHEET", "无法识别")])
    assert len(buf.records) == 2
    path = buf.flush()
    assert path is not None and path.exists()
    assert path.parent == Path("./logs")
    assert path.name.startswith("errors-") and path.suffix == ".log"
    lines = path.read_text(encoding="utf-8").strip().splitlines()
    assert len(lines) == 2
    for raw in lines:
        obj = json.loads(raw)
        assert set(obj.keys()) == KEYS
    # buffer is cleared after flush
    assert len(buf) == 0


def test_error_log_buffer_empty_flush_writes_nothing(tmp_path: Path):
    buf = ErrorLogBuffer(tmp_path / "logs")
    assert buf.flush() is None
    assert not (tmp_path / "logs").exists()


def test_error_log_buffer_multiple_flushes(tmp_path: Path):
    buf = ErrorLogBuffer(tmp_path / "nested" / "logs")
    buf.append(ErrorRecord.create("f.xlsx", "S", 1, "VALIDATION_ERROR", "dup"))
    path = buf.flush()
    size1 = path.stat().st_size
    # append again and flush into the same file
    buf.append(ErrorRecord.create("f.xlsx", "S", 2, "VALIDATION_ERROR", "dup2"))
    path2 = buf.flush()
    assert path == path2
    assert path2.stat().st_size > size1
    assert len(path2.read_text(encoding="utf-8").splitlines()) == 2
