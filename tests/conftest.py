# Shared pytest fixtures
from __future__ import annotations

import tempfile
from datetime import date
from pathlib import Path

import pytest

from vipshop_ops.config.catalog import SchemaCatalog, default_catalog
from vipshop_ops.db.repository import InMemoryRepository
from vipshop_ops.logging.init import reset_logging

# Every date-sensitive test runs against this "today".
TODAY = date(2024, 5, 10)


@pytest.fixture(autouse=True)
def _clean_logging():
    reset_logging()
    yield
    reset_logging()


@pytest.fixture()
def temp_workdir(monkeypatch) -> Path:
    with tempfile.TemporaryDirectory() as d:
        p = Path(d)
        (p / "config").mkdir()
        (p / "data").mkdir()
        (p / "logs").mkdir()
        monkeypatch.chdir(p)
        yield p


@pytest.fixture()
def sample_config_yaml() -> str:
    return """source_directory: ./data
error_log_dir: ./logs
null_sentinels: ["null", "N/A"]
"""


@pytest.fixture()
def write_config(temp_workdir: Path, sample_config_yaml: str) -> Path:
    cfg = temp_workdir / "config" / "import.yml"
    cfg.write_text(sample_config_yaml, encoding="utf-8")
    return cfg


@pytest.fixture()
def catalog() -> SchemaCatalog:
    return default_catalog()


@pytest.fixture()
def repository(catalog: SchemaCatalog) -> InMemoryRepository:
    return InMemoryRepository(catalog, clock=lambda: TODAY)


@pytest.fixture()
def regular_product_headers(catalog: SchemaCatalog) -> list[str]:
    return list(catalog.get("RegularProduct").required_titles)


def regular_product_row(code: str, item: str = "I1", status: str = "商品上线") -> list[object]:
    """A valid RegularProduct row aligned to ``regular_product_headers``."""
    # 条码, 货号, 款号, 颜色, 尺码, 三级品类, 品牌SN, 尺码状态, 商品状态, 唯品价, 到手价, 可售库存, 可售天数, P_SPU
    return [code, item, "S1", "黑", "M", "T恤", "10086", "正常", status, 199, 159, 20, 10, "SPU1"]
