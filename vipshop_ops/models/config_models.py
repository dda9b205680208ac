from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

"""Application configuration model.

Loaded from ``config/import.yml`` by ``vipshop_ops.config.loader``. The entity
catalog itself lives in a separate YAML document (see
``vipshop_ops.config.catalog``); ``catalog_path`` only points at it.
"""


@dataclass(frozen=True)
class AppConfig:
    """Root configuration for an import run."""
    source_directory: str  # directory scanned for .xlsx workbooks
    catalog_path: Path | None = None  # None -> packaged default catalog
    error_log_dir: str = "./logs"
    null_sentinels: frozenset[str] | None = None  # cell strings read as empty (upper-cased)
