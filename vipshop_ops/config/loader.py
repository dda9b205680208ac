from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import jsonschema
import yaml
from jsonschema.exceptions import ValidationError

from vipshop_ops.models.config_models import AppConfig

"""Application config loader.

Responsibilities:
- Load YAML config/import.yml
- Validate it against import_schema.json
- Apply defaults (error_log_dir=./logs, packaged catalog)
- Resolve a relative ``catalog`` path against the config file's directory
"""

__all__ = [
    "ConfigError",
    "SCHEMA_PATH",
    "load_config",
]

SCHEMA_PATH = Path(__file__).parent / "import_schema.json"


class ConfigError(Exception):
    pass


def _validate_config_schema(data: Any) -> None:
    """Validate config data against the JSON schema.

    Raises:
        ConfigError: If any of the following occurs:
            - The schema file does not exist.
            - The schema file is not valid JSON.
            - The config data fails schema validation (e.g., missing
              source_directory, unknown keys, wrong types).
    """
    if not SCHEMA_PATH.exists():
        raise ConfigError(f"config schema not found: {SCHEMA_PATH}")

    try:
        schema = json.loads(SCHEMA_PATH.read_text(encoding="utf-8"))
        jsonschema.validate(data, schema)
    except json.JSONDecodeError as e:
        raise ConfigError(f"invalid schema file: {e}") from e
    except ValidationError as e:
        raise ConfigError(f"config validation failed: {e.message}") from e


def load_config(path: Path) -> AppConfig:
    if not path.exists():
        raise ConfigError(f"config file not found: {path}")
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid yaml: {e}") from e

    _validate_config_schema(data)

    catalog_path: Path | None = None
    if data.get("catalog"):
        catalog_path = Path(data["catalog"])
        if not catalog_path.is_absolute():
            catalog_path = path.parent / catalog_path

    sentinels = data.get("null_sentinels")
    return AppConfig(
        source_directory=data["source_directory"],
        catalog_path=catalog_path,
        error_log_dir=data.get("error_log_dir", "./logs"),
        # compared upper-cased by the reader
        null_sentinels=frozenset(s.strip().upper() for s in sentinels) if sentinels else None,
    )
