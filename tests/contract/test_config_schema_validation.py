from __future__ import annotations

import json
from pathlib import Path

import pytest
import yaml
from jsonschema import Draft7Validator
from jsonschema.exceptions import ValidationError

from vipshop_ops.config.catalog import CATALOG_SCHEMA_PATH, DEFAULT_CATALOG_PATH
from vipshop_ops.config.loader import SCHEMA_PATH

"""Config and catalog schema contract tests."""


def _load(path) -> dict:
    return json.loads(path.read_text(encoding="utf-8"))


@pytest.mark.parametrize("path", [SCHEMA_PATH, CATALOG_SCHEMA_PATH], ids=["import", "catalog"])
def test_schema_files_are_valid_draft7(path):
    Draft7Validator.check_schema(_load(path))


def test_config_schema_valid_example():
    config = {
        "source_directory": "./data",
        "catalog": "catalog.yml",
        "error_log_dir": "./logs",
        "null_sentinels": ["NULL", "N/A", "-"],
    }
    Draft7Validator(_load(SCHEMA_PATH)).validate(config)


def test_config_schema_minimal_example():
    Draft7Validator(_load(SCHEMA_PATH)).validate({"source_directory": "./data"})


@pytest.mark.parametrize(
    "config",
    [
        {},
        {"source_directory": ""},
        {"source_directory": "./data", "sheet_mappings": {}},
        {"source_directory": "./data", "null_sentinels": "NULL"},
    ],
    ids=["missing-source", "empty-source", "unknown-key", "sentinels-not-list"],
)
def test_config_schema_rejects(config):
    with pytest.raises(ValidationError):
        Draft7Validator(_load(SCHEMA_PATH)).validate(config)


def test_packaged_catalog_matches_schema():
    document = yaml.safe_load(DEFAULT_CATALOG_PATH.read_text(encoding="utf-8"))
    Draft7Validator(_load(CATALOG_SCHEMA_PATH)).validate(document)


def test_catalog_schema_rejects_unknown_field_type():
    document = {"entities": {"X": {"fields": {"a": {"title": "A", "type": "boolean"}}}}}
    with pytest.raises(ValidationError):
        Draft7Validator(_load(CATALOG_SCHEMA_PATH)).validate(document)


def test_example_config_matches_schema():
    example = Path(__file__).resolve().parents[2] / "config" / "import.yml"
    document = yaml.safe_load(example.read_text(encoding="utf-8"))
    Draft7Validator(_load(SCHEMA_PATH)).validate(document)
