from __future__ import annotations

import functools
import json
import re
from collections.abc import Iterable, Iterator, Mapping
from pathlib import Path
from types import MappingProxyType
from typing import Any

import jsonschema
import yaml
from jsonschema.exceptions import ValidationError

from vipshop_ops.db.derived_fields import DERIVATIONS
from vipshop_ops.models.schema import (
    EntitySchema,
    FieldSpec,
    FieldType,
    ImportMode,
    IndexSpec,
    ValidatorConfig,
)

from .loader import ConfigError

"""Schema catalog: the read-only registry of entity schemas.

The catalog is loaded from a YAML document (``catalog.yml`` next to this
module by default), validated against ``catalog_schema.json`` and turned into
immutable ``EntitySchema`` objects. Iteration order is the document order and
is part of the contract: it is the tie-break order for sheet identification.
"""

__all__ = [
    "DEFAULT_CATALOG_PATH",
    "SchemaCatalog",
    "load_catalog",
    "default_catalog",
]

_HERE = Path(__file__).parent
DEFAULT_CATALOG_PATH = _HERE / "catalog.yml"
CATALOG_SCHEMA_PATH = _HERE / "catalog_schema.json"


class SchemaCatalog:
    """Ordered, read-only mapping of entity name -> ``EntitySchema``."""

    def __init__(self, schemas: Iterable[EntitySchema]) -> None:
        self._schemas: dict[str, EntitySchema] = {}
        for schema in schemas:
            if schema.name in self._schemas:
                raise ConfigError(f"duplicate entity in catalog: {schema.name}")
            self._schemas[schema.name] = schema
        self._view = MappingProxyType(self._schemas)

    def get(self, name: str) -> EntitySchema | None:
        return self._schemas.get(name)

    def get_all(self) -> Mapping[str, EntitySchema]:
        return self._view

    def importable(self) -> list[str]:
        """Names of entities with ``can_import`` set, in catalog order."""
        return [name for name, schema in self._schemas.items() if schema.can_import]

    def __contains__(self, name: object) -> bool:
        return name in self._schemas

    def __iter__(self) -> Iterator[str]:
        return iter(self._schemas)

    def __len__(self) -> int:
        return len(self._schemas)


def _validate_catalog_document(data: Any) -> None:
    try:
        schema = json.loads(CATALOG_SCHEMA_PATH.read_text(encoding="utf-8"))
        jsonschema.validate(data, schema)
    except json.JSONDecodeError as e:  # pragma: no cover - packaged file
        raise ConfigError(f"invalid catalog schema file: {e}") from e
    except ValidationError as e:
        raise ConfigError(f"catalog validation failed: {e.message}") from e


def _build_validator(entity: str, field_name: str, raw: Mapping[str, Any]) -> ValidatorConfig:
    params = dict(raw.get("params") or {})
    if raw["type"] == "pattern":
        regex = params.get("regex")
        if not isinstance(regex, str):
            raise ConfigError(f"{entity}.{field_name}: pattern validator needs a 'regex' string")
        try:
            params["regex"] = re.compile(regex)
        except re.error as e:
            raise ConfigError(f"{entity}.{field_name}: invalid regex {regex!r}: {e}") from e
    if raw["type"] == "enum" and not isinstance(params.get("values"), list):
        raise ConfigError(f"{entity}.{field_name}: enum validator needs a 'values' list")
    return ValidatorConfig(type=raw["type"], params=MappingProxyType(params))


def _build_field(entity: str, name: str, raw: Mapping[str, Any]) -> FieldSpec:
    field_type = FieldType(raw.get("type", "string"))
    compute = raw.get("compute")
    if field_type is FieldType.COMPUTED:
        if compute is None:
            raise ConfigError(f"{entity}.{name}: computed field needs 'compute'")
        if compute not in DERIVATIONS:
            raise ConfigError(f"{entity}.{name}: unknown derivation '{compute}'")
    return FieldSpec(
        name=name,
        title=str(raw["title"]).strip(),
        type=field_type,
        validators=tuple(_build_validator(entity, name, v) for v in raw.get("validators") or []),
        default=raw.get("default"),
        compute=compute,
    )


def _build_entity(name: str, raw: Mapping[str, Any]) -> EntitySchema:
    fields = {fname: _build_field(name, fname, fraw) for fname, fraw in raw["fields"].items()}

    def _check_known(kind: str, names: Iterable[str]) -> None:
        unknown = [n for n in names if n not in fields]
        if unknown:
            raise ConfigError(f"{name}: {kind} names unknown fields {unknown}")

    unique_key = raw.get("unique_key")
    if unique_key is not None:
        _check_known("unique_key", [unique_key])
    merge_key = tuple(raw.get("merge_key") or ())
    if not merge_key and unique_key is not None:
        merge_key = (unique_key,)
    _check_known("merge_key", merge_key)

    indexes = tuple(
        IndexSpec(fields=tuple(idx["fields"]), unique=bool(idx.get("unique", False)))
        for idx in raw.get("indexes") or []
    )
    for idx in indexes:
        _check_known("index", idx.fields)

    return EntitySchema(
        name=name,
        worksheet=raw.get("worksheet") or name,
        fields=fields,
        required_titles=tuple(str(t).strip() for t in raw.get("required_titles") or ()),
        unique_key=unique_key,
        import_mode=ImportMode(raw.get("import_mode", "overwrite")),
        can_import=bool(raw.get("can_import", False)),
        merge_key=merge_key,
        indexes=indexes,
    )


def load_catalog(path: Path | None = None) -> SchemaCatalog:
    """Load and validate an entity catalog.

    Raises:
        ConfigError: file missing, YAML invalid, document does not match
            ``catalog_schema.json``, or a key / index / regex is inconsistent.
    """
    path = path or DEFAULT_CATALOG_PATH
    if not path.exists():
        raise ConfigError(f"catalog file not found: {path}")
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid yaml: {e}") from e

    _validate_catalog_document(data)
    return SchemaCatalog(_build_entity(name, raw) for name, raw in data["entities"].items())


@functools.lru_cache(maxsize=None)
def default_catalog() -> SchemaCatalog:
    """Process-wide catalog loaded once from the packaged YAML."""
    return load_catalog(DEFAULT_CATALOG_PATH)
