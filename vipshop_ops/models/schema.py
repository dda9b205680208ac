from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any

"""Entity schema models for the workbook import pipeline.

An ``EntitySchema`` describes one record shape (ProductSales, RegularProduct,
...): its fields in column order, the column titles a sheet must carry to be
recognised as this entity, the uniqueness / merge keys and how an import
treats the data already held by the repository.

Schemas are built once by the catalog loader and never mutated afterwards.
"""

__all__ = [
    "FieldType",
    "ImportMode",
    "ValidatorConfig",
    "FieldSpec",
    "IndexSpec",
    "EntitySchema",
]


class FieldType(str, Enum):
    """Cell type of a field. ``computed`` fields are derived, never imported."""

    STRING = "string"
    NUMBER = "number"
    DATE = "date"
    COMPUTED = "computed"


class ImportMode(str, Enum):
    """How an import treats existing records of the same entity.

    - APPEND: merge into the existing set (sales history accumulates)
    - OVERWRITE: replace the existing set (master data snapshots)
    """

    APPEND = "append"
    OVERWRITE = "overwrite"


@dataclass(frozen=True)
class ValidatorConfig:
    """One rule attached to a field: rule type name plus its parameters."""

    type: str
    params: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class FieldSpec:
    name: str  # field name used in entity mappings (e.g. itemNumber)
    title: str  # column header in the sheet (e.g. 货号)
    type: FieldType = FieldType.STRING
    validators: tuple[ValidatorConfig, ...] = ()
    default: Any = None  # applied to empty cells on read
    compute: str | None = None  # derivation name for computed fields

    @property
    def is_computed(self) -> bool:
        return self.type is FieldType.COMPUTED


@dataclass(frozen=True)
class IndexSpec:
    """Repository index over one or more fields."""

    fields: tuple[str, ...]
    unique: bool = False


@dataclass(frozen=True)
class EntitySchema:
    """Immutable description of one importable / queryable entity."""

    name: str
    worksheet: str  # display name used in user-facing reports
    fields: Mapping[str, FieldSpec]
    required_titles: tuple[str, ...] = ()
    unique_key: str | None = None
    import_mode: ImportMode = ImportMode.OVERWRITE
    can_import: bool = False
    merge_key: tuple[str, ...] = ()  # identifies a record when appending
    indexes: tuple[IndexSpec, ...] = ()

    def __post_init__(self) -> None:
        # frozen: freeze the field mapping too
        if not isinstance(self.fields, MappingProxyType):
            object.__setattr__(self, "fields", MappingProxyType(dict(self.fields)))

    def field_title(self, name: str) -> str:
        spec = self.fields.get(name)
        return spec.title if spec is not None else name

    def title_map(self) -> dict[str, str]:
        """Column title -> field name for every importable field."""
        return {spec.title: name for name, spec in self.fields.items() if not spec.is_computed}

    @property
    def computed_fields(self) -> list[FieldSpec]:
        return [spec for spec in self.fields.values() if spec.is_computed]
