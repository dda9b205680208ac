from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from vipshop_ops.config.catalog import SchemaCatalog, default_catalog
from vipshop_ops.models.schema import ImportMode

"""Sheet classification by header titles.

A sheet holds entity E when every title in ``E.required_titles`` appears in
its header row. Importable entities are tried in catalog order and the first
match wins; extra columns are ignored and titles compare exactly after
trimming.
"""

__all__ = [
    "EntityIdentifier",
    "normalize_headers",
]


def normalize_headers(headers: Iterable[Any]) -> list[str]:
    return ["" if h is None else str(h).strip() for h in headers]


class EntityIdentifier:
    def __init__(self, catalog: SchemaCatalog | None = None) -> None:
        self._catalog = catalog or default_catalog()
        self._importable = tuple(self._catalog.importable())

    def identify(self, headers: Iterable[Any] | None) -> str | None:
        """Entity name of the first importable entity matching ``headers``."""
        if headers is None:
            return None
        titles = normalize_headers(headers)
        if not titles:
            return None
        present = set(titles)
        for name in self._importable:
            schema = self._catalog.get(name)
            # an entity without required titles never matches
            if schema is None or not schema.required_titles:
                continue
            if all(title in present for title in schema.required_titles):
                return name
        return None

    def can_import(self, name: str) -> bool:
        return name in self._importable

    def get_import_mode(self, name: str) -> ImportMode | None:
        if not self.can_import(name):
            return None
        schema = self._catalog.get(name)
        return schema.import_mode if schema is not None else None

    def get_importable_entities(self) -> list[str]:
        return list(self._importable)

    def missing_titles(self, name: str, headers: Iterable[Any]) -> list[str]:
        """Required titles of ``name`` absent from ``headers`` (catalog order)."""
        schema = self._catalog.get(name)
        if schema is None:
            return []
        present = set(normalize_headers(headers))
        return [title for title in schema.required_titles if title not in present]
