from __future__ import annotations

import logging
import re
from collections.abc import Callable, Iterable, Mapping, Sequence
from datetime import date
from typing import Any, Union

from vipshop_ops.config.catalog import SchemaCatalog
from vipshop_ops.models.schema import EntitySchema, IndexSpec
from vipshop_ops.utils.converters import to_number
from vipshop_ops.validation.engine import ValidationEngine, validation_engine

from .derived_fields import apply_derivations

"""In-memory indexed entity store.

Records are plain dicts keyed by field name. Each entity keeps its records in
insertion order plus one hash index per ``IndexSpec`` declared in the catalog
(or added with ``register_indexes``). Index keys are built from the string
form of each field value, so ``2024`` and ``"2024"`` address the same bucket.

Read side (used by the statistics service):
- find_all(entity)                 -> all records
- find(entity, {field: value})     -> AND of equalities, index accelerated
- find_one(entity, {field: value}) -> first match or None
- query(entity, filter, sort, limit, offset)

Write side (used by the importer):
- save(entity, records)            -> overwrite
- append(entity, records)          -> merge by the schema's merge_key

Every write validates the incoming records, fills computed fields against the
repository clock and rebuilds the entity's indexes.
"""

__all__ = [
    "RepositoryError",
    "InMemoryRepository",
]

logger = logging.getLogger(__name__)

SortSpec = Union[str, Mapping[str, str]]


class RepositoryError(Exception):
    """Write rejected: unknown entity or records failing validation."""


def _key_part(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _equal(value: Any, expected: Any) -> bool:
    return _key_part(value) == _key_part(expected)


class _Index:
    def __init__(self, spec: IndexSpec) -> None:
        self.spec = spec
        self.fields = tuple(sorted(spec.fields))
        self.buckets: dict[tuple[str, ...], list[dict[str, Any]]] = {}

    def key_of(self, source: Mapping[str, Any]) -> tuple[str, ...]:
        return tuple(_key_part(source.get(f)) for f in self.fields)

    def duplicate_key(self, records: Iterable[Mapping[str, Any]]) -> tuple[str, ...] | None:
        """First key held by two records, or None; only unique indexes have one."""
        if not self.spec.unique:
            return None
        seen: set[tuple[str, ...]] = set()
        for record in records:
            key = self.key_of(record)
            if "" in key:
                continue
            if key in seen:
                return key
            seen.add(key)
        return None

    def rebuild(self, records: Iterable[dict[str, Any]]) -> None:
        self.buckets.clear()
        for record in records:
            key = self.key_of(record)
            if "" not in key:
                self.buckets.setdefault(key, []).append(record)

    def lookup(self, condition: Mapping[str, Any]) -> list[dict[str, Any]]:
        return self.buckets.get(self.key_of(condition), [])


def _raise_on_duplicate(entity: str, index: _Index, records: Iterable[Mapping[str, Any]]) -> None:
    key = index.duplicate_key(records)
    if key is not None:
        raise RepositoryError(
            f"{entity}: duplicate value {'/'.join(key)} for unique index ({', '.join(index.fields)})"
        )


def _matches(record: Mapping[str, Any], condition: Mapping[str, Any]) -> bool:
    for name, expected in condition.items():
        value = record.get(name)
        if isinstance(expected, (list, tuple, set, frozenset)):
            if not any(_equal(value, e) for e in expected):
                return False
        elif not _equal(value, expected):
            return False
    return True


def _numeric(op: Callable[[float, float], bool]) -> Callable[[Any, Any], bool]:
    def check(value: Any, bound: Any) -> bool:
        num = to_number(value)
        limit = to_number(bound)
        return num is not None and limit is not None and op(num, limit)

    return check


def _between(value: Any, bounds: Sequence[Any]) -> bool:
    num = to_number(value)
    low, high = to_number(bounds[0]), to_number(bounds[1])
    return num is not None and low is not None and high is not None and low <= num <= high


def _like(value: Any, pattern: str) -> bool:
    # SQL-style: % matches any run of characters, case-insensitive
    regex = ".*".join(re.escape(part) for part in str(pattern).split("%"))
    return re.fullmatch(regex, _key_part(value), re.IGNORECASE) is not None


_OPERATORS: dict[str, Callable[[Any, Any], bool]] = {
    "$lte": _numeric(lambda a, b: a <= b),
    "$lt": _numeric(lambda a, b: a < b),
    "$gte": _numeric(lambda a, b: a >= b),
    "$gt": _numeric(lambda a, b: a > b),
    "$ne": lambda value, expected: not _equal(value, expected),
    "$in": lambda value, options: any(_equal(value, o) for o in options),
    "$between": _between,
    "$like": _like,
}


def _filter_matches(record: Mapping[str, Any], filter_: Mapping[str, Any]) -> bool:
    for name, condition in filter_.items():
        value = record.get(name)
        if callable(condition):
            if not condition(value):
                return False
        elif isinstance(condition, Mapping):
            for op, operand in condition.items():
                check = _OPERATORS.get(op)
                if check is None:
                    raise ValueError(f"unsupported query operator: {op}")
                if not check(value, operand):
                    return False
        elif not _equal(value, condition):
            return False
    return True


def _sort_key(field: str) -> Callable[[Mapping[str, Any]], tuple[int, Any]]:
    def key(record: Mapping[str, Any]) -> tuple[int, Any]:
        value = record.get(field)
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return (0, value)
        if value is None or value == "":
            return (2, "")
        # canonical YYYY-MM-DD dates order correctly as text
        return (1, str(value))

    return key


class InMemoryRepository:
    def __init__(
        self,
        catalog: SchemaCatalog,
        clock: Callable[[], date] = date.today,
        engine: ValidationEngine | None = None,
    ) -> None:
        self._catalog = catalog
        self._clock = clock
        self._engine = engine or validation_engine
        self._records: dict[str, list[dict[str, Any]]] = {}
        self._indexes: dict[str, dict[tuple[str, ...], _Index]] = {}
        for name, schema in catalog.get_all().items():
            self.register_indexes(name, schema.indexes)

    # ------------------------------------------------------------------ read

    def find_all(self, entity: str) -> list[dict[str, Any]]:
        return list(self._records.get(entity, []))

    def find(self, entity: str, condition: Mapping[str, Any] | None = None) -> list[dict[str, Any]]:
        """Records matching every ``field == value`` pair of ``condition``.

        A list / tuple / set value means "any of". ``None`` matches a
        missing or empty field. The widest index whose fields are all given
        as non-empty scalars narrows the candidates; the rest of the
        condition is checked per record.
        """
        records = self._records.get(entity)
        if not records:
            return []
        condition = dict(condition or {})
        if not condition:
            return list(records)

        index = self._pick_index(entity, condition)
        if index is None:
            return [r for r in records if _matches(r, condition)]
        remaining = {k: v for k, v in condition.items() if k not in index.fields}
        return [r for r in index.lookup(condition) if _matches(r, remaining)]

    def find_one(self, entity: str, condition: Mapping[str, Any] | None = None) -> dict[str, Any] | None:
        found = self.find(entity, condition)
        return found[0] if found else None

    def query(
        self,
        entity: str,
        filter: Mapping[str, Any] | None = None,
        sort: SortSpec | Sequence[SortSpec] | None = None,
        limit: int | None = None,
        offset: int = 0,
    ) -> list[dict[str, Any]]:
        """Full-scan query.

        ``filter`` maps a field to a value (equality), a predicate, or an
        operator mapping such as ``{"$lte": 7}``. Several operators on one
        field must all hold. ``sort`` is a field name, a
        ``{"field": ..., "order": "asc" | "desc"}`` mapping or a list of them.

        Raises:
            ValueError: unknown operator in ``filter``.
        """
        results = list(self._records.get(entity, []))
        if filter:
            results = [r for r in results if _filter_matches(r, filter)]

        if sort:
            specs = [sort] if isinstance(sort, (str, Mapping)) else list(sort)
            # stable sorts, least significant key first
            for spec in reversed(specs):
                if isinstance(spec, str):
                    field_name, descending = spec, False
                else:
                    field_name, descending = spec["field"], spec.get("order") == "desc"
                results.sort(key=_sort_key(field_name), reverse=descending)

        if limit is not None:
            return results[offset : offset + limit]
        return results[offset:]

    # ----------------------------------------------------------------- write

    def save(self, entity: str, records: Iterable[Mapping[str, Any]]) -> list[dict[str, Any]]:
        """Replace every stored record of ``entity``."""
        schema = self._require(entity)
        stored = [dict(r) for r in records]
        self._check(schema, stored)
        self._store(schema, stored)
        logger.debug("%s: saved %d records", entity, len(stored))
        return list(stored)

    def append(self, entity: str, records: Iterable[Mapping[str, Any]]) -> tuple[int, int]:
        """Merge ``records`` into the stored set of ``entity``.

        Records are identified by the schema's ``merge_key``; a record whose
        key is already present replaces it (later rows win, also within one
        batch). Returns ``(new_count, updated_count)``.
        """
        schema = self._require(entity)
        incoming = [dict(r) for r in records]
        self._check(schema, incoming)

        merged = list(self._records.get(entity, []))
        positions: dict[tuple[str, ...], int] = {}
        if schema.merge_key:
            for pos, record in enumerate(merged):
                positions[tuple(_key_part(record.get(f)) for f in schema.merge_key)] = pos

        new_count = updated_count = 0
        for record in incoming:
            key = tuple(_key_part(record.get(f)) for f in schema.merge_key) if schema.merge_key else None
            if key is not None and key in positions:
                merged[positions[key]] = record
                updated_count += 1
                continue
            if key is not None:
                positions[key] = len(merged)
            merged.append(record)
            new_count += 1

        self._store(schema, merged)
        logger.debug("%s: appended %d new, %d updated", entity, new_count, updated_count)
        return new_count, updated_count

    def clear(self, entity: str) -> None:
        self._records.pop(entity, None)
        for index in self._indexes.get(entity, {}).values():
            index.buckets.clear()

    def clear_all(self) -> None:
        for entity in list(self._records):
            self.clear(entity)

    def recompute(self, entity: str) -> None:
        """Refill computed fields (e.g. ``daysSinceSale``) against the clock."""
        schema = self._catalog.get(entity)
        records = self._records.get(entity)
        if schema is None or not records:
            return
        self._store(schema, records)

    def register_indexes(self, entity: str, specs: Iterable[IndexSpec]) -> None:
        """Add indexes to ``entity``; existing records are indexed at once."""
        indexes = self._indexes.setdefault(entity, {})
        schema = self._catalog.get(entity)
        all_specs = list(specs)
        # the unique key is always indexed
        if schema is not None and schema.unique_key:
            all_specs.append(IndexSpec(fields=(schema.unique_key,), unique=True))
        for spec in all_specs:
            index = _Index(spec)
            if index.fields in indexes:
                continue
            records = self._records.get(entity, [])
            _raise_on_duplicate(entity, index, records)
            indexes[index.fields] = index
            index.rebuild(records)

    # --------------------------------------------------------------- helpers

    def _require(self, entity: str) -> EntitySchema:
        schema = self._catalog.get(entity)
        if schema is None:
            raise RepositoryError(f"unknown entity: {entity}")
        return schema

    def _check(self, schema: EntitySchema, records: Sequence[Mapping[str, Any]]) -> None:
        result = self._engine.validate_all(records, schema)
        if not result.valid:
            raise RepositoryError(self._engine.format_errors(result, schema.worksheet))

    def _store(self, schema: EntitySchema, records: list[dict[str, Any]]) -> None:
        today = self._clock()
        for record in records:
            apply_derivations(record, schema, today)
        indexes = self._indexes.get(schema.name, {}).values()
        for index in indexes:
            _raise_on_duplicate(schema.name, index, records)
        self._records[schema.name] = records
        for index in indexes:
            index.rebuild(records)

    def _pick_index(self, entity: str, condition: Mapping[str, Any]) -> _Index | None:
        scalar_fields = {
            k
            for k, v in condition.items()
            if v is not None and v != "" and not isinstance(v, (list, tuple, set, frozenset))
        }
        best: _Index | None = None
        for index in self._indexes.get(entity, {}).values():
            if set(index.fields) <= scalar_fields and (best is None or len(index.fields) > len(best.fields)):
                best = index
        return best
