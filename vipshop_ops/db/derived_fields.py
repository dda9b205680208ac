from __future__ import annotations

from collections.abc import Callable, Mapping
from datetime import date
from typing import Any

from vipshop_ops.models.schema import EntitySchema
from vipshop_ops.utils.converters import parse_date
from vipshop_ops.utils.dates import days_between, iso_week_number

"""Derivations for ``computed`` catalog fields.

A computed field names its derivation in the catalog (``compute:
sales_year``). The repository fills every computed field on ingest, so the
sales index keys are always functionally determined by ``salesDate``.
Derivations receive the record and the repository's notion of "today".
"""

__all__ = [
    "Derivation",
    "DERIVATIONS",
    "apply_derivations",
]

Derivation = Callable[[Mapping[str, Any], date], Any]


def _sales_date(record: Mapping[str, Any]) -> date | None:
    return parse_date(record.get("salesDate"))


def sales_year(record: Mapping[str, Any], today: date) -> int | None:
    d = _sales_date(record)
    return d.year if d else None


def sales_month(record: Mapping[str, Any], today: date) -> int | None:
    d = _sales_date(record)
    return d.month if d else None


def sales_week_of_year(record: Mapping[str, Any], today: date) -> int | None:
    d = _sales_date(record)
    return iso_week_number(d) if d else None


def days_since_sale(record: Mapping[str, Any], today: date) -> int | None:
    d = _sales_date(record)
    return days_between(d, today) if d else None


DERIVATIONS: dict[str, Derivation] = {
    "sales_year": sales_year,
    "sales_month": sales_month,
    "sales_week_of_year": sales_week_of_year,
    "days_since_sale": days_since_sale,
}


def apply_derivations(record: dict[str, Any], schema: EntitySchema, today: date) -> None:
    """Fill every computed field of ``schema`` on ``record`` in place."""
    for spec in schema.computed_fields:
        derive = DERIVATIONS.get(spec.compute or "")
        if derive is None:
            continue
        record[spec.name] = derive(record, today)
