from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

"""Result models returned by the validation engine.

Validation never raises for bad data; every level (value, field, entity,
batch) reports through one of these structures and the caller decides what
to show. Error messages are already decorated with the column title, e.g.
``【销量】不能为负数``.
"""

__all__ = [
    "ValueResult",
    "FieldResult",
    "EntityResult",
    "BatchItem",
    "BatchSummary",
    "BatchResult",
]


@dataclass(frozen=True)
class ValueResult:
    """Outcome of a single rule applied to a single value."""

    valid: bool
    message: str = ""


@dataclass(frozen=True)
class FieldResult:
    valid: bool
    errors: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class EntityResult:
    """Per-row outcome: failing messages grouped by field name."""

    valid: bool
    errors: dict[str, list[str]]
    row_number: int | None

    def messages(self) -> list[str]:
        """All messages of this row, in field order."""
        return [msg for field_errors in self.errors.values() for msg in field_errors]


@dataclass(frozen=True)
class BatchItem(EntityResult):
    data: dict[str, Any] = field(default_factory=dict)  # the validated row
    index: int = 0  # position in the input batch


@dataclass(frozen=True)
class BatchSummary:
    total: int
    valid: int
    invalid: int


@dataclass(frozen=True)
class BatchResult:
    valid: bool
    items: list[BatchItem]
    summary: BatchSummary

    def invalid_items(self) -> list[BatchItem]:
        return [item for item in self.items if not item.valid]
