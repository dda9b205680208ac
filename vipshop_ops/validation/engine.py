from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from typing import Any

from vipshop_ops.models.row_data import ROW_NUMBER_KEY
from vipshop_ops.models.schema import EntitySchema, FieldSpec, ValidatorConfig
from vipshop_ops.models.validation_result import (
    BatchItem,
    BatchResult,
    BatchSummary,
    EntityResult,
    FieldResult,
    ValueResult,
)
from vipshop_ops.utils.converters import is_empty

from .rules import BUILTIN_RULES, Rule, RuleOutcome, RuleType

"""Validation engine.

Applies the validators declared on each catalog field and reports failures
keyed by spreadsheet row. The engine holds no per-call state: the only
mutable part is the rule registry, which is filled at start-up (built-ins
plus anything passed to ``register``). A process-wide instance is exposed as
``validation_engine``.

Report format produced by ``format_errors``::

    【商品销售】数据验证失败：

    第7行：
      【销量】不能为负数
"""

__all__ = [
    "ValidationEngine",
    "validation_engine",
]

logger = logging.getLogger(__name__)


def _coerce_outcome(outcome: RuleOutcome) -> ValueResult:
    # custom rules may return a plain {"valid": ..., "message": ...} mapping
    if isinstance(outcome, ValueResult):
        return outcome
    return ValueResult(valid=bool(outcome.get("valid")), message=str(outcome.get("message") or ""))


class ValidationEngine:
    def __init__(self) -> None:
        self._rules: dict[str, Rule] = dict(BUILTIN_RULES)

    def register(self, name: str, rule: Rule) -> None:
        """Register a custom rule, replacing any rule of the same name."""
        key = name.value if isinstance(name, RuleType) else name
        if key in self._rules:
            logger.debug("validation rule '%s' replaced", key)
        self._rules[key] = rule

    def validate_value(self, value: Any, validator: ValidatorConfig, field_title: str = "") -> ValueResult:
        """Apply one rule. Unknown rule types pass."""
        rule = self._rules.get(validator.type)
        if rule is None:
            return ValueResult(valid=True)
        result = _coerce_outcome(rule(value, validator.params or {}))
        if result.valid:
            return ValueResult(valid=True)
        return ValueResult(valid=False, message=f"【{field_title}】{result.message}")

    def validate_field(self, value: Any, spec: FieldSpec, field_name: str | None = None) -> FieldResult:
        """Apply every validator of ``spec`` in order, collecting all failures.

        Only ``required`` looks at empty values; the other rules are skipped.
        """
        title = spec.title or field_name or spec.name
        errors: list[str] = []
        empty = is_empty(value)
        for validator in spec.validators:
            if empty and validator.type != RuleType.REQUIRED.value:
                continue
            result = self.validate_value(value, validator, title)
            if not result.valid:
                errors.append(result.message)
        return FieldResult(valid=not errors, errors=errors)

    def validate_entity(
        self,
        entity: Mapping[str, Any],
        schema: EntitySchema,
        all_data: Sequence[Mapping[str, Any]] | None = None,
    ) -> EntityResult:
        """Validate one row. Computed fields are skipped.

        When ``schema.unique_key`` is set and ``all_data`` is given, any other
        row of ``all_data`` carrying the same key value is a duplicate.
        """
        errors: dict[str, list[str]] = {}
        for name, spec in schema.fields.items():
            if spec.is_computed:
                continue
            result = self.validate_field(entity.get(name), spec, name)
            if not result.valid:
                errors[name] = result.errors

        key = schema.unique_key
        if key and all_data is not None:
            value = entity.get(key)
            if not is_empty(value):
                # identity, not equality: identical rows are still two rows
                duplicated = any(other is not entity and other.get(key) == value for other in all_data)
                if duplicated:
                    errors.setdefault(key, []).append(f'【{schema.field_title(key)}】值"{value}"已存在')

        return EntityResult(valid=not errors, errors=errors, row_number=entity.get(ROW_NUMBER_KEY))

    def validate_all(self, entities: Sequence[Mapping[str, Any]], schema: EntitySchema) -> BatchResult:
        """Validate a batch; ``items[i]`` always corresponds to ``entities[i]``."""
        items: list[BatchItem] = []
        valid_count = 0
        for index, entity in enumerate(entities):
            result = self.validate_entity(entity, schema, all_data=entities)
            items.append(
                BatchItem(
                    valid=result.valid,
                    errors=result.errors,
                    row_number=result.row_number,
                    data=dict(entity),
                    index=index,
                )
            )
            if result.valid:
                valid_count += 1

        total = len(items)
        summary = BatchSummary(total=total, valid=valid_count, invalid=total - valid_count)
        return BatchResult(valid=summary.invalid == 0, items=items, summary=summary)

    def format_errors(self, result: BatchResult, entity_name: str) -> str | None:
        """Render a user-facing report of the invalid rows, or None if all passed."""
        if result.valid:
            return None
        lines = [f"【{entity_name}】数据验证失败：\n"]
        for item in result.invalid_items():
            lines.append(f"\n第{item.row_number or '?'}行：\n")
            for message in item.messages():
                lines.append(f"  {message}\n")
        return "".join(lines)


validation_engine = ValidationEngine()
