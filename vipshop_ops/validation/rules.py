from __future__ import annotations

import functools
import re
from collections.abc import Callable, Mapping
from enum import Enum
from typing import Any, Union

from vipshop_ops.models.validation_result import ValueResult
from vipshop_ops.utils.converters import is_empty, parse_date, to_number

"""Built-in validation rules.

Every rule is a plain function ``(value, params) -> ValueResult``. Rules other
than ``required`` pass on empty values; the engine never hands them one, but
they stay safe to call directly. ``params["message"]`` replaces the default
reason of any failure.
"""

__all__ = [
    "RuleType",
    "Rule",
    "RuleOutcome",
    "BUILTIN_RULES",
]

RuleOutcome = Union[ValueResult, Mapping[str, Any]]
Rule = Callable[[Any, Mapping[str, Any]], RuleOutcome]


class RuleType(str, Enum):
    REQUIRED = "required"
    ENUM = "enum"
    PATTERN = "pattern"
    RANGE = "range"
    NON_NEGATIVE = "nonNegative"
    POSITIVE = "positive"
    NUMBER = "number"
    DATE = "date"


_OK = ValueResult(valid=True)


def _fail(params: Mapping[str, Any], reason: str) -> ValueResult:
    return ValueResult(valid=False, message=params.get("message") or reason)


def _fmt(num: Any) -> str:
    # 0.0 -> "0", 1.5 -> "1.5"
    if isinstance(num, float) and num.is_integer():
        return str(int(num))
    return str(num)


@functools.lru_cache(maxsize=256)
def _compile(regex: str) -> re.Pattern[str]:
    return re.compile(regex)


def required(value: Any, params: Mapping[str, Any]) -> ValueResult:
    if is_empty(value):
        return _fail(params, "不能为空")
    return _OK


def enum(value: Any, params: Mapping[str, Any]) -> ValueResult:
    values = list(params.get("values") or [])
    if is_empty(value) or value in values:
        return _OK
    return _fail(params, "必须是以下值之一：" + ", ".join(str(v) for v in values))


def pattern(value: Any, params: Mapping[str, Any]) -> ValueResult:
    if is_empty(value):
        return _OK
    regex = params.get("regex")
    if regex is None:
        return _OK
    compiled = regex if isinstance(regex, re.Pattern) else _compile(str(regex))
    if compiled.search(str(value)):
        return _OK
    description = params.get("description")
    return _fail(params, "格式不正确" + (f"：{description}" if description else ""))


def range_(value: Any, params: Mapping[str, Any]) -> ValueResult:
    if is_empty(value):
        return _OK
    num = to_number(value)
    if num is None:
        return _fail(params, "必须是数字")
    low, high = params.get("min"), params.get("max")
    if low is not None and num < low:
        return _fail(params, f"不能小于{_fmt(low)}")
    if high is not None and num > high:
        return _fail(params, f"不能大于{_fmt(high)}")
    return _OK


def non_negative(value: Any, params: Mapping[str, Any]) -> ValueResult:
    if is_empty(value):
        return _OK
    num = to_number(value)
    if num is None:
        return _fail(params, "必须是数字")
    return _OK if num >= 0 else _fail(params, "不能为负数")


def positive(value: Any, params: Mapping[str, Any]) -> ValueResult:
    if is_empty(value):
        return _OK
    num = to_number(value)
    if num is None:
        return _fail(params, "必须是数字")
    return _OK if num > 0 else _fail(params, "必须大于0")


def number(value: Any, params: Mapping[str, Any]) -> ValueResult:
    if is_empty(value) or to_number(value) is not None:
        return _OK
    return _fail(params, "必须是有效的数字")


def date(value: Any, params: Mapping[str, Any]) -> ValueResult:
    # parse_date strips the leading text marker itself
    if is_empty(value) or parse_date(value) is not None:
        return _OK
    return _fail(params, "不是有效的日期格式")


BUILTIN_RULES: dict[str, Rule] = {
    RuleType.REQUIRED.value: required,
    RuleType.ENUM.value: enum,
    RuleType.PATTERN.value: pattern,
    RuleType.RANGE.value: range_,
    RuleType.NON_NEGATIVE.value: non_negative,
    RuleType.POSITIVE.value: positive,
    RuleType.NUMBER.value: number,
    RuleType.DATE.value: date,
}
