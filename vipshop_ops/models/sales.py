from __future__ import annotations

from dataclasses import dataclass
from datetime import date

"""Value objects returned by the sales statistics service."""

__all__ = [
    "DailySales",
    "YearRange",
    "MonthDays",
]


@dataclass(frozen=True)
class DailySales:
    date: date
    date_str: str  # YYYY-MM-DD
    sales: float


@dataclass(frozen=True)
class YearRange:
    """The three years a yearly comparison view shows."""

    before_last: int
    last: int
    current: int


@dataclass(frozen=True)
class MonthDays:
    month: int  # 1-12
    days: list[int]
