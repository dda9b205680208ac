from __future__ import annotations

from collections.abc import Iterable, Mapping
from datetime import date, datetime
from typing import Any, Protocol

from vipshop_ops.models.sales import DailySales, MonthDays, YearRange
from vipshop_ops.utils.converters import parse_date, to_date_str, to_number
from vipshop_ops.utils.dates import (
    date_of_iso_week,
    days_in_month,
    iso_week_number,
    last_iso_week,
    recent_days,
)

"""Sales statistics over ``ProductSales`` records.

Aggregates sum one measure (``salesQuantity`` unless ``field`` is given) per
SKU over a year, month, ISO week, day or rolling N-day window. Non-numeric
measure values count as 0, and an empty SKU always yields 0.

Calendar helpers bound the views by the date captured when the service was
built; construct a new service for a fresh horizon.
"""

__all__ = [
    "SALES_ENTITY",
    "DEFAULT_MEASURE",
    "SalesRepository",
    "SalesStatisticsService",
]

SALES_ENTITY = "ProductSales"
DEFAULT_MEASURE = "salesQuantity"


class SalesRepository(Protocol):
    def find_all(self, entity: str) -> list[dict[str, Any]]: ...

    def find(self, entity: str, condition: Mapping[str, Any] | None = None) -> list[dict[str, Any]]: ...

    def find_one(self, entity: str, condition: Mapping[str, Any] | None = None) -> dict[str, Any] | None: ...

    def query(self, entity: str, filter: Mapping[str, Any] | None = None) -> list[dict[str, Any]]: ...


def _measure(value: Any) -> int | float:
    return to_number(value) or 0


def _sum_field(sales: Iterable[Mapping[str, Any]], field: str) -> int | float:
    return sum((_measure(sale.get(field)) for sale in sales), 0)


class SalesStatisticsService:
    def __init__(self, repository: SalesRepository, current_date: date | None = None) -> None:
        self._repository = repository
        if isinstance(current_date, datetime):
            current_date = current_date.date()
        self._current_date = current_date or date.today()
        self._sales_cache: list[dict[str, Any]] | None = None

    # ------------------------------------------------------------ aggregates

    def get_year_total_sales(self, item_number: str, year: int, field: str = DEFAULT_MEASURE) -> int | float:
        if not item_number:
            return 0
        sales = self._repository.find(SALES_ENTITY, {"itemNumber": item_number, "salesYear": year})
        return _sum_field(sales, field)

    def get_month_sales(
        self, item_number: str, year: int, month: int, field: str = DEFAULT_MEASURE
    ) -> int | float:
        if not item_number:
            return 0
        sales = self._repository.find(
            SALES_ENTITY, {"itemNumber": item_number, "salesYear": year, "salesMonth": month}
        )
        return _sum_field(sales, field)

    def get_week_sales(self, item_number: str, year: int, week: int, field: str = DEFAULT_MEASURE) -> int | float:
        """Sum over ISO ``week`` of records whose calendar ``salesYear`` is ``year``."""
        if not item_number:
            return 0
        sales = self._repository.find(
            SALES_ENTITY, {"itemNumber": item_number, "salesYear": year, "salesWeekOfYear": week}
        )
        return _sum_field(sales, field)

    def get_day_sales(self, item_number: str, day: date | str, field: str = DEFAULT_MEASURE) -> int | float:
        if not item_number:
            return 0
        date_str = to_date_str(day)
        if date_str is None:
            return 0
        sale = self._repository.find_one(SALES_ENTITY, {"itemNumber": item_number, "salesDate": date_str})
        return _measure(sale.get(field)) if sale else 0

    def get_last_n_days_sum(self, item_number: str, days: int, field: str = DEFAULT_MEASURE) -> int | float:
        """Sum of ``field`` over records with ``daysSinceSale <= days``."""
        if not item_number:
            return 0
        sales = self._repository.query(
            SALES_ENTITY, filter={"itemNumber": item_number, "daysSinceSale": {"$lte": days}}
        )
        return _sum_field(sales, field)

    def get_last_n_days_daily_sales(
        self, item_number: str, days: int, field: str = DEFAULT_MEASURE
    ) -> list[DailySales]:
        """One entry per day ending today, oldest first; missing days are 0."""
        return [
            DailySales(
                date=day,
                date_str=to_date_str(day) or "",
                sales=self.get_day_sales(item_number, day, field),
            )
            for day in recent_days(self._current_date, days)
        ]

    def get_range_sales(
        self, item_number: str, start: date | str, end: date | str, field: str = DEFAULT_MEASURE
    ) -> int | float:
        """Sum over the closed date range ``[start, end]`` using the sales cache."""
        start_day, end_day = parse_date(start), parse_date(end)
        if not item_number or start_day is None or end_day is None:
            return 0
        sales = self.group_sales_by_item_number().get(item_number, [])
        return _sum_field(self._filter_by_date_range(sales, start_day, end_day), field)

    # ----------------------------------------------------------------- cache

    def refresh_sales_cache(self) -> None:
        self._sales_cache = self._repository.find_all(SALES_ENTITY)

    def group_sales_by_item_number(self) -> dict[str, list[dict[str, Any]]]:
        """Cached sales records grouped by SKU (the cache fills on first use)."""
        if self._sales_cache is None:
            self.refresh_sales_cache()
        grouped: dict[str, list[dict[str, Any]]] = {}
        for sale in self._sales_cache or []:
            item_number = sale.get("itemNumber")
            if not item_number:
                continue
            grouped.setdefault(item_number, []).append(sale)
        return grouped

    @staticmethod
    def _filter_by_date_range(
        sales: Iterable[Mapping[str, Any]], start: date, end: date
    ) -> list[Mapping[str, Any]]:
        result = []
        for sale in sales:
            sold_on = parse_date(sale.get("salesDate"))
            if sold_on is not None and start <= sold_on <= end:
                result.append(sale)
        return result

    # -------------------------------------------------------------- calendar

    def get_current_date(self) -> date:
        return self._current_date

    def get_current_year(self) -> int:
        return self._current_date.year

    def get_current_month(self) -> int:
        return self._current_date.month

    def get_current_day(self) -> int:
        return self._current_date.day

    def get_current_week(self) -> int:
        return iso_week_number(self._current_date)

    def get_year_range(self) -> YearRange:
        year = self.get_current_year()
        return YearRange(before_last=year - 2, last=year - 1, current=year)

    def get_months_of_year(self, year: int) -> list[int]:
        last = self.get_current_month() if year == self.get_current_year() else 12
        return list(range(1, last + 1))

    def get_weeks_of_year(self, year: int) -> list[int]:
        # a past year ends at the ISO week of 28 Dec; 31 Dec can already be week 1
        last = self.get_current_week() if year == self.get_current_year() else last_iso_week(year)
        return list(range(1, last + 1))

    def get_days_of_year(self, year: int) -> list[MonthDays]:
        is_current = year == self.get_current_year()
        result = []
        for month in self.get_months_of_year(year):
            if is_current and month == self.get_current_month():
                last_day = self.get_current_day()
            else:
                last_day = days_in_month(year, month)
            result.append(MonthDays(month=month, days=list(range(1, last_day + 1))))
        return result

    def get_recent_days(self, days: int) -> list[date]:
        return recent_days(self._current_date, days)

    @staticmethod
    def get_date_of_iso_week(year: int, week: int) -> date:
        """Monday of ISO ``week``; a week the year lacks rolls into the next year."""
        return date_of_iso_week(year, week)

    @staticmethod
    def format_display_date(value: date) -> str:
        return f"{value.month}月{value.day}日"
