from __future__ import annotations

import calendar
from datetime import date, timedelta

"""Calendar helpers used by the sales statistics views."""

__all__ = [
    "iso_week_number",
    "date_of_iso_week",
    "last_iso_week",
    "days_in_month",
    "days_between",
    "recent_days",
]


def iso_week_number(value: date) -> int:
    """ISO-8601 week number (1-53).

    Week 1 is the week holding the year's first Thursday, i.e. the week
    containing 4 January, so 2021-01-01 falls in week 53 of 2020.
    """
    return value.isocalendar()[1]


def date_of_iso_week(year: int, week: int) -> date:
    """Monday of ISO ``week`` in ISO ``year``.

    Weeks past the end of the year roll over: week 53 of a 52-week year is
    week 1 of the next.
    """
    return date.fromisocalendar(year, 1, 1) + timedelta(weeks=week - 1)


def last_iso_week(year: int) -> int:
    # 28 Dec is always in the last ISO week; 31 Dec may already be week 1
    return iso_week_number(date(year, 12, 28))


def days_in_month(year: int, month: int) -> int:
    return calendar.monthrange(year, month)[1]


def days_between(earlier: date, later: date) -> int:
    """Whole days from ``earlier`` to ``later`` (negative if reversed)."""
    return (later - earlier).days


def recent_days(today: date, days: int) -> list[date]:
    """``days`` consecutive dates ending at ``today``, oldest first."""
    return [today - timedelta(days=offset) for offset in range(days - 1, -1, -1)]
