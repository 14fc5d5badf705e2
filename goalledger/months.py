"""Calendar month arithmetic."""

from __future__ import annotations

from datetime import date


def month_index(value: date) -> int:
    return value.year * 12 + value.month


def month_start(value: date) -> date:
    return value.replace(day=1)


def add_months(value: date, months: int) -> date:
    """Return the first day of the month ``months`` after ``value``'s month."""
    idx = month_index(value) - 1 + months
    return date(idx // 12, idx % 12 + 1, 1)


def same_month(a: date, b: date) -> bool:
    return a.year == b.year and a.month == b.month


def months_remaining(today: date, target: date) -> int:
    """Whole calendar months from today's month to the target month, never negative."""
    return max(0, month_index(target) - month_index(today))


def days_remaining(today: date, target: date) -> int:
    return max(0, (target - today).days)


def months_inclusive(start: date, end: date) -> int:
    """Months from start to end counting both ends, floored at 1."""
    months = month_index(end) - month_index(start) + 1
    return months if months > 0 else 1


def iter_year_months(year: int) -> list[date]:
    return [date(year, month, 1) for month in range(1, 13)]
