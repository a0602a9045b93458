"""Date arithmetic for age and renewal calculations.

Every function takes an explicit as-of date; ``today`` is only consulted when a
caller passes ``None``.
"""
from __future__ import annotations

from datetime import date, datetime

from mailbox_pricing.config import SETTINGS


def today() -> date:
    return datetime.now(SETTINGS.timezone).date()


def as_date(value: date | datetime | None) -> date:
    if value is None:
        return today()
    if isinstance(value, datetime):
        return value.date()
    return value


def add_years(day: date, years: int) -> date:
    """Shift by whole years; Feb 29 rolls forward to Mar 1 in non-leap years."""
    try:
        return day.replace(year=day.year + years)
    except ValueError:
        return date(day.year + years, 3, 1)


def calculate_age(birthdate: date, as_of: date | datetime | None = None) -> int:
    on = as_date(as_of)
    age = on.year - birthdate.year
    if (on.month, on.day) < (birthdate.month, birthdate.day):
        age -= 1
    return age


def is_minor(birthdate: date, as_of: date | datetime | None = None) -> bool:
    return calculate_age(birthdate, as_of) < SETTINGS.adult_age


def eighteenth_birthday(birthdate: date) -> date:
    return add_years(birthdate, SETTINGS.adult_age)


def whole_months_between(start: date, end: date) -> int:
    """Completed calendar months from ``start`` to ``end`` (never negative)."""
    months = (end.year - start.year) * 12 + (end.month - start.month)
    if end.day < start.day:
        months -= 1
    return max(0, months)


def months_until_18(birthdate: date, from_date: date | datetime | None = None) -> int | None:
    """Whole months from ``from_date`` until the 18th birthday, or None if already adult."""
    start = as_date(from_date)
    turns_adult = eighteenth_birthday(birthdate)
    if turns_adult <= start:
        return None
    return whole_months_between(start, turns_adult)
