"""ISO day and month helpers.

Days are ``YYYY-MM-DD`` strings and months are ``YYYY-MM`` strings. Both
formats sort lexicographically in chronological order, which the store and
the history views rely on.
"""

from __future__ import annotations

import re
from datetime import date, timedelta

_DAY_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_MONTH_RE = re.compile(r"^\d{4}-(0[1-9]|1[0-2])$")


def is_day_key(value: object) -> bool:
    """True if *value* is a real calendar date in ``YYYY-MM-DD`` form."""
    if not isinstance(value, str) or not _DAY_RE.match(value):
        return False
    try:
        date.fromisoformat(value)
    except ValueError:
        return False
    return True


def is_month_key(value: object) -> bool:
    return isinstance(value, str) and bool(_MONTH_RE.match(value))


def parse_day(day: str) -> date:
    """Parse a ``YYYY-MM-DD`` string. Raises ValueError on anything else."""
    if not is_day_key(day):
        raise ValueError(f"Invalid day: {day!r}")
    return date.fromisoformat(day)


def month_key(day: str) -> str:
    """'2024-01-15' -> '2024-01'."""
    parse_day(day)
    return day[:7]


def add_days(day: str, delta: int) -> str:
    return (parse_day(day) + timedelta(days=delta)).isoformat()


def is_future_day(day: str, today: str) -> bool:
    return day > today


def recent_days(count: int, today: str) -> list[str]:
    """The *count* days ending at *today*, oldest first."""
    base = parse_day(today)
    return [(base - timedelta(days=i)).isoformat() for i in range(count - 1, -1, -1)]
