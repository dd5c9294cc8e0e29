"""Calendar month helpers.

Months are ``YYYY-MM`` strings at every public boundary; these helpers convert
them to dates and step between them.
"""

import calendar
import re
from collections.abc import Iterator
from datetime import date

from billcycle.core.exceptions import InvalidMonthError

_MONTH_RE = re.compile(r"^(\d{4})-(0[1-9]|1[0-2])$")


def parse_month(month: str) -> tuple[int, int]:
    """Parse a ``YYYY-MM`` string.

    Raises:
        InvalidMonthError: If the string is not a valid month.
    """
    match = _MONTH_RE.match(month)
    if not match:
        raise InvalidMonthError(month)
    return int(match.group(1)), int(match.group(2))


def format_month(year: int, month: int) -> str:
    """Format a year and month as ``YYYY-MM``."""
    return f"{year:04d}-{month:02d}"


def month_of(day: date) -> str:
    """The ``YYYY-MM`` month containing a date."""
    return format_month(day.year, day.month)


def get_month_start(month: str) -> date:
    """First calendar day of the month."""
    year, num = parse_month(month)
    return date(year, num, 1)


def get_month_end(month: str) -> date:
    """Last calendar day of the month (inclusive)."""
    year, num = parse_month(month)
    return date(year, num, calendar.monthrange(year, num)[1])


def clamp_day(month: str, day: int) -> date:
    """Date in the month on ``day``, clamped to the month's last day."""
    year, num = parse_month(month)
    last = calendar.monthrange(year, num)[1]
    return date(year, num, max(1, min(day, last)))


def add_months(month: str, count: int) -> str:
    """Shift a month by ``count`` months (negative goes back)."""
    year, num = parse_month(month)
    index = year * 12 + (num - 1) + count
    return format_month(index // 12, index % 12 + 1)


def months_between(start: str, end: str) -> int:
    """Number of months from ``start`` to ``end`` (negative if end is earlier)."""
    start_year, start_num = parse_month(start)
    end_year, end_num = parse_month(end)
    return (end_year - start_year) * 12 + (end_num - start_num)


def iterate_months(start: str, end: str) -> Iterator[str]:
    """Yield every month from ``start`` to ``end`` inclusive."""
    for offset in range(months_between(start, end) + 1):
        yield add_months(start, offset)


def current_month(today: date | None = None) -> str:
    return month_of(today or date.today())
