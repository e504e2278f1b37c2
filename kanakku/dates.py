"""
Local Calendar Date Utilities

Income and expense dates are plain calendar dates (no time, no zone).
"Today" is always read from the local clock's year/month/day fields,
never through a UTC timestamp, so an entry made late in the evening
never slides onto the next or previous day.

The ISO string form (YYYY-MM-DD) is fixed-width and zero-padded, so
comparing two dates and comparing their ISO strings give the same answer.
"""

import calendar
import time
from datetime import date
from typing import Optional

from kanakku.models.finance import Recurrence


def today(clock: Optional["Clock"] = None) -> date:
    """Return the local calendar date."""
    if clock is not None:
        return clock.today()
    return date.today()


def to_iso(value: date) -> str:
    """Format a date as YYYY-MM-DD."""
    return value.isoformat()


def _add_months(value: date, months: int) -> date:
    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(value.day, last_day))


def _add_year(value: date) -> date:
    # Feb 29 rolls over to Mar 1 when the next year has no leap day
    if value.month == 2 and value.day == 29 and not calendar.isleap(value.year + 1):
        return date(value.year + 1, 3, 1)
    return value.replace(year=value.year + 1)


def next_occurrence(value: date, recurrence: Recurrence) -> date:
    """
    Compute the next date of a recurring entry.

    Monthly advances one calendar month and clamps to the last valid day
    of the target month (Jan 31 -> Feb 28/29). Yearly advances the year;
    Feb 29 becomes Mar 1 in non-leap years.
    """
    if recurrence == Recurrence.MONTHLY:
        return _add_months(value, 1)
    if recurrence == Recurrence.YEARLY:
        return _add_year(value)
    raise ValueError(f"No next occurrence for recurrence: {recurrence.value}")


class Clock:
    """
    Source of 'today' and of creation timestamps.

    Timestamps are epoch milliseconds and strictly increasing within
    one Clock, so two entries created in the same millisecond still
    get distinct, ordered values.

    Pass fixed_today to pin the calendar date (tests, replays).
    """

    def __init__(self, fixed_today: Optional[date] = None):
        self._fixed_today = fixed_today
        self._last_ms = 0

    def today(self) -> date:
        if self._fixed_today is not None:
            return self._fixed_today
        return date.today()

    def now_ms(self) -> int:
        current = time.time_ns() // 1_000_000
        self._last_ms = max(current, self._last_ms + 1)
        return self._last_ms

    def reserve_ms(self, count: int) -> int:
        """
        Reserve `count` consecutive timestamps and return the first.

        Used when an entry and its successor are created together
        (successor.created_at == originator.created_at + 1).
        """
        first = self.now_ms()
        self._last_ms = first + count - 1
        return first
