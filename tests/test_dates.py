"""Tests for local calendar date utilities."""

from datetime import date

import pytest

from kanakku.dates import Clock, next_occurrence, to_iso, today
from kanakku.models.finance import Recurrence


class TestNextOccurrence:
    """Monthly/yearly stepping with end-of-month clamping."""

    @pytest.mark.parametrize("start, expected", [
        (date(2024, 1, 31), date(2024, 2, 29)),
        (date(2023, 1, 31), date(2023, 2, 28)),
        (date(2024, 3, 31), date(2024, 4, 30)),
        (date(2024, 12, 15), date(2025, 1, 15)),
        (date(2024, 6, 10), date(2024, 7, 10)),
    ])
    def test_monthly(self, start, expected):
        assert next_occurrence(start, Recurrence.MONTHLY) == expected

    def test_yearly_keeps_month_and_day(self):
        assert next_occurrence(date(2023, 4, 1), Recurrence.YEARLY) == date(2024, 4, 1)

    def test_yearly_leap_day_rolls_to_march(self):
        """Feb 29 has no counterpart next year, so it lands on Mar 1."""
        assert next_occurrence(date(2024, 2, 29), Recurrence.YEARLY) == date(2025, 3, 1)

    def test_yearly_into_leap_year_keeps_day(self):
        assert next_occurrence(date(2027, 2, 28), Recurrence.YEARLY) == date(2028, 2, 28)

    def test_none_raises(self):
        with pytest.raises(ValueError):
            next_occurrence(date(2024, 1, 1), Recurrence.NONE)

    def test_chained_monthly_does_not_recover_day(self):
        """Clamping is per step: Jan 31 -> Feb 29 -> Mar 29."""
        feb = next_occurrence(date(2024, 1, 31), Recurrence.MONTHLY)
        assert next_occurrence(feb, Recurrence.MONTHLY) == date(2024, 3, 29)


class TestClock:
    """Tests for the injectable clock."""

    def test_fixed_today(self):
        clock = Clock(fixed_today=date(2024, 6, 15))
        assert clock.today() == date(2024, 6, 15)
        assert today(clock) == date(2024, 6, 15)

    def test_default_today_is_local_date(self):
        assert Clock().today() == date.today()
        assert today() == date.today()

    def test_now_ms_strictly_increases(self):
        clock = Clock()
        stamps = [clock.now_ms() for _ in range(50)]
        assert stamps == sorted(stamps)
        assert len(set(stamps)) == len(stamps)

    def test_reserve_ms_hands_out_consecutive_values(self):
        clock = Clock()
        first = clock.reserve_ms(2)
        assert clock.now_ms() > first + 1


class TestIsoFormat:

    def test_to_iso_is_zero_padded(self):
        assert to_iso(date(2024, 3, 5)) == "2024-03-05"

    def test_iso_order_matches_date_order(self):
        days = [date(2024, 12, 1), date(2024, 2, 10), date(2023, 11, 30)]
        assert sorted(days) == sorted(days, key=to_iso)
