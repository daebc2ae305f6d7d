"""
Tests for the recurrence calculator.
"""

import pytest
from datetime import date, datetime

from ledger_engine.errors import ValidationError
from ledger_engine.ledger import add_months, next_occurrence, next_recurring_date
from ledger_engine.models import RecurringInterval


class TestNextOccurrence:
    """Tests for next_occurrence()."""

    def test_daily(self):
        """DAILY adds one day."""
        assert next_occurrence(date(2024, 2, 28), RecurringInterval.DAILY) == date(2024, 2, 29)

    def test_weekly(self):
        """WEEKLY adds seven days."""
        assert next_occurrence(date(2023, 3, 15), RecurringInterval.WEEKLY) == date(2023, 3, 22)

    def test_weekly_across_month(self):
        """WEEKLY crosses a month boundary."""
        assert next_occurrence(date(2024, 3, 28), RecurringInterval.WEEKLY) == date(2024, 4, 4)

    def test_monthly_clamps_to_leap_february(self):
        """Jan 31 moves to Feb 29 in a leap year."""
        assert next_occurrence(date(2024, 1, 31), RecurringInterval.MONTHLY) == date(2024, 2, 29)

    def test_monthly_clamps_to_february(self):
        """Jan 31 moves to Feb 28 outside a leap year."""
        assert next_occurrence(date(2023, 1, 31), RecurringInterval.MONTHLY) == date(2023, 2, 28)

    def test_monthly_rolls_over_year(self):
        """December rolls into January of the next year."""
        assert next_occurrence(date(2024, 12, 15), RecurringInterval.MONTHLY) == date(2025, 1, 15)

    def test_yearly_from_leap_day(self):
        """Feb 29 moves to Feb 28 of the next year."""
        assert next_occurrence(date(2024, 2, 29), RecurringInterval.YEARLY) == date(2025, 2, 28)

    def test_accepts_string_interval(self):
        """Stored interval strings are accepted."""
        assert next_occurrence(date(2024, 5, 1), "YEARLY") == date(2025, 5, 1)

    def test_datetime_uses_calendar_date(self):
        """A datetime input is reduced to its date."""
        result = next_occurrence(datetime(2024, 5, 1, 23, 30), RecurringInterval.DAILY)
        assert result == date(2024, 5, 2)

    def test_unknown_interval_rejected(self):
        """Unknown intervals are a validation failure."""
        with pytest.raises(ValidationError):
            next_occurrence(date(2024, 5, 1), "FORTNIGHTLY")


class TestNextRecurringDate:
    """Tests for the derived next_recurring_date value."""

    def test_not_recurring_is_none(self):
        """Non-recurring entries have no next date, even with an interval."""
        assert next_recurring_date(date(2024, 1, 1), False, RecurringInterval.MONTHLY) is None

    def test_recurring_without_interval_rejected(self):
        """Recurring entries must name an interval."""
        with pytest.raises(ValidationError):
            next_recurring_date(date(2024, 1, 1), True, None)

    def test_recurring(self):
        """Recurring entries get the next occurrence."""
        assert next_recurring_date(date(2024, 1, 1), True, "WEEKLY") == date(2024, 1, 8)


class TestAddMonths:
    """Tests for add_months()."""

    def test_twelve_months(self):
        """Twelve months is one year."""
        assert add_months(date(2023, 3, 31), 12) == date(2024, 3, 31)

    def test_clamps_short_month(self):
        """Day-of-month is clamped to a 30-day month."""
        assert add_months(date(2024, 3, 31), 1) == date(2024, 4, 30)
