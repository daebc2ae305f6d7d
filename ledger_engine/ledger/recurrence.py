"""
Recurrence Calculator

Pure date arithmetic, no I/O. Given the date of a recurring entry and its
interval, returns the date the next occurrence falls due.

MONTHLY and YEARLY move the month/year component and clamp the day to the
last valid day of the target month:

    2024-01-31 MONTHLY -> 2024-02-29
    2023-01-31 MONTHLY -> 2023-02-28
    2024-02-29 YEARLY  -> 2025-02-28
"""

from calendar import monthrange
from datetime import date, datetime, timedelta
from typing import Optional, Union

from ledger_engine.errors import ValidationError
from ledger_engine.models.transaction import RecurringInterval


def add_months(start: date, months: int) -> date:
    """Advance by whole calendar months, clamping the day-of-month."""
    total_month = (start.month - 1) + months
    year = start.year + total_month // 12
    month = (total_month % 12) + 1
    day = min(start.day, monthrange(year, month)[1])
    return start.replace(year=year, month=month, day=day)


def next_occurrence(
    start: date,
    interval: Union[RecurringInterval, str],
) -> date:
    """
    Compute the next occurrence of a recurring entry.

    Raises:
        ValidationError: If the interval is not DAILY, WEEKLY, MONTHLY or YEARLY
    """
    try:
        interval = RecurringInterval(interval)
    except ValueError:
        raise ValidationError(f"Unknown recurring interval: {interval!r}")

    if isinstance(start, datetime):
        start = start.date()

    if interval == RecurringInterval.DAILY:
        return start + timedelta(days=1)
    if interval == RecurringInterval.WEEKLY:
        return start + timedelta(days=7)
    if interval == RecurringInterval.MONTHLY:
        return add_months(start, 1)
    return add_months(start, 12)


def next_recurring_date(
    start: date,
    is_recurring: bool,
    interval: Optional[Union[RecurringInterval, str]],
) -> Optional[date]:
    """Derived next_recurring_date column: None unless the entry recurs."""
    if not is_recurring:
        return None
    if interval is None:
        raise ValidationError("Recurring interval is required for recurring transactions")
    return next_occurrence(start, interval)
