"""Ledger core: the transaction engine and the recurrence calculator."""

from ledger_engine.ledger.engine import TransactionEngine
from ledger_engine.ledger.recurrence import add_months, next_occurrence, next_recurring_date

__all__ = [
    "TransactionEngine",
    "add_months",
    "next_occurrence",
    "next_recurring_date",
]
