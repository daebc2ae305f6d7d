"""Draft validation package."""

from ledger_engine.validation.validator import EntryValidator

__all__ = ["EntryValidator"]
