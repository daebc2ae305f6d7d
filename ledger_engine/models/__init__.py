"""
Data Models Package

Pydantic models for everything entering and leaving the ledger engine.
"""

from ledger_engine.models.transaction import (
    EXPENSE_CATEGORIES,
    MONEY_SCALE,
    AccountSnapshot,
    AccountType,
    CandidateEntry,
    CommittedEntry,
    ErrorDetail,
    OperationResult,
    RecurringInterval,
    TransactionCategory,
    TransactionDraft,
    TransactionType,
    ValidationIssue,
    ValidationResult,
    signed_effect,
)
from ledger_engine.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Ledger models
    "EXPENSE_CATEGORIES",
    "MONEY_SCALE",
    "AccountSnapshot",
    "AccountType",
    "CandidateEntry",
    "CommittedEntry",
    "ErrorDetail",
    "OperationResult",
    "RecurringInterval",
    "TransactionCategory",
    "TransactionDraft",
    "TransactionType",
    "ValidationIssue",
    "ValidationResult",
    "signed_effect",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
