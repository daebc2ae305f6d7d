"""
Core Data Models for the Ledger Engine

These models define the schemas for data entering and leaving the engine:
1. Drafts submitted by callers (create/update input)
2. Committed entries returned after a successful unit of work
3. Candidate entries proposed by receipt extraction
4. Validation and operation results

Monetary input is kept as Decimal until it reaches the caller again, where
it is normalised to a plain float (CommittedEntry, AccountSnapshot).
"""

import datetime as dt
from decimal import Decimal
from enum import Enum
from typing import Any, Optional, Union
from uuid import UUID

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
)


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class TransactionType(str, Enum):
    """Direction of a ledger entry."""
    INCOME = "INCOME"
    EXPENSE = "EXPENSE"


class RecurringInterval(str, Enum):
    """Calendar cadence of a recurring entry."""
    DAILY = "DAILY"
    WEEKLY = "WEEKLY"
    MONTHLY = "MONTHLY"
    YEARLY = "YEARLY"


class TransactionCategory(str, Enum):
    """
    Supported ledger categories.

    Expense tags match the tags the receipt scanner is allowed to suggest.
    """
    # Expense
    HOUSING = "housing"
    TRANSPORTATION = "transportation"
    GROCERIES = "groceries"
    UTILITIES = "utilities"
    ENTERTAINMENT = "entertainment"
    FOOD = "food"
    SHOPPING = "shopping"
    HEALTHCARE = "healthcare"
    EDUCATION = "education"
    PERSONAL = "personal"
    TRAVEL = "travel"
    INSURANCE = "insurance"
    GIFTS = "gifts"
    BILLS = "bills"
    OTHER_EXPENSE = "other-expense"

    # Income
    SALARY = "salary"
    FREELANCE = "freelance"
    INVESTMENTS = "investments"
    BUSINESS = "business"
    RENTAL = "rental"
    OTHER_INCOME = "other-income"


EXPENSE_CATEGORIES = [
    TransactionCategory.HOUSING,
    TransactionCategory.TRANSPORTATION,
    TransactionCategory.GROCERIES,
    TransactionCategory.UTILITIES,
    TransactionCategory.ENTERTAINMENT,
    TransactionCategory.FOOD,
    TransactionCategory.SHOPPING,
    TransactionCategory.HEALTHCARE,
    TransactionCategory.EDUCATION,
    TransactionCategory.PERSONAL,
    TransactionCategory.TRAVEL,
    TransactionCategory.INSURANCE,
    TransactionCategory.GIFTS,
    TransactionCategory.BILLS,
    TransactionCategory.OTHER_EXPENSE,
]


# Decimal places kept for amounts and balances
MONEY_SCALE = 2


class AccountType(str, Enum):
    """Kind of account a ledger entry is booked against."""
    CURRENT = "CURRENT"
    SAVINGS = "SAVINGS"


def signed_effect(transaction_type: TransactionType, amount: Decimal) -> Decimal:
    """Signed balance effect: +amount for INCOME, -amount for EXPENSE."""
    amount = Decimal(amount)
    if TransactionType(transaction_type) == TransactionType.EXPENSE:
        return -amount
    return amount


# =============================================================================
# EXTRACTION MODELS
# =============================================================================

class CandidateEntry(BaseModel):
    """
    Ledger fields proposed by receipt extraction.

    CRITICAL: This is PROPOSED data. It only reaches the ledger through a
    TransactionDraft the caller submits to the create path.
    """
    model_config = ConfigDict(str_strip_whitespace=True, populate_by_name=True)

    amount: Decimal = Field(
        ...,
        gt=0,
        description="Total amount on the receipt"
    )
    date: dt.date = Field(
        ...,
        description="Date printed on the receipt"
    )
    description: str = Field(
        default="",
        max_length=500,
        description="Brief summary of the items purchased"
    )
    merchant_name: str = Field(
        default="",
        alias="merchantName",
        max_length=200,
        description="Merchant or store name"
    )
    category: TransactionCategory = Field(
        ...,
        description="Suggested expense category"
    )

    @field_validator("date", mode="before")
    @classmethod
    def parse_iso_timestamp(cls, v: Any) -> Any:
        """Accept full ISO timestamps and keep only the calendar date."""
        if isinstance(v, str) and "T" in v:
            return dt.datetime.fromisoformat(v.replace("Z", "+00:00")).date()
        return v

    @field_validator("amount")
    @classmethod
    def check_scale(cls, v: Decimal) -> Decimal:
        if v.normalize().as_tuple().exponent < -MONEY_SCALE:
            raise ValueError(f"amount has more than {MONEY_SCALE} decimal places")
        return v


# =============================================================================
# LEDGER ENTRY MODELS
# =============================================================================

class TransactionDraft(BaseModel):
    """
    Caller input for create and update.

    Amount and recurrence rules are checked by EntryValidator rather than
    here, so that a bad amount surfaces as a ledger ValidationError.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    account_id: UUID
    type: TransactionType
    amount: Decimal
    date: dt.date
    description: Optional[str] = Field(
        default=None,
        max_length=500
    )
    category: TransactionCategory
    is_recurring: bool = False
    recurring_interval: Optional[RecurringInterval] = None

    @property
    def effect(self) -> Decimal:
        return signed_effect(self.type, self.amount)

    @classmethod
    def from_candidate(
        cls,
        candidate: CandidateEntry,
        account_id: UUID,
    ) -> "TransactionDraft":
        """Build an expense draft from a scanned receipt."""
        description = candidate.description
        if candidate.merchant_name and candidate.merchant_name not in description:
            description = f"{candidate.merchant_name}: {description}".rstrip(": ")

        return cls(
            account_id=account_id,
            type=TransactionType.EXPENSE,
            amount=candidate.amount,
            date=candidate.date,
            description=description[:500] or None,
            category=candidate.category,
        )


class CommittedEntry(BaseModel):
    """A ledger entry as committed to the store."""

    id: UUID
    user_id: UUID
    account_id: UUID
    type: TransactionType
    amount: float
    date: dt.date
    description: Optional[str] = None
    category: TransactionCategory
    is_recurring: bool
    recurring_interval: Optional[RecurringInterval] = None
    next_recurring_date: Optional[dt.date] = None
    created_at: dt.datetime
    updated_at: dt.datetime

    @property
    def effect(self) -> Decimal:
        return signed_effect(self.type, Decimal(str(self.amount)))

    @classmethod
    def from_row(cls, row: Any) -> "CommittedEntry":
        """Convert a TransactionRow, turning the Numeric amount into a float."""
        return cls(
            id=row.id,
            user_id=row.user_id,
            account_id=row.account_id,
            type=row.type,
            amount=float(row.amount),
            date=row.date,
            description=row.description,
            category=row.category,
            is_recurring=row.is_recurring,
            recurring_interval=row.recurring_interval,
            next_recurring_date=row.next_recurring_date,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )


class AccountSnapshot(BaseModel):
    """Read-only view of an account balance."""

    id: UUID
    user_id: UUID
    name: str
    account_type: AccountType
    balance: float
    currency: str
    is_default: bool

    @classmethod
    def from_row(cls, row: Any) -> "AccountSnapshot":
        return cls(
            id=row.id,
            user_id=row.user_id,
            name=row.name,
            account_type=row.account_type,
            balance=float(row.balance),
            currency=row.currency,
            is_default=row.is_default,
        )


# =============================================================================
# VALIDATION MODELS
# =============================================================================

class ValidationIssue(BaseModel):
    """A single validation issue found."""

    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'non_positive', 'missing', 'suspicious_value')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        ...,
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )


class ValidationResult(BaseModel):
    """Result of validating a draft."""

    is_valid: bool
    issues: list[ValidationIssue] = Field(default_factory=list)

    @property
    def has_errors(self) -> bool:
        """Check if there are any error-level issues."""
        return any(issue.severity == "error" for issue in self.issues)

    @property
    def error_count(self) -> int:
        """Count error-level issues."""
        return sum(1 for issue in self.issues if issue.severity == "error")

    @property
    def warnings(self) -> list[str]:
        return [issue.message for issue in self.issues if issue.severity == "warning"]


# =============================================================================
# OPERATION RESULTS
# =============================================================================

class ErrorDetail(BaseModel):
    """Structured failure returned to callers."""

    kind: str = Field(
        ...,
        description="Error kind: unauthorized, not_found, validation, conflict, external_service"
    )
    code: str
    message: str
    details: dict[str, Any] = Field(default_factory=dict)


class OperationResult(BaseModel):
    """
    Envelope returned by TransactionFlow.

    Either success with data (data may be None for an unrecognised receipt)
    or failure with an ErrorDetail. Never both.
    """

    success: bool
    data: Optional[Union[CommittedEntry, AccountSnapshot, CandidateEntry]] = None
    error: Optional[ErrorDetail] = None

    @classmethod
    def ok(cls, data=None) -> "OperationResult":
        return cls(success=True, data=data)

    @classmethod
    def failure(cls, error: ErrorDetail) -> "OperationResult":
        return cls(success=False, error=error)
