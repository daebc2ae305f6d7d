"""
Draft Validation

Runs before the engine touches the store.

SCHEMA STAGE:
- Raw input (dicts) must parse into a TransactionDraft

RULE STAGE:
- Amount must be strictly positive, in whole cents, and below the
  configured ceiling
- A recurring draft must name its interval
- An interval on a non-recurring draft is ignored (warning)
- Dates far in the future are flagged (warning)

Validation NEVER silently fixes an error-level issue. Warnings are
returned to the caller and do not block the write.
"""

from datetime import date, timedelta
from decimal import Decimal
from typing import Any, Optional, Union

from pydantic import ValidationError as PydanticValidationError

from ledger_engine.config import EngineSettings, get_settings
from ledger_engine.errors import ValidationError
from ledger_engine.models.transaction import (
    MONEY_SCALE,
    TransactionDraft,
    ValidationIssue,
    ValidationResult,
)


class EntryValidator:
    """Validates transaction drafts for the create and update paths."""

    def __init__(self, settings: Optional[EngineSettings] = None):
        self._settings = settings or get_settings().engine

    def parse_draft(
        self,
        draft: Union[TransactionDraft, dict[str, Any]],
    ) -> TransactionDraft:
        """
        Accept a draft model or raw mapping.

        Raises:
            ValidationError: If the mapping does not match the draft schema
        """
        if isinstance(draft, TransactionDraft):
            return draft

        try:
            return TransactionDraft.model_validate(draft)
        except PydanticValidationError as e:
            issues = [
                ValidationIssue(
                    field=".".join(str(part) for part in error["loc"]) or "draft",
                    issue_type=error["type"],
                    message=error["msg"],
                    severity="error",
                )
                for error in e.errors()
            ]
            raise ValidationError("Transaction data is malformed", issues)

    def validate(self, draft: TransactionDraft) -> ValidationResult:
        issues: list[ValidationIssue] = []

        issues.extend(self._check_amount(draft.amount))
        issues.extend(self._check_recurrence(draft))
        issues.extend(self._check_date(draft.date))

        has_errors = any(issue.severity == "error" for issue in issues)
        return ValidationResult(is_valid=not has_errors, issues=issues)

    def ensure_valid(self, draft: TransactionDraft) -> ValidationResult:
        """
        Validate and raise on error-level issues.

        Raises:
            ValidationError: Carrying every error-level issue found
        """
        result = self.validate(draft)
        if result.has_errors:
            errors = [issue for issue in result.issues if issue.severity == "error"]
            raise ValidationError(errors[0].message, errors)
        return result

    def _check_amount(self, amount: Decimal) -> list[ValidationIssue]:
        if not amount.is_finite():
            return [ValidationIssue(
                field="amount",
                issue_type="invalid_format",
                message="Amount must be a finite number",
                severity="error",
            )]

        if amount <= 0:
            return [ValidationIssue(
                field="amount",
                issue_type="non_positive",
                message="Amount must be greater than zero",
                severity="error",
            )]

        # Rows and balances hold whole cents
        if amount.normalize().as_tuple().exponent < -MONEY_SCALE:
            return [ValidationIssue(
                field="amount",
                issue_type="invalid_format",
                message=f"Amount {amount} has more than {MONEY_SCALE} decimal places",
                severity="error",
            )]

        if amount > Decimal(str(self._settings.max_transaction_amount)):
            return [ValidationIssue(
                field="amount",
                issue_type="suspicious_value",
                message=(
                    f"Amount {amount} exceeds the maximum of "
                    f"{self._settings.max_transaction_amount:,.2f}"
                ),
                severity="error",
            )]

        return []

    def _check_recurrence(self, draft: TransactionDraft) -> list[ValidationIssue]:
        if draft.is_recurring and draft.recurring_interval is None:
            return [ValidationIssue(
                field="recurring_interval",
                issue_type="missing",
                message="Recurring interval is required for recurring transactions",
                severity="error",
            )]

        if not draft.is_recurring and draft.recurring_interval is not None:
            return [ValidationIssue(
                field="recurring_interval",
                issue_type="ignored",
                message="Recurring interval is ignored because the transaction is not recurring",
                severity="warning",
            )]

        return []

    def _check_date(self, entry_date: date) -> list[ValidationIssue]:
        horizon = date.today() + timedelta(days=self._settings.future_date_tolerance_days)
        if entry_date > horizon:
            return [ValidationIssue(
                field="date",
                issue_type="future_date",
                message=f"Transaction date {entry_date.isoformat()} is far in the future",
                severity="warning",
            )]
        return []
