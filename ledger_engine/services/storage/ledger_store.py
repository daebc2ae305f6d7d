"""
Ledger Store

Row-level operations used inside a unit of work. Every method takes the
caller's session; none of them commit.

Balances are only ever changed through increment_balance(), which issues
`UPDATE accounts SET balance = balance + :delta`. The database applies the
increment against the current row value, so two writers adjusting the same
account compose instead of overwriting each other.
"""

from decimal import Decimal
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from ledger_engine.errors import NotFoundError
from ledger_engine.models.transaction import TransactionDraft
from ledger_engine.services.storage.tables import AccountRow, TransactionRow, UserRow


class LedgerStore:
    """SQLAlchemy-backed access to users, accounts and transactions."""

    def get_user(self, session: Session, external_id: str) -> UserRow:
        """Resolve the access gate identity to a user row."""
        user = session.scalar(
            select(UserRow).where(UserRow.external_id == external_id)
        )
        if user is None:
            raise NotFoundError("user")
        return user

    def get_owned_account(
        self,
        session: Session,
        account_id: UUID,
        user_id: UUID,
    ) -> AccountRow:
        account = session.scalar(
            select(AccountRow).where(
                AccountRow.id == account_id,
                AccountRow.user_id == user_id,
            )
        )
        if account is None:
            raise NotFoundError("account", account_id)
        return account

    def get_owned_transaction(
        self,
        session: Session,
        transaction_id: UUID,
        user_id: UUID,
    ) -> TransactionRow:
        row = session.scalar(
            select(TransactionRow).where(
                TransactionRow.id == transaction_id,
                TransactionRow.user_id == user_id,
            )
        )
        if row is None:
            raise NotFoundError("transaction", transaction_id)
        return row

    def insert_transaction(
        self,
        session: Session,
        user_id: UUID,
        draft: TransactionDraft,
        next_recurring_date,
    ) -> TransactionRow:
        row = TransactionRow(user_id=user_id)
        self._apply_draft(row, draft, next_recurring_date)
        session.add(row)
        session.flush()
        return row

    def replace_transaction(
        self,
        session: Session,
        row: TransactionRow,
        draft: TransactionDraft,
        next_recurring_date,
    ) -> TransactionRow:
        """
        Full field replacement of an existing row.

        The flush runs the version check; a concurrent writer that already
        bumped the version makes this raise StaleDataError.
        """
        self._apply_draft(row, draft, next_recurring_date)
        session.flush()
        return row

    def increment_balance(
        self,
        session: Session,
        account_id: UUID,
        user_id: UUID,
        delta: Decimal,
    ) -> None:
        """Atomically add `delta` (may be negative) to the account balance."""
        result = session.execute(
            update(AccountRow)
            .where(
                AccountRow.id == account_id,
                AccountRow.user_id == user_id,
            )
            .values(balance=AccountRow.balance + delta)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise NotFoundError("account", account_id)

    @staticmethod
    def _apply_draft(
        row: TransactionRow,
        draft: TransactionDraft,
        next_recurring_date,
    ) -> None:
        row.account_id = draft.account_id
        row.type = draft.type.value
        row.amount = draft.amount
        row.date = draft.date
        row.description = draft.description
        row.category = draft.category.value
        row.is_recurring = draft.is_recurring
        row.recurring_interval = (
            draft.recurring_interval.value
            if draft.is_recurring and draft.recurring_interval
            else None
        )
        row.next_recurring_date = next_recurring_date
