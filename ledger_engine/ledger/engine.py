"""
Transaction Engine

Creates and amends ledger entries and reconciles the owning account's
balance inside one unit of work.

INVARIANT: for every account,
    balance == starting balance + sum(signed effect of committed entries)

How the engine keeps it:
1. The entry write and the balance adjustment share one session_scope();
   any failure between them rolls both back.
2. The balance moves only by an atomic increment: `effect` on create,
   `new_effect - old_effect` on update. No absolute balance is ever
   computed from a locally read value.
3. A commit conflict (stale entry version, serialization failure, locked
   database) becomes ConflictError and the whole unit of work is retried
   with backoff, up to `max_commit_attempts`, then surfaced.

Invalidation signals go out only after a successful commit.
"""

from typing import Any, Callable, Optional, TypeVar, Union
from uuid import UUID

import structlog
from sqlalchemy.orm import Session, sessionmaker
from tenacity import (
    RetryCallState,
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from ledger_engine.audit import AuditLogger
from ledger_engine.config import EngineSettings, get_settings
from ledger_engine.errors import (
    ConflictError,
    LedgerError,
    NotFoundError,
    UnauthorizedError,
)
from ledger_engine.ledger.recurrence import next_recurring_date
from ledger_engine.models.transaction import (
    AccountSnapshot,
    CommittedEntry,
    TransactionDraft,
    signed_effect,
)
from ledger_engine.services.invalidation import (
    InvalidationNotifier,
    LoggingInvalidationNotifier,
)
from ledger_engine.services.storage import (
    LedgerStore,
    is_commit_conflict,
    session_scope,
)
from ledger_engine.validation import EntryValidator

logger = structlog.get_logger(__name__)

T = TypeVar("T")

DraftInput = Union[TransactionDraft, dict[str, Any]]


class TransactionEngine:
    """
    Orchestrates create/read/update of ledger entries.

    Every public operation takes the caller identity returned by the
    access gate. An empty identity is rejected before the store is touched.
    """

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        store: Optional[LedgerStore] = None,
        validator: Optional[EntryValidator] = None,
        notifier: Optional[InvalidationNotifier] = None,
        audit_logger: Optional[AuditLogger] = None,
        settings: Optional[EngineSettings] = None,
    ):
        self._session_factory = session_factory
        self._settings = settings or get_settings().engine
        self._store = store or LedgerStore()
        self._validator = validator or EntryValidator(self._settings)
        self._notifier = notifier or LoggingInvalidationNotifier()
        self._audit_logger = audit_logger or AuditLogger()

    # -------------------------------------------------------------------------
    # Operations
    # -------------------------------------------------------------------------

    def create_transaction(self, caller_id: Optional[str], draft: DraftInput) -> CommittedEntry:
        """
        Record a new entry and apply its effect to the account balance.

        Raises:
            UnauthorizedError: No caller identity
            NotFoundError: Unknown user, or account not owned by the caller
            ValidationError: Bad amount, missing interval, malformed draft
            ConflictError: Commit kept failing after retries
        """
        caller_id = self._require_caller(caller_id)
        draft = self._prepare(draft, "create_transaction", caller_id)
        effect = draft.effect
        next_date = next_recurring_date(draft.date, draft.is_recurring, draft.recurring_interval)

        def work(session: Session) -> CommittedEntry:
            user = self._store.get_user(session, caller_id)
            account = self._store.get_owned_account(session, draft.account_id, user.id)

            row = self._store.insert_transaction(session, user.id, draft, next_date)
            self._store.increment_balance(session, account.id, user.id, effect)

            return CommittedEntry.from_row(row)

        entry = self._run("create_transaction", caller_id, work)

        self._audit_logger.log_transaction_created(
            transaction_id=entry.id,
            account_id=entry.account_id,
            actor_id=caller_id,
            effect=str(effect),
            next_recurring_date=next_date.isoformat() if next_date else None,
        )
        self._invalidate(entry.account_id)
        return entry

    def update_transaction(
        self,
        caller_id: Optional[str],
        transaction_id: UUID,
        draft: DraftInput,
    ) -> CommittedEntry:
        """
        Replace an entry's fields and adjust the balance by the change in effect.

        The adjustment is `new_effect - old_effect`, applied as an increment,
        so updates to other entries of the same account committing in
        between are preserved.

        Raises:
            UnauthorizedError: No caller identity
            NotFoundError: Entry missing, owned by someone else, or the draft
                names a different account than the entry
            ValidationError: Bad amount, missing interval, malformed draft
            ConflictError: Commit kept failing after retries
        """
        caller_id = self._require_caller(caller_id)
        draft = self._prepare(draft, "update_transaction", caller_id)
        new_effect = draft.effect
        next_date = next_recurring_date(draft.date, draft.is_recurring, draft.recurring_interval)

        def work(session: Session) -> tuple[CommittedEntry, str, str]:
            user = self._store.get_user(session, caller_id)
            original = self._store.get_owned_transaction(session, transaction_id, user.id)
            if original.account_id != draft.account_id:
                raise NotFoundError("transaction", transaction_id)
            account = self._store.get_owned_account(session, original.account_id, user.id)

            old_effect = signed_effect(original.type, original.amount)
            delta = new_effect - old_effect

            row = self._store.replace_transaction(session, original, draft, next_date)
            self._store.increment_balance(session, account.id, user.id, delta)

            return CommittedEntry.from_row(row), str(old_effect), str(delta)

        entry, old_effect, delta = self._run("update_transaction", caller_id, work)

        self._audit_logger.log_transaction_updated(
            transaction_id=entry.id,
            account_id=entry.account_id,
            actor_id=caller_id,
            old_effect=old_effect,
            new_effect=str(new_effect),
            delta=delta,
        )
        self._invalidate(entry.account_id)
        return entry

    def get_transaction(self, caller_id: Optional[str], transaction_id: UUID) -> CommittedEntry:
        """Fetch one entry owned by the caller."""
        caller_id = self._require_caller(caller_id)

        with session_scope(self._session_factory) as session:
            user = self._store.get_user(session, caller_id)
            row = self._store.get_owned_transaction(session, transaction_id, user.id)
            return CommittedEntry.from_row(row)

    def get_account(self, caller_id: Optional[str], account_id: UUID) -> AccountSnapshot:
        """Fetch the current balance view of an account owned by the caller."""
        caller_id = self._require_caller(caller_id)

        with session_scope(self._session_factory) as session:
            user = self._store.get_user(session, caller_id)
            account = self._store.get_owned_account(session, account_id, user.id)
            return AccountSnapshot.from_row(account)

    # -------------------------------------------------------------------------
    # Unit of work
    # -------------------------------------------------------------------------

    def _run(self, operation: str, caller_id: str, work: Callable[[Session], T]) -> T:
        """Run `work` in a unit of work, retrying the whole unit on conflict."""

        def log_retry(retry_state: RetryCallState) -> None:
            error = retry_state.outcome.exception()
            self._audit_logger.log_commit_conflict(
                operation=operation,
                attempt=retry_state.attempt_number,
                reason=getattr(error, "reason", str(error)),
                actor_id=caller_id,
            )

        retrying = Retrying(
            retry=retry_if_exception_type(ConflictError),
            stop=stop_after_attempt(self._settings.max_commit_attempts),
            wait=wait_exponential(
                multiplier=self._settings.retry_wait_min_seconds,
                min=self._settings.retry_wait_min_seconds,
                max=self._settings.retry_wait_max_seconds,
            ),
            before_sleep=log_retry,
            reraise=True,
        )

        try:
            return retrying(self._attempt, operation, work)
        except ConflictError as e:
            logger.warning(
                "unit_of_work_abandoned",
                operation=operation,
                attempts=self._settings.max_commit_attempts,
            )
            raise ConflictError(operation, e.reason, self._settings.max_commit_attempts) from e

    def _attempt(self, operation: str, work: Callable[[Session], T]) -> T:
        try:
            with session_scope(self._session_factory) as session:
                return work(session)
        except LedgerError:
            raise
        except Exception as e:
            if is_commit_conflict(e):
                raise ConflictError(operation, str(e)) from e
            raise

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    @staticmethod
    def _require_caller(caller_id: Optional[str]) -> str:
        if not caller_id:
            raise UnauthorizedError()
        return caller_id

    def _prepare(self, draft: DraftInput, operation: str, caller_id: str) -> TransactionDraft:
        parsed = self._validator.parse_draft(draft)
        result = self._validator.ensure_valid(parsed)
        for warning in result.warnings:
            logger.info("draft_warning", operation=operation, actor_id=caller_id, warning=warning)
        return parsed

    def _invalidate(self, account_id: UUID) -> None:
        paths = [
            self._settings.dashboard_path,
            self._settings.account_path_template.format(account_id=account_id),
        ]
        for path in paths:
            try:
                self._notifier.invalidate(path)
            except Exception as e:
                # The write is already committed; a stale view is recoverable
                self._audit_logger.log_invalidation_failed(path, str(e))
