"""
Shared fixtures for the ledger engine tests.

Each test gets its own SQLite file database under tmp_path, seeded with two
users who own one account each. No real network calls are made.
"""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from ledger_engine.config import DatabaseSettings, EngineSettings
from ledger_engine.ledger import TransactionEngine
from ledger_engine.models import (
    AccountType,
    TransactionCategory,
    TransactionDraft,
    TransactionType,
)
from ledger_engine.services.invalidation import RecordingInvalidationNotifier
from ledger_engine.services.storage import (
    AccountRow,
    UserRow,
    create_ledger_engine,
    create_session_factory,
    create_tables,
    session_scope,
)

ALICE = "user_alice"
BOB = "user_bob"
STARTING_BALANCE = Decimal("1000.00")


@pytest.fixture
def engine_settings():
    """No backoff between conflict retries so tests stay fast."""
    return EngineSettings(
        max_commit_attempts=3,
        retry_wait_min_seconds=0,
        retry_wait_max_seconds=0,
    )


@pytest.fixture
def session_factory(tmp_path):
    db_engine = create_ledger_engine(
        DatabaseSettings(url=f"sqlite:///{tmp_path / 'ledger.db'}")
    )
    create_tables(db_engine)
    yield create_session_factory(db_engine)
    db_engine.dispose()


@pytest.fixture
def seeded(session_factory):
    """Create Alice and Bob with one account each; return their ids."""
    ids = {}
    with session_scope(session_factory) as session:
        for external_id in (ALICE, BOB):
            user = UserRow(id=uuid4(), external_id=external_id)
            account = AccountRow(
                id=uuid4(),
                user_id=user.id,
                name=f"{external_id} current",
                account_type=AccountType.CURRENT.value,
                balance=STARTING_BALANCE,
                currency="USD",
                is_default=True,
            )
            session.add(user)
            session.add(account)
            ids[external_id] = {"user_id": user.id, "account_id": account.id}
    return ids


@pytest.fixture
def notifier():
    return RecordingInvalidationNotifier()


@pytest.fixture
def ledger(session_factory, seeded, notifier, engine_settings):
    return TransactionEngine(
        session_factory,
        notifier=notifier,
        settings=engine_settings,
    )


@pytest.fixture
def alice_account(seeded):
    return seeded[ALICE]["account_id"]


@pytest.fixture
def bob_account(seeded):
    return seeded[BOB]["account_id"]


@pytest.fixture
def balance_of(session_factory):
    """Read an account balance straight from the store."""

    def read(account_id):
        with session_scope(session_factory) as session:
            return session.get(AccountRow, account_id).balance

    return read


def make_draft(account_id, **overrides) -> TransactionDraft:
    fields = {
        "account_id": account_id,
        "type": TransactionType.EXPENSE,
        "amount": Decimal("50.00"),
        "date": date(2024, 3, 15),
        "description": "Groceries",
        "category": TransactionCategory.GROCERIES,
    }
    fields.update(overrides)
    return TransactionDraft(**fields)


@pytest.fixture
def draft_for():
    """Build a TransactionDraft for an account, overriding any field."""
    return make_draft
