"""
Storage Services Package

SQLAlchemy-backed ledger store: connection setup, the unit-of-work scope,
ORM tables and the row-level operations the engine runs inside it.
"""

from ledger_engine.services.storage.database import (
    create_ledger_engine,
    create_session_factory,
    create_tables,
    is_commit_conflict,
    session_scope,
)
from ledger_engine.services.storage.ledger_store import LedgerStore
from ledger_engine.services.storage.tables import (
    AccountRow,
    Base,
    TransactionRow,
    UserRow,
)

__all__ = [
    # Connection and unit of work
    "create_ledger_engine",
    "create_session_factory",
    "create_tables",
    "is_commit_conflict",
    "session_scope",
    # Store
    "LedgerStore",
    # Tables
    "AccountRow",
    "Base",
    "TransactionRow",
    "UserRow",
]
