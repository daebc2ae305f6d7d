"""
Ledger store connection and unit-of-work scope.

session_scope() is the atomic unit of work: on normal exit the session is
committed, on any exception it is rolled back and the exception re-raised.
A crash or cancellation before commit leaves nothing applied.

Supported backends:
    - PostgreSQL at REPEATABLE READ (production)
    - SQLite file databases (local use and tests); SQLite serialises
      writers, so the isolation setting is not applied there
"""

from contextlib import contextmanager
from typing import Generator, Optional

import structlog
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.exc import DBAPIError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.orm.exc import StaleDataError

from ledger_engine.config import DatabaseSettings, get_settings
from ledger_engine.services.storage.tables import Base

logger = structlog.get_logger(__name__)

# SQLSTATE codes PostgreSQL uses for serialization failures and deadlocks
RETRYABLE_SQLSTATES = {"40001", "40P01"}

SQLITE_BUSY_MESSAGES = ("database is locked", "database is busy")


def create_ledger_engine(settings: Optional[DatabaseSettings] = None) -> Engine:
    """Create the SQLAlchemy engine for the ledger store."""
    settings = settings or get_settings().database

    if settings.is_sqlite:
        engine = create_engine(
            settings.url,
            echo=settings.echo,
            connect_args={
                "timeout": settings.busy_timeout_seconds,
                "check_same_thread": False,
            },
        )
    else:
        engine = create_engine(
            settings.url,
            echo=settings.echo,
            pool_size=settings.pool_size,
            pool_pre_ping=True,
            isolation_level=settings.isolation_level,
        )

    logger.info(
        "ledger_engine_initialized",
        dialect=engine.dialect.name,
        isolation_level=None if settings.is_sqlite else settings.isolation_level,
    )
    return engine


def create_session_factory(engine: Engine) -> sessionmaker[Session]:
    """Session factory; rows stay readable after commit."""
    return sessionmaker(bind=engine, expire_on_commit=False)


def create_tables(engine: Engine) -> None:
    """Create the users, accounts and transactions tables if missing."""
    Base.metadata.create_all(engine)


@contextmanager
def session_scope(
    session_factory: sessionmaker[Session],
) -> Generator[Session, None, None]:
    """
    Provide a transactional scope around a series of operations.

    Usage:
        with session_scope(factory) as session:
            session.add(row)
            # Commits on successful exit, rolls back on exception
    """
    session = session_factory()
    try:
        yield session
        session.commit()
    except BaseException:
        session.rollback()
        logger.debug("unit_of_work_rolled_back", exc_info=True)
        raise
    finally:
        session.close()


def is_commit_conflict(error: BaseException) -> bool:
    """
    True when the failure means another writer got there first.

    Covers optimistic version mismatches, PostgreSQL serialization
    failures/deadlocks and SQLite busy/locked errors.
    """
    if isinstance(error, StaleDataError):
        return True

    if isinstance(error, DBAPIError):
        orig = error.orig
        sqlstate = getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)
        if sqlstate in RETRYABLE_SQLSTATES:
            return True
        message = str(orig).lower()
        return any(text in message for text in SQLITE_BUSY_MESSAGES)

    return False
