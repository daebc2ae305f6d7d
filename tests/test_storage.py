"""
Tests for the ledger store plumbing and configuration.
"""

import sqlite3

import pytest
from pydantic import ValidationError as SettingsValidationError
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ledger_engine.config import DatabaseSettings, EngineSettings, validate_all_settings
from ledger_engine.services.storage import AccountRow, UserRow, is_commit_conflict, session_scope


class FakePgError(Exception):
    pgcode = "40001"


class TestIsCommitConflict:
    """Which failures count as a retryable commit conflict."""

    def test_stale_version(self):
        assert is_commit_conflict(StaleDataError("expected to update 1 row(s); 0 were matched"))

    def test_sqlite_locked(self):
        error = OperationalError("UPDATE accounts", {}, sqlite3.OperationalError("database is locked"))
        assert is_commit_conflict(error)

    def test_serialization_failure(self):
        error = OperationalError("UPDATE accounts", {}, FakePgError("could not serialize access"))
        assert is_commit_conflict(error)

    def test_integrity_error_is_not_conflict(self):
        error = IntegrityError("INSERT", {}, sqlite3.IntegrityError("UNIQUE constraint failed"))
        assert not is_commit_conflict(error)

    def test_plain_error_is_not_conflict(self):
        assert not is_commit_conflict(RuntimeError("boom"))


class TestSessionScope:
    """Commit on success, rollback on failure."""

    def test_rolls_back_on_error(self, session_factory):
        with pytest.raises(RuntimeError):
            with session_scope(session_factory) as session:
                session.add(UserRow(external_id="user_carol"))
                session.flush()
                raise RuntimeError("abort")

        with session_scope(session_factory) as session:
            assert session.query(UserRow).filter_by(external_id="user_carol").count() == 0

    def test_commits_on_success(self, session_factory, seeded):
        with session_scope(session_factory) as session:
            assert session.query(AccountRow).count() == 2


class TestSettings:
    """Tests for configuration validation."""

    def test_sqlite_detection(self):
        assert DatabaseSettings(url="sqlite:///ledger.db").is_sqlite
        assert not DatabaseSettings(url="postgresql+psycopg2://ledger@localhost/ledger").is_sqlite

    def test_backoff_bounds(self):
        with pytest.raises(SettingsValidationError):
            EngineSettings(retry_wait_min_seconds=2, retry_wait_max_seconds=1)

    def test_attempts_must_be_positive(self):
        with pytest.raises(SettingsValidationError):
            EngineSettings(max_commit_attempts=0)

    def test_validate_all_settings(self, monkeypatch):
        """Every section loads once the Gemini key is present."""
        monkeypatch.setenv("GEMINI_API_KEY", "test-key")

        results = validate_all_settings()

        assert results == {"database": True, "engine": True, "gemini": True, "app": True}

    def test_validate_all_settings_reports_failures(self, monkeypatch):
        """A missing key or a bad value is reported per section, not raised."""
        monkeypatch.delenv("GEMINI_API_KEY", raising=False)
        monkeypatch.setenv("LEDGER_MAX_COMMIT_ATTEMPTS", "0")

        results = validate_all_settings()

        assert results["database"] is True
        assert results["app"] is True
        assert results["gemini"] is False
        assert results["engine"] is False
        assert "api_key" in results["gemini_error"]
        assert "max_commit_attempts" in results["engine_error"]
