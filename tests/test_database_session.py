"""Tests for database session management and the query/commit helpers."""

import logging
from unittest.mock import MagicMock

import pytest
from sqlalchemy import inspect, select
from sqlalchemy.exc import IntegrityError, OperationalError

from library_api.database.errors import DuplicateError, RepositoryException
from library_api.database.schema import Book as BookDB
from library_api.database.session import POOL_SIZE, DatabaseManager, safe_commit, safe_query


class TestDatabaseManager:
    """Test engine, schema bootstrap and session scoping."""

    def test_init_database_creates_tables(self, db_manager):
        tables = set(inspect(db_manager.engine).get_table_names())
        assert {"books", "users", "loans", "loan_history"} <= tables

    def test_verify_connection(self, db_manager):
        assert db_manager.verify_connection() is True

    def test_verify_connection_reports_failure(self, tmp_path):
        manager = DatabaseManager(f"sqlite:///{tmp_path}/missing/dir/library.db")
        assert manager.verify_connection() is False
        manager.close()

    def test_server_database_uses_bounded_pool(self):
        manager = DatabaseManager("postgresql+psycopg://user:pw@localhost:5432/library")
        try:
            pool = manager.engine.pool
            assert pool.size() == POOL_SIZE
            assert pool._max_overflow == 0
        finally:
            manager.close()

    def test_session_scope_commits(self, db_manager):
        with db_manager.session_scope() as session:
            session.add(BookDB(title="Dune", author="Frank Herbert", isbn="9780441013593"))

        with db_manager.session_scope() as session:
            titles = session.execute(select(BookDB.title)).scalars().all()
        assert titles == ["Dune"]

    def test_session_scope_rolls_back_on_error(self, db_manager):
        with pytest.raises(ValueError), db_manager.session_scope() as session:
            session.add(BookDB(title="Dune", author="Frank Herbert", isbn="9780441013593"))
            session.flush()
            raise ValueError("boom")

        with db_manager.session_scope() as session:
            assert session.execute(select(BookDB)).first() is None

    def test_close_is_idempotent(self, db_manager):
        db_manager.close()
        db_manager.close()


class TestSafeHelpers:
    """Test translation of driver errors into repository errors."""

    def test_safe_query_returns_result(self, session):
        assert safe_query(session, lambda s: 42, "unused") == 42

    def test_safe_query_wraps_sqlalchemy_errors(self, session):
        def failing_query(s):
            raise OperationalError("SELECT 1", {}, Exception("database is locked"))

        with pytest.raises(RepositoryException, match="Failed to list books") as exc_info:
            safe_query(session, failing_query, "Failed to list books")
        assert isinstance(exc_info.value.__cause__, OperationalError)

    def test_safe_query_leaves_logging_to_the_caller(self, session, caplog):
        def failing_query(s):
            raise OperationalError("SELECT 1", {}, Exception("database is locked"))

        caplog.set_level(logging.DEBUG, logger="library_api.database.session")
        with pytest.raises(RepositoryException):
            safe_query(session, failing_query, "Failed to list books")
        assert not [r for r in caplog.records if r.levelno >= logging.ERROR]

    def test_safe_commit_maps_unique_violation_to_duplicate(self, session):
        session.add(BookDB(title="A", author="B", isbn="111"))
        session.commit()

        session.add(BookDB(title="C", author="D", isbn="111"))
        with pytest.raises(DuplicateError):
            safe_commit(session, "create book")

        # The failed insert was rolled back and the session is usable again
        assert session.execute(select(BookDB)).scalars().all()[0].isbn == "111"

    def test_safe_commit_maps_other_integrity_errors(self):
        session = MagicMock()
        session.commit.side_effect = IntegrityError(
            "INSERT", {}, Exception("CHECK constraint failed: check_total_copies_positive")
        )

        with pytest.raises(RepositoryException) as exc_info:
            safe_commit(session, "create book")

        assert not isinstance(exc_info.value, DuplicateError)
        session.rollback.assert_called_once()
