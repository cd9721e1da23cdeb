"""Tests for transactional plan execution."""

import sqlite3
import sys
from datetime import UTC, datetime
from unittest.mock import MagicMock, patch

import pytest

from sqlmigrate.database.ledger import Ledger
from sqlmigrate.exceptions import (
    CommitError,
    LedgerAccessError,
    LedgerUpdateError,
    MigrationExecutionError,
    StatementExecutionError,
    TransactionBeginError,
)
from sqlmigrate.executor import Executor, utc_now
from sqlmigrate.models import Direction, Migration, PlannedMigration

FIXED_TIME = datetime(2024, 6, 1, 8, 0, tzinfo=UTC)


def planned(migration_id: str, *queries: str) -> PlannedMigration:
    migration = Migration(id=migration_id, up=queries)
    return PlannedMigration(migration=migration, queries=queries)


@pytest.fixture
def executor(sqlite_conn):
    """Executor writing to a SQLite ledger with a fixed clock."""
    ledger = Ledger(sqlite_conn, "sqlite3")
    return Executor(sqlite_conn, ledger, clock=lambda: FIXED_TIME)


class TestApplyPlan:
    """Test applying plans against SQLite."""

    def test_applies_in_order(self, executor, sqlite_conn, schema_helpers):
        """Test every migration runs and is recorded."""
        plan = [
            planned("1", "CREATE TABLE a (id int)"),
            planned("2", "CREATE TABLE b (id int)", "INSERT INTO b VALUES (1)"),
        ]

        applied = executor.apply_plan(plan, Direction.UP)

        assert applied == 2
        assert {"a", "b"} <= schema_helpers.tables(sqlite_conn)
        assert [r.id for r in executor.ledger.list_records()] == ["1", "2"]
        assert executor.ledger.list_records()[0].applied_at == FIXED_TIME

    def test_empty_plan_creates_ledger(self, executor):
        """Test an empty plan still ensures the ledger table."""
        assert executor.apply_plan([], Direction.UP) == 0
        assert executor.ledger.exists()

    def test_down_removes_records(self, executor, sqlite_conn, schema_helpers):
        """Test DOWN runs statements and deletes the ledger row."""
        executor.apply_plan([planned("1", "CREATE TABLE a (id int)")], Direction.UP)

        applied = executor.apply_plan(
            [planned("1", "DROP TABLE a")], Direction.DOWN
        )

        assert applied == 1
        assert "a" not in schema_helpers.tables(sqlite_conn)
        assert executor.ledger.list_records() == []

    def test_migration_without_statements(self, executor):
        """Test a migration with no statements is still recorded."""
        assert executor.apply_plan([planned("1")], Direction.UP) == 1
        assert executor.ledger.get_watermark() == "1"

    def test_failure_isolation(self, executor, sqlite_conn, schema_helpers):
        """Test earlier migrations stay committed and the failing one rolls back."""
        plan = [
            planned("A", "CREATE TABLE a (id int)"),
            planned("B", "CREATE TABLE b (id int)", "THIS IS NOT SQL"),
            planned("C", "CREATE TABLE c (id int)"),
        ]

        with pytest.raises(StatementExecutionError) as exc_info:
            executor.apply_plan(plan, Direction.UP)

        error = exc_info.value
        assert error.applied == 1
        assert error.migration_id == "B"
        assert "Statement 2 of migration B failed" in error.message
        assert error.original_error is not None

        tables = schema_helpers.tables(sqlite_conn)
        assert "a" in tables
        assert "b" not in tables
        assert "c" not in tables
        assert [r.id for r in executor.ledger.list_records()] == ["A"]
        assert not sqlite_conn.in_transaction

    def test_first_migration_failure(self, executor):
        """Test a failure in the first migration reports nothing applied."""
        with pytest.raises(MigrationExecutionError) as exc_info:
            executor.apply_plan([planned("1", "NOT SQL")], Direction.UP)

        assert exc_info.value.applied == 0

    def test_duplicate_ledger_row(self, executor, sqlite_conn, schema_helpers):
        """Test a ledger conflict rolls back the migration's statements."""
        executor.apply_plan([planned("1")], Direction.UP)

        with pytest.raises(LedgerUpdateError) as exc_info:
            executor.apply_plan(
                [planned("1", "CREATE TABLE a (id int)")], Direction.UP
            )

        assert exc_info.value.migration_id == "1"
        assert "a" not in schema_helpers.tables(sqlite_conn)

    def test_ledger_creation_failure(self):
        """Test ledger table failures surface before any migration runs."""
        ledger = MagicMock(spec=Ledger)
        ledger.dialect = MagicMock()
        ledger.ensure_table.side_effect = LedgerAccessError("Cannot create table")
        connection = MagicMock()
        executor = Executor(connection, ledger)

        with pytest.raises(LedgerAccessError):
            executor.apply_plan([planned("1", "SELECT 1")], Direction.UP)

        connection.cursor.assert_not_called()


class TestDriverFailures:
    """Test failures reported by the DB-API driver."""

    @pytest.fixture
    def connection(self):
        return MagicMock()

    @pytest.fixture
    def ledger(self, connection):
        return Ledger(connection, "postgres")

    def test_begin_failure(self, connection, ledger):
        """Test failing to start a transaction."""
        connection.cursor.side_effect = RuntimeError("connection closed")

        with patch.object(ledger, "ensure_table"):
            with pytest.raises(TransactionBeginError) as exc_info:
                Executor(connection, ledger).apply_plan(
                    [planned("1", "SELECT 1")], Direction.UP
                )

        assert exc_info.value.applied == 0
        connection.rollback.assert_called_once()

    def test_commit_failure(self, connection, ledger):
        """Test a failing commit is rolled back and reported."""
        connection.commit.side_effect = [None, RuntimeError("disk full")]

        with patch.object(ledger, "ensure_table"):
            with pytest.raises(CommitError) as exc_info:
                Executor(connection, ledger).apply_plan(
                    [planned("1", "SELECT 1"), planned("2", "SELECT 2")],
                    Direction.UP,
                )

        assert exc_info.value.applied == 1
        assert exc_info.value.migration_id == "2"
        connection.rollback.assert_called_once()

    def test_ledger_write_failure(self, connection, ledger):
        """Test a failing ledger write prevents the commit."""
        with (
            patch.object(ledger, "ensure_table"),
            patch.object(ledger, "insert", side_effect=RuntimeError("locked")),
        ):
            with pytest.raises(LedgerUpdateError):
                Executor(connection, ledger).apply_plan(
                    [planned("1", "SELECT 1")], Direction.UP
                )

        connection.commit.assert_not_called()
        connection.rollback.assert_called_once()
        connection.cursor.return_value.close.assert_called_once()

    def test_rollback_failure_keeps_original_error(self, connection, ledger):
        """Test a failing rollback does not mask the statement error."""
        connection.cursor.return_value.execute.side_effect = RuntimeError("syntax")
        connection.rollback.side_effect = RuntimeError("gone")

        with patch.object(ledger, "ensure_table"):
            with pytest.raises(StatementExecutionError, match="syntax"):
                Executor(connection, ledger).apply_plan(
                    [planned("1", "SELEC 1")], Direction.UP
                )

    def test_clock_feeds_ledger(self, connection, ledger):
        """Test the injected clock provides applied_at."""
        with (
            patch.object(ledger, "ensure_table"),
            patch.object(ledger, "insert") as mock_insert,
        ):
            Executor(connection, ledger, clock=lambda: FIXED_TIME).apply_plan(
                [planned("1")], Direction.UP
            )

        mock_insert.assert_called_once_with(
            connection.cursor.return_value, "1", FIXED_TIME
        )


@pytest.mark.skipif(
    sys.version_info < (3, 12), reason="sqlite3 autocommit mode needs Python 3.12"
)
class TestAutocommitSqliteConnection:
    """Test connections opened with sqlite3 autocommit=True."""

    @pytest.fixture
    def conn(self, db_path):
        conn = sqlite3.connect(db_path, autocommit=True)
        yield conn
        conn.close()

    @pytest.fixture
    def executor(self, conn):
        return Executor(conn, Ledger(conn, "sqlite3"))

    def test_each_migration_is_committed(
        self, executor, conn, db_path, schema_helpers
    ):
        """Test applied migrations are visible to another connection."""
        plan = [
            planned("1", "CREATE TABLE a (id int)"),
            planned("2", "CREATE TABLE b (id int)"),
        ]

        assert executor.apply_plan(plan, Direction.UP) == 2
        assert not conn.in_transaction

        other = sqlite3.connect(db_path)
        try:
            assert {"a", "b", "schema_migrations"} <= schema_helpers.tables(other)
        finally:
            other.close()

    def test_failure_rolls_back_only_failing_migration(
        self, executor, conn, db_path, schema_helpers
    ):
        """Test earlier migrations stay committed when a later one fails."""
        plan = [
            planned("A", "CREATE TABLE a (id int)"),
            planned("B", "CREATE TABLE b (id int)", "THIS IS NOT SQL"),
        ]

        with pytest.raises(StatementExecutionError) as exc_info:
            executor.apply_plan(plan, Direction.UP)

        assert exc_info.value.applied == 1
        assert not conn.in_transaction

        other = sqlite3.connect(db_path)
        try:
            tables = schema_helpers.tables(other)
            rows = other.execute("SELECT id FROM schema_migrations").fetchall()
        finally:
            other.close()
        assert "a" in tables
        assert "b" not in tables
        assert rows == [("A",)]


def test_utc_now_is_timezone_aware():
    """Test the default clock returns aware UTC timestamps."""
    assert utc_now().tzinfo is UTC
