"""Tests for the migration ledger table."""

from datetime import UTC, datetime
from unittest.mock import MagicMock

import pytest

from sqlmigrate.database.ledger import DEFAULT_TABLE_NAME, Ledger
from sqlmigrate.exceptions import LedgerAccessError, UnknownTargetError
from sqlmigrate.models import MigrationRecord

APPLIED_AT = datetime(2024, 1, 2, 3, 4, 5, tzinfo=UTC)


@pytest.fixture
def ledger(sqlite_conn):
    """Ledger over a fresh SQLite database."""
    return Ledger(sqlite_conn, "sqlite3")


def record(ledger, conn, migration_id):
    """Insert a ledger row in its own transaction."""
    ledger.dialect.begin(conn)
    cursor = conn.cursor()
    ledger.insert(cursor, migration_id, APPLIED_AT)
    cursor.close()
    conn.commit()


class TestLedgerSetup:
    """Test ledger construction and table creation."""

    def test_default_table_name(self, ledger):
        """Test the default ledger table name."""
        assert ledger.table_name == DEFAULT_TABLE_NAME == "schema_migrations"

    def test_invalid_table_name(self, sqlite_conn):
        """Test table names must be plain identifiers."""
        with pytest.raises(ValueError, match="Invalid ledger table name"):
            Ledger(sqlite_conn, "sqlite3", "migrations; DROP TABLE x")

    def test_unknown_dialect(self, sqlite_conn):
        """Test an unknown dialect is rejected."""
        with pytest.raises(UnknownTargetError):
            Ledger(sqlite_conn, "informix")

    def test_ensure_table_creates_table(self, ledger, sqlite_conn, schema_helpers):
        """Test the table is created with id and applied_at columns."""
        assert not ledger.exists()

        ledger.ensure_table()

        assert ledger.exists()
        assert schema_helpers.columns(sqlite_conn, "schema_migrations") == [
            "id",
            "applied_at",
        ]
        assert not sqlite_conn.in_transaction

    def test_ensure_table_is_idempotent(self, ledger):
        """Test creating the table twice is harmless."""
        ledger.ensure_table()
        ledger.ensure_table()

        assert ledger.exists()

    def test_custom_table_name(self, sqlite_conn, schema_helpers):
        """Test the ledger can live in a differently named table."""
        Ledger(sqlite_conn, "sqlite3", "app_migrations").ensure_table()

        assert "app_migrations" in schema_helpers.tables(sqlite_conn)

    def test_ensure_table_failure(self):
        """Test DDL failures are rolled back and reported."""
        conn = MagicMock()
        conn.cursor.return_value.execute.side_effect = RuntimeError("permission denied")
        ledger = Ledger(conn, "postgres")

        with pytest.raises(LedgerAccessError) as exc_info:
            ledger.ensure_table()

        assert "permission denied" in str(exc_info.value)
        conn.rollback.assert_called_once()
        conn.commit.assert_not_called()


class TestWatermark:
    """Test reading the highest applied id."""

    def test_missing_table(self, ledger, sqlite_conn, schema_helpers):
        """Test a missing table reads as empty and is not created."""
        assert ledger.get_watermark() == ""
        assert "schema_migrations" not in schema_helpers.tables(sqlite_conn)

    def test_empty_table(self, ledger):
        """Test an empty ledger has no watermark."""
        ledger.ensure_table()

        assert ledger.get_watermark() == ""

    def test_highest_id(self, ledger, sqlite_conn):
        """Test the watermark is the lexicographically highest id."""
        ledger.ensure_table()
        for migration_id in ("001", "003", "002"):
            record(ledger, sqlite_conn, migration_id)

        assert ledger.get_watermark() == "003"

    def test_query_failure(self):
        """Test query failures raise LedgerAccessError."""
        conn = MagicMock()
        cursor = conn.cursor.return_value
        cursor.fetchone.return_value = (1,)
        cursor.execute.side_effect = [None, RuntimeError("connection lost")]

        with pytest.raises(LedgerAccessError, match="connection lost"):
            Ledger(conn, "postgres").get_watermark()

        conn.rollback.assert_called_once()

    def test_probe_failure_rolls_back(self):
        """Test a failed table probe leaves no aborted transaction behind."""
        conn = MagicMock()
        conn.cursor.return_value.execute.side_effect = RuntimeError("aborted")

        with pytest.raises(LedgerAccessError, match="Cannot inspect"):
            Ledger(conn, "postgres").exists()

        conn.rollback.assert_called_once()
        conn.cursor.return_value.close.assert_called_once()


class TestRecords:
    """Test reading and writing ledger rows."""

    def test_list_records_ascending(self, ledger, sqlite_conn):
        """Test records come back ordered by id with parsed timestamps."""
        ledger.ensure_table()
        record(ledger, sqlite_conn, "002")
        record(ledger, sqlite_conn, "001")

        assert ledger.list_records() == [
            MigrationRecord(id="001", applied_at=APPLIED_AT),
            MigrationRecord(id="002", applied_at=APPLIED_AT),
        ]

    def test_list_records_missing_table(self, ledger):
        """Test listing without a table returns nothing."""
        assert ledger.list_records() == []

    def test_list_records_failure_rolls_back(self):
        """Test a failed read rolls back before reporting."""
        conn = MagicMock()
        cursor = conn.cursor.return_value
        cursor.fetchone.return_value = (1,)
        cursor.execute.side_effect = [None, RuntimeError("relation is broken")]

        with pytest.raises(LedgerAccessError, match="relation is broken"):
            Ledger(conn, "postgres").list_records()

        conn.rollback.assert_called_once()

    def test_delete(self, ledger, sqlite_conn):
        """Test deleting a record removes only that id."""
        ledger.ensure_table()
        record(ledger, sqlite_conn, "001")
        record(ledger, sqlite_conn, "002")

        ledger.dialect.begin(sqlite_conn)
        cursor = sqlite_conn.cursor()
        ledger.delete(cursor, "002")
        cursor.close()
        sqlite_conn.commit()

        assert [r.id for r in ledger.list_records()] == ["001"]

    def test_insert_uses_dialect_placeholders(self):
        """Test writes bind parameters in the driver's style."""
        cursor = MagicMock()
        ledger = Ledger(MagicMock(), "postgres")

        ledger.insert(cursor, "001", APPLIED_AT)

        sql, params = cursor.execute.call_args.args
        assert sql == (
            'INSERT INTO "schema_migrations" ("id", "applied_at") VALUES (%s, %s)'
        )
        assert params == ("001", APPLIED_AT)

    def test_delete_uses_dialect_placeholders(self):
        """Test deletes bind the id in the driver's style."""
        cursor = MagicMock()
        ledger = Ledger(MagicMock(), "oci8")

        ledger.delete(cursor, "001")

        sql, params = cursor.execute.call_args.args
        assert sql == 'DELETE FROM "schema_migrations" WHERE "id" = :1'
        assert params == ("001",)
