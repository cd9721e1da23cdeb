"""Access to the table recording applied migrations."""

from __future__ import annotations

import re
from datetime import datetime
from typing import Any

from sqlmigrate.config import get_logger
from sqlmigrate.database.dialects import Dialect, get_dialect
from sqlmigrate.exceptions import LedgerAccessError
from sqlmigrate.models import MigrationRecord

logger = get_logger(__name__)

DEFAULT_TABLE_NAME = "schema_migrations"

_IDENTIFIER_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


class Ledger:
    """Repository over the ledger table.

    Reads run on the connection directly. Writes take a cursor so that they
    happen inside the transaction of the migration being applied.
    """

    def __init__(
        self,
        connection: Any,
        dialect: str | Dialect,
        table_name: str = DEFAULT_TABLE_NAME,
    ) -> None:
        """Initialize ledger.

        Args:
            connection: DB-API 2.0 connection
            dialect: Dialect name or instance
            table_name: Name of the ledger table

        Raises:
            UnknownTargetError: If the dialect is not supported
            ValueError: If the table name is not a plain identifier
        """
        if not _IDENTIFIER_PATTERN.match(table_name):
            raise ValueError(f"Invalid ledger table name: {table_name!r}")

        self.connection = connection
        self.dialect = get_dialect(dialect)
        self.table_name = table_name
        self._table = self.dialect.quote(table_name)

    def exists(self) -> bool:
        """Check whether the ledger table has been created."""
        cursor = self.connection.cursor()
        try:
            cursor.execute(self.dialect.table_exists_sql(), (self.table_name,))
            return cursor.fetchone() is not None
        except Exception as e:
            self._rollback_quietly()
            raise LedgerAccessError(
                message=f"Cannot inspect ledger table {self.table_name}: {e}",
                details={"table": self.table_name},
            ) from e
        finally:
            cursor.close()

    def ensure_table(self) -> None:
        """Create the ledger table if it does not exist yet.

        Raises:
            LedgerAccessError: If the table cannot be created
        """
        try:
            self.dialect.begin(self.connection)
            cursor = self.connection.cursor()
            try:
                cursor.execute(self.dialect.create_table_sql(self.table_name))
            finally:
                cursor.close()
            self.dialect.commit(self.connection)
        except Exception as e:
            self._rollback_quietly()
            raise LedgerAccessError(
                message=f"Cannot create ledger table {self.table_name}: {e}",
                hint="Check that the database user may create tables",
                details={"table": self.table_name, "dialect": self.dialect.name},
            ) from e

        logger.debug("Ledger table ready", table=self.table_name)

    def get_watermark(self) -> str:
        """Return the highest applied migration id.

        A missing table or an empty ledger both yield ``""``.

        Raises:
            LedgerAccessError: If the table cannot be queried
        """
        if not self.exists():
            return ""

        cursor = self.connection.cursor()
        try:
            id_column = self.dialect.quote("id")
            cursor.execute(f"SELECT MAX({id_column}) FROM {self._table}")
            row = cursor.fetchone()
        except Exception as e:
            self._rollback_quietly()
            raise LedgerAccessError(
                message=f"Cannot read ledger table {self.table_name}: {e}",
                details={"table": self.table_name},
            ) from e
        finally:
            cursor.close()

        if row is None or row[0] is None:
            return ""
        return str(row[0])

    def list_records(self) -> list[MigrationRecord]:
        """Return every ledger record, ascending by id.

        Raises:
            LedgerAccessError: If the table cannot be queried
        """
        if not self.exists():
            return []

        id_column = self.dialect.quote("id")
        applied_column = self.dialect.quote("applied_at")
        cursor = self.connection.cursor()
        try:
            cursor.execute(
                f"SELECT {id_column}, {applied_column} FROM {self._table} "
                f"ORDER BY {id_column} ASC"
            )
            rows = cursor.fetchall()
        except Exception as e:
            self._rollback_quietly()
            raise LedgerAccessError(
                message=f"Cannot read ledger table {self.table_name}: {e}",
                details={"table": self.table_name},
            ) from e
        finally:
            cursor.close()

        return [
            MigrationRecord(
                id=str(row[0]),
                applied_at=self.dialect.from_db_timestamp(row[1]),
            )
            for row in rows
        ]

    def insert(self, cursor: Any, migration_id: str, applied_at: datetime) -> None:
        """Record ``migration_id`` as applied, inside the caller's transaction."""
        cursor.execute(
            f"INSERT INTO {self._table} "
            f"({self.dialect.quote('id')}, {self.dialect.quote('applied_at')}) "
            f"VALUES ({self.dialect.placeholder(1)}, {self.dialect.placeholder(2)})",
            (migration_id, self.dialect.to_db_timestamp(applied_at)),
        )

    def delete(self, cursor: Any, migration_id: str) -> None:
        """Remove the record of ``migration_id``, inside the caller's transaction."""
        cursor.execute(
            f"DELETE FROM {self._table} "
            f"WHERE {self.dialect.quote('id')} = {self.dialect.placeholder(1)}",
            (migration_id,),
        )

    def _rollback_quietly(self) -> None:
        try:
            self.dialect.rollback(self.connection)
        except Exception:
            logger.debug("Rollback after ledger failure also failed", exc_info=True)
