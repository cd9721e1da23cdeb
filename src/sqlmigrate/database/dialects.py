"""SQL dialects for the migration ledger table.

Each dialect knows how to quote identifiers, which DB-API parameter style
its drivers use, and how to create and probe the ledger table.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, ClassVar

from sqlmigrate.exceptions import UnknownTargetError


class Dialect:
    """Generic ANSI dialect. Subclasses override what their engine needs."""

    name: ClassVar[str] = "ansi"
    quote_char: ClassVar[str] = '"'
    paramstyle: ClassVar[str] = "qmark"
    id_type: ClassVar[str] = "varchar(255)"
    timestamp_type: ClassVar[str] = "timestamp"

    def quote(self, identifier: str) -> str:
        """Quote an identifier for use in SQL text."""
        escaped = identifier.replace(self.quote_char, self.quote_char * 2)
        return f"{self.quote_char}{escaped}{self.quote_char}"

    def placeholder(self, position: int) -> str:
        """Return the parameter marker for the 1-based ``position``."""
        if self.paramstyle == "format":
            return "%s"
        if self.paramstyle == "numeric":
            return f":{position}"
        return "?"

    def create_table_sql(self, table: str) -> str:
        """Return DDL creating the ledger table when it does not exist."""
        return (
            f"CREATE TABLE IF NOT EXISTS {self.quote(table)} ("
            f"{self.quote('id')} {self.id_type} NOT NULL PRIMARY KEY, "
            f"{self.quote('applied_at')} {self.timestamp_type} NULL)"
        )

    def table_exists_sql(self) -> str:
        """Return a query that yields a row if the named table exists."""
        return (
            "SELECT 1 FROM information_schema.tables "
            f"WHERE table_name = {self.placeholder(1)}"
        )

    def begin(self, connection: Any) -> None:
        """Start a transaction on ``connection``.

        DB-API drivers open transactions implicitly on the first statement,
        so the default does nothing.
        """

    def commit(self, connection: Any) -> None:
        """Commit the transaction opened by :meth:`begin`."""
        connection.commit()

    def rollback(self, connection: Any) -> None:
        """Roll back the transaction opened by :meth:`begin`."""
        connection.rollback()

    def to_db_timestamp(self, value: datetime) -> Any:
        """Convert a timestamp into the value bound for ``applied_at``."""
        return value

    def from_db_timestamp(self, value: Any) -> datetime:
        """Convert a stored ``applied_at`` value back into a datetime."""
        if isinstance(value, datetime):
            return value
        return datetime.fromisoformat(str(value))

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


def _manual_transactions(connection: Any) -> bool:
    """Check for a sqlite3 connection whose commit and rollback do nothing."""
    return getattr(connection, "autocommit", None) is True


class SqliteDialect(Dialect):
    """SQLite through the standard library ``sqlite3`` module."""

    name = "sqlite3"
    id_type = "text"
    timestamp_type = "datetime"

    def table_exists_sql(self) -> str:
        return "SELECT 1 FROM sqlite_master WHERE type = 'table' AND name = ?"

    def begin(self, connection: Any) -> None:
        # sqlite3 only opens implicit transactions before DML, so DDL would
        # otherwise run outside the migration's transaction
        if not connection.in_transaction:
            connection.execute("BEGIN")

    def commit(self, connection: Any) -> None:
        # With autocommit=True (Python 3.12+) commit() is a no-op, so the
        # explicit BEGIN has to be closed explicitly
        if _manual_transactions(connection):
            if connection.in_transaction:
                connection.execute("COMMIT")
        else:
            connection.commit()

    def rollback(self, connection: Any) -> None:
        if _manual_transactions(connection):
            if connection.in_transaction:
                connection.execute("ROLLBACK")
        else:
            connection.rollback()

    def to_db_timestamp(self, value: datetime) -> Any:
        return value.isoformat()


class PostgresDialect(Dialect):
    """PostgreSQL (psycopg and compatible drivers)."""

    name = "postgres"
    paramstyle = "format"
    id_type = "text"
    timestamp_type = "timestamp with time zone"

    def table_exists_sql(self) -> str:
        return "SELECT 1 FROM pg_catalog.pg_tables WHERE tablename = %s"


class MySQLDialect(Dialect):
    """MySQL and MariaDB (mysqlclient, PyMySQL)."""

    name = "mysql"
    quote_char = "`"
    paramstyle = "format"
    timestamp_type = "datetime"

    def __init__(self, engine: str = "InnoDB", encoding: str = "UTF8") -> None:
        self.engine = engine
        self.encoding = encoding

    def create_table_sql(self, table: str) -> str:
        return (
            f"{super().create_table_sql(table)} "
            f"ENGINE={self.engine} CHARSET={self.encoding}"
        )

    def table_exists_sql(self) -> str:
        return (
            "SELECT 1 FROM information_schema.tables "
            "WHERE table_schema = DATABASE() AND table_name = %s"
        )

    def __repr__(self) -> str:
        return f"MySQLDialect(engine={self.engine!r}, encoding={self.encoding!r})"


class SqlServerDialect(Dialect):
    """Microsoft SQL Server (pyodbc)."""

    name = "mssql"
    id_type = "nvarchar(255)"
    timestamp_type = "datetime2"

    def quote(self, identifier: str) -> str:
        return "[" + identifier.replace("]", "]]") + "]"

    def create_table_sql(self, table: str) -> str:
        # SQL Server has no CREATE TABLE IF NOT EXISTS
        literal = table.replace("'", "''")
        return (
            f"IF OBJECT_ID(N'{literal}', N'U') IS NULL "
            f"CREATE TABLE {self.quote(table)} ("
            f"{self.quote('id')} {self.id_type} NOT NULL PRIMARY KEY, "
            f"{self.quote('applied_at')} {self.timestamp_type} NULL)"
        )


class OracleDialect(Dialect):
    """Oracle Database (python-oracledb, cx_Oracle)."""

    name = "oci8"
    paramstyle = "numeric"
    id_type = "varchar2(255)"

    def create_table_sql(self, table: str) -> str:
        # ORA-00955: name is already used by an existing object
        ddl = (
            f"CREATE TABLE {self.quote(table)} ("
            f"{self.quote('id')} {self.id_type} NOT NULL PRIMARY KEY, "
            f"{self.quote('applied_at')} {self.timestamp_type} NULL)"
        ).replace("'", "''")
        return (
            "BEGIN "
            f"EXECUTE IMMEDIATE '{ddl}'; "
            "EXCEPTION WHEN OTHERS THEN "
            "IF SQLCODE != -955 THEN RAISE; END IF; "
            "END;"
        )

    def table_exists_sql(self) -> str:
        return "SELECT 1 FROM user_tables WHERE table_name = :1"


DIALECTS: dict[str, type[Dialect]] = {
    SqliteDialect.name: SqliteDialect,
    PostgresDialect.name: PostgresDialect,
    MySQLDialect.name: MySQLDialect,
    SqlServerDialect.name: SqlServerDialect,
    OracleDialect.name: OracleDialect,
}


def get_dialect(dialect: str | Dialect) -> Dialect:
    """Resolve a dialect name (or instance) to a dialect instance.

    Args:
        dialect: Registered dialect name or a ready dialect instance

    Returns:
        Dialect instance

    Raises:
        UnknownTargetError: If the name is not registered
    """
    if isinstance(dialect, Dialect):
        return dialect

    dialect_class = DIALECTS.get(dialect)
    if dialect_class is None:
        raise UnknownTargetError(
            message=f"Unknown dialect: {dialect}",
            hint=f"Supported dialects are: {', '.join(sorted(DIALECTS))}",
            details={"dialect": dialect},
        )
    return dialect_class()
