"""SQLite connections for the command-line interface.

The library itself works with any DB-API 2.0 connection handed in by the
caller; this module only opens the SQLite databases the CLI manages.
"""

from __future__ import annotations

import sqlite3
from collections.abc import Generator
from contextlib import contextmanager
from pathlib import Path

from sqlmigrate.config import SqlMigrateSettings, get_logger
from sqlmigrate.exceptions import ConfigurationError, LedgerAccessError

logger = get_logger(__name__)


def connect_sqlite(db_path: str | Path, timeout: float = 30.0) -> sqlite3.Connection:
    """Open a SQLite connection suitable for running migrations.

    The connection is in autocommit mode so that transactions are opened
    explicitly and cover DDL statements too.

    Args:
        db_path: Path to the SQLite database file
        timeout: Seconds to wait for a locked database

    Returns:
        SQLite connection

    Raises:
        LedgerAccessError: If the database cannot be opened
    """
    path = Path(db_path)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(str(path), timeout=timeout, isolation_level=None)
        conn.execute("PRAGMA foreign_keys = ON")
    except (sqlite3.Error, OSError) as e:
        logger.error("Failed to open database", path=str(path), error=str(e))
        raise LedgerAccessError(
            message=f"Failed to open database {path}: {e}",
            details={"path": str(path)},
        ) from e
    return conn


@contextmanager
def open_connection(
    settings: SqlMigrateSettings,
) -> Generator[sqlite3.Connection, None, None]:
    """Open the database configured in ``settings`` and close it afterwards.

    Raises:
        ConfigurationError: If the configured dialect cannot be opened here
    """
    if settings.dialect != "sqlite3":
        raise ConfigurationError(
            message=f"The command line can only open sqlite3 databases, "
            f"not {settings.dialect}",
            hint=(
                "Use sqlmigrate.Migrator from Python with a DB-API connection "
                "for other datastores"
            ),
            details={"dialect": settings.dialect},
        )

    conn = connect_sqlite(settings.database_path, settings.database_timeout)
    try:
        yield conn
    finally:
        conn.close()
