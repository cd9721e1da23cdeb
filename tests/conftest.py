"""Pytest configuration and fixtures."""

import sqlite3
from pathlib import Path

import pytest

from sqlmigrate.config import SqlMigrateSettings, reset_settings, set_settings
from sqlmigrate.database.connection import connect_sqlite
from sqlmigrate.models import Migration


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "integration: mark test as integration test")
    config.addinivalue_line("markers", "unit: mark test as unit test")


@pytest.fixture(autouse=True)
def isolated_test_environment(tmp_path, monkeypatch):
    """Run every test with isolated settings and an empty working directory.

    Prevents databases and migration directories from being created at the
    repository root and stops config files on the host from leaking in.
    """
    for name in (
        "SQLMIGRATE_DATABASE_PATH",
        "SQLMIGRATE_DIALECT",
        "SQLMIGRATE_MIGRATIONS_DIR",
        "SQLMIGRATE_TABLE_NAME",
        "SQLMIGRATE_STRICT_WATERMARK",
        "SQLMIGRATE_LOG_LEVEL",
        "SQLMIGRATE_CONFIG",
    ):
        monkeypatch.delenv(name, raising=False)

    workdir = tmp_path / "work"
    workdir.mkdir()
    monkeypatch.chdir(workdir)
    monkeypatch.setenv("HOME", str(tmp_path / "home"))

    set_settings(
        SqlMigrateSettings(
            database_path=workdir / "test.db",
            migrations_dir=workdir / "migrations",
        )
    )

    yield

    reset_settings()


@pytest.fixture
def db_path(tmp_path) -> Path:
    """Path of a fresh SQLite database file."""
    return tmp_path / "migrations_test.db"


@pytest.fixture
def sqlite_conn(db_path):
    """Autocommit SQLite connection of the kind the CLI uses."""
    conn = connect_sqlite(db_path)
    yield conn
    conn.close()


@pytest.fixture
def table_migrations() -> list[Migration]:
    """Two migrations: create a table, then add a column to it."""
    return [
        Migration(
            id="001",
            up=("CREATE TABLE t (x int)",),
            down=("DROP TABLE t",),
        ),
        Migration(
            id="002",
            up=("ALTER TABLE t ADD y int",),
            down=("ALTER TABLE t DROP COLUMN y",),
        ),
    ]


def table_names(conn: sqlite3.Connection) -> set[str]:
    """Names of the user tables in a SQLite database."""
    rows = conn.execute(
        "SELECT name FROM sqlite_master WHERE type = 'table'"
    ).fetchall()
    return {row[0] for row in rows}


def column_names(conn: sqlite3.Connection, table: str) -> list[str]:
    """Column names of ``table`` in declaration order."""
    return [row[1] for row in conn.execute(f"PRAGMA table_info({table})")]


@pytest.fixture
def schema_helpers():
    """Expose schema inspection helpers to tests."""

    class Helpers:
        tables = staticmethod(table_names)
        columns = staticmethod(column_names)

    return Helpers
