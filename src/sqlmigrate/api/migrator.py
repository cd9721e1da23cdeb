"""High level migration operations.

``Migrator`` ties a migration source, a DB-API connection and a dialect
together and exposes the operations deployment tooling needs: apply up,
apply down, dry-run planning and status reporting.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime
from typing import Any

from sqlmigrate.config import SqlMigrateSettings, get_logger
from sqlmigrate.database.dialects import Dialect
from sqlmigrate.database.ledger import DEFAULT_TABLE_NAME, Ledger
from sqlmigrate.executor import Executor, utc_now
from sqlmigrate.models import (
    Direction,
    Migration,
    MigrationRecord,
    MigrationStatus,
    PlannedMigration,
)
from sqlmigrate.planner import plan_migrations, sort_migrations
from sqlmigrate.sources import FileMigrationSource, MigrationSource

logger = get_logger(__name__)


class Migrator:
    """Plans and applies migrations from one source against one datastore.

    Running two migrators against the same datastore at the same time is
    not supported; nothing coordinates concurrent runs.
    """

    def __init__(
        self,
        connection: Any,
        dialect: str | Dialect,
        source: MigrationSource,
        table_name: str = DEFAULT_TABLE_NAME,
        strict_watermark: bool = False,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        """Initialize the migrator.

        Args:
            connection: DB-API 2.0 connection, owned by the caller
            dialect: Dialect name (``sqlite3``, ``postgres``, ``mysql``,
                ``mssql``, ``oci8``) or a dialect instance
            source: Where migration definitions come from
            table_name: Name of the ledger table
            strict_watermark: Fail instead of warning when the newest applied
                migration has no definition
            clock: Source of ``applied_at`` timestamps

        Raises:
            UnknownTargetError: If the dialect is not supported
        """
        self.connection = connection
        self.source = source
        self.strict_watermark = strict_watermark
        self.ledger = Ledger(connection, dialect, table_name)
        self.executor = Executor(connection, self.ledger, clock=clock)

    @classmethod
    def from_settings(
        cls, connection: Any, settings: SqlMigrateSettings
    ) -> Migrator:
        """Create a migrator reading ``settings.migrations_dir``."""
        return cls(
            connection,
            settings.dialect,
            FileMigrationSource(settings.migrations_dir),
            table_name=settings.table_name,
            strict_watermark=settings.strict_watermark,
        )

    def find_migrations(self) -> list[Migration]:
        """Return all known migrations sorted by id.

        Raises:
            SourceError: If the source cannot be read or holds duplicates
        """
        return sort_migrations(self.source.find_migrations())

    def plan(
        self, direction: Direction, max_count: int = 0
    ) -> list[PlannedMigration]:
        """Compute what a run would apply without changing the datastore.

        Args:
            direction: Direction of the run
            max_count: Limit on the number of migrations; 0 means no limit

        Returns:
            Ordered planned migrations

        Raises:
            SourceError: If migrations cannot be loaded
            LedgerAccessError: If the ledger cannot be read
            UnknownMigrationError: In strict mode, if the watermark is unknown
        """
        migrations = self.source.find_migrations()
        watermark = self.ledger.get_watermark()
        return plan_migrations(
            migrations,
            watermark,
            direction,
            max_count=max_count,
            strict=self.strict_watermark,
        )

    def apply(self, direction: Direction, max_count: int = 0) -> int:
        """Plan and apply migrations in ``direction``.

        Args:
            direction: Direction of the run
            max_count: Apply at most this many migrations; 0 means no limit

        Returns:
            Number of migrations applied

        Raises:
            SourceError: If migrations cannot be loaded
            LedgerAccessError: If the ledger cannot be created or read
            MigrationExecutionError: If a migration fails; carries the number
                of migrations applied before the failure
        """
        planned = self.plan(direction, max_count)
        if not planned:
            logger.info("No migrations to apply", direction=direction.value)
        return self.executor.apply_plan(planned, direction)

    def apply_up(self, max_count: int = 0) -> int:
        """Apply pending migrations, oldest first."""
        return self.apply(Direction.UP, max_count)

    def apply_down(self, max_count: int = 0) -> int:
        """Revert applied migrations, newest first."""
        return self.apply(Direction.DOWN, max_count)

    def list_applied_records(self) -> list[MigrationRecord]:
        """Return ledger records ascending by id."""
        return self.ledger.list_records()

    def status(self) -> list[MigrationStatus]:
        """Merge known migrations with ledger records for reporting.

        Records whose migration is no longer provided by the source are
        included and flagged with ``missing_definition``.
        """
        applied = {record.id: record for record in self.list_applied_records()}
        rows = {
            m.id: MigrationStatus(
                id=m.id,
                applied_at=applied[m.id].applied_at if m.id in applied else None,
            )
            for m in self.find_migrations()
        }
        for record in applied.values():
            if record.id not in rows:
                rows[record.id] = MigrationStatus(
                    id=record.id,
                    applied_at=record.applied_at,
                    missing_definition=True,
                )
        return [rows[key] for key in sorted(rows)]


def exec_migrations(
    connection: Any,
    dialect: str | Dialect,
    source: MigrationSource,
    direction: Direction,
    table_name: str = DEFAULT_TABLE_NAME,
) -> int:
    """Apply every pending migration in ``direction``.

    Returns:
        Number of applied migrations
    """
    return exec_max(connection, dialect, source, direction, 0, table_name)


def exec_max(
    connection: Any,
    dialect: str | Dialect,
    source: MigrationSource,
    direction: Direction,
    max_count: int,
    table_name: str = DEFAULT_TABLE_NAME,
) -> int:
    """Apply at most ``max_count`` migrations in ``direction`` (0 = no limit).

    Returns:
        Number of applied migrations
    """
    migrator = Migrator(connection, dialect, source, table_name=table_name)
    return migrator.apply(direction, max_count)


def plan_migration(
    connection: Any,
    dialect: str | Dialect,
    source: MigrationSource,
    direction: Direction,
    max_count: int = 0,
    table_name: str = DEFAULT_TABLE_NAME,
) -> list[PlannedMigration]:
    """Return the plan a run would execute, without applying it."""
    migrator = Migrator(connection, dialect, source, table_name=table_name)
    return migrator.plan(direction, max_count)


def get_migration_records(
    connection: Any,
    dialect: str | Dialect,
    table_name: str = DEFAULT_TABLE_NAME,
) -> list[MigrationRecord]:
    """Return the applied migration records, ascending by id."""
    return Ledger(connection, dialect, table_name).list_records()
