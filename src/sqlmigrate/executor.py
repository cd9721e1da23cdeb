"""Transactional execution of migration plans.

Every migration runs in its own transaction together with its ledger
update, so each one is applied completely or not at all. The batch is not
atomic: when migration N+1 fails, migrations up to N stay committed.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from datetime import UTC, datetime
from typing import Any

from sqlmigrate.config import get_logger
from sqlmigrate.database.ledger import Ledger
from sqlmigrate.exceptions import (
    CommitError,
    LedgerUpdateError,
    StatementExecutionError,
    TransactionBeginError,
)
from sqlmigrate.models import Direction, PlannedMigration

logger = get_logger(__name__)


def utc_now() -> datetime:
    """Current time in UTC."""
    return datetime.now(UTC)


class Executor:
    """Applies planned migrations one transaction at a time."""

    def __init__(
        self,
        connection: Any,
        ledger: Ledger,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        """Initialize executor.

        Args:
            connection: DB-API 2.0 connection shared with ``ledger``
            ledger: Ledger recording applied migrations
            clock: Source of ``applied_at`` timestamps
        """
        self.connection = connection
        self.ledger = ledger
        self.dialect = ledger.dialect
        self.clock = clock

    def apply_plan(
        self, planned: Sequence[PlannedMigration], direction: Direction
    ) -> int:
        """Apply planned migrations in order.

        Args:
            planned: Migrations in the order produced by the planner
            direction: Direction the plan was computed for

        Returns:
            Number of migrations applied

        Raises:
            LedgerAccessError: If the ledger table cannot be created
            MigrationExecutionError: If a migration fails. ``applied`` on the
                error holds the number of migrations committed before it.
        """
        self.ledger.ensure_table()

        applied = 0
        for migration in planned:
            self._apply_one(migration, direction, applied)
            applied += 1

        if applied:
            logger.info("Migrations applied", direction=direction.value, count=applied)
        return applied

    def _apply_one(
        self, migration: PlannedMigration, direction: Direction, applied: int
    ) -> None:
        logger.info(
            "Applying migration",
            migration_id=migration.id,
            direction=direction.value,
            statements=len(migration.queries),
        )

        try:
            self.dialect.begin(self.connection)
            cursor = self.connection.cursor()
        except Exception as e:
            self._rollback(migration.id)
            raise TransactionBeginError(
                message=f"Cannot start transaction for migration {migration.id}: {e}",
                applied=applied,
                migration_id=migration.id,
                original_error=e,
            ) from e

        try:
            for index, statement in enumerate(migration.queries, start=1):
                try:
                    cursor.execute(statement)
                except Exception as e:
                    self._rollback(migration.id)
                    logger.error(
                        "Migration statement failed",
                        migration_id=migration.id,
                        statement=index,
                        error=str(e),
                    )
                    raise StatementExecutionError(
                        message=(
                            f"Statement {index} of migration {migration.id} "
                            f"failed: {e}"
                        ),
                        applied=applied,
                        migration_id=migration.id,
                        original_error=e,
                    ) from e

            try:
                if direction is Direction.UP:
                    self.ledger.insert(cursor, migration.id, self.clock())
                else:
                    self.ledger.delete(cursor, migration.id)
            except Exception as e:
                self._rollback(migration.id)
                logger.error(
                    "Ledger update failed",
                    migration_id=migration.id,
                    error=str(e),
                )
                raise LedgerUpdateError(
                    message=(
                        f"Cannot update ledger for migration {migration.id}: {e}"
                    ),
                    applied=applied,
                    migration_id=migration.id,
                    original_error=e,
                ) from e
        finally:
            cursor.close()

        try:
            self.dialect.commit(self.connection)
        except Exception as e:
            self._rollback(migration.id)
            logger.error("Commit failed", migration_id=migration.id, error=str(e))
            raise CommitError(
                message=f"Cannot commit migration {migration.id}: {e}",
                applied=applied,
                migration_id=migration.id,
                original_error=e,
            ) from e

        logger.debug("Migration committed", migration_id=migration.id)

    def _rollback(self, migration_id: str) -> None:
        try:
            self.dialect.rollback(self.connection)
        except Exception:
            logger.warning("Rollback failed", migration_id=migration_id, exc_info=True)
