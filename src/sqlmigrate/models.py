"""Data models for migration planning and bookkeeping."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class Direction(str, Enum):
    """Direction in which migrations are applied."""

    UP = "up"
    DOWN = "down"


@dataclass(frozen=True)
class Migration:
    """A single schema change with its forward and backward statements."""

    id: str
    up: tuple[str, ...] = ()
    down: tuple[str, ...] = ()

    def queries_for(self, direction: Direction) -> tuple[str, ...]:
        """Return the statements to run when moving in ``direction``."""
        if direction is Direction.UP:
            return self.up
        return self.down

    def __str__(self) -> str:
        """String representation of migration."""
        return f"Migration {self.id}"


@dataclass(frozen=True)
class PlannedMigration:
    """A migration scheduled for one run, with its statements resolved."""

    migration: Migration
    queries: tuple[str, ...]

    @property
    def id(self) -> str:
        return self.migration.id


@dataclass(frozen=True)
class MigrationRecord:
    """A row of the ledger table."""

    id: str
    applied_at: datetime


@dataclass(frozen=True)
class MigrationStatus:
    """Status line combining a known migration with its ledger entry."""

    id: str
    applied_at: datetime | None = None
    missing_definition: bool = False

    @property
    def applied(self) -> bool:
        return self.applied_at is not None
