"""Migration planning.

Planning is a pure computation over the migration definitions and the
ledger watermark, the highest migration id recorded as applied. Only the
watermark drives the plan: a migration older than the watermark that was
never applied is not picked up again.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable

from sqlmigrate.config import get_logger
from sqlmigrate.exceptions import DuplicateMigrationError, UnknownMigrationError
from sqlmigrate.models import Direction, Migration, PlannedMigration

logger = get_logger(__name__)


def sort_migrations(migrations: Iterable[Migration]) -> list[Migration]:
    """Return migrations ordered by id, oldest first.

    Raises:
        DuplicateMigrationError: If two migrations share an id
    """
    ordered = sorted(migrations, key=lambda m: m.id)
    counts = Counter(m.id for m in ordered)
    duplicates = sorted(mid for mid, count in counts.items() if count > 1)
    if duplicates:
        raise DuplicateMigrationError(duplicates)
    return ordered


def find_cursor(migrations: list[Migration], watermark: str) -> int:
    """Index of the last sorted migration whose id is ``<= watermark``, or -1."""
    index = -1
    while index < len(migrations) - 1 and migrations[index + 1].id <= watermark:
        index += 1
    return index


def to_apply(
    migrations: list[Migration], watermark: str, direction: Direction
) -> list[Migration]:
    """Filter sorted migrations down to the ones a run has to apply.

    Args:
        migrations: Migrations sorted by id
        watermark: Highest applied id, ``""`` when nothing is applied
        direction: Direction of the run

    Returns:
        For UP every migration after the watermark, oldest first. For DOWN
        every migration up to and including the watermark, newest first.
    """
    cursor = find_cursor(migrations, watermark)

    if direction is Direction.UP:
        return migrations[cursor + 1 :]
    if cursor == -1:
        return []
    return list(reversed(migrations[: cursor + 1]))


def plan_migrations(
    migrations: Iterable[Migration],
    watermark: str,
    direction: Direction,
    max_count: int = 0,
    strict: bool = False,
) -> list[PlannedMigration]:
    """Compute the ordered list of migrations one run will apply.

    Args:
        migrations: All known migration definitions, in any order
        watermark: Highest applied id from the ledger, ``""`` if none
        direction: Direction of the run
        max_count: Apply at most this many migrations; 0 means no limit
        strict: Raise instead of warning when the watermark is unknown

    Returns:
        Planned migrations with their statements resolved for ``direction``

    Raises:
        ValueError: If ``max_count`` is negative
        DuplicateMigrationError: If two migrations share an id
        UnknownMigrationError: In strict mode, if the watermark is unknown
    """
    if max_count < 0:
        raise ValueError(f"max_count must be >= 0, got {max_count}")

    ordered = sort_migrations(migrations)

    if watermark and all(m.id != watermark for m in ordered):
        if strict:
            raise UnknownMigrationError(
                message=f"Applied migration {watermark} has no definition",
                hint=(
                    "Restore the missing migration script or disable "
                    "strict_watermark to plan around it"
                ),
                details={"watermark": watermark},
            )
        logger.warning(
            "Applied watermark not found among migration definitions",
            watermark=watermark,
            direction=direction.value,
        )

    pending = to_apply(ordered, watermark, direction)
    if max_count > 0:
        pending = pending[:max_count]

    plan = [
        PlannedMigration(migration=m, queries=m.queries_for(direction))
        for m in pending
    ]

    logger.debug(
        "Planned migrations",
        direction=direction.value,
        watermark=watermark or None,
        count=len(plan),
    )
    return plan
