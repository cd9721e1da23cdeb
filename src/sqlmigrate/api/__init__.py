"""Public migration API."""

from sqlmigrate.api.migrator import (
    Migrator,
    exec_max,
    exec_migrations,
    get_migration_records,
    plan_migration,
)

__all__ = [
    "Migrator",
    "exec_max",
    "exec_migrations",
    "get_migration_records",
    "plan_migration",
]
