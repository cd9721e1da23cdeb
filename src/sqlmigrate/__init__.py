"""sqlmigrate: ordered, reversible SQL schema migrations.

Migration scripts are applied in id order, one transaction per migration,
and recorded in a ledger table so repeated runs only apply what is new.
"""

from sqlmigrate.api import (
    Migrator,
    exec_max,
    exec_migrations,
    get_migration_records,
    plan_migration,
)
from sqlmigrate.config import SqlMigrateSettings, get_logger, get_settings
from sqlmigrate.database import DIALECTS, Dialect, Ledger, get_dialect
from sqlmigrate.exceptions import (
    CommitError,
    ConfigurationError,
    DuplicateMigrationError,
    LedgerAccessError,
    LedgerUpdateError,
    MigrationExecutionError,
    ScriptParseError,
    SourceError,
    SqlMigrateError,
    StatementExecutionError,
    TransactionBeginError,
    UnknownMigrationError,
    UnknownTargetError,
)
from sqlmigrate.executor import Executor
from sqlmigrate.models import (
    Direction,
    Migration,
    MigrationRecord,
    MigrationStatus,
    PlannedMigration,
)
from sqlmigrate.planner import plan_migrations, to_apply
from sqlmigrate.sources import (
    AssetMigrationSource,
    FileMigrationSource,
    MemoryMigrationSource,
    MigrationSource,
    PackageMigrationSource,
    parse_migration,
)

__version__ = "0.1.0"

__all__ = [
    "DIALECTS",
    "AssetMigrationSource",
    "CommitError",
    "ConfigurationError",
    "Dialect",
    "Direction",
    "DuplicateMigrationError",
    "Executor",
    "FileMigrationSource",
    "Ledger",
    "LedgerAccessError",
    "LedgerUpdateError",
    "MemoryMigrationSource",
    "Migration",
    "MigrationExecutionError",
    "MigrationRecord",
    "MigrationSource",
    "MigrationStatus",
    "Migrator",
    "PackageMigrationSource",
    "PlannedMigration",
    "ScriptParseError",
    "SourceError",
    "SqlMigrateError",
    "SqlMigrateSettings",
    "StatementExecutionError",
    "TransactionBeginError",
    "UnknownMigrationError",
    "UnknownTargetError",
    "__version__",
    "exec_max",
    "exec_migrations",
    "get_dialect",
    "get_logger",
    "get_migration_records",
    "get_settings",
    "parse_migration",
    "plan_migration",
    "plan_migrations",
    "to_apply",
]
