"""Custom exception hierarchy for sqlmigrate with helpful error messages."""

from __future__ import annotations

from typing import Any


class SqlMigrateError(Exception):
    """Base exception with helpful formatting for all sqlmigrate errors.

    Provides structured error messages with hints and details to help users
    understand and fix problems.
    """

    def __init__(
        self,
        message: str,
        hint: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize exception with structured error information.

        Args:
            message: Primary error message describing what went wrong
            hint: Optional hint suggesting how to fix the problem
            details: Optional dictionary with additional debugging information
        """
        self.message = message
        self.hint = hint
        self.details = details
        super().__init__(self.format_error())

    def format_error(self) -> str:
        """Format the error message with hint and details.

        Returns:
            Formatted error string with all available information
        """
        output = f"Error: {self.message}"
        if self.hint:
            output += f"\nHint: {self.hint}"
        if self.details:
            details_str = "\n".join(
                f"  {key}: {value}" for key, value in self.details.items()
            )
            output += f"\nDetails:\n{details_str}"
        return output


class ConfigurationError(SqlMigrateError):
    """Configuration errors including invalid settings and missing config files."""

    pass


class SourceError(SqlMigrateError):
    """Listing or reading migration definitions failed."""

    pass


class ScriptParseError(SourceError):
    """A migration script could not be split into up and down statements."""

    pass


class DuplicateMigrationError(SourceError):
    """Two or more migration definitions share the same id."""

    def __init__(self, duplicates: list[str]) -> None:
        """Initialize with the duplicated ids.

        Args:
            duplicates: Sorted list of ids that occur more than once
        """
        self.duplicates = duplicates
        super().__init__(
            message=f"Duplicate migration ids: {', '.join(duplicates)}",
            hint="Every migration needs a unique, sortable id",
            details={"duplicates": duplicates},
        )


class UnknownTargetError(SqlMigrateError):
    """The requested datastore dialect is not supported."""

    pass


class LedgerAccessError(SqlMigrateError):
    """Creating or querying the migration ledger table failed."""

    pass


class UnknownMigrationError(SqlMigrateError):
    """The ledger watermark does not match any known migration."""

    pass


class MigrationExecutionError(SqlMigrateError):
    """Base error for failures while applying a plan.

    Carries the number of migrations that were fully committed before the
    failure, so callers can report partial progress.
    """

    def __init__(
        self,
        message: str,
        applied: int,
        migration_id: str,
        original_error: Exception | None = None,
    ) -> None:
        """Initialize execution error.

        Args:
            message: Error message
            applied: Number of migrations committed before the failure
            migration_id: Id of the migration that failed
            original_error: The driver exception that caused this error
        """
        self.applied = applied
        self.migration_id = migration_id
        self.original_error = original_error

        details: dict[str, Any] = {
            "migration": migration_id,
            "applied": applied,
        }
        if original_error:
            details["original_error"] = (
                f"{type(original_error).__name__}: {original_error}"
            )

        super().__init__(
            message=message,
            hint="Fix the failing migration and run the command again",
            details=details,
        )


class TransactionBeginError(MigrationExecutionError):
    """Opening the per-migration transaction failed."""

    pass


class StatementExecutionError(MigrationExecutionError):
    """A statement inside a migration failed."""

    pass


class LedgerUpdateError(MigrationExecutionError):
    """Recording or removing the ledger entry failed."""

    pass


class CommitError(MigrationExecutionError):
    """Committing the migration transaction failed."""

    pass


def check_config_keys(config: dict[str, Any]) -> None:
    """Check for common configuration mistakes.

    Args:
        config: Configuration dictionary to validate

    Raises:
        ConfigurationError: With hints about correct configuration keys
    """
    wrong_keys = {
        "db_path": "database_path",
        "db": "database_path",
        "dir": "migrations_dir",
        "table": "table_name",
    }

    for wrong, correct in wrong_keys.items():
        if wrong in config:
            raise ConfigurationError(
                message=f"Invalid configuration key '{wrong}'",
                hint=f"Use '{correct}' instead of '{wrong}'",
                details={
                    "found_keys": list(config.keys()),
                    "invalid_key": wrong,
                    "correct_key": correct,
                },
            )
