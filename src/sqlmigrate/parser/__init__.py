"""Parsing of annotated SQL migration scripts."""

from sqlmigrate.parser.sql_splitter import (
    DIRECTIVE_PREFIX,
    split_migration_script,
    split_sql_statements,
)

__all__ = [
    "DIRECTIVE_PREFIX",
    "split_migration_script",
    "split_sql_statements",
]
