"""Output formatters for the sqlmigrate CLI."""

from __future__ import annotations

from sqlmigrate.cli.formatters.base import OutputFormat, OutputFormatter
from sqlmigrate.cli.formatters.json_formatter import JsonFormatter
from sqlmigrate.cli.formatters.table_formatter import TableFormatter

__all__ = [
    "JsonFormatter",
    "OutputFormat",
    "OutputFormatter",
    "TableFormatter",
]
