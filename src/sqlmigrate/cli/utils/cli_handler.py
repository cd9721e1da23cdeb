"""Unified CLI handler for standardized error handling and output."""

from typing import Any

import typer
from rich.console import Console
from rich.markup import escape

from sqlmigrate.cli.formatters.json_formatter import JsonFormatter
from sqlmigrate.config import get_logger
from sqlmigrate.exceptions import MigrationExecutionError, SqlMigrateError

logger = get_logger(__name__)


class CLIHandler:
    """Unified handler for CLI commands."""

    def __init__(self, console: Console | None = None) -> None:
        """Initialize CLI handler.

        Args:
            console: Rich console for output
        """
        self.console = console or Console()
        self.json_formatter = JsonFormatter()

    def handle_error(
        self, error: Exception, json_output: bool = False, exit_code: int = 1
    ) -> None:
        """Handle and display errors consistently.

        Partial progress carried by execution errors is reported too.

        Args:
            error: Exception to handle
            json_output: Whether to output JSON
            exit_code: Exit code to use

        Raises:
            typer.Exit: Always, with ``exit_code``
        """
        error_msg = error.message if isinstance(error, SqlMigrateError) else str(error)
        logger.error("Command failed", error=error_msg, exc_info=error)

        applied = error.applied if isinstance(error, MigrationExecutionError) else None

        if json_output:
            data = {"applied": applied} if applied is not None else None
            print(self.json_formatter.format_error_response(error_msg, exit_code, data))
        else:
            if applied is not None:
                self.console.print(
                    f"[yellow]Applied {applied} migration(s) "
                    "before the failure[/yellow]"
                )
            self.console.print(f"[red]Error: {escape(error_msg)}[/red]")
            if isinstance(error, SqlMigrateError) and error.hint:
                self.console.print(f"[dim]Hint: {escape(error.hint)}[/dim]")

        raise typer.Exit(exit_code)

    def handle_success(
        self, message: str, data: Any = None, json_output: bool = False
    ) -> None:
        """Handle success responses consistently.

        Args:
            message: Success message
            data: Optional data to include
            json_output: Whether to output JSON
        """
        if json_output:
            print(self.json_formatter.format_success(message, data))
        else:
            self.console.print(f"[green]{message}[/green]")
