"""Table output formatter for CLI."""

import io
from typing import Any

from rich.console import Console
from rich.table import Table

from sqlmigrate.cli.formatters.base import OutputFormat, OutputFormatter


class TableFormatter(OutputFormatter[list[dict[str, Any]]]):
    """Formatter for tabular data output."""

    def __init__(self, console: Console | None = None, title: str | None = None):
        super().__init__(console)
        self.title = title

    def format(
        self, data: list[dict[str, Any]], format_type: OutputFormat = OutputFormat.TABLE
    ) -> str:
        """Format tabular data.

        Args:
            data: List of dictionaries to format as table
            format_type: Output format type

        Returns:
            Formatted string
        """
        if not data:
            return "No data to display"

        if format_type == OutputFormat.TEXT:
            return self._format_text(data)
        return self._format_table(data)

    def print(
        self, data: list[dict[str, Any]], format_type: OutputFormat = OutputFormat.TEXT
    ) -> None:
        """Print tables through the console so they fit its width."""
        if data and format_type == OutputFormat.TABLE:
            self.console.print(self._build_table(data))
        else:
            super().print(data, format_type)

    def _build_table(self, data: list[dict[str, Any]]) -> Table:
        columns = list(data[0].keys())

        table = Table(title=self.title, show_header=True, header_style="bold magenta")
        for col in columns:
            table.add_column(col.replace("_", " ").title())

        for row in data:
            table.add_row(*[str(row.get(col, "")) for col in columns])
        return table

    def _format_table(self, data: list[dict[str, Any]]) -> str:
        """Format as Rich table."""
        string_io = io.StringIO()
        temp_console = Console(file=string_io, force_terminal=True)
        temp_console.print(self._build_table(data))
        return string_io.getvalue()

    def _format_text(self, data: list[dict[str, Any]]) -> str:
        """Format as one tab separated line per row."""
        return "\n".join(
            "\t".join(str(value) for value in row.values()) for row in data
        )
