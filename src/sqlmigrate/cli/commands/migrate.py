"""CLI commands that plan, apply and report migrations."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated, Any

import typer
from rich.console import Console

from sqlmigrate.api import Migrator
from sqlmigrate.cli.formatters import JsonFormatter, OutputFormat, TableFormatter
from sqlmigrate.cli.utils.cli_handler import CLIHandler
from sqlmigrate.config import SqlMigrateSettings, get_logger, get_settings_for_cli
from sqlmigrate.database.connection import open_connection
from sqlmigrate.models import Direction, PlannedMigration

logger = get_logger(__name__)
console = Console()

DbOption = Annotated[
    Path | None,
    typer.Option("--db", help="Path to the SQLite database"),
]
DirOption = Annotated[
    Path | None,
    typer.Option("--dir", "-d", help="Directory containing .sql migrations"),
]
TableOption = Annotated[
    str | None,
    typer.Option("--table", help="Name of the migration ledger table"),
]
LimitOption = Annotated[
    int,
    typer.Option(
        "--limit",
        "-n",
        min=0,
        help="Apply at most this many migrations (0 = no limit)",
    ),
]
DryRunOption = Annotated[
    bool,
    typer.Option("--dry-run", help="Show the plan without applying it"),
]
JsonOption = Annotated[bool, typer.Option("--json", help="Output as JSON")]


def _load_settings(
    db: Path | None, directory: Path | None, table: str | None
) -> SqlMigrateSettings:
    return get_settings_for_cli(
        cli_overrides={
            "database_path": db,
            "migrations_dir": directory,
            "table_name": table,
        }
    )


def _plan_rows(planned: list[PlannedMigration]) -> list[dict[str, Any]]:
    return [
        {"migration": item.id, "statements": len(item.queries)} for item in planned
    ]


def _run(
    direction: Direction,
    limit: int,
    dry_run: bool,
    db: Path | None,
    directory: Path | None,
    table: str | None,
    json_output: bool,
) -> None:
    handler = CLIHandler(console)

    try:
        settings = _load_settings(db, directory, table)
        with open_connection(settings) as conn:
            migrator = Migrator.from_settings(conn, settings)

            if dry_run:
                planned = migrator.plan(direction, limit)
                _print_plan(planned, direction, json_output)
                return

            applied = migrator.apply(direction, limit)
    except Exception as e:
        handler.handle_error(e, json_output)
        return

    verb = "Applied" if direction is Direction.UP else "Reverted"
    handler.handle_success(
        f"{verb} {applied} migration(s)",
        data={"applied": applied, "direction": direction.value},
        json_output=json_output,
    )


def _print_plan(
    planned: list[PlannedMigration], direction: Direction, json_output: bool
) -> None:
    if json_output:
        print(
            JsonFormatter().format(
                [
                    {"migration": item.id, "queries": list(item.queries)}
                    for item in planned
                ]
            )
        )
        return

    if not planned:
        console.print(f"[green]No migrations to apply ({direction.value})[/green]")
        return

    TableFormatter(console, title=f"Plan ({direction.value})").print(
        _plan_rows(planned), OutputFormat.TABLE
    )


def up_command(
    limit: LimitOption = 0,
    dry_run: DryRunOption = False,
    db: DbOption = None,
    directory: DirOption = None,
    table: TableOption = None,
    json_output: JsonOption = False,
) -> None:
    """Apply pending migrations, oldest first."""
    _run(Direction.UP, limit, dry_run, db, directory, table, json_output)


def down_command(
    limit: Annotated[
        int,
        typer.Option(
            "--limit",
            "-n",
            min=0,
            help="Revert at most this many migrations (0 = all applied)",
        ),
    ] = 1,
    dry_run: DryRunOption = False,
    db: DbOption = None,
    directory: DirOption = None,
    table: TableOption = None,
    json_output: JsonOption = False,
) -> None:
    """Revert applied migrations, newest first.

    Reverts a single migration unless --limit says otherwise.
    """
    _run(Direction.DOWN, limit, dry_run, db, directory, table, json_output)


def plan_command(
    direction: Annotated[
        Direction,
        typer.Argument(help="Direction to plan for", case_sensitive=False),
    ] = Direction.UP,
    limit: LimitOption = 0,
    db: DbOption = None,
    directory: DirOption = None,
    table: TableOption = None,
    json_output: JsonOption = False,
) -> None:
    """Show which migrations would run, without touching the database."""
    _run(direction, limit, True, db, directory, table, json_output)


def status_command(
    db: DbOption = None,
    directory: DirOption = None,
    table: TableOption = None,
    json_output: JsonOption = False,
) -> None:
    """Show every migration and when it was applied."""
    handler = CLIHandler(console)

    try:
        settings = _load_settings(db, directory, table)
        with open_connection(settings) as conn:
            rows = Migrator.from_settings(conn, settings).status()
    except Exception as e:
        handler.handle_error(e, json_output)
        return

    if json_output:
        print(JsonFormatter().format(rows))
        return

    if not rows:
        console.print("[yellow]No migrations found[/yellow]")
        return

    table_rows = [
        {
            "migration": row.id,
            "applied": row.applied_at.isoformat() if row.applied_at else "no",
            "note": "missing definition" if row.missing_definition else "",
        }
        for row in rows
    ]
    TableFormatter(console, title="Migrations").print(table_rows, OutputFormat.TABLE)
