"""Main CLI entry point."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console

from sqlmigrate import __version__
from sqlmigrate.cli.commands import (
    down_command,
    plan_command,
    status_command,
    up_command,
)
from sqlmigrate.cli.formatters.json_formatter import JsonFormatter
from sqlmigrate.cli.utils.cli_handler import CLIHandler
from sqlmigrate.config import (
    SqlMigrateSettings,
    configure_logging,
    get_logger,
    get_settings,
    set_settings,
)

logger = get_logger(__name__)
console = Console()

app = typer.Typer(
    name="sqlmigrate",
    help="Apply ordered, reversible SQL schema migrations",
    pretty_exceptions_enable=False,
    add_completion=False,
    rich_markup_mode="rich",
)

app.command(name="up")(up_command)
app.command(name="down")(down_command)
app.command(name="plan")(plan_command)
app.command(name="status")(status_command)


@app.command()
def version(
    json_output: Annotated[bool, typer.Option("--json", help="Output as JSON")] = False,
) -> None:
    """Show sqlmigrate version."""
    if json_output:
        print(JsonFormatter().format({"name": "sqlmigrate", "version": __version__}))
    else:
        console.print(f"sqlmigrate v{__version__}")


@app.callback()
def main_callback(
    config: Annotated[
        Path | None,
        typer.Option(
            "--config",
            "-c",
            help="Path to configuration file (YAML, TOML, or JSON)",
            envvar="SQLMIGRATE_CONFIG",
        ),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Enable verbose logging (INFO level)"),
    ] = False,
    debug: Annotated[
        bool,
        typer.Option("--debug", help="Enable debug logging"),
    ] = False,
) -> None:
    """Configure global options."""
    if config:
        try:
            if not config.is_file():
                raise FileNotFoundError(f"Config file not found: {config}")
            settings = SqlMigrateSettings.from_multiple_sources(config_files=[config])
            set_settings(settings)
            logger.debug("Loaded configuration", config=str(config))
        except Exception as e:
            CLIHandler(console).handle_error(e)

    if debug:
        _override_logging(log_level="DEBUG", debug=True)
        logger.debug("Debug mode enabled")
    elif verbose:
        _override_logging(log_level="INFO")
        logger.info("Verbose mode enabled")


def _override_logging(**overrides: object) -> None:
    """Replace the global settings with logging overrides and reconfigure."""
    data = get_settings().model_dump()
    data.update(overrides)
    settings = SqlMigrateSettings(**data)
    set_settings(settings)
    configure_logging(settings)


def main() -> None:
    """Main CLI entry point."""
    app()


if __name__ == "__main__":
    main()
