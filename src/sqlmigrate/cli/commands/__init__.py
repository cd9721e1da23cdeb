"""sqlmigrate CLI commands."""

from __future__ import annotations

from sqlmigrate.cli.commands.migrate import (
    down_command,
    plan_command,
    status_command,
    up_command,
)

__all__ = [
    "down_command",
    "plan_command",
    "status_command",
    "up_command",
]
