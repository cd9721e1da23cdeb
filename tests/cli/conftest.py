"""CLI test fixtures with ANSI stripping."""

import json
import logging
import re
from pathlib import Path
from typing import Any

import pytest
from typer.testing import CliRunner, Result

from sqlmigrate.cli.main import app

_ANSI_ESCAPE = re.compile(r"\x1b\[[0-9;]*[A-Za-z]")

CREATE_PEOPLE = """\
-- +migrate Up
CREATE TABLE people (id int, name text);

-- +migrate Down
DROP TABLE people;
"""

ADD_EMAIL = """\
-- +migrate Up
ALTER TABLE people ADD email text;

-- +migrate Down
ALTER TABLE people DROP COLUMN email;
"""


def strip_ansi_codes(text: str) -> str:
    """Strip ANSI escape sequences from text."""
    return _ANSI_ESCAPE.sub("", text)


class CleanResult:
    """A CliRunner result whose output has ANSI codes removed."""

    def __init__(self, result: Result):
        self._result = result

    @property
    def exit_code(self) -> int:
        return self._result.exit_code

    @property
    def output(self) -> str:
        return strip_ansi_codes(self._result.output)

    @property
    def stdout(self) -> str:
        return strip_ansi_codes(self._result.stdout)

    def __contains__(self, text: str) -> bool:
        return text in self.output

    def parse_json(self) -> Any:
        """Parse stdout as JSON."""
        try:
            return json.loads(self.stdout)
        except json.JSONDecodeError as e:
            raise AssertionError(
                f"Failed to parse output as JSON: {e}\nOutput: {self.stdout}"
            ) from e


@pytest.fixture(autouse=True)
def restore_root_handlers():
    """Undo logging reconfiguration done by --verbose and --debug."""
    root_logger = logging.getLogger()
    original_level = root_logger.level
    original_handlers = root_logger.handlers.copy()

    yield

    for handler in root_logger.handlers.copy():
        root_logger.removeHandler(handler)
    for handler in original_handlers:
        root_logger.addHandler(handler)
    root_logger.setLevel(original_level)


@pytest.fixture
def cli_invoke():
    """Invoke the sqlmigrate CLI and return a cleaned result."""
    runner = CliRunner()

    def invoke(*args: str) -> CleanResult:
        return CleanResult(runner.invoke(app, list(args)))

    return invoke


@pytest.fixture
def migrations_dir() -> Path:
    """The configured migrations directory with two scripts."""
    directory = Path.cwd() / "migrations"
    directory.mkdir()
    (directory / "001_people.sql").write_text(CREATE_PEOPLE, encoding="utf-8")
    (directory / "002_email.sql").write_text(ADD_EMAIL, encoding="utf-8")
    return directory


@pytest.fixture
def database() -> Path:
    """The configured database path."""
    return Path.cwd() / "test.db"
