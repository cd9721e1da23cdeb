"""Splitter for annotated SQL migration scripts.

A script is divided into sections by directive comments::

    -- +migrate Up
    CREATE TABLE people (id int);

    -- +migrate Down
    DROP TABLE people;

Statements end on a line whose last word (ignoring trailing ``--``
comments) ends with a semicolon. Statements that contain semicolons of
their own, such as trigger or function bodies, are wrapped in
``-- +migrate StatementBegin`` / ``-- +migrate StatementEnd``.
"""

from __future__ import annotations

from sqlmigrate.exceptions import ScriptParseError
from sqlmigrate.models import Direction

DIRECTIVE_PREFIX = "-- +migrate"

_UP = "Up"
_DOWN = "Down"
_STATEMENT_BEGIN = "StatementBegin"
_STATEMENT_END = "StatementEnd"


def _ends_with_semicolon(line: str) -> bool:
    """Check whether a line terminates a statement.

    Trailing ``--`` comments are ignored, so ``SELECT 1; -- done`` counts.
    """
    last_word = ""
    for word in line.split():
        if word.startswith("--"):
            break
        last_word = word
    return last_word.endswith(";")


def _parse_directive(line: str, line_number: int) -> str:
    """Return the directive keyword of a ``-- +migrate`` line."""
    words = line[len(DIRECTIVE_PREFIX) :].split()
    if not words:
        raise ScriptParseError(
            message=f"Empty migration directive on line {line_number}",
            hint=f"Use '{DIRECTIVE_PREFIX} Up' or '{DIRECTIVE_PREFIX} Down'",
            details={"line": line_number},
        )
    keyword = words[0]
    if keyword not in (_UP, _DOWN, _STATEMENT_BEGIN, _STATEMENT_END):
        raise ScriptParseError(
            message=f"Unknown migration directive '{keyword}' on line {line_number}",
            hint="Supported directives: Up, Down, StatementBegin, StatementEnd",
            details={"line": line_number, "directive": keyword},
        )
    return keyword


def split_migration_script(text: str) -> tuple[list[str], list[str]]:
    """Split a migration script into its up and down statements.

    Args:
        text: Full text of the migration script

    Returns:
        Tuple of (up statements, down statements), each in script order

    Raises:
        ScriptParseError: If the script is malformed
    """
    sections: dict[str, list[str]] = {_UP: [], _DOWN: []}
    current: str | None = None
    seen_section = False

    buffer: list[str] = []
    buffer_start = 0
    in_block = False
    block_start = 0

    for line_number, raw_line in enumerate(text.splitlines(), start=1):
        line = raw_line.rstrip()
        stripped = line.strip()

        if stripped.startswith(DIRECTIVE_PREFIX):
            directive = _parse_directive(stripped, line_number)

            if directive in (_UP, _DOWN):
                if in_block:
                    raise ScriptParseError(
                        message=(
                            f"Section directive on line {line_number} inside "
                            f"StatementBegin block opened on line {block_start}"
                        ),
                        hint=f"Close the block with '{DIRECTIVE_PREFIX} StatementEnd'",
                        details={"line": line_number},
                    )
                if buffer:
                    raise ScriptParseError(
                        message=(
                            f"Unterminated statement starting on line {buffer_start}"
                        ),
                        hint="End the statement with a semicolon",
                        details={"line": buffer_start},
                    )
                current = directive
                seen_section = True
            elif directive == _STATEMENT_BEGIN:
                if in_block:
                    raise ScriptParseError(
                        message=f"Nested StatementBegin on line {line_number}",
                        details={"line": line_number, "opened_on": block_start},
                    )
                in_block = True
                block_start = line_number
            else:
                if not in_block:
                    raise ScriptParseError(
                        message=(
                            f"StatementEnd without StatementBegin on line {line_number}"
                        ),
                        details={"line": line_number},
                    )
                in_block = False
                if current is not None and buffer:
                    sections[current].append("\n".join(buffer).strip())
                buffer = []
            continue

        if current is None:
            # Anything before the first section directive is ignored
            continue

        if not in_block and (not stripped or stripped.startswith("--")):
            if not buffer:
                continue

        if not buffer:
            buffer_start = line_number
        buffer.append(line)

        if not in_block and _ends_with_semicolon(line):
            sections[current].append("\n".join(buffer).strip())
            buffer = []

    if in_block:
        raise ScriptParseError(
            message=f"StatementBegin on line {block_start} is never closed",
            hint=f"Add '{DIRECTIVE_PREFIX} StatementEnd' after the statement",
            details={"line": block_start},
        )
    if buffer:
        raise ScriptParseError(
            message=f"Unterminated statement starting on line {buffer_start}",
            hint="End the statement with a semicolon",
            details={"line": buffer_start},
        )
    if not seen_section:
        raise ScriptParseError(
            message=(
                f"No '{DIRECTIVE_PREFIX} Up' or '{DIRECTIVE_PREFIX} Down' "
                "directive found"
            ),
            hint=(
                f"Start the forward section with '{DIRECTIVE_PREFIX} Up' and "
                f"the reverse section with '{DIRECTIVE_PREFIX} Down'"
            ),
        )

    return sections[_UP], sections[_DOWN]


def split_sql_statements(text: str, direction: Direction) -> list[str]:
    """Return the statements of one section of a migration script.

    Args:
        text: Full text of the migration script
        direction: Which section to return

    Returns:
        Statements of the requested section, in script order
    """
    up, down = split_migration_script(text)
    if direction is Direction.UP:
        return up
    return down
