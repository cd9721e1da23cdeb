"""Migration sources.

A source produces the complete, unordered set of migration definitions it
knows about. Ordering is imposed later by the planner.
"""

from __future__ import annotations

import posixpath
from abc import ABC, abstractmethod
from collections.abc import Callable, Iterable
from importlib import resources
from pathlib import Path

from sqlmigrate.config import get_logger
from sqlmigrate.exceptions import ScriptParseError, SourceError
from sqlmigrate.models import Migration
from sqlmigrate.parser import split_migration_script

logger = get_logger(__name__)

MIGRATION_SUFFIX = ".sql"


def parse_migration(migration_id: str, text: str) -> Migration:
    """Build a migration from the text of an annotated SQL script.

    Args:
        migration_id: Id to give the migration (usually the file name)
        text: Script text using the ``-- +migrate`` directives

    Returns:
        Parsed migration

    Raises:
        ScriptParseError: If the script is malformed
    """
    try:
        up, down = split_migration_script(text)
    except ScriptParseError as e:
        details = dict(e.details or {})
        details["migration"] = migration_id
        raise ScriptParseError(
            message=f"Cannot parse migration {migration_id}: {e.message}",
            hint=e.hint,
            details=details,
        ) from e

    return Migration(id=migration_id, up=tuple(up), down=tuple(down))


class MigrationSource(ABC):
    """Base class for anything that can list migration definitions."""

    @abstractmethod
    def find_migrations(self) -> list[Migration]:
        """Return every migration known to this source.

        Raises:
            SourceError: If the underlying storage cannot be read
        """


class MemoryMigrationSource(MigrationSource):
    """A hardcoded set of migrations held in memory."""

    def __init__(self, migrations: Iterable[Migration]) -> None:
        self.migrations = list(migrations)

    def find_migrations(self) -> list[Migration]:
        return list(self.migrations)


class FileMigrationSource(MigrationSource):
    """Migrations loaded from the ``.sql`` files of a directory."""

    def __init__(self, directory: str | Path) -> None:
        """Initialize file source.

        Args:
            directory: Directory holding the migration scripts
        """
        self.directory = Path(directory)

    def find_migrations(self) -> list[Migration]:
        try:
            paths = sorted(self.directory.iterdir())
        except OSError as e:
            raise SourceError(
                message=f"Cannot read migrations directory {self.directory}: {e}",
                hint="Check that the directory exists and is readable",
                details={"directory": str(self.directory)},
            ) from e

        migrations = []
        for path in paths:
            if path.suffix != MIGRATION_SUFFIX or not path.is_file():
                continue
            try:
                text = path.read_text(encoding="utf-8")
            except (OSError, UnicodeDecodeError) as e:
                raise SourceError(
                    message=f"Cannot read migration file {path.name}: {e}",
                    details={"file": str(path)},
                ) from e
            migrations.append(parse_migration(path.name, text))

        logger.debug(
            "Loaded migrations from directory",
            directory=str(self.directory),
            count=len(migrations),
        )
        return migrations


class AssetMigrationSource(MigrationSource):
    """Migrations read from an asset bundle through two callables.

    ``asset_dir(directory)`` lists the file names of a bundle directory and
    ``asset(path)`` returns the bytes stored at ``path``.
    """

    def __init__(
        self,
        asset: Callable[[str], bytes],
        asset_dir: Callable[[str], list[str]],
        directory: str = "",
    ) -> None:
        self.asset = asset
        self.asset_dir = asset_dir
        self.directory = directory

    def find_migrations(self) -> list[Migration]:
        try:
            names = self.asset_dir(self.directory)
        except Exception as e:
            raise SourceError(
                message=f"Cannot list asset directory '{self.directory}': {e}",
                details={"directory": self.directory},
            ) from e

        migrations = []
        for name in names:
            if not name.endswith(MIGRATION_SUFFIX):
                continue
            path = posixpath.join(self.directory, name)
            try:
                text = self.asset(path).decode("utf-8")
            except Exception as e:
                raise SourceError(
                    message=f"Cannot read migration asset {path}: {e}",
                    details={"asset": path},
                ) from e
            migrations.append(parse_migration(name, text))

        return migrations


class PackageMigrationSource(MigrationSource):
    """Migrations shipped as resources inside an importable Python package."""

    def __init__(self, package: str, directory: str = "") -> None:
        """Initialize package source.

        Args:
            package: Dotted name of the package holding the scripts
            directory: Optional sub-directory inside the package
        """
        self.package = package
        self.directory = directory

    def _asset_dir(self, directory: str) -> list[str]:
        root = resources.files(self.package)
        if directory:
            root = root.joinpath(directory)
        return sorted(entry.name for entry in root.iterdir() if entry.is_file())

    def _asset(self, path: str) -> bytes:
        return resources.files(self.package).joinpath(path).read_bytes()

    def find_migrations(self) -> list[Migration]:
        return AssetMigrationSource(
            asset=self._asset,
            asset_dir=self._asset_dir,
            directory=self.directory,
        ).find_migrations()
