"""Main entry point for the sqlmigrate CLI when run as a module."""

from sqlmigrate.cli.main import main

if __name__ == "__main__":  # pragma: no cover
    main()
