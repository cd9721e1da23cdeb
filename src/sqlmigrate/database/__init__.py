"""Datastore access: dialects, the migration ledger and SQLite connections."""

from sqlmigrate.database.dialects import DIALECTS, Dialect, get_dialect
from sqlmigrate.database.ledger import DEFAULT_TABLE_NAME, Ledger

__all__ = [
    "DEFAULT_TABLE_NAME",
    "DIALECTS",
    "Dialect",
    "Ledger",
    "get_dialect",
]
