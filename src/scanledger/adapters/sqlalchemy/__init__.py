"""SQLite persistence for the entry log."""

from __future__ import annotations

from .store import SqlAlchemyEntryStore
from .tables import UTCDateTime, create_schema, entries_table, metadata, scans_table

__all__ = [
    "SqlAlchemyEntryStore",
    "UTCDateTime",
    "create_schema",
    "entries_table",
    "metadata",
    "scans_table",
]
