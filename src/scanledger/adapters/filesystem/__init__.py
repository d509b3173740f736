"""JSON-file persistence for the entry log."""

from __future__ import annotations

from .schema import EntryDocument, ScanDocument, decode_history, encode_history
from .store import JsonFileEntryStore

__all__ = [
    "EntryDocument",
    "JsonFileEntryStore",
    "ScanDocument",
    "decode_history",
    "encode_history",
]
