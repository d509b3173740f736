"""Domain model for the scan history."""

from __future__ import annotations

from .classification import ClassificationResult
from .entry import Entry, status_for
from .enums import RecycleStatus, ScanSource, merge_source, merge_status
from .remote import RemoteRecord
from .scan import Scan, new_id

__all__ = [
    "ClassificationResult",
    "Entry",
    "RecycleStatus",
    "RemoteRecord",
    "Scan",
    "ScanSource",
    "merge_source",
    "merge_status",
    "new_id",
    "status_for",
]
