"""Deterministic choice between two entries that claim the same key."""

from __future__ import annotations

from typing import TYPE_CHECKING

from scanledger.domain.model import ScanSource

if TYPE_CHECKING:
    from datetime import datetime

    from scanledger.domain.model import Entry


def preference_rank(entry: Entry) -> tuple[int, int, int, int, datetime, float]:
    """Sort key, highest first: status, photo source, local image, scans, date, carbon."""

    return (
        entry.recycle_status.rank,
        1 if entry.source is ScanSource.PHOTO else 0,
        1 if entry.has_local_image else 0,
        entry.scan_count,
        entry.date,
        entry.carbon_saved_kg,
    )


def preferred_entry(lhs: Entry, rhs: Entry) -> Entry:
    """Return the entry to keep; ``lhs`` wins a full tie."""

    return rhs if preference_rank(rhs) > preference_rank(lhs) else lhs
