"""Local ingest: fold one classification result into the entry log.

The function here is pure. :class:`scanledger.domain.history.ScanHistory`
owns serialization and persistence around it.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from scanledger.domain.keys import SimilarityProfile, day_key, is_duplicate
from scanledger.domain.model import Entry, Scan

if TYPE_CHECKING:
    from collections.abc import Sequence
    from datetime import datetime, tzinfo

    from scanledger.domain.model import ClassificationResult, RecycleStatus, ScanSource

log = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Added:
    entry: Entry


@dataclass(frozen=True, slots=True)
class MergedAsDuplicate:
    entry: Entry


type IngestResult = Added | MergedAsDuplicate


def find_duplicate(
    entries: Sequence[Entry],
    result: ClassificationResult,
    *,
    at: datetime,
    tz: tzinfo | None = None,
) -> int | None:
    """Index of the first entry on the same local day that ``result`` duplicates."""

    incoming = SimilarityProfile.of(result.item, result.material)
    target_day = day_key(at, tz=tz)
    for index, entry in enumerate(entries):
        if entry.day_key(tz=tz) != target_day:
            continue
        if is_duplicate(entry.similarity(), incoming):
            return index
    return None


def ingest(
    entries: Sequence[Entry],
    result: ClassificationResult,
    *,
    source: ScanSource,
    at: datetime,
    raw_payload: str = "",
    local_image_path: str | None = None,
    status: RecycleStatus | None = None,
    tz: tzinfo | None = None,
) -> tuple[list[Entry], IngestResult]:
    """Return the new log (most recent first) and what happened to ``result``.

    ``entries`` is expected in log order, most recently touched first; the
    first matching entry wins.
    """

    scan = Scan.from_result(
        result,
        date=at,
        source=source,
        raw_payload=raw_payload,
        local_image_path=local_image_path,
    )
    remaining = list(entries)
    index = find_duplicate(remaining, result, at=at, tz=tz)
    if index is None:
        entry = Entry.start(scan, status=status)
        log.debug("New entry %s for %r", entry.id, result.item)
        return [entry, *remaining], Added(entry)

    existing = remaining.pop(index)
    entry = existing.record_scan(scan, status=status)
    log.debug(
        "Merged %r into entry %s (scan_count=%s)", result.item, entry.id, entry.scan_count
    )
    return [entry, *remaining], MergedAsDuplicate(entry)
