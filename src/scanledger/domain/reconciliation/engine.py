"""Batch reconciliation of the local log against the remote impact log.

The engine is pure: it takes a snapshot of local entries plus a batch of
remote rows and returns the complete replacement log, newest first. It never
raises for malformed rows. Unparseable or out-of-range timestamps fall back
to ``now`` and empty fields are treated as unknown. A row that matches
nothing becomes a new entry rather than being dropped.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import TYPE_CHECKING

from scanledger.domain.carbon import DEFAULT_CARBON_POLICY, clamp_kg
from scanledger.domain.keys import SimilarityProfile, day_key, item_key
from scanledger.domain.model import Entry, RecycleStatus, Scan, ScanSource
from scanledger.domain.timestamps import parse_scanned_at, utcnow

from .matching import best_fuzzy_match
from .preference import preferred_entry

if TYPE_CHECKING:
    from collections.abc import Iterable
    from datetime import datetime, tzinfo

    from scanledger.domain.carbon import CarbonPolicy
    from scanledger.domain.model import RemoteRecord
    from scanledger.domain.timestamps import Clock

    from .contracts import EntryKey

log = logging.getLogger(__name__)


def remote_status(record: RemoteRecord) -> RecycleStatus:
    if not record.recyclable:
        return RecycleStatus.NON_RECYCLABLE
    if record.points > 0:
        return RecycleStatus.RECYCLED
    return RecycleStatus.MARKED_FOR_RECYCLE


@dataclass(frozen=True, slots=True)
class ResolvedRecord:
    """A remote row with its keys, date, status and carbon worked out."""

    record: RemoteRecord
    date: datetime
    key: EntryKey
    status: RecycleStatus
    carbon_saved_kg: float
    profile: SimilarityProfile

    @property
    def day(self) -> str:
        return self.key[0]

    @property
    def item_key(self) -> str:
        return self.key[1]


def _bucketed(value: datetime | None, *, tz: tzinfo | None) -> tuple[datetime, str] | None:
    if value is None:
        return None
    try:
        return value, day_key(value, tz=tz)
    except OverflowError:
        return None


def resolve_record(
    record: RemoteRecord,
    *,
    now: datetime,
    carbon_policy: CarbonPolicy = DEFAULT_CARBON_POLICY,
    tz: tzinfo | None = None,
) -> ResolvedRecord:
    bucketed = _bucketed(parse_scanned_at(record.scanned_at), tz=tz)
    if bucketed is None:
        log.warning(
            "Unusable scanned_at %r for remote row %s; using now",
            record.scanned_at,
            record.row_id or record.item_key,
        )
        bucketed = (now, day_key(now, tz=tz))
    date, day = bucketed
    return ResolvedRecord(
        record=record,
        date=date,
        key=(day, item_key(record.item, record.material, record.bin)),
        status=remote_status(record),
        carbon_saved_kg=clamp_kg(carbon_policy.points_to_kg(record.points)),
        profile=SimilarityProfile.of(record.item, record.material),
    )


def entry_key(entry: Entry, *, tz: tzinfo | None = None) -> EntryKey:
    return (entry.day_key(tz=tz), entry.item_key())


def group_local_entries(
    entries: Iterable[Entry], *, tz: tzinfo | None = None
) -> dict[EntryKey, Entry]:
    """Collapse entries sharing a (day, item) key using the preference ranking."""

    grouped: dict[EntryKey, Entry] = {}
    for entry in entries:
        key = entry_key(entry, tz=tz)
        existing = grouped.get(key)
        if existing is None:
            grouped[key] = entry
            continue
        kept = preferred_entry(existing, entry)
        dropped = entry if kept is existing else existing
        log.warning("Collapsed duplicate entry %s into %s for key %s", dropped.id, kept.id, key)
        grouped[key] = kept
    return grouped


def entry_from_remote(resolved: ResolvedRecord) -> Entry:
    record = resolved.record
    scan = Scan(
        date=resolved.date,
        item=record.item,
        material=record.material,
        recyclable=record.recyclable,
        bin=record.bin,
        notes=record.notes,
        carbon_saved_kg=resolved.carbon_saved_kg,
        source=ScanSource.from_tag(record.source),
        remote_image_path=record.image_path,
        raw_payload="{}",
    )
    return replace(
        Entry.start(scan),
        recycle_status=resolved.status,
        scan_count=max(1, record.scan_count or 1),
    )


def merge_resolved(entry: Entry, resolved: ResolvedRecord) -> Entry:
    return entry.merge_with_remote(
        resolved.record,
        date=resolved.date,
        status=resolved.status,
        carbon_saved_kg=resolved.carbon_saved_kg,
    )


def reconcile(
    local_entries: Iterable[Entry],
    remote_records: Iterable[RemoteRecord],
    *,
    carbon_policy: CarbonPolicy = DEFAULT_CARBON_POLICY,
    clock: Clock = utcnow,
    tz: tzinfo | None = None,
) -> list[Entry]:
    """Merge ``remote_records`` into ``local_entries`` and return the new log.

    Remote rows are applied in fetch order. Ties between entries, both in
    fuzzy matching and in the final newest-first sort, fall back to the
    entry id so a second pass over the same rows changes nothing.
    """

    now = clock()
    groups = group_local_entries(local_entries, tz=tz)

    for record in remote_records:
        resolved = resolve_record(record, now=now, carbon_policy=carbon_policy, tz=tz)
        existing = groups.get(resolved.key)
        if existing is not None:
            groups[resolved.key] = merge_resolved(existing, resolved)
            continue

        fallback_key = best_fuzzy_match(
            groups,
            day=resolved.day,
            record_item_key=resolved.item_key,
            record_profile=resolved.profile,
        )
        if fallback_key is not None:
            matched = groups.pop(fallback_key)
            groups[resolved.key] = merge_resolved(matched, resolved)
            continue

        created = entry_from_remote(resolved)
        log.debug("Remote row %s became new entry %s", resolved.key, created.id)
        groups[resolved.key] = created

    return sorted(groups.values(), key=lambda entry: (entry.date, entry.id), reverse=True)
