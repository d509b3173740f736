"""Entry aggregate: one logical item on one calendar day and its scan history.

All operations are pure. They return a new :class:`Entry` and never mutate the
receiver; the identifier survives every update so callers can patch the log
by id.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING
from uuid import UUID

from scanledger.domain.carbon import clamp_kg
from scanledger.domain.keys import SimilarityProfile, day_key, item_key

from .enums import RecycleStatus, ScanSource, merge_source, merge_status
from .scan import Scan, new_id

if TYPE_CHECKING:
    from datetime import datetime, tzinfo

    from .remote import RemoteRecord


def status_for(scan: Scan, requested: RecycleStatus | None = None) -> RecycleStatus:
    """Status implied by one scan; callers may request ``recycled`` up front."""

    if not scan.recyclable:
        return RecycleStatus.NON_RECYCLABLE
    return requested or RecycleStatus.MARKED_FOR_RECYCLE


@dataclass(frozen=True, slots=True, kw_only=True)
class Entry:
    id: UUID = field(default_factory=new_id)
    date: datetime
    item: str
    material: str
    recyclable: bool
    bin: str
    notes: str
    carbon_saved_kg: float = 0.0
    recycle_status: RecycleStatus = RecycleStatus.MARKED_FOR_RECYCLE
    raw_payload: str = ""
    source: ScanSource = ScanSource.PHOTO
    local_image_path: str | None = None
    remote_image_path: str | None = None
    scan_count: int = 1
    scans: tuple[Scan, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "carbon_saved_kg", clamp_kg(self.carbon_saved_kg))
        if not self.scans:
            object.__setattr__(self, "scans", (self._synthesized_scan(),))
        object.__setattr__(self, "scan_count", max(self.scan_count, len(self.scans), 1))

    def _synthesized_scan(self) -> Scan:
        return Scan(
            date=self.date,
            item=self.item,
            material=self.material,
            recyclable=self.recyclable,
            bin=self.bin,
            notes=self.notes,
            carbon_saved_kg=self.carbon_saved_kg,
            source=self.source,
            local_image_path=self.local_image_path,
            remote_image_path=self.remote_image_path,
            raw_payload=self.raw_payload,
        )

    @classmethod
    def start(cls, scan: Scan, *, status: RecycleStatus | None = None) -> Entry:
        """Create a fresh single-scan entry with a newly minted identifier."""

        return cls(
            date=scan.date,
            item=scan.item,
            material=scan.material,
            recyclable=scan.recyclable,
            bin=scan.bin,
            notes=scan.notes,
            carbon_saved_kg=scan.carbon_saved_kg,
            recycle_status=status_for(scan, status),
            raw_payload=scan.raw_payload,
            source=scan.source,
            local_image_path=scan.local_image_path,
            remote_image_path=scan.remote_image_path,
            scan_count=1,
            scans=(scan,),
        )

    @property
    def has_local_image(self) -> bool:
        return self.local_image_path is not None

    def item_key(self) -> str:
        return item_key(self.item, self.material, self.bin)

    def day_key(self, *, tz: tzinfo | None = None) -> str:
        return day_key(self.date, tz=tz)

    def similarity(self) -> SimilarityProfile:
        return SimilarityProfile.of(self.item, self.material)

    def record_scan(self, scan: Scan, *, status: RecycleStatus | None = None) -> Entry:
        """Fold a newly captured scan into this entry.

        The latest scan's description becomes the entry's display fields.
        Carbon is a running maximum so re-scanning one item never
        double-counts.
        """

        scans = (scan, *self.scans)
        return replace(
            self,
            date=scan.date,
            item=scan.item,
            material=scan.material,
            recyclable=scan.recyclable,
            bin=scan.bin,
            notes=scan.notes,
            raw_payload=scan.raw_payload,
            carbon_saved_kg=max(self.carbon_saved_kg, scan.carbon_saved_kg),
            recycle_status=merge_status(self.recycle_status, status_for(scan, status)),
            source=merge_source(self.source, scan.source),
            local_image_path=scan.local_image_path or self.local_image_path,
            scan_count=max(self.scan_count + 1, len(scans)),
            scans=scans,
        )

    def merge_with_remote(
        self,
        record: RemoteRecord,
        *,
        date: datetime,
        status: RecycleStatus,
        carbon_saved_kg: float,
    ) -> Entry:
        """Merge an authoritative remote row.

        ``date``, ``status`` and ``carbon_saved_kg`` are resolved by the caller
        (timestamp fallback, points policy). Photo-derived display fields are
        kept when the remote row only came from a text description.
        """

        incoming_source = ScanSource.from_tag(record.source)
        keep_details = self.source is ScanSource.PHOTO and incoming_source is ScanSource.TEXT
        details = {}
        if not keep_details:
            details = {
                "item": record.item,
                "material": record.material,
                "recyclable": record.recyclable,
                "bin": record.bin,
                "notes": record.notes,
            }
        return replace(
            self,
            **details,
            date=max(self.date, date),
            carbon_saved_kg=max(self.carbon_saved_kg, carbon_saved_kg),
            recycle_status=merge_status(self.recycle_status, status),
            raw_payload=self.raw_payload or "{}",
            source=merge_source(self.source, incoming_source),
            remote_image_path=record.image_path or self.remote_image_path,
            scan_count=max(self.scan_count, record.scan_count or 1),
        )

    def mark_recycled(self, *, at: datetime) -> Entry:
        """Explicit user transition to ``recycled``.

        Non-recyclable entries and already-recycled entries come back
        unchanged.
        """

        if not self.recyclable or self.recycle_status is RecycleStatus.RECYCLED:
            return self
        return replace(self, date=at, recycle_status=RecycleStatus.RECYCLED)

    def with_remote_image(self, path: str) -> Entry:
        scans = self.scans
        if scans:
            scans = (scans[0].with_remote_image(path), *scans[1:])
        return replace(self, remote_image_path=path, scans=scans)
