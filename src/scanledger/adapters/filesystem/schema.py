"""Pydantic models for the on-disk history document.

The file is a JSON array of camelCase entry objects. Older builds wrote
entries without ``scans``, ``scanCount``, ``recycleStatus``, ``source`` or
``carbonSavedKg`` and stored dates as seconds since 2001-01-01 UTC; both
shapes are still accepted and flagged for rewrite.
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING, cast
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator

from scanledger.domain.model import Entry, RecycleStatus, Scan, ScanSource
from scanledger.domain.timestamps import parse_scanned_at

if TYPE_CHECKING:
    from collections.abc import Sequence

REFERENCE_EPOCH = datetime(2001, 1, 1, tzinfo=UTC)
_UPGRADE_FIELDS = ("scans", "scanCount", "recycleStatus", "source", "carbonSavedKg")


def _parse_date(value: object) -> object:
    if isinstance(value, bool):
        raise ValueError("boolean is not a date")
    if isinstance(value, int | float):
        try:
            return REFERENCE_EPOCH + timedelta(seconds=float(value))
        except OverflowError as exc:
            raise ValueError(f"date {value!r} is out of range") from exc
    if isinstance(value, str):
        parsed = parse_scanned_at(value)
        if parsed is None:
            raise ValueError(f"unparseable date {value!r}")
        return parsed
    if isinstance(value, datetime) and value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


def _known_source(value: object) -> object:
    if value is None:
        return None
    return ScanSource.from_tag(str(value))


def _none_to_empty(value: object) -> object:
    return "" if value is None else value


class HistoryBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class ScanDocument(HistoryBaseModel):
    id: UUID | None = None
    date: datetime
    item: str = ""
    material: str = ""
    recyclable: bool = False
    bin: str = ""
    notes: str = ""
    carbon_saved_kg: float = Field(default=0.0, alias="carbonSavedKg")
    raw_json: str = Field(default="", alias="rawJSON")
    source: ScanSource | None = None
    local_image_path: str | None = Field(default=None, alias="localImagePath")
    remote_image_path: str | None = Field(default=None, alias="remoteImagePath")

    _validate_date = field_validator("date", mode="before")(_parse_date)
    _validate_source = field_validator("source", mode="before")(_known_source)
    _normalize_text = field_validator(
        "item", "material", "bin", "notes", "raw_json", mode="before"
    )(_none_to_empty)

    @classmethod
    def from_scan(cls, scan: Scan) -> ScanDocument:
        return cls(
            id=scan.id,
            date=scan.date,
            item=scan.item,
            material=scan.material,
            recyclable=scan.recyclable,
            bin=scan.bin,
            notes=scan.notes,
            carbon_saved_kg=scan.carbon_saved_kg,
            raw_json=scan.raw_payload,
            source=scan.source,
            local_image_path=scan.local_image_path,
            remote_image_path=scan.remote_image_path,
        )

    def to_scan(self) -> Scan:
        fields = {"id": self.id} if self.id is not None else {}
        return Scan(
            **fields,
            date=self.date,
            item=self.item,
            material=self.material,
            recyclable=self.recyclable,
            bin=self.bin,
            notes=self.notes,
            carbon_saved_kg=self.carbon_saved_kg,
            source=self.source or ScanSource.PHOTO,
            local_image_path=self.local_image_path,
            remote_image_path=self.remote_image_path,
            raw_payload=self.raw_json,
        )


class EntryDocument(HistoryBaseModel):
    id: UUID
    date: datetime
    item: str = ""
    material: str = ""
    recyclable: bool = False
    bin: str = ""
    notes: str = ""
    carbon_saved_kg: float | None = Field(default=None, alias="carbonSavedKg")
    recycle_status: RecycleStatus | None = Field(default=None, alias="recycleStatus")
    raw_json: str = Field(default="", alias="rawJSON")
    source: ScanSource | None = None
    local_image_path: str | None = Field(default=None, alias="localImagePath")
    remote_image_path: str | None = Field(default=None, alias="remoteImagePath")
    scan_count: int | None = Field(default=None, alias="scanCount")
    scans: list[ScanDocument] = Field(default_factory=list)

    _validate_date = field_validator("date", mode="before")(_parse_date)
    _validate_source = field_validator("source", mode="before")(_known_source)
    _normalize_text = field_validator(
        "item", "material", "bin", "notes", "raw_json", mode="before"
    )(_none_to_empty)

    @field_validator("scans", mode="before")
    @classmethod
    def _parse_scans(cls, value: object) -> object:
        return [] if value is None else value

    @field_validator("recycle_status", mode="before")
    @classmethod
    def _parse_status(cls, value: object) -> object:
        if isinstance(value, str) and value in {member.value for member in RecycleStatus}:
            return value
        return None

    @classmethod
    def from_entry(cls, entry: Entry) -> EntryDocument:
        return cls(
            id=entry.id,
            date=entry.date,
            item=entry.item,
            material=entry.material,
            recyclable=entry.recyclable,
            bin=entry.bin,
            notes=entry.notes,
            carbon_saved_kg=entry.carbon_saved_kg,
            recycle_status=entry.recycle_status,
            raw_json=entry.raw_payload,
            source=entry.source,
            local_image_path=entry.local_image_path,
            remote_image_path=entry.remote_image_path,
            scan_count=entry.scan_count,
            scans=[ScanDocument.from_scan(scan) for scan in entry.scans],
        )

    def to_entry(self) -> Entry:
        status = self.recycle_status
        if status is None:
            status = RecycleStatus.RECYCLED if self.recyclable else RecycleStatus.NON_RECYCLABLE
        scans = sorted((scan.to_scan() for scan in self.scans), key=lambda s: s.date, reverse=True)
        return Entry(
            id=self.id,
            date=self.date,
            item=self.item,
            material=self.material,
            recyclable=self.recyclable,
            bin=self.bin,
            notes=self.notes,
            carbon_saved_kg=self.carbon_saved_kg or 0.0,
            recycle_status=status,
            raw_payload=self.raw_json,
            source=self.source or ScanSource.PHOTO,
            local_image_path=self.local_image_path,
            remote_image_path=self.remote_image_path,
            scan_count=self.scan_count or 1,
            scans=tuple(scans),
        )


HISTORY_ADAPTER: TypeAdapter[list[EntryDocument]] = TypeAdapter(list[EntryDocument])


def needs_upgrade(raw: object) -> bool:
    """Whether a decoded entry object was written by an older build."""

    if not isinstance(raw, Mapping):
        return False
    document = cast(Mapping[str, object], raw)
    if any(field not in document for field in _UPGRADE_FIELDS):
        return True
    if not document.get("scans"):
        return True
    return isinstance(document.get("date"), int | float)


def decode_history(payload: object) -> tuple[list[Entry], bool]:
    """Validate a decoded JSON document; returns the entries and the upgrade flag.

    Raises :class:`pydantic.ValidationError` when the document is not a
    history array.
    """

    documents = HISTORY_ADAPTER.validate_python(payload)
    upgraded = any(needs_upgrade(raw) for raw in cast(list[object], payload))
    return [document.to_entry() for document in documents], upgraded


def encode_history(entries: Sequence[Entry]) -> bytes:
    documents = [EntryDocument.from_entry(entry) for entry in entries]
    return HISTORY_ADAPTER.dump_json(documents, by_alias=True, indent=2)
