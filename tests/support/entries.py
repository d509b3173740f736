"""Factories and fakes for entry-log tests."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING

from scanledger.domain.model import (
    ClassificationResult,
    Entry,
    RecycleStatus,
    RemoteRecord,
    Scan,
    ScanSource,
)
from scanledger.domain.ports import EntryStoreError, RemoteStoreError

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    from scanledger.domain.ports import ImpactPayload

NOON = datetime(2025, 3, 14, 12, 0, tzinfo=UTC)


def fixed_clock(value: datetime = NOON) -> Callable[[], datetime]:
    def clock() -> datetime:
        return value

    return clock


def make_result(
    item: str = "Plastic Bottle",
    *,
    material: str = "plastic",
    recyclable: bool = True,
    bin: str = "Recycling",  # noqa: A002
    notes: str = "",
    carbon_saved_kg: float = 0.1,
) -> ClassificationResult:
    return ClassificationResult(
        item=item,
        material=material,
        recyclable=recyclable,
        bin=bin,
        notes=notes,
        carbon_saved_kg=carbon_saved_kg,
    )


def make_scan(
    item: str = "Plastic Bottle",
    *,
    date: datetime = NOON,
    material: str = "plastic",
    recyclable: bool = True,
    bin: str = "Recycling",  # noqa: A002
    carbon_saved_kg: float = 0.1,
    source: ScanSource = ScanSource.PHOTO,
    local_image_path: str | None = None,
) -> Scan:
    return Scan(
        date=date,
        item=item,
        material=material,
        recyclable=recyclable,
        bin=bin,
        notes="",
        carbon_saved_kg=carbon_saved_kg,
        source=source,
        local_image_path=local_image_path,
    )


def make_entry(
    item: str = "Plastic Bottle",
    *,
    date: datetime = NOON,
    material: str = "plastic",
    recyclable: bool = True,
    bin: str = "Recycling",  # noqa: A002
    carbon_saved_kg: float = 0.1,
    status: RecycleStatus | None = None,
    source: ScanSource = ScanSource.PHOTO,
    scan_count: int = 1,
    local_image_path: str | None = None,
    remote_image_path: str | None = None,
) -> Entry:
    if status is None:
        status = RecycleStatus.MARKED_FOR_RECYCLE if recyclable else RecycleStatus.NON_RECYCLABLE
    return Entry(
        date=date,
        item=item,
        material=material,
        recyclable=recyclable,
        bin=bin,
        notes="",
        carbon_saved_kg=carbon_saved_kg,
        recycle_status=status,
        raw_payload='{"item": "%s"}' % item,
        source=source,
        local_image_path=local_image_path,
        remote_image_path=remote_image_path,
        scan_count=scan_count,
    )


def make_record(
    item: str = "Plastic Bottle",
    *,
    scanned_at: str = "2025-03-14T15:00:00.000Z",
    material: str = "plastic",
    recyclable: bool = True,
    bin: str = "Recycling",  # noqa: A002
    points: int = 0,
    scan_count: int | None = 1,
    source: str | None = "photo",
    image_path: str | None = None,
) -> RemoteRecord:
    return RemoteRecord(
        item=item,
        material=material,
        bin=bin,
        notes="",
        recyclable=recyclable,
        item_key="",
        day_key="",
        scanned_at=scanned_at,
        scan_count=scan_count,
        source=source,
        points=points,
        image_path=image_path,
    )


class InMemoryEntryStore:
    def __init__(self, entries: Sequence[Entry] = ()) -> None:
        self.entries: list[Entry] = list(entries)
        self.saves = 0
        self.fail_saves = False

    def load(self) -> list[Entry]:
        return list(self.entries)

    def save(self, entries: Sequence[Entry]) -> None:
        if self.fail_saves:
            raise EntryStoreError("disk full")
        self.entries = list(entries)
        self.saves += 1


class FakeRemoteStore:
    def __init__(
        self,
        records: Sequence[RemoteRecord] = (),
        *,
        insert_failures: int = 0,
        accept: bool = True,
    ) -> None:
        self.records = list(records)
        self.insert_failures = insert_failures
        self.accept = accept
        self.fetch_error: RemoteStoreError | None = None
        self.fetch_limits: list[int] = []
        self.payloads: list[ImpactPayload] = []
        self.insert_calls = 0

    async def fetch(self, *, limit: int) -> list[RemoteRecord]:
        self.fetch_limits.append(limit)
        if self.fetch_error is not None:
            raise self.fetch_error
        return list(self.records)

    async def insert(self, payload: ImpactPayload) -> bool:
        self.insert_calls += 1
        if self.insert_failures > 0:
            self.insert_failures -= 1
            raise RemoteStoreError("HTTP 503", status_code=503)
        self.payloads.append(payload)
        return self.accept


class FakeUploader:
    def __init__(self, *, fail: bool = False) -> None:
        self.fail = fail
        self.uploads: list[tuple[str, bytes]] = []

    async def upload_image(self, *, data: bytes, path: str) -> None:
        if self.fail:
            raise RemoteStoreError("storage unavailable", status_code=500)
        self.uploads.append((path, data))


class RecordingSleep:
    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)
