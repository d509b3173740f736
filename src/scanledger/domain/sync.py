"""Pushing the local log to the remote impact store.

Work is modelled as a bounded queue of :class:`SubmitEntry` operations
drained by a single worker task. Each operation looks the entry up by
identifier when it runs, so an entry merged away in the meantime is skipped
and an image upload only ever patches the entry it was taken from.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

from scanledger.domain.carbon import DEFAULT_CARBON_POLICY
from scanledger.domain.keys import day_key
from scanledger.domain.model import RecycleStatus, ScanSource
from scanledger.domain.ports import EntryStoreError, ImpactPayload, RemoteStoreError
from scanledger.domain.timestamps import isoformat_utc

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Iterable
    from datetime import tzinfo
    from uuid import UUID

    from scanledger.domain.carbon import CarbonPolicy
    from scanledger.domain.history import ScanHistory
    from scanledger.domain.model import Entry
    from scanledger.domain.ports import ImageUploader, RemoteImpactStore

log = logging.getLogger(__name__)

type Sleep = Callable[[float], Awaitable[object]]


@dataclass(frozen=True, slots=True)
class SyncWarning:
    operation: str
    message: str
    entry_id: UUID | None = None


@dataclass(slots=True)
class SyncReport:
    """Outcome of one sync pass; warnings are advisory and never fatal."""

    fetched: int = 0
    entries_before: int = 0
    entries_after: int = 0
    submitted: int = 0
    declined: int = 0
    uploaded: int = 0
    warnings: list[SyncWarning] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.warnings

    def warn(self, operation: str, message: str, *, entry_id: UUID | None = None) -> None:
        log.warning("Sync %s failed%s: %s", operation, f" for {entry_id}" if entry_id else "", message)
        self.warnings.append(SyncWarning(operation, message, entry_id))

    def absorb(self, other: SyncReport) -> None:
        self.submitted += other.submitted
        self.declined += other.declined
        self.uploaded += other.uploaded
        self.warnings.extend(other.warnings)


@dataclass(frozen=True, slots=True)
class SubmitEntry:
    entry_id: UUID


async def retry_async[T](
    operation: Callable[[], Awaitable[T]],
    *,
    attempts: int = 3,
    delay_seconds: float = 0.25,
    sleep: Sleep = asyncio.sleep,
    description: str = "operation",
) -> T:
    """Run ``operation``, retrying :class:`RemoteStoreError` with linear backoff.

    The delay before attempt ``n + 1`` is ``delay_seconds * n``. The last
    error is re-raised once ``attempts`` are used up.
    """

    attempts = max(1, attempts)
    for attempt in range(1, attempts):
        try:
            return await operation()
        except RemoteStoreError as exc:
            log.debug("%s failed (attempt %s/%s): %s", description, attempt, attempts, exc)
            await sleep(delay_seconds * attempt)
    try:
        return await operation()
    except RemoteStoreError as exc:
        log.warning("%s failed after %s attempts: %s", description, attempts, exc)
        raise


def remote_image_path(user_id: str, entry: Entry, *, tz: tzinfo | None = None) -> str:
    return f"{user_id}/{entry.day_key(tz=tz)}/{entry.id}.jpg"


def build_payload(
    entry: Entry,
    *,
    user_id: str,
    image_path: str | None,
    carbon_policy: CarbonPolicy = DEFAULT_CARBON_POLICY,
    tz: tzinfo | None = None,
) -> ImpactPayload:
    """Remote row for ``entry``.

    Only recycled entries carry points, so reading the row back implies the
    same status.
    """

    points = 0
    if entry.recycle_status is RecycleStatus.RECYCLED:
        points = max(1, carbon_policy.kg_to_points(entry.carbon_saved_kg))
    return ImpactPayload(
        user_id=user_id,
        item_key=entry.item_key(),
        day_key=day_key(entry.date, tz=tz),
        item=entry.item,
        material=entry.material,
        recyclable=entry.recyclable,
        bin=entry.bin,
        notes=entry.notes,
        scanned_at=isoformat_utc(entry.date),
        points=points,
        scan_count=entry.scan_count,
        image_path=image_path,
        source=entry.source.value,
    )


class ImpactSync:
    def __init__(
        self,
        history: ScanHistory,
        remote: RemoteImpactStore,
        *,
        user_id: str,
        uploader: ImageUploader | None = None,
        photo_storage_enabled: bool = True,
        attempts: int = 3,
        retry_delay_seconds: float = 0.25,
        queue_size: int = 32,
        carbon_policy: CarbonPolicy = DEFAULT_CARBON_POLICY,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._history = history
        self._remote = remote
        self._user_id = user_id
        self._uploader = uploader
        self._photo_storage_enabled = photo_storage_enabled
        self._attempts = attempts
        self._retry_delay_seconds = retry_delay_seconds
        self._carbon_policy = carbon_policy
        self._sleep = sleep
        self._queue: asyncio.Queue[SubmitEntry] = asyncio.Queue(maxsize=queue_size)
        self._worker: asyncio.Task[None] | None = None
        self.report = SyncReport()

    # ------------------------------------------------------------------
    # Background mode

    def start(self) -> None:
        if self._worker is None or self._worker.done():
            self._worker = asyncio.create_task(self._run(self.report))

    def enqueue(self, entry_id: UUID) -> bool:
        """Queue a submit without waiting; ``False`` when the queue is full."""

        try:
            self._queue.put_nowait(SubmitEntry(entry_id))
        except asyncio.QueueFull:
            self.report.warn("enqueue", "sync queue is full", entry_id=entry_id)
            return False
        return True

    def on_ingested(self, entry: Entry) -> None:
        self.enqueue(entry.id)

    async def join(self) -> None:
        await self._queue.join()

    async def stop(self) -> None:
        if self._worker is None:
            return
        self._worker.cancel()
        try:
            await self._worker
        except asyncio.CancelledError:
            pass
        self._worker = None

    # ------------------------------------------------------------------
    # Batch mode

    async def push_entries(self, entries: Iterable[Entry]) -> SyncReport:
        """Submit each (user, day, item) once and wait for all of them."""

        report = SyncReport()
        worker = asyncio.create_task(self._run(report))
        seen: set[tuple[str, str, str]] = set()
        try:
            for entry in entries:
                key = (self._user_id, entry.day_key(tz=self._history.tz), entry.item_key())
                if key in seen:
                    continue
                seen.add(key)
                await self._queue.put(SubmitEntry(entry.id))
            await self._queue.join()
        finally:
            worker.cancel()
            try:
                await worker
            except asyncio.CancelledError:
                pass
        return report

    # ------------------------------------------------------------------

    async def _run(self, report: SyncReport) -> None:
        while True:
            operation = await self._queue.get()
            try:
                await self.submit(operation.entry_id, report)
            except Exception as exc:
                log.exception("Unexpected failure submitting %s", operation.entry_id)
                report.warn("submit", repr(exc), entry_id=operation.entry_id)
            finally:
                self._queue.task_done()

    async def submit(self, entry_id: UUID, report: SyncReport) -> None:
        entry = self._history.get(entry_id)
        if entry is None:
            log.debug("Entry %s is gone; skipping submit", entry_id)
            return

        image_path = await self._upload_if_needed(entry, report)
        payload = build_payload(
            entry,
            user_id=self._user_id,
            image_path=image_path,
            carbon_policy=self._carbon_policy,
            tz=self._history.tz,
        )
        try:
            inserted = await retry_async(
                lambda: self._remote.insert(payload),
                attempts=self._attempts,
                delay_seconds=self._retry_delay_seconds,
                sleep=self._sleep,
                description=f"insert {payload.item_key!r}",
            )
        except RemoteStoreError as exc:
            report.warn("insert", str(exc), entry_id=entry_id)
            return
        if inserted:
            report.submitted += 1
        else:
            log.info("Remote store declined %r for %s", payload.item_key, payload.day_key)
            report.declined += 1

    async def _upload_if_needed(self, entry: Entry, report: SyncReport) -> str | None:
        if entry.remote_image_path:
            return entry.remote_image_path
        if (
            self._uploader is None
            or not self._photo_storage_enabled
            or entry.source is not ScanSource.PHOTO
            or entry.local_image_path is None
        ):
            return None

        try:
            data = await asyncio.to_thread(Path(entry.local_image_path).read_bytes)
        except OSError as exc:
            report.warn("upload", f"cannot read {entry.local_image_path}: {exc}", entry_id=entry.id)
            return None

        path = remote_image_path(self._user_id, entry, tz=self._history.tz)
        try:
            await self._uploader.upload_image(data=data, path=path)
        except RemoteStoreError as exc:
            report.warn("upload", str(exc), entry_id=entry.id)
            return None
        report.uploaded += 1

        try:
            await self._history.update_remote_image_path(entry.id, path)
        except EntryStoreError as exc:
            report.warn("persist", str(exc), entry_id=entry.id)
        return path


__all__ = [
    "ImpactSync",
    "SubmitEntry",
    "SyncReport",
    "SyncWarning",
    "build_payload",
    "remote_image_path",
    "retry_async",
]
