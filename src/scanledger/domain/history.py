"""Serialization domain owning the entry log.

Every mutation (ingest, reconcile, status transition, image patch) runs under
one ``asyncio.Lock`` and persists before the lock is released. No ``await``
happens between reading the log and writing it back, so two callers can never
interleave on a stale snapshot. Remote I/O (fetching rows) happens before the
lock is taken.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from scanledger.domain.carbon import DEFAULT_CARBON_POLICY
from scanledger.domain.ingest import ingest
from scanledger.domain.log import EntryLog
from scanledger.domain.ports import EntryStoreError, RemoteStoreError
from scanledger.domain.reconciliation import reconcile
from scanledger.domain.sync import SyncReport
from scanledger.domain.timestamps import utcnow

if TYPE_CHECKING:
    from collections.abc import Callable
    from datetime import datetime, tzinfo
    from uuid import UUID

    from scanledger.domain.carbon import CarbonPolicy
    from scanledger.domain.ingest import IngestResult
    from scanledger.domain.model import ClassificationResult, Entry, RecycleStatus, ScanSource
    from scanledger.domain.ports import EntryStore, RemoteImpactStore
    from scanledger.domain.timestamps import Clock

log = logging.getLogger(__name__)

type IngestListener = Callable[[Entry], None]


class HistoryPersistenceError(EntryStoreError):
    """The log changed in memory but could not be written durably.

    The in-memory log keeps the change; the next successful save carries it.
    """


class ScanHistory:
    def __init__(
        self,
        store: EntryStore,
        *,
        clock: Clock = utcnow,
        carbon_policy: CarbonPolicy = DEFAULT_CARBON_POLICY,
        tz: tzinfo | None = None,
    ) -> None:
        self._store = store
        self._clock = clock
        self._carbon_policy = carbon_policy
        self._tz = tz
        self._log = EntryLog()
        self._lock = asyncio.Lock()
        self._listeners: list[IngestListener] = []

    @property
    def tz(self) -> tzinfo | None:
        return self._tz

    def add_ingest_listener(self, listener: IngestListener) -> None:
        """Call ``listener`` with the touched entry after each persisted ingest."""
        self._listeners.append(listener)

    def snapshot(self) -> tuple[Entry, ...]:
        return self._log.snapshot()

    def get(self, entry_id: UUID) -> Entry | None:
        return self._log.get(entry_id)

    async def load(self) -> tuple[Entry, ...]:
        async with self._lock:
            self._log.replace_all(self._store.load())
            log.debug("Loaded %s entries", len(self._log))
            return self._log.snapshot()

    async def ingest(
        self,
        result: ClassificationResult,
        *,
        source: ScanSource,
        raw_payload: str = "",
        local_image_path: str | None = None,
        status: RecycleStatus | None = None,
        at: datetime | None = None,
    ) -> IngestResult:
        """Fold ``result`` into the log and persist it.

        Raises :class:`HistoryPersistenceError` when the write fails; the
        entry stays in the in-memory log in that case.
        """

        async with self._lock:
            entries, outcome = ingest(
                self._log.snapshot(),
                result,
                source=source,
                at=at or self._clock(),
                raw_payload=raw_payload,
                local_image_path=local_image_path,
                status=status,
                tz=self._tz,
            )
            self._log.replace_all(entries)
            self._persist()
        for listener in self._listeners:
            listener(outcome.entry)
        return outcome

    async def mark_recycled(self, entry_id: UUID) -> Entry | None:
        async with self._lock:
            entry = self._log.get(entry_id)
            if entry is None or not entry.recyclable:
                log.debug("mark_recycled: nothing to do for %s", entry_id)
                return None
            updated = entry.mark_recycled(at=self._clock())
            if updated is entry:
                return entry
            self._log.put(updated)
            self._persist()
            return updated

    async def update_remote_image_path(self, entry_id: UUID, path: str) -> Entry | None:
        """Record an uploaded image on the entry; ``None`` if it no longer exists."""

        async with self._lock:
            entry = self._log.get(entry_id)
            if entry is None:
                log.debug("Entry %s vanished before its image upload finished", entry_id)
                return None
            updated = entry.with_remote_image(path)
            self._log.put(updated)
            self._persist()
            return updated

    async def sync_remote(self, remote: RemoteImpactStore, *, limit: int) -> SyncReport:
        """Fetch remote rows, reconcile them into the log and persist.

        Failures end up as warnings on the returned report and never raise.
        """

        report = SyncReport()
        try:
            records = await remote.fetch(limit=limit)
        except RemoteStoreError as exc:
            report.warn("fetch", str(exc))
            return report
        report.fetched = len(records)

        async with self._lock:
            before = len(self._log)
            merged = reconcile(
                self._log.snapshot(),
                records,
                carbon_policy=self._carbon_policy,
                clock=self._clock,
                tz=self._tz,
            )
            self._log.replace_all(merged)
            report.entries_before = before
            report.entries_after = len(self._log)
            try:
                self._persist()
            except HistoryPersistenceError as exc:
                report.warn("persist", str(exc))
        log.info(
            "Reconciled %s remote rows: %s -> %s entries",
            report.fetched,
            report.entries_before,
            report.entries_after,
        )
        return report

    def _persist(self) -> None:
        try:
            self._store.save(self._log.snapshot())
        except EntryStoreError as exc:
            log.warning("Could not persist %s entries: %s", len(self._log), exc)
            raise HistoryPersistenceError(str(exc)) from exc


__all__ = ["HistoryPersistenceError", "IngestListener", "ScanHistory"]
