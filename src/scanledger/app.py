"""Application orchestration entry points.

Each function wires configured adapters into the domain services and runs
one use case to completion. Adapters can be injected for tests.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING

from scanledger.adapters.classifier import parse_classification
from scanledger.adapters.filesystem import JsonFileEntryStore
from scanledger.adapters.sqlalchemy import SqlAlchemyEntryStore
from scanledger.adapters.supabase import SupabaseImpactStore
from scanledger.config import (
    SyncConfig,
    get_remote_store_config,
    get_storage_config,
    get_sync_config,
)
from scanledger.domain.history import ScanHistory
from scanledger.domain.ports import ParseFailed
from scanledger.domain.sync import ImpactSync, SyncReport

if TYPE_CHECKING:
    from datetime import datetime, tzinfo
    from pathlib import Path
    from uuid import UUID

    from scanledger.config import RemoteStoreConfig, StorageConfig
    from scanledger.domain.ingest import IngestResult
    from scanledger.domain.model import ClassificationResult, Entry, RecycleStatus, ScanSource
    from scanledger.domain.ports import EntryStore, ImageUploader, RemoteImpactStore

log = getLogger(__name__)


def build_entry_store(config: StorageConfig | None = None) -> EntryStore:
    effective = config or get_storage_config()
    if effective.backend == "sqlite":
        return SqlAlchemyEntryStore.from_config(effective)
    return JsonFileEntryStore.from_config(effective)


@dataclass(slots=True)
class RemoteContext:
    """Remote store, uploader and push settings for one run."""

    remote: RemoteImpactStore
    user_id: str
    uploader: ImageUploader | None = None
    photo_storage_enabled: bool = True
    sync_config: SyncConfig = field(default_factory=SyncConfig)

    @classmethod
    def from_config(
        cls,
        config: RemoteStoreConfig | None = None,
        *,
        sync_config: SyncConfig | None = None,
    ) -> RemoteContext:
        effective = config or get_remote_store_config()
        store = SupabaseImpactStore(effective)
        return cls(
            remote=store,
            user_id=effective.user_id,
            uploader=store,
            photo_storage_enabled=effective.photo_storage_enabled,
            sync_config=sync_config or get_sync_config(),
        )

    def impact_sync(self, history: ScanHistory) -> ImpactSync:
        return ImpactSync(
            history,
            self.remote,
            user_id=self.user_id,
            uploader=self.uploader,
            photo_storage_enabled=self.photo_storage_enabled,
            attempts=self.sync_config.upsert_attempts,
            retry_delay_seconds=self.sync_config.retry_delay_seconds,
            queue_size=self.sync_config.queue_size,
        )


def list_history(*, store: EntryStore | None = None) -> tuple[Entry, ...]:
    history = ScanHistory(store or build_entry_store())
    return asyncio.run(history.load())


def add_scan(
    result: ClassificationResult,
    *,
    source: ScanSource,
    raw_payload: str = "",
    image: Path | None = None,
    status: RecycleStatus | None = None,
    at: datetime | None = None,
    store: EntryStore | None = None,
    remote: RemoteContext | None = None,
    tz: tzinfo | None = None,
) -> IngestResult:
    """Record one classification; with ``remote`` the touched entry is pushed too."""

    async def run() -> IngestResult:
        history = ScanHistory(store or build_entry_store(), tz=tz)
        await history.load()
        sync = remote.impact_sync(history) if remote is not None else None
        if sync is not None:
            history.add_ingest_listener(sync.on_ingested)
            sync.start()
        try:
            outcome = await history.ingest(
                result,
                source=source,
                raw_payload=raw_payload,
                local_image_path=str(image.expanduser().resolve()) if image else None,
                status=status,
                at=at,
            )
            if sync is not None:
                await sync.join()
        finally:
            if sync is not None:
                await sync.stop()
        if sync is not None and not sync.report.ok:
            log.warning("Entry saved locally; %s sync warning(s)", len(sync.report.warnings))
        return outcome

    return asyncio.run(run())


def classify_and_add(
    raw: str,
    *,
    source: ScanSource,
    image: Path | None = None,
    at: datetime | None = None,
    store: EntryStore | None = None,
    remote: RemoteContext | None = None,
    tz: tzinfo | None = None,
) -> IngestResult | ParseFailed:
    outcome = parse_classification(raw)
    if isinstance(outcome, ParseFailed):
        log.warning("Classifier response not understood: %s", outcome.reason)
        return outcome
    log.info("Classifier response decoded by %s", outcome.strategy)
    return add_scan(
        outcome.result,
        source=source,
        raw_payload=raw,
        image=image,
        at=at,
        store=store,
        remote=remote,
        tz=tz,
    )


def mark_recycled(entry_id: UUID, *, store: EntryStore | None = None) -> Entry | None:
    async def run() -> Entry | None:
        history = ScanHistory(store or build_entry_store())
        await history.load()
        return await history.mark_recycled(entry_id)

    return asyncio.run(run())


def sync_remote_history(
    *,
    store: EntryStore | None = None,
    remote: RemoteContext | None = None,
    push: bool = True,
    tz: tzinfo | None = None,
) -> SyncReport:
    """Fetch the remote log, reconcile it into the local log, then push local entries."""

    context = remote or RemoteContext.from_config()

    async def run() -> SyncReport:
        history = ScanHistory(store or build_entry_store(), tz=tz)
        await history.load()
        report = await history.sync_remote(context.remote, limit=context.sync_config.fetch_limit)
        if push:
            report.absorb(await context.impact_sync(history).push_entries(history.snapshot()))
        return report

    log.info("Starting sync (push=%s)", push)
    report = asyncio.run(run())
    log.info(
        "Finished sync: fetched=%s, entries=%s, submitted=%s, declined=%s, uploaded=%s, warnings=%s",
        report.fetched,
        report.entries_after,
        report.submitted,
        report.declined,
        report.uploaded,
        len(report.warnings),
    )
    return report
