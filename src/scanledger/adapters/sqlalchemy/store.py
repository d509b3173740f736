"""SQLite-backed Persistence Boundary.

``save`` replaces both tables inside one transaction, so a failed write
rolls back to the previous log.
"""

from __future__ import annotations

from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING

from sqlalchemy import create_engine, delete, insert, select
from sqlalchemy.exc import SQLAlchemyError

from scanledger.domain.model import Entry, Scan
from scanledger.domain.ports import EntryStoreError

from .tables import create_schema, entries_table, scans_table

if TYPE_CHECKING:
    from collections.abc import Sequence
    from uuid import UUID

    from sqlalchemy.engine import Engine, RowMapping

    from scanledger.config import StorageConfig

log = getLogger(__name__)


def _scan_from_row(row: RowMapping) -> Scan:
    return Scan(
        id=row["id"],
        date=row["date"],
        item=row["item"],
        material=row["material"],
        recyclable=row["recyclable"],
        bin=row["bin"],
        notes=row["notes"],
        carbon_saved_kg=row["carbon_saved_kg"],
        source=row["source"],
        local_image_path=row["local_image_path"],
        remote_image_path=row["remote_image_path"],
        raw_payload=row["raw_payload"],
    )


def _entry_from_row(row: RowMapping, scans: Sequence[Scan]) -> Entry:
    return Entry(
        id=row["id"],
        date=row["date"],
        item=row["item"],
        material=row["material"],
        recyclable=row["recyclable"],
        bin=row["bin"],
        notes=row["notes"],
        carbon_saved_kg=row["carbon_saved_kg"],
        recycle_status=row["recycle_status"],
        raw_payload=row["raw_payload"],
        source=row["source"],
        local_image_path=row["local_image_path"],
        remote_image_path=row["remote_image_path"],
        scan_count=row["scan_count"],
        scans=tuple(scans),
    )


def _entry_values(entry: Entry, position: int) -> dict[str, object]:
    return {
        "id": entry.id,
        "position": position,
        "date": entry.date,
        "item": entry.item,
        "material": entry.material,
        "recyclable": entry.recyclable,
        "bin": entry.bin,
        "notes": entry.notes,
        "carbon_saved_kg": entry.carbon_saved_kg,
        "recycle_status": entry.recycle_status,
        "raw_payload": entry.raw_payload,
        "source": entry.source,
        "local_image_path": entry.local_image_path,
        "remote_image_path": entry.remote_image_path,
        "scan_count": entry.scan_count,
    }


def _scan_values(entry: Entry, scan: Scan, position: int) -> dict[str, object]:
    return {
        "id": scan.id,
        "entry_id": entry.id,
        "position": position,
        "date": scan.date,
        "item": scan.item,
        "material": scan.material,
        "recyclable": scan.recyclable,
        "bin": scan.bin,
        "notes": scan.notes,
        "carbon_saved_kg": scan.carbon_saved_kg,
        "source": scan.source,
        "local_image_path": scan.local_image_path,
        "remote_image_path": scan.remote_image_path,
        "raw_payload": scan.raw_payload,
    }


@dataclass(slots=True)
class SqlAlchemyEntryStore:
    engine: Engine

    @classmethod
    def from_config(cls, config: StorageConfig) -> SqlAlchemyEntryStore:
        return cls.from_uri(config.database_uri())

    @classmethod
    def from_uri(cls, database_uri: str) -> SqlAlchemyEntryStore:
        engine = create_engine(database_uri, future=True)
        try:
            create_schema(engine)
        except SQLAlchemyError as exc:
            raise EntryStoreError(f"Cannot initialise {database_uri}: {exc}") from exc
        return cls(engine=engine)

    def load(self) -> list[Entry]:
        try:
            with self.engine.connect() as connection:
                scan_rows = connection.execute(
                    select(scans_table).order_by(scans_table.c.entry_id, scans_table.c.position)
                ).mappings()
                scans: dict[UUID, list[Scan]] = {}
                for row in scan_rows:
                    scans.setdefault(row["entry_id"], []).append(_scan_from_row(row))
                entry_rows = connection.execute(
                    select(entries_table).order_by(entries_table.c.position)
                ).mappings()
                entries = [_entry_from_row(row, scans.get(row["id"], ())) for row in entry_rows]
        except SQLAlchemyError as exc:
            raise EntryStoreError(f"Cannot load entries: {exc}") from exc
        log.debug("Loaded %s entries from %s", len(entries), self.engine.url)
        return entries

    def save(self, entries: Sequence[Entry]) -> None:
        entry_values = [_entry_values(entry, position) for position, entry in enumerate(entries)]
        scan_values = [
            _scan_values(entry, scan, position)
            for entry in entries
            for position, scan in enumerate(entry.scans)
        ]
        try:
            with self.engine.begin() as connection:
                connection.execute(delete(scans_table))
                connection.execute(delete(entries_table))
                if entry_values:
                    connection.execute(insert(entries_table), entry_values)
                if scan_values:
                    connection.execute(insert(scans_table), scan_values)
        except SQLAlchemyError as exc:
            raise EntryStoreError(f"Cannot save entries: {exc}") from exc
        log.debug("Saved %s entries to %s", len(entry_values), self.engine.url)

    def dispose(self) -> None:
        self.engine.dispose()
