"""JSON-file implementation of the Persistence Boundary."""

from __future__ import annotations

import json
import os
import tempfile
from dataclasses import dataclass, field
from logging import getLogger
from pathlib import Path
from typing import TYPE_CHECKING

from pydantic import ValidationError

from scanledger.domain.ports import EntryStoreError
from scanledger.domain.timestamps import utcnow

from .schema import decode_history, encode_history

if TYPE_CHECKING:
    from collections.abc import Sequence

    from scanledger.config import StorageConfig
    from scanledger.domain.model import Entry
    from scanledger.domain.timestamps import Clock

log = getLogger(__name__)


@dataclass(slots=True)
class JsonFileEntryStore:
    """Whole-file store: every save writes a temp file and renames it into place.

    An unreadable history file is moved aside as ``<name>.corrupt-<timestamp>``
    and loading falls back to the legacy file or an empty log.
    """

    path: Path
    legacy_path: Path | None = None
    clock: Clock = field(default=utcnow)

    @classmethod
    def from_config(cls, config: StorageConfig) -> JsonFileEntryStore:
        return cls(path=config.history_path(), legacy_path=config.legacy_history_path())

    def load(self) -> list[Entry]:
        decoded = self._read(self.path)
        if decoded is not None:
            entries, upgraded = decoded
            if upgraded:
                log.info("Upgrading %s entries in %s to the current format", len(entries), self.path)
                self.save(entries)
            return entries

        if self.legacy_path is None:
            return []
        legacy = self._read(self.legacy_path)
        if legacy is None:
            return []
        entries, _ = legacy
        log.info("Migrating %s entries from %s", len(entries), self.legacy_path)
        self.save(entries)
        try:
            self.legacy_path.unlink()
        except OSError as exc:
            log.warning("Could not remove migrated legacy history %s: %s", self.legacy_path, exc)
        return entries

    def save(self, entries: Sequence[Entry]) -> None:
        try:
            payload = encode_history(entries)
        except (TypeError, ValueError) as exc:
            raise EntryStoreError(f"Cannot serialize history: {exc}") from exc

        directory = self.path.parent
        try:
            directory.mkdir(parents=True, exist_ok=True)
            handle = tempfile.NamedTemporaryFile(  # noqa: SIM115
                dir=directory, prefix=f".{self.path.name}.", suffix=".tmp", delete=False
            )
        except OSError as exc:
            raise EntryStoreError(f"Cannot write {self.path}: {exc}") from exc

        temp_path = Path(handle.name)
        try:
            with handle:
                handle.write(payload)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(temp_path, self.path)
        except OSError as exc:
            temp_path.unlink(missing_ok=True)
            raise EntryStoreError(f"Cannot write {self.path}: {exc}") from exc
        log.debug("Saved %s entries to %s", len(entries), self.path)

    def _read(self, path: Path) -> tuple[list[Entry], bool] | None:
        if not path.exists():
            return None
        try:
            raw = path.read_bytes()
        except OSError as exc:
            raise EntryStoreError(f"Cannot read {path}: {exc}") from exc
        try:
            return decode_history(json.loads(raw))
        except (ValueError, ValidationError) as exc:
            self._quarantine(path, exc)
            return None

    def _quarantine(self, path: Path, error: Exception) -> None:
        stamp = self.clock().strftime("%Y%m%dT%H%M%S")
        target = path.with_name(f"{path.name}.corrupt-{stamp}")
        log.warning("History file %s is unreadable (%s); moving it to %s", path, error, target)
        try:
            path.rename(target)
        except OSError as exc:
            raise EntryStoreError(f"Cannot quarantine {path}: {exc}") from exc
