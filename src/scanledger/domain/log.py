"""Arena storage for the entry log.

Entries are indexed by their stable identifier. Iteration and snapshots
follow log order: ``date`` descending, ties keeping insertion order.
Callers only ever see immutable snapshots; mutation goes through
:class:`scanledger.domain.history.ScanHistory`.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator
    from uuid import UUID

    from scanledger.domain.model import Entry

log = logging.getLogger(__name__)


class EntryLog:
    def __init__(self, entries: Iterable[Entry] = ()) -> None:
        self._entries: dict[UUID, Entry] = {}
        self.replace_all(entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[Entry]:
        return iter(self._entries.values())

    def __contains__(self, entry_id: object) -> bool:
        return entry_id in self._entries

    def get(self, entry_id: UUID) -> Entry | None:
        return self._entries.get(entry_id)

    def snapshot(self) -> tuple[Entry, ...]:
        return tuple(self._entries.values())

    def replace_all(self, entries: Iterable[Entry]) -> None:
        """Swap in a complete new log, keeping the first entry seen per identifier."""

        indexed: dict[UUID, Entry] = {}
        for entry in entries:
            if entry.id in indexed:
                log.warning("Dropping second entry with duplicate id %s", entry.id)
                continue
            indexed[entry.id] = entry
        ordered = sorted(indexed.values(), key=lambda entry: entry.date, reverse=True)
        self._entries = {entry.id: entry for entry in ordered}

    def put(self, entry: Entry) -> bool:
        """Replace the entry with the same identifier; ``False`` if it is gone."""

        if entry.id not in self._entries:
            return False
        self._entries[entry.id] = entry
        self.replace_all(self._entries.values())
        return True


__all__ = ["EntryLog"]
