"""Persistence Boundary: durable storage of the whole entry log."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Sequence

    from scanledger.domain.model import Entry


class EntryStoreError(RuntimeError):
    """Raised when the entry log cannot be read or written."""


@runtime_checkable
class EntryStore(Protocol):
    """Whole-log store with atomic replace semantics.

    ``save`` either replaces the durable log completely or raises
    :class:`EntryStoreError` leaving the previous log intact.
    """

    def load(self) -> list[Entry]: ...

    def save(self, entries: Sequence[Entry]) -> None: ...


__all__ = ["EntryStore", "EntryStoreError"]
