"""Domain enums (pure, dependency-light)."""

from __future__ import annotations

from enum import StrEnum


class ScanSource(StrEnum):
    PHOTO = "photo"
    TEXT = "text"

    @classmethod
    def from_tag(cls, tag: str | None) -> ScanSource:
        """Map a remote source tag; anything but ``text`` counts as a photo."""
        return cls.TEXT if (tag or "").strip().lower() == "text" else cls.PHOTO


class RecycleStatus(StrEnum):
    """Disposal state lattice: non_recyclable < marked_for_recycle < recycled."""

    NON_RECYCLABLE = "non_recyclable"
    MARKED_FOR_RECYCLE = "marked_for_recycle"
    RECYCLED = "recycled"

    @property
    def rank(self) -> int:
        return _STATUS_RANK[self]


_STATUS_RANK: dict[RecycleStatus, int] = {
    RecycleStatus.NON_RECYCLABLE: 1,
    RecycleStatus.MARKED_FOR_RECYCLE: 2,
    RecycleStatus.RECYCLED: 3,
}


def merge_status(existing: RecycleStatus, incoming: RecycleStatus) -> RecycleStatus:
    """Lattice join; merges never move an entry backwards."""
    return existing if existing.rank >= incoming.rank else incoming


def merge_source(existing: ScanSource, incoming: ScanSource) -> ScanSource:
    if ScanSource.PHOTO in (existing, incoming):
        return ScanSource.PHOTO
    return ScanSource.TEXT
