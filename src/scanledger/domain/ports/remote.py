"""Ports for the remote authoritative impact log and its image storage."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from scanledger.domain.model import RemoteRecord


class RemoteStoreError(RuntimeError):
    """Raised when the remote store answers with an error or an unreadable body."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


@dataclass(frozen=True, slots=True, kw_only=True)
class ImpactPayload:
    """Row written to the remote log; the server upserts on (user, day, item)."""

    user_id: str
    item_key: str
    day_key: str
    item: str
    material: str
    recyclable: bool
    bin: str
    notes: str
    scanned_at: str
    points: int
    scan_count: int
    image_path: str | None
    source: str

    @property
    def conflict_key(self) -> tuple[str, str, str]:
        return (self.user_id, self.day_key, self.item_key)


@runtime_checkable
class RemoteImpactStore(Protocol):
    async def fetch(self, *, limit: int) -> list[RemoteRecord]: ...

    async def insert(self, payload: ImpactPayload) -> bool:
        """Upsert ``payload``; ``False`` when the server declined the write."""
        ...


@runtime_checkable
class ImageUploader(Protocol):
    async def upload_image(self, *, data: bytes, path: str) -> None: ...


__all__ = ["ImageUploader", "ImpactPayload", "RemoteImpactStore", "RemoteStoreError"]
