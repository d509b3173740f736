"""Immutable record of one classification applied to one capture."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from scanledger.domain.carbon import clamp_kg

from .enums import ScanSource

if TYPE_CHECKING:
    from datetime import datetime

    from .classification import ClassificationResult


def new_id() -> UUID:
    return uuid4()


@dataclass(frozen=True, slots=True, kw_only=True)
class Scan:
    id: UUID = field(default_factory=new_id)
    date: datetime
    item: str
    material: str
    recyclable: bool
    bin: str
    notes: str
    carbon_saved_kg: float = 0.0
    source: ScanSource = ScanSource.PHOTO
    local_image_path: str | None = None
    remote_image_path: str | None = None
    raw_payload: str = ""

    def __post_init__(self) -> None:
        object.__setattr__(self, "carbon_saved_kg", clamp_kg(self.carbon_saved_kg))

    @classmethod
    def from_result(
        cls,
        result: ClassificationResult,
        *,
        date: datetime,
        source: ScanSource,
        raw_payload: str = "",
        local_image_path: str | None = None,
        remote_image_path: str | None = None,
    ) -> Scan:
        return cls(
            date=date,
            item=result.item,
            material=result.material,
            recyclable=result.recyclable,
            bin=result.bin,
            notes=result.notes,
            carbon_saved_kg=result.carbon_saved_kg,
            source=source,
            local_image_path=local_image_path,
            remote_image_path=remote_image_path,
            raw_payload=raw_payload,
        )

    def with_remote_image(self, path: str) -> Scan:
        return replace(self, remote_image_path=path)
