"""Translate between ``impact_entries`` rows and domain values."""

from __future__ import annotations

from typing import TYPE_CHECKING

from scanledger.domain.model import RemoteRecord

from .schema import ImpactEntryRow, ImpactPayloadModel

if TYPE_CHECKING:
    from collections.abc import Mapping

    from scanledger.domain.ports import ImpactPayload


def parse_remote_record(payload: ImpactEntryRow | Mapping[str, object]) -> RemoteRecord:
    row = payload if isinstance(payload, ImpactEntryRow) else ImpactEntryRow.model_validate(payload)
    return RemoteRecord(
        item=row.item,
        material=row.material,
        bin=row.bin,
        notes=row.notes,
        recyclable=row.recyclable,
        item_key=row.item_key,
        day_key=row.day_key,
        scanned_at=row.scanned_at,
        scan_count=row.scan_count,
        source=row.source,
        points=row.points,
        image_path=row.image_path,
        row_id=row.id,
        user_id=row.user_id,
    )


def payload_to_json(payload: ImpactPayload) -> dict[str, object]:
    model = ImpactPayloadModel(
        user_id=payload.user_id,
        item_key=payload.item_key,
        day_key=payload.day_key,
        item=payload.item,
        material=payload.material,
        recyclable=payload.recyclable,
        bin=payload.bin,
        notes=payload.notes,
        scanned_at=payload.scanned_at,
        points=payload.points,
        scan_count=payload.scan_count,
        image_path=payload.image_path,
        source=payload.source,
    )
    return model.model_dump(mode="json")
