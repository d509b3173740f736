"""Pydantic models for rows of the ``impact_entries`` table."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, field_validator


def _blank_to_none(value: object) -> object:
    if isinstance(value, str):
        stripped = value.strip()
        return stripped or None
    return value


def _none_to_empty(value: object) -> object:
    return "" if value is None else value


def _stringify(value: object) -> object:
    if value is None or isinstance(value, str):
        return value
    return str(value)


class SupabaseBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class ImpactEntryRow(SupabaseBaseModel):
    """Row as returned by PostgREST; nulls and missing columns fall back to empty values."""

    id: str | None = None
    user_id: str | None = None
    item_key: str = ""
    day_key: str = ""
    item: str = ""
    material: str = ""
    recyclable: bool = False
    bin: str = ""
    notes: str = ""
    scanned_at: str = ""
    points: int = 0
    scan_count: int | None = None
    source: str | None = None
    image_path: str | None = None

    _stringify_ids = field_validator("id", "user_id", "scanned_at", mode="before")(_stringify)
    _normalize_optional = field_validator("id", "user_id", "source", "image_path", mode="before")(
        _blank_to_none
    )
    _normalize_text = field_validator(
        "item_key", "day_key", "item", "material", "bin", "notes", "scanned_at", mode="before"
    )(_none_to_empty)

    @field_validator("recyclable", mode="before")
    @classmethod
    def _parse_recyclable(cls, value: object) -> object:
        return False if value is None else value

    @field_validator("points", mode="before")
    @classmethod
    def _parse_points(cls, value: object) -> object:
        if value is None:
            return 0
        if isinstance(value, float):
            return int(value)
        return value


class ImpactPayloadModel(SupabaseBaseModel):
    """Body of an upsert into ``impact_entries``."""

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
    image_path: str | None = None
    source: str
