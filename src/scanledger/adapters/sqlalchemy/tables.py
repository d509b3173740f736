"""SQLAlchemy Core table metadata for the entry log."""

from __future__ import annotations

import uuid
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Dialect,
    Enum,
    Float,
    ForeignKey,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    TypeDecorator,
    Uuid,
)

from scanledger.domain.model import RecycleStatus, ScanSource

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine

UUIDColumnType = Uuid[uuid.UUID]


class UTCDateTime(TypeDecorator[datetime]):
    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    def process_result_value(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        return value if value.tzinfo else value.replace(tzinfo=UTC)


def _enum_values(enum_cls: type[RecycleStatus] | type[ScanSource]) -> list[str]:
    return [member.value for member in enum_cls]


metadata = MetaData()

entries_table = Table(
    "entries",
    metadata,
    Column("id", UUIDColumnType, primary_key=True),
    Column("position", Integer, nullable=False),
    Column("date", UTCDateTime(), nullable=False),
    Column("item", String(255), nullable=False),
    Column("material", String(255), nullable=False),
    Column("recyclable", Boolean, nullable=False),
    Column("bin", String(255), nullable=False),
    Column("notes", Text, nullable=False),
    Column("carbon_saved_kg", Float, nullable=False),
    Column(
        "recycle_status",
        Enum(RecycleStatus, values_callable=_enum_values, native_enum=False, length=32),
        nullable=False,
    ),
    Column("raw_payload", Text, nullable=False),
    Column(
        "source",
        Enum(ScanSource, values_callable=_enum_values, native_enum=False, length=16),
        nullable=False,
    ),
    Column("local_image_path", String(1024)),
    Column("remote_image_path", String(1024)),
    Column("scan_count", Integer, nullable=False),
)

scans_table = Table(
    "scans",
    metadata,
    Column("id", UUIDColumnType, primary_key=True),
    Column(
        "entry_id",
        UUIDColumnType,
        ForeignKey("entries.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    ),
    Column("position", Integer, nullable=False),
    Column("date", UTCDateTime(), nullable=False),
    Column("item", String(255), nullable=False),
    Column("material", String(255), nullable=False),
    Column("recyclable", Boolean, nullable=False),
    Column("bin", String(255), nullable=False),
    Column("notes", Text, nullable=False),
    Column("carbon_saved_kg", Float, nullable=False),
    Column(
        "source",
        Enum(ScanSource, values_callable=_enum_values, native_enum=False, length=16),
        nullable=False,
    ),
    Column("local_image_path", String(1024)),
    Column("remote_image_path", String(1024)),
    Column("raw_payload", Text, nullable=False),
)


def create_schema(engine: Engine) -> None:
    metadata.create_all(engine)
