"""Rows of the remote authoritative impact log, as seen by the domain."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True, kw_only=True)
class RemoteRecord:
    """One server-side impact row.

    ``scanned_at`` stays a raw string: the server may hand back values that do
    not parse, and reconciliation decides the fallback.
    """

    item: str = ""
    material: str = ""
    bin: str = ""
    notes: str = ""
    recyclable: bool = False
    item_key: str = ""
    day_key: str = ""
    scanned_at: str = ""
    scan_count: int | None = None
    source: str | None = None
    points: int = 0
    image_path: str | None = None
    row_id: str | None = None
    user_id: str | None = None
