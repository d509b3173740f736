"""Public interface for the Supabase impact-log adapter."""

from __future__ import annotations

from .client import SupabaseImpactStore
from .schema import ImpactEntryRow, ImpactPayloadModel
from .translator import parse_remote_record, payload_to_json

__all__ = [
    "ImpactEntryRow",
    "ImpactPayloadModel",
    "SupabaseImpactStore",
    "parse_remote_record",
    "payload_to_json",
]
