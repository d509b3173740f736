"""Reconciliation of the local entry log against the remote impact log.

Layered flow:
1) collapse local entries sharing a (day, item) key by preference
2) resolve each remote row (timestamp fallback, keys, status, carbon)
3) exact-key match, then same-day fuzzy fallback, else a new entry
4) return the merged log sorted newest first
"""

from __future__ import annotations

from .contracts import DayKey, EntryKey, ItemKey
from .engine import (
    ResolvedRecord,
    entry_from_remote,
    group_local_entries,
    reconcile,
    remote_status,
    resolve_record,
)
from .matching import best_fuzzy_match, candidate_score
from .preference import preference_rank, preferred_entry

__all__ = [
    "DayKey",
    "EntryKey",
    "ItemKey",
    "ResolvedRecord",
    "best_fuzzy_match",
    "candidate_score",
    "entry_from_remote",
    "group_local_entries",
    "preference_rank",
    "preferred_entry",
    "reconcile",
    "remote_status",
    "resolve_record",
]
