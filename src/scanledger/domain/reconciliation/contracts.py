"""Shared type aliases for reconciliation."""

from __future__ import annotations

type DayKey = str
type ItemKey = str
type EntryKey = tuple[DayKey, ItemKey]
