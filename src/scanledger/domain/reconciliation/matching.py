"""Fallback fuzzy matching of a remote row against same-day local entries."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from scanledger.domain.keys import is_duplicate
from scanledger.domain.model import ScanSource

if TYPE_CHECKING:
    from collections.abc import Mapping
    from uuid import UUID

    from scanledger.domain.keys import SimilarityProfile
    from scanledger.domain.model import Entry

    from .contracts import EntryKey

log = logging.getLogger(__name__)

PHOTO_SOURCE_SCORE = 20
LOCAL_IMAGE_SCORE = 10
ITEM_KEY_CONTAINMENT_SCORE = 3


def candidate_score(entry: Entry, *, entry_item_key: str, record_item_key: str) -> int:
    score = max(1, entry.scan_count)
    if entry.source is ScanSource.PHOTO:
        score += PHOTO_SOURCE_SCORE
    if entry.has_local_image:
        score += LOCAL_IMAGE_SCORE
    if record_item_key and record_item_key in entry_item_key:
        score += ITEM_KEY_CONTAINMENT_SCORE
    return score


def best_fuzzy_match(
    groups: Mapping[EntryKey, Entry],
    *,
    day: str,
    record_item_key: str,
    record_profile: SimilarityProfile,
) -> EntryKey | None:
    """Key of the highest-scoring similar entry on ``day``.

    Equal scores fall back to the entry id, which survives every merge, so
    the winner does not depend on ``groups`` iteration order.
    """

    best_key: EntryKey | None = None
    best_rank: tuple[int, UUID] | None = None
    for key, entry in groups.items():
        entry_day, entry_item_key = key
        if entry_day != day:
            continue
        if not is_duplicate(entry.similarity(), record_profile):
            continue
        score = candidate_score(
            entry, entry_item_key=entry_item_key, record_item_key=record_item_key
        )
        rank = (score, entry.id)
        if best_rank is None or rank > best_rank:
            best_key, best_rank = key, rank
    if best_key is not None and best_rank is not None:
        log.debug("Fuzzy match for %r: %s (score=%s)", record_item_key, best_key, best_rank[0])
    return best_key
