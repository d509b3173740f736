"""Deterministic bucketing keys and fuzzy similarity between classifications.

Two families of helpers live here:

- exact keys (:func:`day_key`, :func:`item_key`) shared with the remote impact
  log, so their output format is a wire contract;
- fuzzy matching (:func:`similarity_tokens`, :func:`are_similar`,
  :func:`is_duplicate`) used only to decide whether two results describe the
  same physical item.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import TYPE_CHECKING, Final

if TYPE_CHECKING:
    from datetime import datetime, tzinfo

UNKNOWN_MATERIAL: Final[str] = "unknown"
ITEM_KEY_SEPARATOR: Final[str] = "|"

_NO_INFORMATION: Final[frozenset[str]] = frozenset({"", "n/a", "null", "-"})
_STOPWORDS: Final[frozenset[str]] = frozenset(
    {
        "a", "an", "the", "and", "or", "of", "for", "with", "without",
        "in", "on", "at", "to", "from", "by", "into", "over", "under",
        "this", "that", "these", "those", "item", "recyclable", "recycling",
    }
)  # fmt: skip
_WHITESPACE = re.compile(r"\s+")
_TOKEN = re.compile(r"[^\W_]+")


def day_key(timestamp: datetime, *, tz: tzinfo | None = None) -> str:
    """Return the ``YYYY-MM-DD`` bucket of ``timestamp`` in the local calendar.

    ``tz`` defaults to the device's local zone. Naive timestamps are taken as
    local time.
    """

    return timestamp.astimezone(tz).strftime("%Y-%m-%d")


def _collapse(value: str) -> str:
    return _WHITESPACE.sub(" ", value.strip().lower())


def normalized_material(material: str | None) -> str:
    """Lowercase and trim ``material``; "no information" spellings become ``unknown``."""

    collapsed = _collapse(material or "")
    if collapsed in _NO_INFORMATION or UNKNOWN_MATERIAL in collapsed:
        return UNKNOWN_MATERIAL
    return collapsed


def item_key(item: str | None, material: str | None, bin: str | None) -> str:  # noqa: A002
    """Exact-match identity of a classification.

    Deliberately not fuzzy: two results exact-match only when this string is
    byte-identical.
    """

    return ITEM_KEY_SEPARATOR.join(
        (_collapse(item or ""), normalized_material(material), _collapse(bin or ""))
    )


def _tokenize(text: str) -> set[str]:
    tokens: set[str] = set()
    for raw in _TOKEN.findall(text.lower()):
        if raw in _STOPWORDS:
            continue
        if len(raw) > 3 and raw.endswith("s"):
            raw = raw[:-1]
        tokens.add(raw)
    return tokens


def similarity_tokens(item: str | None, material: str | None) -> frozenset[str]:
    tokens = _tokenize(item or "")
    material_value = normalized_material(material)
    if material_value != UNKNOWN_MATERIAL:
        tokens |= _tokenize(material_value)
    return frozenset(tokens)


def are_similar(lhs: frozenset[str], rhs: frozenset[str]) -> bool:
    """Two or more shared tokens, or one shared token when one set contains the other.

    A single shared generic word ("bottle") between otherwise different
    names is not enough.
    """

    shared = len(lhs & rhs)
    if shared >= 2:
        return True
    return shared >= 1 and (lhs <= rhs or rhs <= lhs)


@dataclass(frozen=True, slots=True)
class SimilarityProfile:
    """Precomputed fuzzy-matching view of one classification."""

    tokens: frozenset[str]
    material: str

    @classmethod
    def of(cls, item: str | None, material: str | None) -> SimilarityProfile:
        return cls(tokens=similarity_tokens(item, material), material=normalized_material(material))

    def overlap(self, other: SimilarityProfile) -> int:
        return len(self.tokens & other.tokens)


def is_duplicate(lhs: SimilarityProfile, rhs: SimilarityProfile) -> bool:
    """Fuzzy duplicate test with the material veto.

    Unknown material never vetoes. Two known, different materials veto unless
    the names share at least two tokens.
    """

    if not are_similar(lhs.tokens, rhs.tokens):
        return False
    if UNKNOWN_MATERIAL in (lhs.material, rhs.material) or lhs.material == rhs.material:
        return True
    return lhs.overlap(rhs) >= 2
