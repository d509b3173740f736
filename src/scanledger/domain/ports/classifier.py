"""Contract for turning raw classifier output into a classification result."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from scanledger.domain.model import ClassificationResult


@dataclass(frozen=True, slots=True)
class ParsedClassification:
    result: ClassificationResult
    strategy: str
    raw: str


@dataclass(frozen=True, slots=True)
class ParseFailed:
    reason: str
    raw: str


type ParseOutcome = ParsedClassification | ParseFailed


@runtime_checkable
class ClassifierResponseParser(Protocol):
    def __call__(self, raw: str) -> ParseOutcome: ...


__all__ = [
    "ClassifierResponseParser",
    "ParseFailed",
    "ParseOutcome",
    "ParsedClassification",
]
