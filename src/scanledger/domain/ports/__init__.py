"""Domain port definitions for adapters."""

from __future__ import annotations

from .classifier import ClassifierResponseParser, ParsedClassification, ParseFailed, ParseOutcome
from .persistence import EntryStore, EntryStoreError
from .remote import ImageUploader, ImpactPayload, RemoteImpactStore, RemoteStoreError

__all__ = [
    "ClassifierResponseParser",
    "EntryStore",
    "EntryStoreError",
    "ImageUploader",
    "ImpactPayload",
    "ParseFailed",
    "ParseOutcome",
    "ParsedClassification",
    "RemoteImpactStore",
    "RemoteStoreError",
]
