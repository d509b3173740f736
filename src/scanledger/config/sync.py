"""Synchronization defaults for the remote impact log."""

from __future__ import annotations

from dataclasses import dataclass

DEFAULT_FETCH_LIMIT = 60
DEFAULT_UPSERT_ATTEMPTS = 3
DEFAULT_RETRY_DELAY_SECONDS = 0.25
DEFAULT_QUEUE_SIZE = 32


@dataclass(frozen=True, slots=True)
class SyncConfig:
    fetch_limit: int = DEFAULT_FETCH_LIMIT
    upsert_attempts: int = DEFAULT_UPSERT_ATTEMPTS
    retry_delay_seconds: float = DEFAULT_RETRY_DELAY_SECONDS
    queue_size: int = DEFAULT_QUEUE_SIZE


def get_sync_config() -> SyncConfig:
    return SyncConfig()
