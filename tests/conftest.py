from __future__ import annotations

from datetime import UTC
from typing import TYPE_CHECKING

import pytest

from scanledger.config import StorageConfig
from scanledger.domain.history import ScanHistory
from tests.support.entries import NOON, InMemoryEntryStore, fixed_clock

if TYPE_CHECKING:
    from pathlib import Path


@pytest.fixture(autouse=True)
def _isolated_environment(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    for name in (
        "SCANLEDGER_SUPABASE_URL",
        "SCANLEDGER_SUPABASE_ANON_KEY",
        "SCANLEDGER_ACCESS_TOKEN",
        "SCANLEDGER_USER_ID",
        "SCANLEDGER_PHOTO_STORAGE",
        "SCANLEDGER_STORAGE_BACKEND",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("SCANLEDGER_DATA_DIR", str(tmp_path / "data"))


@pytest.fixture
def storage_config(tmp_path: Path) -> StorageConfig:
    return StorageConfig(data_dir=tmp_path / "data")


@pytest.fixture
def memory_store() -> InMemoryEntryStore:
    return InMemoryEntryStore()


@pytest.fixture
def history(memory_store: InMemoryEntryStore) -> ScanHistory:
    return ScanHistory(memory_store, clock=fixed_clock(NOON), tz=UTC)
