from __future__ import annotations

import pytest

from scanledger.config import RemoteStoreConfig
from scanledger.config.remote import default_remote_resilience

BASE_URL = "https://project.supabase.co"


@pytest.fixture
def remote_config() -> RemoteStoreConfig:
    return RemoteStoreConfig(
        base_url=BASE_URL,
        anon_key="anon-key",
        access_token="user-token",
        user_id="user-1",
        resilience=default_remote_resilience(BASE_URL),
    )


@pytest.fixture
def sample_row() -> dict[str, object]:
    return {
        "id": 42,
        "user_id": "user-1",
        "item_key": "steel can|steel|recycling",
        "day_key": "2025-03-14",
        "item": "Steel Can",
        "material": "steel",
        "recyclable": True,
        "bin": "Recycling",
        "notes": None,
        "scanned_at": "2025-03-14T15:00:00.000Z",
        "points": 500,
        "scan_count": 2,
        "source": "photo",
        "image_path": "",
    }
