"""Remote impact store configuration values."""

from __future__ import annotations

from dataclasses import dataclass

from .env import env_flag, require_env_vars
from .http_resilience import RateLimit, ResilienceConfig

REMOTE_TIMEOUT_SECONDS = 20.0

_URL_VAR = "SCANLEDGER_SUPABASE_URL"
_ANON_KEY_VAR = "SCANLEDGER_SUPABASE_ANON_KEY"
_TOKEN_VAR = "SCANLEDGER_ACCESS_TOKEN"
_USER_VAR = "SCANLEDGER_USER_ID"


@dataclass(frozen=True)
class RemoteStoreConfig:
    """Holds the remote authoritative store configuration."""

    base_url: str
    anon_key: str
    access_token: str
    user_id: str
    resilience: ResilienceConfig
    photo_storage_enabled: bool = True


def default_remote_resilience(base_url: str) -> ResilienceConfig:
    return ResilienceConfig(
        name="supabase",
        base_url=base_url.rstrip("/") + "/",
        timeout_seconds=REMOTE_TIMEOUT_SECONDS,
        ratelimit=RateLimit(max_calls=8, per_seconds=1.0),
    )


def get_remote_store_config(*, resilience: ResilienceConfig | None = None) -> RemoteStoreConfig:
    values = require_env_vars((_URL_VAR, _ANON_KEY_VAR, _TOKEN_VAR, _USER_VAR))
    base_url = values[_URL_VAR]
    return RemoteStoreConfig(
        base_url=base_url,
        anon_key=values[_ANON_KEY_VAR],
        access_token=values[_TOKEN_VAR],
        user_id=values[_USER_VAR],
        resilience=resilience or default_remote_resilience(base_url),
        photo_storage_enabled=env_flag("SCANLEDGER_PHOTO_STORAGE", default=True),
    )
