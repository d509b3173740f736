"""Application configuration helpers."""

from __future__ import annotations

from .env import env_flag, require_env_vars
from .errors import ConfigurationError, MissingConfigurationError
from .http_resilience import RateLimit, ResilienceConfig, RetryPolicy
from .logging import configure_logging
from .remote import RemoteStoreConfig, default_remote_resilience, get_remote_store_config
from .storage import StorageConfig, get_storage_config
from .sync import SyncConfig, get_sync_config

__all__ = [
    "ConfigurationError",
    "MissingConfigurationError",
    "RateLimit",
    "RemoteStoreConfig",
    "ResilienceConfig",
    "RetryPolicy",
    "StorageConfig",
    "SyncConfig",
    "configure_logging",
    "default_remote_resilience",
    "env_flag",
    "get_remote_store_config",
    "get_storage_config",
    "get_sync_config",
    "require_env_vars",
]
