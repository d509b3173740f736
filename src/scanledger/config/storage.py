"""Data storage configuration helpers."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Final, Literal

from .errors import ConfigurationError

APP_DIR_NAME: Final[str] = "scanledger"
DEFAULT_HISTORY_FILENAME: Final[str] = "impact-history.json"
LEGACY_HISTORY_FILENAME: Final[str] = "history.v1.json"
DEFAULT_IMAGES_DIRNAME: Final[str] = "impact-images"
DEFAULT_DB_FILENAME: Final[str] = "scanledger.db"

type StorageBackend = Literal["json", "sqlite"]
_BACKENDS: Final[frozenset[str]] = frozenset({"json", "sqlite"})


@dataclass(frozen=True, slots=True)
class StorageConfig:
    data_dir: Path
    history_filename: str = DEFAULT_HISTORY_FILENAME
    legacy_filename: str = LEGACY_HISTORY_FILENAME
    images_dirname: str = DEFAULT_IMAGES_DIRNAME
    database_filename: str = DEFAULT_DB_FILENAME
    backend: StorageBackend = "json"

    def resolve_data_dir(self) -> Path:
        return self.data_dir.expanduser().resolve()

    def ensure_data_dir(self) -> Path:
        data_dir = self.resolve_data_dir()
        data_dir.mkdir(parents=True, exist_ok=True)
        return data_dir

    def history_path(self, *, ensure: bool = True) -> Path:
        base = self.ensure_data_dir() if ensure else self.resolve_data_dir()
        return base / self.history_filename

    def legacy_history_path(self) -> Path:
        return self.resolve_data_dir() / self.legacy_filename

    def images_dir(self, *, ensure: bool = True) -> Path:
        images = self.resolve_data_dir() / self.images_dirname
        if ensure:
            images.mkdir(parents=True, exist_ok=True)
        return images

    def database_path(self, *, ensure: bool = True) -> Path:
        base = self.ensure_data_dir() if ensure else self.resolve_data_dir()
        return base / self.database_filename

    def database_uri(self) -> str:
        return f"sqlite+pysqlite:///{self.database_path()}"


def _default_data_dir() -> Path:
    if os.name == "nt":
        base = os.getenv("LOCALAPPDATA")
        base_path = Path(base) if base else (Path.home() / "AppData" / "Local")
    else:
        base = os.getenv("XDG_DATA_HOME")
        base_path = Path(base) if base else (Path.home() / ".local" / "share")
    return (base_path / APP_DIR_NAME).expanduser().resolve()


def get_storage_config() -> StorageConfig:
    env_dir = os.getenv("SCANLEDGER_DATA_DIR")
    data_dir = Path(env_dir) if env_dir else _default_data_dir()
    backend = (os.getenv("SCANLEDGER_STORAGE_BACKEND") or "json").strip().lower()
    if backend not in _BACKENDS:
        raise ConfigurationError(f"Unsupported storage backend: {backend}")
    return StorageConfig(data_dir=data_dir, backend="sqlite" if backend == "sqlite" else "json")
