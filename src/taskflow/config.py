"""Settings loaded from TASKFLOW_* environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

ENV_PREFIX = "TASKFLOW"

STORAGE_KINDS = ("sqlite", "memory")


def _k(suffix: str) -> str:
    return f"{ENV_PREFIX}_{suffix}"


def _env(name: str, default: str) -> str:
    v = os.getenv(name)
    return default if v is None or v.strip() == "" else v.strip()


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


@dataclass(frozen=True)
class Settings:
    log_level: str = "INFO"
    log_dir: Path = Path("./logs")
    db_path: Path = Path("./data/taskflow.db")
    storage: str = "sqlite"
    host: str = "127.0.0.1"
    port: int = 8000

    @classmethod
    def from_env(cls) -> "Settings":
        storage = _env(_k("STORAGE"), "sqlite").lower()
        if storage not in STORAGE_KINDS:
            storage = "sqlite"
        return cls(
            log_level=_env(_k("LOG_LEVEL"), "INFO").upper(),
            log_dir=_env_path(_k("LOG_DIR"), Path("./logs")),
            db_path=_env_path(_k("DB_PATH"), Path("./data/taskflow.db")),
            storage=storage,
            host=_env(_k("HOST"), "127.0.0.1"),
            port=_env_int(_k("PORT"), 8000),
        )
