# src/taskfeed/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole app (normal "settings layer").
- Nothing is read at import time; get_settings() loads lazily once.
- Tests build Settings directly or via from_env(environ).
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

ENV_PREFIX = "TASKFEED"

STORE_BACKENDS = ("sqlite", "memory")


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


def _load_dotenv_if_available() -> None:
    """Load .env locally if python-dotenv is installed. Safe no-op otherwise."""
    try:
        from dotenv import load_dotenv  # type: ignore
    except ImportError:
        return
    load_dotenv(override=False)


def _env(env: Mapping[str, str], name: str, default: str = "") -> str:
    v = env.get(name)
    return default if v is None else v


def _env_bool(env: Mapping[str, str], name: str, default: bool) -> bool:
    raw = env.get(name)
    if raw is None or raw.strip() == "":
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_path(env: Mapping[str, str], name: str, default: Path) -> Path:
    raw = env.get(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- App / logging ----
    app_name: str = "taskfeed"
    log_level: str = "INFO"
    log_to_file: bool = True

    # ---- Storage ----
    store_backend: str = "sqlite"

    # ---- Local data paths (ignored by git) ----
    data_dir: Path = Path(".local/taskfeed")
    tasks_db_path: Path = Path(".local/taskfeed/tasks.sqlite3")

    @staticmethod
    def from_env(environ: Mapping[str, str] | None = None) -> Settings:
        env = os.environ if environ is None else environ

        app_name = _env(env, _k("APP_NAME"), "taskfeed").strip() or "taskfeed"
        log_level = _env(env, _k("LOG_LEVEL"), "INFO").strip().upper() or "INFO"
        log_to_file = _env_bool(env, _k("LOG_TO_FILE"), True)

        store_backend = _env(env, _k("STORE_BACKEND"), "sqlite").strip().lower()
        if store_backend not in STORE_BACKENDS:
            raise ValueError(
                f"{_k('STORE_BACKEND')} must be one of {', '.join(STORE_BACKENDS)}, got {store_backend!r}"
            )

        data_dir = _env_path(env, _k("DATA_DIR"), Path(".local/taskfeed"))
        tasks_db_path = _env_path(env, _k("TASKS_DB_PATH"), data_dir / "tasks.sqlite3")

        return Settings(
            app_name=app_name,
            log_level=log_level,
            log_to_file=log_to_file,
            store_backend=store_backend,
            data_dir=data_dir,
            tasks_db_path=tasks_db_path,
        )


_SETTINGS: Settings | None = None


def get_settings() -> Settings:
    global _SETTINGS
    if _SETTINGS is None:
        _load_dotenv_if_available()
        _SETTINGS = Settings.from_env()
    return _SETTINGS
