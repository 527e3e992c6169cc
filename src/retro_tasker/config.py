# src/retro_tasker/config.py

"""Settings for retro-tasker, read from TASKER_* environment variables.

A local .env file is loaded first (it never overrides the real environment).
Every value has a default, so a bare checkout runs without configuration and
keeps its data under the gitignored .local/ directory.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

ENV_PREFIX = "TASKER"

DEFAULT_APP_NAME = "retro-tasker"
DEFAULT_DATA_DIR = Path(".local/retro_tasker")
DEFAULT_CATEGORIES_KEY = "retroTaskerCategories"
DEFAULT_TASKS_KEY = "retroTaskerTasks"

load_dotenv(override=False)


def _k(suffix: str) -> str:
    return f"{ENV_PREFIX}_{suffix}"


def _env_str(suffix: str, default: str) -> str:
    """Stripped value, or the default when unset or blank."""
    raw = os.getenv(_k(suffix))
    if raw is None or not raw.strip():
        return default
    return raw.strip()


def _env_flag(suffix: str, default: bool) -> bool:
    raw = os.getenv(_k(suffix))
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_dir(suffix: str, default: Path) -> Path:
    raw = os.getenv(_k(suffix))
    if raw is None or not raw.strip():
        return default
    return Path(raw.strip()).expanduser()


@dataclass(frozen=True, slots=True)
class Settings:
    app_name: str
    log_level: str

    # gitignored local state
    data_dir: Path
    db_path: Path

    # names of the two persisted JSON blobs
    categories_key: str
    tasks_key: str

    seed_defaults: bool

    @staticmethod
    def from_env() -> "Settings":
        data_dir = _env_dir("DATA_DIR", DEFAULT_DATA_DIR)
        return Settings(
            app_name=_env_str("APP_NAME", DEFAULT_APP_NAME),
            log_level=_env_str("LOG_LEVEL", "INFO").upper(),
            data_dir=data_dir,
            db_path=_env_dir("DB_PATH", data_dir / "organizer.sqlite3"),
            categories_key=_env_str("CATEGORIES_KEY", DEFAULT_CATEGORIES_KEY),
            tasks_key=_env_str("TASKS_KEY", DEFAULT_TASKS_KEY),
            seed_defaults=_env_flag("SEED_DEFAULTS", True),
        )


SETTINGS = Settings.from_env()


def get_settings() -> Settings:
    return SETTINGS
