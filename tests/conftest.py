# tests/conftest.py

from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace

import pytest

from retro_tasker.cli.bootstrap import create_initial_state
from retro_tasker.core.state import AppState
from retro_tasker.organizer.models import Category
from retro_tasker.organizer.store import OrderedStore

from .fakes import CountingIds, RecordingListener


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with bootstrap and the commands.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated and deterministic.
    """
    return SimpleNamespace(
        app_name="retro-tasker-test",
        log_level="DEBUG",
        data_dir=tmp_path,
        db_path=tmp_path / "organizer.sqlite3",
        categories_key="retroTaskerCategories",
        tasks_key="retroTaskerTasks",
        seed_defaults=True,
    )


@pytest.fixture()
def listener() -> RecordingListener:
    return RecordingListener()


@pytest.fixture()
def store(listener: RecordingListener) -> OrderedStore:
    """Two categories (Work, Personal), no tasks, deterministic ids."""
    return OrderedStore(
        [
            Category(id="work", name="Work", color="#9b87f5", icon="Briefcase", position=0),
            Category(id="personal", name="Personal", color="#1EAEDB", icon="User", position=1),
        ],
        id_factory=CountingIds(),
        listeners=[listener],
    )


@pytest.fixture()
def state(settings: SimpleNamespace) -> AppState:
    """
    AppState wired by the real bootstrap.

    NOTE: We keep the real SQLite blob store here because its correctness is
    part of what we want to test.
    """
    return create_initial_state(settings=settings)
