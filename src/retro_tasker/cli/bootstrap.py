# src/retro_tasker/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local (gitignored) directories exist,
- loads the persisted collections and wires store + persister into AppState.
"""

from __future__ import annotations

import logging

from ..config import get_settings
from ..core.ports import BlobStorage
from ..core.state import AppState
from ..organizer.blob_store import SQLiteBlobStore
from ..organizer.persistence import (
    DEFAULT_CATEGORIES_KEY,
    DEFAULT_TASKS_KEY,
    BlobKeys,
    BlobPersister,
    load_collections,
)
from ..organizer.store import OrderedStore

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.db_path.parent.mkdir(parents=True, exist_ok=True)


def _blob_keys(settings) -> BlobKeys:
    return BlobKeys(
        categories=getattr(settings, "categories_key", DEFAULT_CATEGORIES_KEY),
        tasks=getattr(settings, "tasks_key", DEFAULT_TASKS_KEY),
    )


def create_initial_state(*, settings=None, blobs: BlobStorage | None = None) -> AppState:
    """
    Create AppState from the provided settings.

    Keeping settings (and the blob backend) injectable makes the app easier to
    test and avoids hidden global config reads.
    If settings is None, falls back to get_settings().
    """
    if settings is None:
        settings = get_settings()

    if blobs is None:
        _ensure_local_dirs(settings)
        blobs = SQLiteBlobStore(settings.db_path)

    keys = _blob_keys(settings)
    categories, tasks = load_collections(
        blobs, keys, seed_defaults=bool(getattr(settings, "seed_defaults", True))
    )

    store = OrderedStore(categories, tasks)
    store.check_invariants()
    persister = BlobPersister(blobs, keys).attach(store)

    return AppState(settings=settings, store=store, persister=persister)


def save_state(state: AppState) -> None:
    """Write both blobs (used on shutdown); failures are logged, not raised."""
    if state.persister.save_all():
        logger.info(
            "Saved %d categories and %d tasks.",
            len(state.store.categories),
            len(state.store.tasks),
        )
