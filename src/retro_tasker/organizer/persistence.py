# src/retro_tasker/organizer/persistence.py

"""
Blob persistence for the organizer.

Categories and tasks are saved as two independent JSON arrays under fixed keys.
Loading is forgiving: a missing blob gives the defaults, a malformed blob is
treated as missing, and records that would break position density or point at
a missing category are repaired before the store sees them.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import Any

from ..core.ports import BlobStorage
from .errors import PersistenceError
from .models import Category, Task
from .selectors import sorted_by_position
from .store import OrderedStore, StoreChange

logger = logging.getLogger(__name__)

DEFAULT_CATEGORIES_KEY = "retroTaskerCategories"
DEFAULT_TASKS_KEY = "retroTaskerTasks"


def default_categories() -> list[Category]:
    # Stable ids: seeded data must look the same on every fresh start.
    return [
        Category(id="cat-1", name="Work", color="#9b87f5", icon="Briefcase", position=0),
        Category(id="cat-2", name="Personal", color="#1EAEDB", icon="User", position=1),
        Category(id="cat-3", name="Ideas", color="#FF69B4", icon="Lightbulb", position=2),
    ]


@dataclass(frozen=True, slots=True)
class BlobKeys:
    categories: str = DEFAULT_CATEGORIES_KEY
    tasks: str = DEFAULT_TASKS_KEY


# ---- encoding ----

def dump_categories(categories: Iterable[Category]) -> str:
    return json.dumps([c.to_dict() for c in categories], ensure_ascii=False)


def dump_tasks(tasks: Iterable[Task]) -> str:
    return json.dumps([t.to_dict() for t in tasks], ensure_ascii=False)


def _decode_records(raw: str | None, key: str) -> list[dict[str, Any]] | None:
    """JSON array of objects, or None when the blob is absent or unusable."""
    if raw is None:
        return None
    try:
        data = json.loads(raw)
    except json.JSONDecodeError:
        logger.warning("Blob %s is not valid JSON; falling back to defaults.", key)
        return None
    if not isinstance(data, list):
        logger.warning("Blob %s is not a JSON array; falling back to defaults.", key)
        return None

    records = [r for r in data if isinstance(r, dict) and r.get("id") not in (None, "")]
    skipped = len(data) - len(records)
    if skipped:
        logger.warning("Blob %s: skipped %d record(s) without an id.", key, skipped)
    return records


def _read(blobs: BlobStorage, key: str) -> str | None:
    try:
        return blobs.get_blob(key)
    except PersistenceError:
        logger.exception("Reading blob %s failed; treating it as absent.", key)
        return None


def load_categories(blobs: BlobStorage, key: str, *, seed_defaults: bool = True) -> list[Category]:
    records = _decode_records(_read(blobs, key), key)
    if records is None:
        return default_categories() if seed_defaults else []
    return [Category.from_dict(r) for r in records]


def load_tasks(blobs: BlobStorage, key: str) -> list[Task]:
    records = _decode_records(_read(blobs, key), key)
    if records is None:
        return []
    return [Task.from_dict(r) for r in records]


def repair_collections(
    categories: list[Category], tasks: list[Task]
) -> tuple[list[Category], list[Task]]:
    """
    Make loaded data satisfy the store invariants.

    - duplicate ids: first record wins
    - tasks of unknown categories are dropped
    - positions are renumbered densely, keeping the stored relative order
      (stored position first, then record order)
    """
    fixes: list[str] = []

    seen: set[str] = set()
    unique_cats: list[Category] = []
    for c in categories:
        if c.id in seen:
            fixes.append(f"dropped duplicate category {c.id}")
            continue
        seen.add(c.id)
        unique_cats.append(c)

    known = {c.id for c in unique_cats}
    seen = set()
    kept_tasks: list[Task] = []
    for t in tasks:
        if t.id in seen:
            fixes.append(f"dropped duplicate task {t.id}")
            continue
        seen.add(t.id)
        if t.category_id not in known:
            fixes.append(f"dropped orphan task {t.id}")
            continue
        kept_tasks.append(t)

    for index, c in enumerate(sorted_by_position(unique_cats)):
        if c.position != index:
            fixes.append(f"category {c.id} position {c.position} -> {index}")
            c.position = index

    groups: dict[str, list[Task]] = {}
    for t in kept_tasks:
        groups.setdefault(t.category_id, []).append(t)
    for category_id, group in groups.items():
        for index, t in enumerate(sorted_by_position(group)):
            if t.position != index:
                fixes.append(f"task {t.id} in {category_id} position {t.position} -> {index}")
                t.position = index

    if fixes:
        logger.warning("Repaired loaded organizer data: %s", "; ".join(fixes))
    return unique_cats, kept_tasks


def load_collections(
    blobs: BlobStorage,
    keys: BlobKeys = BlobKeys(),
    *,
    seed_defaults: bool = True,
) -> tuple[list[Category], list[Task]]:
    categories = load_categories(blobs, keys.categories, seed_defaults=seed_defaults)
    tasks = load_tasks(blobs, keys.tasks)
    categories, tasks = repair_collections(categories, tasks)
    logger.info("Loaded %d categories and %d tasks.", len(categories), len(tasks))
    return categories, tasks


class BlobPersister:
    """
    Save-on-mutate listener.

    Subscribed to an OrderedStore; after each change it rewrites whichever of
    the two blobs the change touched, plus any blob whose last write failed.
    Failures never propagate into the store: they are logged and kept in
    `last_error` so the front-end can surface them.
    """

    def __init__(self, blobs: BlobStorage, keys: BlobKeys = BlobKeys()) -> None:
        self._blobs = blobs
        self._keys = keys
        self._store: OrderedStore | None = None
        self._unsubscribe: Callable[[], None] | None = None
        self._pending: set[str] = set()
        self.last_error: PersistenceError | None = None

    @property
    def pending(self) -> frozenset[str]:
        """Blob keys that still hold stale data after a failed write."""
        return frozenset(self._pending)

    def attach(self, store: OrderedStore) -> BlobPersister:
        self.detach()
        self._store = store
        self._unsubscribe = store.subscribe(self)
        return self

    def detach(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
        self._unsubscribe = None
        self._store = None

    def _write(self, wanted: set[str]) -> bool:
        store = self._store
        if store is None:
            return False
        dumps = (
            (self._keys.categories, lambda: dump_categories(store.categories)),
            (self._keys.tasks, lambda: dump_tasks(store.tasks)),
        )
        for key, dump in dumps:
            if key not in wanted:
                continue
            try:
                self._blobs.set_blob(key, dump())
            except PersistenceError as e:
                self._pending.add(key)
                self.last_error = e
                logger.exception("Writing blob %s failed; in-memory state kept.", key)
                continue
            self._pending.discard(key)
        if self._pending:
            return False
        self.last_error = None
        return True

    def __call__(self, change: StoreChange) -> None:
        wanted = set(self._pending)
        if change.category_ids:
            wanted.add(self._keys.categories)
        if change.task_ids:
            wanted.add(self._keys.tasks)
        if self._pending:
            logger.info(
                "Retrying stale blob(s) %s after %s change.", sorted(self._pending), change.action
            )
        self._write(wanted)

    def save_all(self) -> bool:
        """Write both blobs; returns False (and records the error) on failure."""
        return self._write({self._keys.categories, self._keys.tasks})

    def pop_error(self) -> PersistenceError | None:
        err, self.last_error = self.last_error, None
        return err
