# src/retro_tasker/organizer/store.py

from __future__ import annotations

import logging
import uuid
from collections import Counter
from collections.abc import Callable, Iterable
from dataclasses import dataclass, replace
from enum import StrEnum
from typing import Any

from ..core.ports import ChangeListener
from .errors import InvariantViolation, UnknownCategoryError
from .models import (
    DEFAULT_ICON,
    Category,
    NewCategoryInput,
    NewTaskInput,
    Priority,
    Task,
    clean_text,
    combine_due,
)
from .selectors import sorted_by_position

logger = logging.getLogger(__name__)

CATEGORY_ID_PREFIX = "cat"
TASK_ID_PREFIX = "task"

_CATEGORY_FIELDS = frozenset({"name", "color", "icon"})
_TASK_FIELDS = frozenset({"title", "completed", "description", "due_date", "due_time", "priority"})
_PROTECTED_FIELDS = frozenset({"id", "position", "category_id"})

IdFactory = Callable[[str], str]


def new_id(prefix: str) -> str:
    return f"{prefix}-{uuid.uuid4().hex}"


class ChangeAction(StrEnum):
    ADD = "add"
    UPDATE = "update"
    DELETE = "delete"
    REORDER = "reorder"


@dataclass(frozen=True, slots=True)
class StoreChange:
    """
    What a successful mutation touched.

    Listeners (persistence, views) decide what to do with it; a change that only
    lists task ids never requires the categories to be re-saved and vice versa.
    """

    action: ChangeAction
    category_ids: tuple[str, ...] = ()
    task_ids: tuple[str, ...] = ()


class OrderedStore:
    """
    Owns the category and task collections.

    Every mutation goes through this class so that positions stay dense:
    - category positions are exactly 0..len(categories)-1
    - inside each category, task positions are exactly 0..len(group)-1
    - no task points at a missing category

    Not-found and out-of-range requests are no-ops that return False.
    Callers get copies, never the live records.
    """

    def __init__(
        self,
        categories: Iterable[Category] = (),
        tasks: Iterable[Task] = (),
        *,
        id_factory: IdFactory | None = None,
        listeners: Iterable[ChangeListener] = (),
    ) -> None:
        self._categories: list[Category] = [replace(c) for c in categories]
        self._tasks: list[Task] = [replace(t) for t in tasks]
        self._id_factory = id_factory or new_id
        self._issued_ids: set[str] = {c.id for c in self._categories} | {t.id for t in self._tasks}
        self._listeners: list[ChangeListener] = list(listeners)

    # ---- snapshots ----

    @property
    def categories(self) -> list[Category]:
        return [replace(c) for c in self._categories]

    @property
    def tasks(self) -> list[Task]:
        return [replace(t) for t in self._tasks]

    def get_category(self, category_id: str) -> Category | None:
        idx = self._category_index(category_id)
        return replace(self._categories[idx]) if idx is not None else None

    def get_task(self, task_id: str) -> Task | None:
        idx = self._task_index(task_id)
        return replace(self._tasks[idx]) if idx is not None else None

    # ---- change notification ----

    def subscribe(self, listener: ChangeListener) -> Callable[[], None]:
        """Register a listener; returns a callable that removes it again."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def _notify(self, change: StoreChange) -> None:
        for listener in list(self._listeners):
            try:
                listener(change)
            except Exception:
                # In-memory state stays authoritative even if a listener fails.
                logger.exception("Store listener %r failed for %s", listener, change)

    # ---- low-level helpers ----

    def _allocate_id(self, prefix: str) -> str:
        for _ in range(16):
            candidate = self._id_factory(prefix)
            if candidate not in self._issued_ids:
                self._issued_ids.add(candidate)
                return candidate
        raise RuntimeError(f"id factory keeps returning used ids (prefix={prefix!r})")

    def _category_index(self, category_id: str) -> int | None:
        for i, c in enumerate(self._categories):
            if c.id == category_id:
                return i
        return None

    def _task_index(self, task_id: str) -> int | None:
        for i, t in enumerate(self._tasks):
            if t.id == task_id:
                return i
        return None

    def _group(self, category_id: str) -> list[Task]:
        """Live task records of one category, ordered by position."""
        return sorted_by_position(t for t in self._tasks if t.category_id == category_id)

    @staticmethod
    def _renumber(items: list[Any]) -> None:
        for index, item in enumerate(items):
            item.position = index

    @staticmethod
    def _check_fields(fields: dict[str, Any], allowed: frozenset[str]) -> None:
        protected = sorted(set(fields) & _PROTECTED_FIELDS)
        if protected:
            raise ValueError(
                f"{', '.join(protected)} can only be changed through reorder operations"
            )
        unknown = sorted(set(fields) - allowed)
        if unknown:
            raise ValueError(f"Unknown field(s): {', '.join(unknown)}")

    # ---- categories ----

    def add_category(self, data: NewCategoryInput) -> Category:
        name = (data.name or "").strip()
        if not name:
            raise ValueError("name is required")

        category = Category(
            id=self._allocate_id(CATEGORY_ID_PREFIX),
            name=name,
            color=data.color,
            icon=data.icon or DEFAULT_ICON,
            position=len(self._categories),
        )
        self._categories.append(category)
        logger.debug("Category added id=%s position=%s", category.id, category.position)
        self._notify(StoreChange(ChangeAction.ADD, category_ids=(category.id,)))
        return replace(category)

    def update_category(self, category_id: str, **fields: Any) -> bool:
        self._check_fields(fields, _CATEGORY_FIELDS)
        if "name" in fields and not str(fields["name"] or "").strip():
            raise ValueError("name cannot be empty")

        idx = self._category_index(category_id)
        if idx is None:
            return False
        if not fields:
            return True

        category = self._categories[idx]
        if "name" in fields:
            category.name = str(fields["name"]).strip()
        if "color" in fields:
            category.color = fields["color"]
        if "icon" in fields:
            category.icon = fields["icon"] or DEFAULT_ICON

        self._notify(StoreChange(ChangeAction.UPDATE, category_ids=(category.id,)))
        return True

    def delete_category(self, category_id: str) -> bool:
        """Remove a category, close the gap it leaves and drop all of its tasks."""
        idx = self._category_index(category_id)
        if idx is None:
            return False

        removed = self._categories.pop(idx)
        for category in self._categories:
            if category.position > removed.position:
                category.position -= 1

        dropped = tuple(t.id for t in self._tasks if t.category_id == removed.id)
        self._tasks = [t for t in self._tasks if t.category_id != removed.id]

        logger.debug("Category deleted id=%s cascaded_tasks=%d", removed.id, len(dropped))
        self._notify(
            StoreChange(ChangeAction.DELETE, category_ids=(removed.id,), task_ids=dropped)
        )
        return True

    def reorder_categories(self, source_index: int, destination_index: int) -> bool:
        """
        Move the category at position source_index to destination_index.

        Remove-then-insert on the position-sorted sequence, then renumber everything.
        Both indices must be existing positions; anything else is a no-op.
        """
        ordered = sorted_by_position(self._categories)
        count = len(ordered)
        if not (0 <= source_index < count and 0 <= destination_index < count):
            logger.debug(
                "Ignoring category reorder %s -> %s (count=%d)", source_index, destination_index, count
            )
            return False
        if source_index == destination_index:
            return True

        moved = ordered.pop(source_index)
        ordered.insert(destination_index, moved)
        self._renumber(ordered)
        self._categories = ordered

        self._notify(
            StoreChange(ChangeAction.REORDER, category_ids=tuple(c.id for c in ordered))
        )
        return True

    # ---- tasks ----

    def add_task(self, data: NewTaskInput) -> Task:
        title = (data.title or "").strip()
        if not title:
            raise ValueError("title is required")
        if self._category_index(data.category_id) is None:
            raise UnknownCategoryError(data.category_id)

        description = clean_text(data.description)
        due_time = clean_text(data.due_time)

        task = Task(
            id=self._allocate_id(TASK_ID_PREFIX),
            title=title,
            category_id=data.category_id,
            completed=bool(data.completed),
            description=description,
            due_date=combine_due(data.due_date, due_time),
            due_time=due_time,
            priority=Priority.from_raw(data.priority),
            position=sum(1 for t in self._tasks if t.category_id == data.category_id),
        )
        self._tasks.append(task)
        logger.debug(
            "Task added id=%s category=%s position=%s", task.id, task.category_id, task.position
        )
        self._notify(StoreChange(ChangeAction.ADD, task_ids=(task.id,)))
        return replace(task)

    def update_task(self, task_id: str, **fields: Any) -> bool:
        self._check_fields(fields, _TASK_FIELDS)
        if "title" in fields and not str(fields["title"] or "").strip():
            raise ValueError("title cannot be empty")

        idx = self._task_index(task_id)
        if idx is None:
            return False
        if not fields:
            return True

        task = self._tasks[idx]
        if "title" in fields:
            task.title = str(fields["title"]).strip()
        if "completed" in fields:
            task.completed = bool(fields["completed"])
        if "description" in fields:
            task.description = clean_text(fields["description"])
        if "priority" in fields:
            task.priority = Priority.from_raw(fields["priority"])
        if "due_date" in fields or "due_time" in fields:
            due_time = clean_text(fields.get("due_time", task.due_time))
            due_date = clean_text(fields.get("due_date", task.due_date))
            if "due_time" in fields and due_time is None and due_date:
                # time of day cleared: keep only the date part
                due_date = due_date.split("T", 1)[0]
            task.due_date = combine_due(due_date, due_time)
            task.due_time = due_time if task.due_date else None

        self._notify(StoreChange(ChangeAction.UPDATE, task_ids=(task.id,)))
        return True

    def toggle_task(self, task_id: str) -> bool:
        idx = self._task_index(task_id)
        if idx is None:
            return False
        return self.update_task(task_id, completed=not self._tasks[idx].completed)

    def delete_task(self, task_id: str) -> bool:
        """Remove a task and shift the later tasks of its category up by one."""
        idx = self._task_index(task_id)
        if idx is None:
            return False

        removed = self._tasks.pop(idx)
        shifted: list[str] = []
        for task in self._tasks:
            if task.category_id == removed.category_id and task.position > removed.position:
                task.position -= 1
                shifted.append(task.id)

        logger.debug("Task deleted id=%s category=%s", removed.id, removed.category_id)
        self._notify(StoreChange(ChangeAction.DELETE, task_ids=(removed.id, *shifted)))
        return True

    def reorder_tasks(
        self,
        source_category_id: str,
        destination_category_id: str,
        source_index: int,
        destination_index: int,
    ) -> bool:
        """
        Move the task at source_index of one category to destination_index.

        Same category: remove-then-insert inside the group, renumber the group.
        Different category: the destination index is clamped to
        [0, len(destination group)], the task changes category, and both groups
        are renumbered from their new order.

        Returns False (nothing changed) for an invalid source index, an invalid
        same-category destination, or an unknown destination category.
        """
        source = self._group(source_category_id)
        if not 0 <= source_index < len(source):
            logger.debug(
                "Ignoring task reorder: no index %s in category %s", source_index, source_category_id
            )
            return False

        if source_category_id == destination_category_id:
            if not 0 <= destination_index < len(source):
                return False
            if source_index == destination_index:
                return True
            moved = source.pop(source_index)
            source.insert(destination_index, moved)
            self._renumber(source)
            self._notify(StoreChange(ChangeAction.REORDER, task_ids=tuple(t.id for t in source)))
            return True

        if self._category_index(destination_category_id) is None:
            logger.debug("Ignoring task reorder: unknown category %s", destination_category_id)
            return False

        destination = self._group(destination_category_id)
        clamped = max(0, min(destination_index, len(destination)))
        if clamped != destination_index:
            logger.debug("Clamped destination index %s -> %s", destination_index, clamped)

        moved = source.pop(source_index)
        moved.category_id = destination_category_id
        destination.insert(clamped, moved)
        self._renumber(source)
        self._renumber(destination)

        logger.debug(
            "Task moved id=%s %s[%s] -> %s[%s]",
            moved.id,
            source_category_id,
            source_index,
            destination_category_id,
            clamped,
        )
        self._notify(
            StoreChange(
                ChangeAction.REORDER,
                task_ids=tuple(t.id for t in source) + tuple(t.id for t in destination),
            )
        )
        return True

    def move_task(self, task_id: str, destination_category_id: str, destination_index: int) -> bool:
        """Reorder by task id instead of by source position."""
        idx = self._task_index(task_id)
        if idx is None:
            return False
        task = self._tasks[idx]
        group = self._group(task.category_id)
        source_index = next(i for i, t in enumerate(group) if t.id == task_id)
        return self.reorder_tasks(
            task.category_id, destination_category_id, source_index, destination_index
        )

    # ---- consistency ----

    def check_invariants(self) -> None:
        """Raise InvariantViolation if ids, references or positions are inconsistent."""
        check_collections(self._categories, self._tasks)


def check_collections(categories: list[Category], tasks: list[Task]) -> None:
    problems: list[str] = []

    for kind, ids in (("category", [c.id for c in categories]), ("task", [t.id for t in tasks])):
        dupes = sorted(i for i, n in Counter(ids).items() if n > 1)
        if dupes:
            problems.append(f"duplicate {kind} ids: {', '.join(dupes)}")

    cat_positions = sorted(c.position for c in categories)
    if cat_positions != list(range(len(categories))):
        problems.append(f"category positions not dense: {cat_positions}")

    known = {c.id for c in categories}
    groups: dict[str, list[int]] = {}
    for task in tasks:
        if task.category_id not in known:
            problems.append(f"task {task.id} references missing category {task.category_id}")
        groups.setdefault(task.category_id, []).append(task.position)

    for category_id, positions in groups.items():
        positions.sort()
        if positions != list(range(len(positions))):
            problems.append(f"task positions in {category_id} not dense: {positions}")

    if problems:
        raise InvariantViolation("; ".join(problems))
