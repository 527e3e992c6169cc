# src/retro_tasker/organizer/selectors.py

"""
Pure read-only derivations over category/task snapshots.

Nothing here mutates its inputs; the store and the console views both reuse
these helpers.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime
from typing import Protocol, TypeVar

from .models import Category, Priority, Task


class _Positioned(Protocol):
    position: int


P = TypeVar("P", bound=_Positioned)


@dataclass(frozen=True, slots=True)
class MonthWindow:
    """A calendar month used to filter tasks by due date."""

    year: int
    month: int

    def __post_init__(self) -> None:
        if not 1 <= self.month <= 12:
            raise ValueError(f"month must be 1..12, got {self.month}")

    def contains(self, moment: datetime) -> bool:
        return moment.year == self.year and moment.month == self.month

    def __str__(self) -> str:
        return f"{self.year:04d}-{self.month:02d}"


def month_window_for(value: str) -> MonthWindow:
    """Parse "YYYY-MM" (or a full ISO date, whose month is used)."""
    raw = (value or "").strip()
    parts = raw.split("-")
    if len(parts) < 2:
        raise ValueError(f"Expected YYYY-MM, got {value!r}")
    try:
        return MonthWindow(year=int(parts[0]), month=int(parts[1][:2]))
    except ValueError as e:
        raise ValueError(f"Expected YYYY-MM, got {value!r}") from e


def sorted_by_position(items: Iterable[P]) -> list[P]:
    # sorted() is stable, so ties keep their input order.
    return sorted(items, key=lambda item: item.position)


def parse_due(value: str | None) -> datetime | None:
    """
    Parse an ISO date or date-time ("2024-05-01", "2024-05-01T09:30").

    Aware values are converted to naive local time so they compare with
    datetime.now(). Anything unparseable gives None.
    """
    if not value or not isinstance(value, str):
        return None
    try:
        parsed = datetime.fromisoformat(value.strip())
    except ValueError:
        return None
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone().replace(tzinfo=None)
    return parsed


def _in_window(task: Task, window: MonthWindow) -> bool:
    due = parse_due(task.due_date)
    return due is not None and window.contains(due)


def tasks_for_category(
    tasks: Iterable[Task],
    category_id: str,
    date_filter: MonthWindow | None = None,
) -> list[Task]:
    """
    Tasks of one category ordered by position.

    With a date filter, only tasks whose due date parses and falls inside the
    month are kept; tasks without a usable due date are dropped.
    """
    selected = [t for t in tasks if t.category_id == category_id]
    if date_filter is not None:
        selected = [t for t in selected if _in_window(t, date_filter)]
    return sorted_by_position(selected)


def count_tasks_in(tasks: Iterable[Task], window: MonthWindow) -> int:
    return sum(1 for t in tasks if _in_window(t, window))


def categories_with_tasks_in(
    categories: Iterable[Category],
    tasks: Iterable[Task],
    window: MonthWindow,
) -> list[str]:
    """Ids (in position order) of categories having at least one task in the month."""
    hit = {t.category_id for t in tasks if _in_window(t, window)}
    return [c.id for c in sorted_by_position(categories) if c.id in hit]


def is_overdue(task: Task, now: datetime | None = None) -> bool:
    due = parse_due(task.due_date)
    if due is None:
        return False
    return due < (now or datetime.now())


def upcoming_priority_task(tasks: Iterable[Task], now: datetime | None = None) -> Task | None:
    """
    Pick the high-priority task that needs attention first.

    Candidates are incomplete, high priority and have a parseable due date.
    The nearest future due date wins; when everything is already due, the
    earliest due date is returned instead.
    """
    now = now or datetime.now()
    candidates: list[tuple[datetime, Task]] = []
    for task in tasks:
        if task.completed or task.priority != Priority.HIGH:
            continue
        due = parse_due(task.due_date)
        if due is not None:
            candidates.append((due, task))

    if not candidates:
        return None

    candidates.sort(key=lambda pair: pair[0])
    for due, task in candidates:
        if due > now:
            return task
    return candidates[0][1]
