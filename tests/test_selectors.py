# tests/test_selectors.py

from __future__ import annotations

from datetime import datetime

import pytest

from retro_tasker.organizer.models import Category, Priority, Task
from retro_tasker.organizer.selectors import (
    MonthWindow,
    categories_with_tasks_in,
    count_tasks_in,
    is_overdue,
    month_window_for,
    parse_due,
    sorted_by_position,
    tasks_for_category,
    upcoming_priority_task,
)

NOW = datetime(2024, 5, 10, 12, 0)


def _task(task_id: str, **kw) -> Task:
    kw.setdefault("title", task_id)
    kw.setdefault("category_id", "c1")
    return Task(id=task_id, **kw)


def test_sorted_by_position_is_stable() -> None:
    items = [_task("a", position=1), _task("b", position=0), _task("c", position=1)]
    assert [t.id for t in sorted_by_position(items)] == ["b", "a", "c"]


def test_tasks_for_category_orders_and_filters() -> None:
    tasks = [
        _task("a", position=1),
        _task("b", position=0),
        _task("x", category_id="c2", position=0),
    ]
    assert [t.id for t in tasks_for_category(tasks, "c1")] == ["b", "a"]
    assert tasks_for_category(tasks, "nope") == []


def test_month_filter_drops_tasks_without_due_date() -> None:
    tasks = [
        _task("may", due_date="2024-05-03", position=0),
        _task("june", due_date="2024-06-01", position=1),
        _task("undated", position=2),
        _task("garbage", due_date="soon", position=3),
    ]
    window = MonthWindow(2024, 5)
    assert [t.id for t in tasks_for_category(tasks, "c1", window)] == ["may"]
    assert count_tasks_in(tasks, window) == 1


def test_categories_with_tasks_in_keeps_category_order() -> None:
    categories = [
        Category(id="c1", name="One", color="#fff", position=1),
        Category(id="c2", name="Two", color="#fff", position=0),
        Category(id="c3", name="Three", color="#fff", position=2),
    ]
    tasks = [
        _task("a", category_id="c1", due_date="2024-05-02"),
        _task("b", category_id="c2", due_date="2024-05-20T08:00"),
        _task("c", category_id="c3", due_date="2024-04-30"),
    ]
    assert categories_with_tasks_in(categories, tasks, MonthWindow(2024, 5)) == ["c2", "c1"]


def test_parse_due_handles_dates_times_and_junk() -> None:
    assert parse_due("2024-05-01") == datetime(2024, 5, 1)
    assert parse_due("2024-05-01T09:30") == datetime(2024, 5, 1, 9, 30)
    assert parse_due("") is None
    assert parse_due(None) is None
    assert parse_due("not a date") is None

    aware = parse_due("2024-05-01T09:30:00+00:00")
    assert aware is not None
    assert aware.tzinfo is None


def test_is_overdue() -> None:
    assert is_overdue(_task("a", due_date="2024-05-09"), NOW)
    assert not is_overdue(_task("b", due_date="2024-05-11"), NOW)
    assert not is_overdue(_task("c"), NOW)


def test_upcoming_priority_task_prefers_nearest_future() -> None:
    tasks = [
        _task("later", priority=Priority.HIGH, due_date="2024-05-20"),
        _task("soon", priority=Priority.HIGH, due_date="2024-05-11T08:00"),
        _task("past", priority=Priority.HIGH, due_date="2024-05-01"),
        _task("low", priority=Priority.LOW, due_date="2024-05-10T13:00"),
        _task("done", priority=Priority.HIGH, due_date="2024-05-10T13:00", completed=True),
        _task("undated", priority=Priority.HIGH),
    ]
    assert upcoming_priority_task(tasks, NOW).id == "soon"


def test_upcoming_priority_task_falls_back_to_earliest_overdue() -> None:
    tasks = [
        _task("old", priority=Priority.HIGH, due_date="2024-04-01"),
        _task("older", priority=Priority.HIGH, due_date="2024-03-01"),
    ]
    assert upcoming_priority_task(tasks, NOW).id == "older"


def test_upcoming_priority_task_none_without_candidates() -> None:
    assert upcoming_priority_task([], NOW) is None
    assert upcoming_priority_task([_task("a", priority=Priority.MEDIUM, due_date="2024-06-01")], NOW) is None


def test_month_window_parsing() -> None:
    window = month_window_for("2024-05")
    assert window == MonthWindow(2024, 5)
    assert str(window) == "2024-05"
    assert month_window_for("2024-11-23") == MonthWindow(2024, 11)

    for bad in ("2024", "may", "2024-13", "", "2024-xx"):
        with pytest.raises(ValueError):
            month_window_for(bad)
