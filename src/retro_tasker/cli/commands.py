# src/retro_tasker/cli/commands.py

from __future__ import annotations

import inspect
import logging
import shlex
from collections.abc import Callable
from datetime import datetime, timedelta
from typing import cast

from ..core.state import AppState
from ..organizer.errors import UnknownCategoryError
from ..organizer.models import Category, NewCategoryInput, NewTaskInput, Priority, Task
from ..organizer.selectors import (
    categories_with_tasks_in,
    count_tasks_in,
    is_overdue,
    month_window_for,
    parse_due,
    sorted_by_position,
    tasks_for_category,
    upcoming_priority_task,
)

CommandEmitter = Callable[[str], None]
CommandHandler2 = Callable[[AppState, list[str]], str]
CommandHandler3 = Callable[[AppState, list[str], CommandEmitter | None], str]
CommandHandler = CommandHandler2 | CommandHandler3

DEFAULT_COLOR = "#9b87f5"

logger = logging.getLogger(__name__)


class CommandRegistry:
    """Simple slash-command registry used by the console connector (/help, /add, ...)."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._help: dict[str, str] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        aliases: list[str] | None = None,
    ) -> None:
        aliases = aliases or []
        key = name.lower()
        self._handlers[key] = handler
        self._help[key] = help_text
        for alias in aliases:
            self._handlers[alias.lower()] = handler

    def handle(
        self,
        state: AppState,
        line: str,
        emit: CommandEmitter | None = None,
    ) -> str | None:
        """
        Handle a string like "/command args".
        Returns a reply string or None if not a command.

        Arguments are split shell-style, so titles with spaces can be quoted.
        """
        if not line.startswith("/"):
            return None

        try:
            parts = shlex.split(line[1:])
        except ValueError:
            parts = line[1:].split()
        if not parts:
            return "Empty command. Use /help to list available commands."

        name = parts[0].lower()
        args = parts[1:]

        handler = self._handlers.get(name)
        if not handler:
            return f"Unknown command: /{name}. Use /help to list available commands."

        try:
            nparams = len(inspect.signature(handler).parameters)
        except (TypeError, ValueError):
            nparams = 3

        if nparams >= 3:
            h3 = cast(CommandHandler3, handler)
            return h3(state, args, emit)

        h2 = cast(CommandHandler2, handler)
        return h2(state, args)

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


# ---- argument helpers ----

def _split_options(args: list[str]) -> tuple[list[str], dict[str, str]]:
    """Separate positional words from key=value options."""
    words: list[str] = []
    options: dict[str, str] = {}
    for arg in args:
        key, sep, value = arg.partition("=")
        if sep and key.isidentifier():
            options[key.lower()] = value
        else:
            words.append(arg)
    return words, options


def _bad_priority(options: dict[str, str]) -> str | None:
    """Usage message for an unknown priority; an empty value is allowed (clears it)."""
    raw = options.get("priority", "").strip()
    if raw and Priority.from_raw(raw) is None:
        choices = "|".join(p.value for p in Priority)
        return f"Unknown priority {raw!r}. Use priority={choices} (or priority= to clear)."
    return None


def _ordered_categories(state: AppState) -> list[Category]:
    return sorted_by_position(state.store.categories)


def _resolve_category(state: AppState, ref: str) -> Category | None:
    """Category by 1-based list number, id, or case-insensitive name."""
    ordered = _ordered_categories(state)
    if ref.isdigit():
        index = int(ref) - 1
        return ordered[index] if 0 <= index < len(ordered) else None
    for category in ordered:
        if category.id == ref:
            return category
    lowered = ref.lower()
    for category in ordered:
        if category.name.lower() == lowered:
            return category
    return None


def _resolve_task(state: AppState, ref: str) -> Task | None:
    """Task by id or by "<category#>.<task#>" as shown in /tasks."""
    task = state.store.get_task(ref)
    if task is not None:
        return task
    cat_ref, sep, task_ref = ref.partition(".")
    if not sep or not task_ref.isdigit():
        return None
    category = _resolve_category(state, cat_ref)
    if category is None:
        return None
    group = tasks_for_category(state.store.tasks, category.id)
    index = int(task_ref) - 1
    return group[index] if 0 <= index < len(group) else None


def _describe_due(value: str, now: datetime) -> str:
    due = parse_due(value)
    if due is None:
        return value
    if due.date() == now.date():
        day = "Today"
    elif due.date() == (now + timedelta(days=1)).date():
        day = "Tomorrow"
    else:
        day = f"{due:%b} {due.day}, {due.year}"
    if "T" in value:
        return f"{day} at {due:%I:%M %p}".replace(" at 0", " at ")
    return day


def _format_task(number: str, task: Task, now: datetime) -> str:
    mark = "x" if task.completed else " "
    parts = [f"  {number} [{mark}] {task.title}"]
    if task.priority is not None:
        parts.append(f"({task.priority.value})")
    if task.due_date:
        due = _describe_due(task.due_date, now)
        if not task.completed and is_overdue(task, now):
            due = f"OVERDUE {due}"
        parts.append(f"due {due}")
    line = " ".join(parts)
    if task.description:
        line += f"\n      {task.description}"
    return line


# ---- commands ----

def cmd_help(state: AppState, args: list[str]) -> str:
    return registry.build_help()


def cmd_status(state: AppState, args: list[str]) -> str:
    settings = state.settings
    month = str(state.date_filter) if state.date_filter else "off"
    last_error = state.persister.last_error
    return (
        "Status:\n"
        f"  App: {getattr(settings, 'app_name', 'retro-tasker')}\n"
        f"  Database: {getattr(settings, 'db_path', '?')}\n"
        f"  Categories: {len(state.store.categories)}\n"
        f"  Tasks: {len(state.store.tasks)}\n"
        f"  Month filter: {month}\n"
        f"  Last save error: {last_error or 'none'}"
    )


def cmd_cats(state: AppState, args: list[str]) -> str:
    ordered = _ordered_categories(state)
    if not ordered:
        return "No categories yet. Use /addcat <name> [color] [icon]."
    tasks = state.store.tasks
    lines = ["Categories:"]
    for i, category in enumerate(ordered, start=1):
        count = sum(1 for t in tasks if t.category_id == category.id)
        noun = "task" if count == 1 else "tasks"
        lines.append(
            f"  {i}. {category.name} ({category.color}, {category.icon}) "
            f"- {count} {noun} [{category.id}]"
        )
    return "\n".join(lines)


def cmd_addcat(state: AppState, args: list[str]) -> str:
    """
    /addcat <name> [color] [icon]
    """
    words, options = _split_options(args)
    if not words:
        return "Usage: /addcat <name> [color] [icon]"
    color = options.get("color") or (words[1] if len(words) > 1 else DEFAULT_COLOR)
    icon = options.get("icon") or (words[2] if len(words) > 2 else None)
    try:
        category = state.store.add_category(
            NewCategoryInput(name=words[0], color=color, icon=icon)
        )
    except ValueError as e:
        return f"Cannot add category: {e}"
    return f"Category added: {category.position + 1}. {category.name} [{category.id}]"


def cmd_editcat(state: AppState, args: list[str]) -> str:
    """
    /editcat <category> name=... color=... icon=...
    """
    words, options = _split_options(args)
    if not words or not options:
        return "Usage: /editcat <category> name=... color=... icon=..."
    category = _resolve_category(state, words[0])
    if category is None:
        return f"No category {words[0]!r}."
    try:
        state.store.update_category(category.id, **options)
    except ValueError as e:
        return f"Cannot update category: {e}"
    return f"Category {category.id} updated."


def cmd_delcat(
    state: AppState,
    args: list[str],
    emit: CommandEmitter | None = None,
) -> str:
    """
    /delcat <category>  -> delete the category and every task in it
    """
    if not args:
        return "Usage: /delcat <category>"
    category = _resolve_category(state, args[0])
    if category is None:
        return f"No category {args[0]!r}."

    count = sum(1 for t in state.store.tasks if t.category_id == category.id)
    if count and emit:
        emit(f"Deleting {count} task(s) in {category.name}...")

    state.store.delete_category(category.id)
    return f"Category {category.name} deleted."


def cmd_mvcat(state: AppState, args: list[str]) -> str:
    """
    /mvcat <from#> <to#>  (list numbers as shown by /cats)
    """
    if len(args) != 2 or not all(a.isdigit() for a in args):
        return "Usage: /mvcat <from#> <to#>"
    source, destination = int(args[0]) - 1, int(args[1]) - 1
    if not state.store.reorder_categories(source, destination):
        return "Nothing moved: list numbers out of range."
    return "Categories reordered."


def cmd_tasks(state: AppState, args: list[str]) -> str:
    """
    /tasks             -> tasks of every category
    /tasks <category>  -> tasks of one category
    """
    if args:
        category = _resolve_category(state, args[0])
        if category is None:
            return f"No category {args[0]!r}."
        selected = [category]
    else:
        selected = _ordered_categories(state)

    if not selected:
        return "No categories yet. Use /addcat <name> [color] [icon]."

    ordered_ids = [c.id for c in _ordered_categories(state)]
    all_tasks = state.store.tasks
    now = datetime.now()
    window = state.date_filter

    lines: list[str] = []
    if window is not None:
        hits = categories_with_tasks_in(selected, all_tasks, window)
        noun = "category" if len(hits) == 1 else "categories"
        lines.append(
            f"Month filter {window}: {count_tasks_in(all_tasks, window)} task(s) "
            f"in {len(hits)} {noun}."
        )

    for category in selected:
        number = ordered_ids.index(category.id) + 1
        group = tasks_for_category(all_tasks, category.id)
        visible = tasks_for_category(all_tasks, category.id, window)
        lines.append(f"{number}. {category.name}")
        if not visible:
            lines.append("  (no tasks)")
            continue
        for task in visible:
            task_number = group.index(task) + 1
            lines.append(_format_task(f"{number}.{task_number}", task, now))
    return "\n".join(lines)


def cmd_add(state: AppState, args: list[str]) -> str:
    """
    /add <category> <title> [due=YYYY-MM-DD] [time=HH:MM] [priority=low|medium|high] [desc=...]
    """
    words, options = _split_options(args)
    if len(words) < 2:
        return (
            "Usage: /add <category> <title> [due=YYYY-MM-DD] [time=HH:MM] "
            "[priority=low|medium|high] [desc=...]"
        )
    category = _resolve_category(state, words[0])
    if category is None:
        return f"No category {words[0]!r}."
    bad = _bad_priority(options)
    if bad:
        return bad

    try:
        task = state.store.add_task(
            NewTaskInput(
                title=" ".join(words[1:]),
                category_id=category.id,
                description=options.get("desc"),
                due_date=options.get("due"),
                due_time=options.get("time"),
                priority=options.get("priority"),
            )
        )
    except (ValueError, UnknownCategoryError) as e:
        return f"Cannot add task: {e}"
    return f"Task added to {category.name} at #{task.position + 1} [{task.id}]"


_EDIT_OPTION_FIELDS = {
    "title": "title",
    "desc": "description",
    "description": "description",
    "due": "due_date",
    "time": "due_time",
    "priority": "priority",
}


def cmd_edit(state: AppState, args: list[str]) -> str:
    """
    /edit <task> title=... desc=... due=... time=... priority=...
    (an empty value clears the field, e.g. due=)
    """
    words, options = _split_options(args)
    if not words or not options:
        return "Usage: /edit <task> title=... desc=... due=... time=... priority=..."
    task = _resolve_task(state, words[0])
    if task is None:
        return f"No task {words[0]!r}."

    unknown = sorted(set(options) - set(_EDIT_OPTION_FIELDS))
    if unknown:
        return f"Unknown option(s): {', '.join(unknown)}"
    bad = _bad_priority(options)
    if bad:
        return bad
    fields = {_EDIT_OPTION_FIELDS[k]: (v or None) for k, v in options.items()}
    try:
        state.store.update_task(task.id, **fields)
    except ValueError as e:
        return f"Cannot update task: {e}"
    return f"Task {task.id} updated."


def cmd_done(state: AppState, args: list[str]) -> str:
    """
    /done <task>  -> toggle completed
    """
    if not args:
        return "Usage: /done <task>"
    task = _resolve_task(state, args[0])
    if task is None:
        return f"No task {args[0]!r}."
    state.store.toggle_task(task.id)
    return f"Task {task.title!r} marked {'open' if task.completed else 'done'}."


def cmd_del(state: AppState, args: list[str]) -> str:
    if not args:
        return "Usage: /del <task>"
    task = _resolve_task(state, args[0])
    if task is None:
        return f"No task {args[0]!r}."
    state.store.delete_task(task.id)
    return f"Task {task.title!r} deleted."


def cmd_mv(state: AppState, args: list[str]) -> str:
    """
    /mv <task> <category> [position#]  -> move within or across categories
    (default position: end of the target category)
    """
    if len(args) < 2:
        return "Usage: /mv <task> <category> [position#]"
    task = _resolve_task(state, args[0])
    if task is None:
        return f"No task {args[0]!r}."
    category = _resolve_category(state, args[1])
    if category is None:
        return f"No category {args[1]!r}."

    size = len(tasks_for_category(state.store.tasks, category.id))
    if len(args) > 2:
        if not args[2].isdigit():
            return "Position must be a number."
        destination = int(args[2]) - 1
    else:
        destination = size - 1 if category.id == task.category_id else size

    if not state.store.move_task(task.id, category.id, destination):
        return "Nothing moved: position out of range."
    moved = state.store.get_task(task.id)
    position = moved.position + 1 if moved else destination + 1
    return f"Task {task.title!r} moved to {category.name} #{position}."


def cmd_month(state: AppState, args: list[str]) -> str:
    """
    /month YYYY-MM  -> only show tasks due in that month
    /month off      -> show everything
    """
    if not args:
        current = str(state.date_filter) if state.date_filter else "off"
        return f"Month filter is {current}. Use /month YYYY-MM or /month off."
    if args[0].lower() in ("off", "clear", "none"):
        state.date_filter = None
        return "Month filter cleared."
    try:
        window = month_window_for(args[0])
    except ValueError as e:
        return str(e)
    state.date_filter = window
    hits = categories_with_tasks_in(state.store.categories, state.store.tasks, window)
    noun = "category" if len(hits) == 1 else "categories"
    return f"Month filter set to {window} ({len(hits)} {noun} with tasks)."


def cmd_priority(state: AppState, args: list[str]) -> str:
    now = datetime.now()
    task = upcoming_priority_task(state.store.tasks, now)
    if task is None:
        return "No open high-priority tasks with a due date."
    label = "OVERDUE PRIORITY" if is_overdue(task, now) else "UPCOMING PRIORITY"
    due = parse_due(task.due_date)
    when = f"{due:%m/%d/%Y %I:%M %p}" if due else task.due_date
    return f"{label}: {task.title} ({when})"


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register("status", cmd_status, help_text="Show storage and filter status.")
registry.register("cats", cmd_cats, help_text="List categories.", aliases=["categories"])
registry.register("addcat", cmd_addcat, help_text="Add a category: /addcat <name> [color] [icon].")
registry.register(
    "editcat", cmd_editcat, help_text="Edit a category: /editcat <category> name=.. color=.. icon=.."
)
registry.register("delcat", cmd_delcat, help_text="Delete a category and its tasks.")
registry.register("mvcat", cmd_mvcat, help_text="Reorder categories: /mvcat <from#> <to#>.")
registry.register("tasks", cmd_tasks, help_text="List tasks: /tasks [category].", aliases=["ls"])
registry.register(
    "add", cmd_add, help_text="Add a task: /add <category> <title> [due=..] [time=..] [priority=..]."
)
registry.register("edit", cmd_edit, help_text="Edit a task: /edit <task> field=value ...")
registry.register("done", cmd_done, help_text="Toggle a task's completed flag.")
registry.register("del", cmd_del, help_text="Delete a task.", aliases=["rm"])
registry.register("mv", cmd_mv, help_text="Move a task: /mv <task> <category> [position#].")
registry.register("month", cmd_month, help_text="Filter by due month: /month YYYY-MM | off.")
registry.register("priority", cmd_priority, help_text="Show the most urgent high-priority task.")
