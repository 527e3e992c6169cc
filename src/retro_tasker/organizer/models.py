# src/retro_tasker/organizer/models.py

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import Any

DEFAULT_ICON = "Folder"


class Priority(StrEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @classmethod
    def from_raw(cls, raw: Any) -> Priority | None:
        """Tolerant parse: unknown or empty values mean "no priority"."""
        if raw is None or isinstance(raw, cls):
            return raw
        try:
            return cls(str(raw).strip().lower())
        except ValueError:
            return None


def combine_due(due_date: str | None, due_time: str | None = None) -> str | None:
    """
    Join a date and an optional time-of-day into one ISO value.

    "2024-05-01" + "09:30"            -> "2024-05-01T09:30"
    "2024-05-01" + None               -> "2024-05-01"
    "2024-05-01T08:00" + "09:30"      -> "2024-05-01T09:30" (time replaced)
    None + anything                   -> None
    """
    if not isinstance(due_date, str) or not due_date.strip():
        return None
    date_part = due_date.strip().split("T", 1)[0]
    if isinstance(due_time, str) and due_time.strip():
        return f"{date_part}T{due_time.strip()}"
    return due_date.strip()


def clean_text(raw: Any) -> str | None:
    """Stripped string, or None for blanks and non-string values."""
    if not isinstance(raw, str):
        return None
    return raw.strip() or None


@dataclass(slots=True)
class Category:
    id: str
    name: str
    color: str
    icon: str = DEFAULT_ICON
    position: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "color": self.color,
            "icon": self.icon,
            "position": self.position,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Category:
        return cls(
            id=str(data["id"]),
            name=str(data.get("name") or ""),
            color=str(data.get("color") or ""),
            icon=str(data.get("icon") or DEFAULT_ICON),
            position=_as_int(data.get("position"), 0),
        )


@dataclass(slots=True)
class Task:
    id: str
    title: str
    category_id: str
    completed: bool = False
    description: str | None = None
    due_date: str | None = None
    due_time: str | None = None
    priority: Priority | None = None
    position: int = 0

    def to_dict(self) -> dict[str, Any]:
        # camelCase keys: the persisted format predates this package.
        data: dict[str, Any] = {
            "id": self.id,
            "title": self.title,
            "completed": self.completed,
            "categoryId": self.category_id,
            "position": self.position,
        }
        if self.description is not None:
            data["description"] = self.description
        if self.due_date is not None:
            data["dueDate"] = self.due_date
        if self.due_time is not None:
            data["dueTime"] = self.due_time
        if self.priority is not None:
            data["priority"] = self.priority.value
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Task:
        return cls(
            id=str(data["id"]),
            title=str(data.get("title") or ""),
            category_id=str(data.get("categoryId") or ""),
            completed=data.get("completed") is True,
            description=clean_text(data.get("description")),
            due_date=clean_text(data.get("dueDate")),
            due_time=clean_text(data.get("dueTime")),
            priority=Priority.from_raw(data.get("priority")),
            position=_as_int(data.get("position"), 0),
        )


@dataclass(frozen=True, slots=True)
class NewCategoryInput:
    name: str
    color: str
    icon: str | None = None


@dataclass(frozen=True, slots=True)
class NewTaskInput:
    title: str
    category_id: str
    completed: bool = False
    description: str | None = None
    due_date: str | None = None
    due_time: str | None = None
    priority: Priority | str | None = None


def _as_int(raw: Any, default: int) -> int:
    try:
        return int(raw)
    except (TypeError, ValueError):
        return default
