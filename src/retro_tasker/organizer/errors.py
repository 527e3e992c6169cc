# src/retro_tasker/organizer/errors.py

from __future__ import annotations


class OrganizerError(Exception):
    """Base class for organizer errors."""


class UnknownCategoryError(OrganizerError, LookupError):
    """A task referenced a category id the store does not hold."""

    def __init__(self, category_id: str) -> None:
        super().__init__(f"Unknown category id: {category_id!r}")
        self.category_id = category_id


class InvariantViolation(OrganizerError, AssertionError):
    """Positions or references are no longer consistent."""


class PersistenceError(OrganizerError):
    """Reading or writing a blob failed."""
