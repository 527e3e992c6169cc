# src/retro_tasker/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the organizer.

The store and the persistence layer depend on Protocols instead of concrete
implementations, so storage backends stay swappable and tests can use fakes.
"""

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from ..organizer.store import StoreChange


class BlobStorage(Protocol):
    """Named text blobs (SQLite file in production, a dict in tests)."""

    def get_blob(self, key: str) -> str | None: ...
    def set_blob(self, key: str, value: str) -> None: ...
    def delete_blob(self, key: str) -> None: ...


class ChangeListener(Protocol):
    """Called synchronously after every successful store mutation."""

    def __call__(self, change: StoreChange) -> None: ...
