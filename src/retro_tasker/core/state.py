# src/retro_tasker/core/state.py

from __future__ import annotations

from dataclasses import dataclass

from ..organizer.persistence import BlobPersister
from ..organizer.selectors import MonthWindow
from ..organizer.store import OrderedStore


@dataclass
class AppState:
    # Store Settings on the state for easy access in other modules later.
    settings: object

    store: OrderedStore
    persister: BlobPersister

    # Console view state: month filter applied by /tasks (None = show all).
    date_filter: MonthWindow | None = None
