# tests/test_blob_store.py

from __future__ import annotations

import sqlite3
from pathlib import Path

import pytest

from retro_tasker.organizer.blob_store import SQLiteBlobStore
from retro_tasker.organizer.errors import PersistenceError


def test_set_get_overwrite_and_delete(tmp_path: Path) -> None:
    store = SQLiteBlobStore(tmp_path / "nested" / "blobs.sqlite3")
    assert store.db_path.exists()
    assert store.get_blob("missing") is None

    store.set_blob("a", "[1]")
    store.set_blob("a", "[1, 2]")
    store.set_blob("b", "[]")

    assert store.get_blob("a") == "[1, 2]"
    assert store.keys() == ["a", "b"]

    store.delete_blob("a")
    store.delete_blob("never-existed")
    assert store.get_blob("a") is None
    assert store.keys() == ["b"]


def test_blobs_survive_reopen(tmp_path: Path) -> None:
    db_path = tmp_path / "blobs.sqlite3"
    SQLiteBlobStore(db_path).set_blob("retroTaskerTasks", '[{"id": "t"}]')

    reopened = SQLiteBlobStore(db_path)
    assert reopened.get_blob("retroTaskerTasks") == '[{"id": "t"}]'


def test_sqlite_errors_become_persistence_errors(tmp_path: Path) -> None:
    db_path = tmp_path / "blobs.sqlite3"
    store = SQLiteBlobStore(db_path)

    conn = sqlite3.connect(str(db_path))
    try:
        conn.execute("DROP TABLE blobs")
        conn.commit()
    finally:
        conn.close()

    with pytest.raises(PersistenceError):
        store.get_blob("a")
    with pytest.raises(PersistenceError):
        store.set_blob("a", "[]")
