"""Tests for SQLiteSnapshot."""

from __future__ import annotations

import sqlite3

import numpy as np
import pytest

from docrag.index.snapshot import SQLiteSnapshot
from docrag.index.storage import DocumentStore
from docrag.models import Chunk


@pytest.fixture
def snapshot(tmp_path):
    """Create a temporary snapshot database."""
    snap = SQLiteSnapshot(tmp_path / "snapshot.db")
    yield snap
    snap.close()


def _filled_store() -> DocumentStore:
    store = DocumentStore()
    store.insert(Chunk.create("b.txt", 0, "beta zero"), [0.1, 1 / 3, np.pi])
    store.insert(Chunk.create("a.txt", 0, "alpha zero"), [1e-300, -2.5e-17, 7.0])
    store.insert(Chunk.create("b.txt", 1, "beta one"), [np.nextafter(1.0, 2.0), 0.0, -0.0])
    return store


class TestSchema:
    """Test database setup."""

    def test_init_creates_database(self, tmp_path) -> None:
        db_path = tmp_path / "new.db"
        assert not db_path.exists()

        snap = SQLiteSnapshot(db_path)

        assert db_path.exists()
        assert snap.db_path == db_path
        snap.close()

    def test_schema_creation(self, snapshot) -> None:
        cursor = snapshot.connection.execute(
            "SELECT name FROM sqlite_master WHERE type='table' AND name='chunks'"
        )
        assert cursor.fetchone() is not None

    def test_wal_mode(self, snapshot) -> None:
        result = snapshot.connection.execute("PRAGMA journal_mode").fetchone()
        assert result[0].lower() == "wal"

    def test_close(self, tmp_path) -> None:
        snap = SQLiteSnapshot(tmp_path / "close.db")
        conn = snap.connection
        snap.close()

        with pytest.raises(sqlite3.ProgrammingError):
            conn.execute("SELECT 1")


class TestSaveLoad:
    """Test saving and restoring a store."""

    def test_round_trip_is_lossless(self, snapshot) -> None:
        """Chunks, order and every float64 bit survive a round trip."""
        store = _filled_store()

        assert snapshot.save(store) == 3
        restored = snapshot.load()

        original = store.all_entries()
        loaded = restored.all_entries()
        assert [chunk for chunk, _ in loaded] == [chunk for chunk, _ in original]
        for (_, expected), (_, actual) in zip(original, loaded):
            assert actual.tobytes() == expected.tobytes()
        assert restored.dimension == 3

    def test_save_replaces_previous_snapshot(self, snapshot) -> None:
        snapshot.save(_filled_store())
        smaller = DocumentStore()
        smaller.insert(Chunk.create("c.txt", 0, "gamma"), [1.0, 2.0])

        snapshot.save(smaller)

        restored = snapshot.load()
        assert len(restored) == 1
        assert restored.sources() == ["c.txt"]

    def test_load_into_existing_store(self, snapshot) -> None:
        snapshot.save(_filled_store())
        target = DocumentStore()

        result = snapshot.load(target)

        assert result is target
        assert len(target) == 3

    def test_load_empty(self, snapshot) -> None:
        assert len(snapshot.load()) == 0

    def test_failed_save_rolls_back(self, snapshot) -> None:
        snapshot.save(_filled_store())
        broken = DocumentStore()
        broken.insert(Chunk.create("c.txt", 0, "gamma"), [1.0])
        broken._chunks.append(broken._chunks[0])
        broken._vectors.append(broken._vectors[0])

        with pytest.raises(sqlite3.IntegrityError):
            snapshot.save(broken)

        assert len(snapshot.load()) == 3
