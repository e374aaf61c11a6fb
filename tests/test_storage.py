"""Tests for the in-memory DocumentStore."""

from __future__ import annotations

import threading

import numpy as np
import pytest

from docrag.errors import DimensionMismatch, DuplicateChunk
from docrag.index.storage import DocumentStore
from docrag.models import Chunk


def _chunk(index: int, source: str = "doc.txt") -> Chunk:
    return Chunk.create(source, index, f"chunk {index} of {source}")


class TestInsert:
    """Test DocumentStore.insert."""

    def test_empty_store(self) -> None:
        store = DocumentStore()

        assert len(store) == 0
        assert store.dimension is None
        assert store.all_entries() == []

    def test_first_insert_fixes_dimension(self) -> None:
        store = DocumentStore()
        store.insert(_chunk(0), [1.0, 2.0, 3.0])

        assert len(store) == 1
        assert store.dimension == 3
        assert "doc.txt#0" in store

    def test_mismatched_dimension_rejected(self) -> None:
        """Inserting a vector of a different length fails and stores nothing."""
        store = DocumentStore()
        store.insert(_chunk(0), [1.0, 0.0])

        with pytest.raises(DimensionMismatch) as excinfo:
            store.insert(_chunk(1), [1.0, 0.0, 0.0])

        assert excinfo.value.expected == 2
        assert excinfo.value.actual == 3
        assert len(store) == 1
        assert "doc.txt#1" not in store

    @pytest.mark.parametrize("vector", [[], [[1.0, 2.0]]])
    def test_malformed_vector_rejected(self, vector: list) -> None:
        with pytest.raises(DimensionMismatch):
            DocumentStore().insert(_chunk(0), vector)

    def test_duplicate_id_rejected(self) -> None:
        store = DocumentStore()
        store.insert(_chunk(0), [1.0])

        with pytest.raises(DuplicateChunk):
            store.insert(_chunk(0), [2.0])
        assert len(store) == 1

    def test_embedding_copied_as_float64(self) -> None:
        """Stored vectors are float64 copies the caller cannot mutate."""
        original = np.array([0.1, 0.2], dtype=np.float32)
        store = DocumentStore()
        store.insert(_chunk(0), original)
        original[0] = 99.0

        _, stored = store.get("doc.txt#0")
        assert stored.dtype == np.float64
        assert stored[0] == pytest.approx(0.1)
        with pytest.raises(ValueError):
            stored[0] = 1.0


class TestReads:
    """Test snapshot reads and lookups."""

    def test_all_entries_in_insertion_order(self) -> None:
        store = DocumentStore()
        for index in (2, 0, 1):
            store.insert(_chunk(index), [float(index), 1.0])

        entries = store.all_entries()

        assert [chunk.chunk_index for chunk, _ in entries] == [2, 0, 1]
        np.testing.assert_array_equal(entries[0][1], [2.0, 1.0])

    def test_snapshot_unaffected_by_later_inserts(self) -> None:
        store = DocumentStore()
        store.insert(_chunk(0), [1.0])
        snapshot = store.all_entries()
        store.insert(_chunk(1), [1.0])

        assert len(snapshot) == 1
        assert len(store) == 2

    def test_get_missing(self) -> None:
        assert DocumentStore().get("nope#0") is None

    def test_sources_and_stats(self) -> None:
        store = DocumentStore()
        store.insert(_chunk(0, "b.txt"), [1.0])
        store.insert(_chunk(0, "a.txt"), [1.0])
        store.insert(_chunk(1, "b.txt"), [1.0])

        assert store.sources() == ["b.txt", "a.txt"]
        assert store.get_stats() == {"chunk_count": 3, "document_count": 2, "dimension": 1}


class TestConcurrency:
    """Concurrent writers must not lose entries."""

    def test_concurrent_inserts(self) -> None:
        store = DocumentStore()

        def writer(source: str) -> None:
            for index in range(50):
                store.insert(_chunk(index, source), [1.0, float(index)])

        threads = [threading.Thread(target=writer, args=(f"doc{n}",)) for n in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert len(store) == 400
        assert len(store.all_entries()) == 400
        assert all(store.get(f"doc{n}#49") is not None for n in range(8))
