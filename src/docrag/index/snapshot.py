"""SQLite snapshot of a `DocumentStore`.

Embeddings are written as little-endian float64 blobs next to their
dimension, so a save/load round trip reproduces every value bit for bit.
"""

from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

import numpy as np

from docrag.errors import DimensionMismatch
from docrag.index.storage import DocumentStore
from docrag.models import Chunk, ChunkMetadata

_DTYPE = np.dtype("<f8")


class SQLiteSnapshot:
    """Saves and restores the whole store in one database file."""

    def __init__(self, db_path: Path) -> None:
        self.db_path = Path(db_path)
        self._conn = sqlite3.connect(self.db_path)
        self._conn.row_factory = sqlite3.Row
        self._conn.execute("PRAGMA journal_mode=WAL;")
        self._conn.execute("PRAGMA synchronous=NORMAL;")
        self._ensure_schema()

    @property
    def connection(self) -> sqlite3.Connection:
        return self._conn

    def close(self) -> None:
        self._conn.close()

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        try:
            yield self._conn
            self._conn.commit()
        except Exception:
            self._conn.rollback()
            raise

    def _ensure_schema(self) -> None:
        with self.transaction() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS chunks (
                    position INTEGER PRIMARY KEY,
                    id TEXT NOT NULL UNIQUE,
                    source TEXT NOT NULL,
                    chunk_index INTEGER NOT NULL,
                    content TEXT NOT NULL,
                    dimension INTEGER NOT NULL,
                    embedding BLOB NOT NULL
                )
                """
            )
            conn.execute("CREATE INDEX IF NOT EXISTS idx_chunks_source ON chunks(source)")

    def save(self, store: DocumentStore) -> int:
        """Replace the snapshot with the current store contents."""
        entries = store.all_entries()
        with self.transaction() as conn:
            conn.execute("DELETE FROM chunks")
            for position, (chunk, vector) in enumerate(entries):
                blob = np.asarray(vector, dtype=_DTYPE).tobytes()
                conn.execute(
                    """
                    INSERT INTO chunks(position, id, source, chunk_index, content, dimension, embedding)
                    VALUES (?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        position,
                        chunk.id,
                        chunk.source,
                        chunk.chunk_index,
                        chunk.content,
                        int(vector.shape[0]),
                        sqlite3.Binary(blob),
                    ),
                )
        return len(entries)

    def load(self, store: DocumentStore | None = None) -> DocumentStore:
        """Insert every saved entry, in saved order, into ``store`` (or a new one)."""
        store = store if store is not None else DocumentStore()
        rows = self._conn.execute(
            "SELECT id, source, chunk_index, content, dimension, embedding FROM chunks ORDER BY position"
        ).fetchall()
        for row in rows:
            vector = np.frombuffer(row["embedding"], dtype=_DTYPE).astype(np.float64)
            if vector.shape[0] != row["dimension"]:
                raise DimensionMismatch(row["dimension"], int(vector.shape[0]))
            chunk = Chunk(
                id=row["id"],
                content=row["content"],
                metadata=ChunkMetadata(source=row["source"], chunk_index=row["chunk_index"]),
            )
            store.insert(chunk, vector)
        return store
