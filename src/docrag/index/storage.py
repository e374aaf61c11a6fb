"""In-memory append-only store of chunks and their embeddings."""

from __future__ import annotations

import threading
from typing import Dict, List, Sequence, Tuple

import numpy as np

from docrag.errors import DimensionMismatch, DuplicateChunk
from docrag.models import Chunk, Embedding


class DocumentStore:
    """Holds every chunk and its embedding for the lifetime of the process.

    Chunks and vectors live in parallel append-only lists; ``_positions``
    maps a chunk id to its slot. The dimensionality is fixed by the first
    insertion. One lock serializes appends and snapshot copies.
    """

    def __init__(self) -> None:
        self._chunks: List[Chunk] = []
        self._vectors: List[Embedding] = []
        self._positions: Dict[str, int] = {}
        self._dimension: int | None = None
        self._lock = threading.Lock()

    @property
    def dimension(self) -> int | None:
        return self._dimension

    def __len__(self) -> int:
        return len(self._chunks)

    def __contains__(self, chunk_id: object) -> bool:
        return chunk_id in self._positions

    def insert(self, chunk: Chunk, embedding: Sequence[float] | np.ndarray) -> None:
        vector = np.array(embedding, dtype=np.float64)
        if vector.ndim != 1 or vector.size == 0:
            raise DimensionMismatch(self._dimension or 0, int(vector.size))
        vector.setflags(write=False)

        with self._lock:
            if self._dimension is not None and vector.shape[0] != self._dimension:
                raise DimensionMismatch(self._dimension, int(vector.shape[0]))
            if chunk.id in self._positions:
                raise DuplicateChunk(chunk.id)
            if self._dimension is None:
                self._dimension = int(vector.shape[0])
            self._positions[chunk.id] = len(self._chunks)
            self._chunks.append(chunk)
            self._vectors.append(vector)

    def get(self, chunk_id: str) -> Tuple[Chunk, Embedding] | None:
        with self._lock:
            position = self._positions.get(chunk_id)
            if position is None:
                return None
            return self._chunks[position], self._vectors[position]

    def all_entries(self) -> List[Tuple[Chunk, Embedding]]:
        """Snapshot of every (chunk, embedding) pair in insertion order."""
        with self._lock:
            return list(zip(self._chunks, self._vectors))

    def sources(self) -> List[str]:
        """Distinct sources in first-insertion order."""
        with self._lock:
            return list(dict.fromkeys(chunk.source for chunk in self._chunks))

    def get_stats(self) -> dict:
        with self._lock:
            return {
                "chunk_count": len(self._chunks),
                "document_count": len({chunk.source for chunk in self._chunks}),
                "dimension": self._dimension,
            }
