"""Cosine similarity retrieval over the document store."""

from __future__ import annotations

from typing import List, Sequence

import numpy as np

from docrag.errors import DimensionMismatch, InvalidConfiguration
from docrag.index.storage import DocumentStore
from docrag.models import ScoredChunk


def cosine_similarity(a: Sequence[float] | np.ndarray, b: Sequence[float] | np.ndarray) -> float:
    """Cosine of the angle between ``a`` and ``b``; 0.0 if either is a zero vector."""
    va = np.asarray(a, dtype=np.float64)
    vb = np.asarray(b, dtype=np.float64)
    if va.shape != vb.shape:
        raise DimensionMismatch(int(va.size), int(vb.size))
    norm_a = float(np.linalg.norm(va))
    norm_b = float(np.linalg.norm(vb))
    if norm_a == 0.0 or norm_b == 0.0:
        return 0.0
    return float(np.dot(va, vb)) / (norm_a * norm_b)


class Retriever:
    """Ranks stored chunks against a query embedding."""

    def __init__(self, store: DocumentStore) -> None:
        self.store = store

    def retrieve(self, query_embedding: Sequence[float] | np.ndarray, k: int) -> List[ScoredChunk]:
        if k < 1:
            raise InvalidConfiguration(f"k must be at least 1, got {k}")

        entries = self.store.all_entries()
        if not entries:
            return []

        query = np.asarray(query_embedding, dtype=np.float64)
        dimension = entries[0][1].shape[0]
        if query.ndim != 1 or query.shape[0] != dimension:
            raise DimensionMismatch(int(dimension), int(query.size))

        matrix = np.vstack([vector for _, vector in entries])
        norms = np.linalg.norm(matrix, axis=1) * np.linalg.norm(query)
        dots = matrix @ query
        scores = np.zeros(len(entries), dtype=np.float64)
        np.divide(dots, norms, out=scores, where=norms != 0.0)

        order = sorted(
            range(len(entries)),
            key=lambda i: (-scores[i], entries[i][0].chunk_index, entries[i][0].source),
        )
        return [ScoredChunk(chunk=entries[i][0], score=float(scores[i])) for i in order[:k]]
