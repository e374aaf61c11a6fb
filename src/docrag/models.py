"""Core DocRAG data models."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import List

import numpy as np

# A fixed-length float64 vector produced for one piece of text.
Embedding = np.ndarray


def make_chunk_id(source: str, chunk_index: int) -> str:
    """Return the deterministic id of chunk ``chunk_index`` of ``source``."""
    return f"{source}#{chunk_index}"


@dataclass(frozen=True, slots=True)
class ChunkMetadata:
    """Where a chunk came from."""

    source: str
    chunk_index: int


@dataclass(frozen=True, slots=True)
class Chunk:
    """Immutable unit of retrievable text."""

    id: str
    content: str
    metadata: ChunkMetadata

    @classmethod
    def create(cls, source: str, chunk_index: int, content: str) -> "Chunk":
        if not content:
            raise ValueError("Chunk content must not be empty")
        return cls(
            id=make_chunk_id(source, chunk_index),
            content=content,
            metadata=ChunkMetadata(source=source, chunk_index=chunk_index),
        )

    @property
    def source(self) -> str:
        return self.metadata.source

    @property
    def chunk_index(self) -> int:
        return self.metadata.chunk_index


@dataclass(frozen=True, slots=True)
class ScoredChunk:
    """A retrieved chunk with its cosine similarity to the query."""

    chunk: Chunk
    score: float


@dataclass(slots=True)
class Answer:
    """Generated answer together with the prompt and context behind it."""

    text: str
    prompt: str
    sources: List[ScoredChunk] = field(default_factory=list)


@dataclass(slots=True)
class IngestStats:
    ingested: int = 0
    partial: int = 0
    skipped: int = 0
    failed: int = 0
    chunks: int = 0
    processed_files: list[Path] = field(default_factory=list)

    def increment(self, status: str, path: Path, chunks: int = 0) -> None:
        if status == "ingested":
            self.ingested += 1
        elif status == "partial":
            self.partial += 1
        elif status == "skipped":
            self.skipped += 1
        else:
            self.failed += 1
        self.chunks += chunks
        self.processed_files.append(path)
