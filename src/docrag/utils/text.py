"""Text helpers including fixed-size overlapping chunking."""

from __future__ import annotations

from typing import Iterable, List

from docrag.errors import InvalidConfiguration
from docrag.models import Chunk


def validate_chunking(max_chars: int, overlap: int) -> None:
    """Raise `InvalidConfiguration` unless ``0 <= overlap < max_chars``."""
    if max_chars <= 0:
        raise InvalidConfiguration(f"Chunk size must be positive, got {max_chars}")
    if overlap < 0:
        raise InvalidConfiguration(f"Overlap must not be negative, got {overlap}")
    if overlap >= max_chars:
        raise InvalidConfiguration(
            f"Overlap ({overlap}) must be less than chunk size ({max_chars})"
        )


def chunk_text(text: str, *, max_chars: int = 500, overlap: int = 50) -> List[str]:
    """Split text into overlapping character chunks.

    Each chunk starts ``overlap`` characters before the end of the previous
    one. The chunk that reaches the end of ``text`` is the last one, so it may
    be shorter than ``max_chars``.
    """
    validate_chunking(max_chars, overlap)
    if not text:
        return []

    length = len(text)
    chunks: List[str] = []
    start = 0
    while start < length:
        end = min(start + max_chars, length)
        chunks.append(text[start:end])
        if end == length:
            break
        next_start = end - overlap
        if next_start <= start:
            raise InvalidConfiguration(
                f"Chunking makes no progress at offset {start} "
                f"(size={max_chars}, overlap={overlap})"
            )
        start = next_start
    return chunks


def build_chunks(
    source: str, text: str, *, max_chars: int = 500, overlap: int = 50
) -> List[Chunk]:
    """Chunk ``text`` and number the pieces for ``source``."""
    return [
        Chunk.create(source, index, piece)
        for index, piece in enumerate(chunk_text(text, max_chars=max_chars, overlap=overlap))
    ]


def normalize_whitespace(lines: Iterable[str]) -> str:
    """Collapse whitespace and join lines."""
    return "\n".join(line.strip() for line in lines if line.strip())
