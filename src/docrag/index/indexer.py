"""Document ingestion pipeline: chunk, embed, store."""

from __future__ import annotations

import logging
from concurrent.futures import Future, ThreadPoolExecutor
from pathlib import Path
from typing import List, Sequence

from docrag.embedding.encoder import Embedder
from docrag.errors import (
    DimensionMismatch,
    DocRagError,
    DuplicateChunk,
    IngestionAborted,
    InvalidConfiguration,
    ProviderFailure,
)
from docrag.index.storage import DocumentStore
from docrag.ingestion.extract import SUPPORTED_SUFFIXES, extract_text
from docrag.models import Chunk, Embedding, IngestStats
from docrag.providers.retry import RetryPolicy, call_with_retry
from docrag.utils.files import iter_document_paths
from docrag.utils.text import build_chunks, validate_chunking

LOGGER = logging.getLogger(__name__)


def find_documents(paths: Sequence[Path]) -> list[Path]:
    """Find all files with a supported extension under the given paths."""
    return list(iter_document_paths(paths, SUPPORTED_SUFFIXES))


class DocumentPipeline:
    """Coordinates chunking, embedding and storage of documents.

    A failed embedding, or a vector whose length does not match the store,
    stops the document: chunks stored before it stay in the store and are
    reported through `IngestionAborted`. With
    ``max_workers > 1`` chunks are embedded concurrently but still inserted
    in chunk order.
    """

    def __init__(
        self,
        embedder: Embedder,
        store: DocumentStore,
        *,
        chunk_chars: int = 500,
        overlap: int = 50,
        max_workers: int = 1,
        retry_policy: RetryPolicy | None = None,
    ) -> None:
        validate_chunking(chunk_chars, overlap)
        if max_workers < 1:
            raise InvalidConfiguration(f"max_workers must be at least 1, got {max_workers}")
        self.embedder = embedder
        self.store = store
        self.chunk_chars = chunk_chars
        self.overlap = overlap
        self.max_workers = max_workers
        self.retry_policy = retry_policy or RetryPolicy()

    def _embed(self, chunk: Chunk) -> Embedding:
        return call_with_retry(lambda: self.embedder.embed(chunk.content), self.retry_policy)

    def ingest(self, source: str, text: str) -> int:
        """Ingest one document and return the number of chunks stored.

        Chunks already in the store are skipped, so ingesting a document again
        after `IngestionAborted` resumes it from the first missing chunk.
        """
        chunks = build_chunks(source, text, max_chars=self.chunk_chars, overlap=self.overlap)
        if not chunks:
            LOGGER.warning("No text to ingest for %s", source)
            return 0
        pending = [chunk for chunk in chunks if chunk.id not in self.store]
        if not pending:
            raise DuplicateChunk(chunks[0].id)
        if len(pending) < len(chunks):
            LOGGER.info(
                "Resuming %s: %d/%d chunks already stored",
                source,
                len(chunks) - len(pending),
                len(chunks),
            )

        if self.max_workers == 1:
            stored = self._ingest_sequential(source, pending, len(chunks))
        else:
            stored = self._ingest_concurrent(source, pending, len(chunks))
        LOGGER.info("Ingested %s (%d chunks)", source, len(stored))
        return len(stored)

    def _abort(self, source: str, stored: List[str], total: int, exc: DocRagError) -> IngestionAborted:
        LOGGER.error(
            "Ingestion of %s stopped after %d/%d chunks: %s", source, len(stored), total, exc
        )
        return IngestionAborted(source, stored=stored, total=total, error=exc)

    def _insert(self, source: str, chunk: Chunk, embedding: Embedding, stored: List[str], total: int) -> None:
        try:
            self.store.insert(chunk, embedding)
        except DimensionMismatch as exc:
            raise self._abort(source, stored, total, exc) from exc
        stored.append(chunk.id)

    def _ingest_sequential(self, source: str, chunks: List[Chunk], total: int) -> List[str]:
        stored: List[str] = []
        for chunk in chunks:
            try:
                embedding = self._embed(chunk)
            except ProviderFailure as exc:
                raise self._abort(source, stored, total, exc) from exc
            self._insert(source, chunk, embedding, stored, total)
        return stored

    def _ingest_concurrent(self, source: str, chunks: List[Chunk], total: int) -> List[str]:
        stored: List[str] = []
        with ThreadPoolExecutor(max_workers=self.max_workers, thread_name_prefix="docrag-ingest") as pool:
            futures: List[Future] = [pool.submit(self._embed, chunk) for chunk in chunks]
            try:
                for chunk, future in zip(chunks, futures):
                    try:
                        embedding = future.result()
                    except ProviderFailure as exc:
                        raise self._abort(source, stored, total, exc) from exc
                    self._insert(source, chunk, embedding, stored, total)
            finally:
                for future in futures:
                    future.cancel()
        return stored

    def ingest_file(self, path: Path) -> int:
        """Extract the text of ``path`` and ingest it with the path as source."""
        text = extract_text(path)
        return self.ingest(str(path), text)

    def index(self, paths: Sequence[Path]) -> IngestStats:
        """Ingest every supported file found under the given paths."""
        files = find_documents(paths)
        if not files:
            LOGGER.warning("No supported documents found")
            return IngestStats()

        stats = IngestStats()
        for path in files:
            try:
                LOGGER.info("Processing: %s", path)
                count = self.ingest_file(path)
            except DuplicateChunk:
                LOGGER.info("Already ingested, skipping %s", path)
                stats.increment("skipped", path)
            except IngestionAborted as exc:
                stats.increment("partial" if exc.stored else "failed", path, len(exc.stored))
            except DocRagError as exc:
                LOGGER.error("Failed to process %s: %s", path, exc)
                stats.increment("failed", path)
            else:
                stats.increment("ingested" if count else "skipped", path, count)
        return stats
