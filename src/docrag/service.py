"""The RAG context object wiring store, providers and pipeline together."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Sequence

from docrag.answering.composer import AnswerComposer
from docrag.config import AppConfig, build_embedder, build_generator
from docrag.embedding.encoder import Embedder
from docrag.errors import InvalidConfiguration
from docrag.generation.llm_client import Generator
from docrag.index.indexer import DocumentPipeline
from docrag.index.search import Retriever
from docrag.index.storage import DocumentStore
from docrag.models import Answer, IngestStats, ScoredChunk
from docrag.providers.retry import RetryPolicy, call_with_retry

LOGGER = logging.getLogger(__name__)


class RagService:
    """Owns one `DocumentStore` and the components that read and write it.

    Whoever constructs the service (CLI invocation, web app, test) owns its
    lifecycle and should call `close` when done.
    """

    def __init__(
        self,
        embedder: Embedder,
        generator: Generator,
        *,
        store: DocumentStore | None = None,
        chunk_chars: int = 500,
        overlap: int = 50,
        top_k: int = 5,
        max_workers: int = 1,
        retry_policy: RetryPolicy | None = None,
    ) -> None:
        self.store = store if store is not None else DocumentStore()
        self.embedder = embedder
        self.generator = generator
        self.top_k = top_k
        self.retry_policy = retry_policy or RetryPolicy()
        self.pipeline = DocumentPipeline(
            embedder,
            self.store,
            chunk_chars=chunk_chars,
            overlap=overlap,
            max_workers=max_workers,
            retry_policy=self.retry_policy,
        )
        self.retriever = Retriever(self.store)
        self.composer = AnswerComposer(generator)

    @classmethod
    def from_config(cls, config: AppConfig, *, store: DocumentStore | None = None) -> "RagService":
        config.validate()
        return cls(
            build_embedder(config),
            build_generator(config),
            store=store,
            chunk_chars=config.chunk_chars,
            overlap=config.overlap,
            top_k=config.top_k,
            max_workers=config.max_workers,
            retry_policy=RetryPolicy(max_attempts=config.max_attempts),
        )

    def ingest(self, source: str, text: str) -> int:
        return self.pipeline.ingest(source, text)

    def ingest_paths(self, paths: Sequence[Path]) -> IngestStats:
        return self.pipeline.index(paths)

    def search(self, query: str, *, top_k: int | None = None) -> List[ScoredChunk]:
        top_k = self.top_k if top_k is None else top_k
        if top_k < 1:
            raise InvalidConfiguration(f"top_k must be at least 1, got {top_k}")
        if len(self.store) == 0:
            return []
        embedding = call_with_retry(lambda: self.embedder.embed(query), self.retry_policy)
        return self.retriever.retrieve(embedding, top_k)

    def ask(self, query: str, *, top_k: int | None = None) -> Answer:
        """Answer ``query`` from whatever is stored, even if that is nothing."""
        retrieved = self.search(query, top_k=top_k)
        LOGGER.info("Answering with %d context chunks", len(retrieved))
        return call_with_retry(lambda: self.composer.answer(query, retrieved), self.retry_policy)

    def close(self) -> None:
        self.embedder.close()
        self.generator.close()
