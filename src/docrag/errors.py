"""Error taxonomy shared by every DocRAG component."""

from __future__ import annotations

from typing import Sequence


class DocRagError(Exception):
    """Base class for all DocRAG failures."""


class InvalidConfiguration(DocRagError, ValueError):
    """Chunking, retrieval or provider parameters are malformed."""


class ExtractionError(DocRagError):
    """Text could not be obtained from a source file."""


class UnsupportedFormat(ExtractionError):
    """No extractor handles the file type."""


class ExtractionFailed(ExtractionError):
    """The extractor recognised the file but could not read it."""


class DimensionMismatch(DocRagError, ValueError):
    """An embedding does not match the dimensionality already in use."""

    def __init__(self, expected: int, actual: int) -> None:
        super().__init__(f"Embedding dimension mismatch: expected {expected}, got {actual}")
        self.expected = expected
        self.actual = actual


class DuplicateChunk(DocRagError):
    """A chunk with the same id is already stored."""

    def __init__(self, chunk_id: str) -> None:
        super().__init__(f"Chunk already stored: {chunk_id}")
        self.chunk_id = chunk_id


class ProviderFailure(DocRagError):
    """Base class for embedding and generation provider failures."""


class ProviderUnavailable(ProviderFailure):
    """The provider could not be reached, timed out, or kept throttling."""


class ProviderError(ProviderFailure):
    """The provider answered with something unusable."""


class RateLimited(ProviderFailure):
    """The provider asked us to slow down. The only retryable failure."""

    def __init__(self, message: str, *, retry_after: float | None = None) -> None:
        super().__init__(message)
        self.retry_after = retry_after


class IngestionAborted(DocRagError):
    """A document was only partially ingested.

    ``stored`` lists the chunk ids this attempt inserted before the failure;
    they remain in the store. ``error`` is the provider failure or dimension
    mismatch that stopped ingestion.
    """

    def __init__(
        self,
        source: str,
        *,
        stored: Sequence[str],
        total: int,
        error: Exception,
    ) -> None:
        super().__init__(
            f"Ingestion of {source} aborted after {len(stored)}/{total} chunks: {error}"
        )
        self.source = source
        self.stored = list(stored)
        self.total = total
        self.error = error
