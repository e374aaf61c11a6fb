"""Embedding providers behind one interface."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeout
from dataclasses import dataclass
from typing import Any, Literal

import httpx
import numpy as np
from sentence_transformers import SentenceTransformer

from docrag.errors import ProviderError, ProviderUnavailable
from docrag.models import Embedding
from docrag.providers.http import DEFAULT_TIMEOUT, JSONClient

DEFAULT_MODEL = "sentence-transformers/all-MiniLM-L6-v2"
DEFAULT_HOSTED_MODEL = "text-embedding-3-small"
DEFAULT_HOSTED_URL = "https://api.openai.com/v1"

logger = logging.getLogger(__name__)


def as_embedding(raw: Any) -> Embedding:
    """Coerce a provider vector into a 1-D float64 array.

    Raises `ProviderError` when the value is not a non-empty list of finite numbers.
    """
    try:
        vector = np.asarray(raw, dtype=np.float64)
    except (TypeError, ValueError) as exc:
        raise ProviderError(f"Embedding is not numeric: {exc}") from exc
    if vector.ndim != 1 or vector.size == 0:
        raise ProviderError(f"Embedding must be a non-empty vector, got shape {vector.shape}")
    if not np.all(np.isfinite(vector)):
        raise ProviderError("Embedding contains NaN or infinite values")
    return vector


class Embedder(ABC):
    """Turns one piece of text into a fixed-length vector."""

    @property
    @abstractmethod
    def model_id(self) -> str:
        """Stable identifier of the embedding model."""

    @property
    def dimension(self) -> int | None:
        """Vector length, or None when unknown until the first call."""
        return None

    @abstractmethod
    def embed(self, text: str) -> Embedding:
        """Return the embedding for ``text``."""

    def close(self) -> None:
        """Release provider resources."""


@dataclass(slots=True)
class EmbeddingConfig:
    model_name: str = DEFAULT_MODEL
    normalize: bool = True
    backend: Literal["torch", "onnx", "openvino"] = "torch"
    device: str | None = None
    timeout: float = DEFAULT_TIMEOUT


class LocalEmbeddingModel(Embedder):
    """Thin wrapper around `SentenceTransformer` running in this process.

    Each encode runs on its own worker thread so the call can be bounded by
    ``config.timeout``. Concurrent callers encode in parallel.
    """

    def __init__(self, config: EmbeddingConfig | None = None) -> None:
        self.config = config or EmbeddingConfig()
        self._model = SentenceTransformer(
            self.config.model_name,
            backend=self.config.backend,
            device=self.config.device,
        )
        self._dimension = int(self._model.get_sentence_embedding_dimension())
        logger.info(
            "Loaded embedding model %s | Backend: %s | Dimension: %s",
            self.config.model_name,
            self.config.backend,
            self._dimension,
        )

    @property
    def model_id(self) -> str:
        return self.config.model_name

    @property
    def dimension(self) -> int:
        return self._dimension

    def _encode(self, text: str) -> np.ndarray:
        return self._model.encode(
            [text],
            show_progress_bar=False,
            convert_to_numpy=True,
            normalize_embeddings=self.config.normalize,
        )[0]

    def embed(self, text: str) -> Embedding:
        # One thread per call: the timeout starts with the encode and a hung
        # encode does not hold up other callers.
        executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="docrag-embed")
        try:
            future = executor.submit(self._encode, text)
            raw = future.result(timeout=self.config.timeout)
        except FutureTimeout as exc:
            raise ProviderUnavailable(
                f"Local model {self.config.model_name} timed out after {self.config.timeout}s"
            ) from exc
        except (RuntimeError, OSError) as exc:
            raise ProviderUnavailable(f"Local model {self.config.model_name} failed: {exc}") from exc
        finally:
            executor.shutdown(wait=False)
        return as_embedding(raw)


class HostedEmbeddingClient(Embedder):
    """Client for an OpenAI-compatible ``/embeddings`` endpoint."""

    def __init__(
        self,
        *,
        base_url: str = DEFAULT_HOSTED_URL,
        model: str = DEFAULT_HOSTED_MODEL,
        api_key: str | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.model = model
        self._http = JSONClient(base_url, api_key=api_key, timeout=timeout, transport=transport)
        self._dimension: int | None = None

    @property
    def model_id(self) -> str:
        return self.model

    @property
    def dimension(self) -> int | None:
        return self._dimension

    def embed(self, text: str) -> Embedding:
        logger.debug("Embedding %d chars with %s", len(text), self.model)
        data = self._http.post("/embeddings", {"model": self.model, "input": text})
        try:
            raw = data["data"][0]["embedding"]
        except (KeyError, IndexError, TypeError) as exc:
            raise ProviderError("Embedding response has no data[0].embedding field") from exc
        vector = as_embedding(raw)
        if self._dimension is None:
            self._dimension = int(vector.shape[0])
        return vector

    def close(self) -> None:
        self._http.close()
