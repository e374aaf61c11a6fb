"""Application configuration defaults and provider factories."""

from __future__ import annotations

import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Literal, Mapping

from docrag.embedding.encoder import (
    DEFAULT_HOSTED_MODEL,
    DEFAULT_HOSTED_URL,
    DEFAULT_MODEL,
    Embedder,
    EmbeddingConfig,
    HostedEmbeddingClient,
    LocalEmbeddingModel,
)
from docrag.errors import InvalidConfiguration
from docrag.generation.llm_client import (
    DEFAULT_CHAT_MODEL,
    DEFAULT_CHAT_URL,
    DEFAULT_OLLAMA_MODEL,
    DEFAULT_OLLAMA_URL,
    Generator,
    HostedChatClient,
    OllamaClient,
)
from docrag.utils.text import validate_chunking

ENV_PREFIX = "DOCRAG_"


@dataclass(slots=True)
class AppConfig:
    db_path: Path = Path("data/docrag.db")
    embedding_provider: Literal["local", "hosted"] = "local"
    embedding_model: str | None = None
    embedding_url: str = DEFAULT_HOSTED_URL
    generation_provider: Literal["ollama", "hosted"] = "ollama"
    generation_model: str | None = None
    generation_url: str | None = None
    api_key: str | None = None
    chunk_chars: int = 500
    overlap: int = 50
    top_k: int = 5
    timeout: float = 30.0
    max_attempts: int = 5
    max_workers: int = 1

    def __post_init__(self) -> None:
        self.db_path = Path(self.db_path)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None, **overrides) -> "AppConfig":
        """Build a config from ``DOCRAG_*`` variables; keyword overrides win."""
        environ = os.environ if environ is None else environ
        values: dict = {}
        for item in fields(cls):
            raw = environ.get(ENV_PREFIX + item.name.upper())
            if raw is None:
                continue
            try:
                if item.name in {"chunk_chars", "overlap", "top_k", "max_attempts", "max_workers"}:
                    values[item.name] = int(raw)
                elif item.name == "timeout":
                    values[item.name] = float(raw)
                else:
                    values[item.name] = raw
            except ValueError as exc:
                raise InvalidConfiguration(f"Invalid value for {ENV_PREFIX}{item.name.upper()}: {raw!r}") from exc
        values.update({key: value for key, value in overrides.items() if value is not None})
        return cls(**values)

    def validate(self) -> "AppConfig":
        validate_chunking(self.chunk_chars, self.overlap)
        if self.embedding_provider not in ("local", "hosted"):
            raise InvalidConfiguration(f"Unknown embedding provider: {self.embedding_provider}")
        if self.generation_provider not in ("ollama", "hosted"):
            raise InvalidConfiguration(f"Unknown generation provider: {self.generation_provider}")
        if self.top_k < 1:
            raise InvalidConfiguration("top_k must be at least 1")
        if self.timeout <= 0:
            raise InvalidConfiguration("timeout must be positive")
        if self.max_attempts < 1:
            raise InvalidConfiguration("max_attempts must be at least 1")
        if self.max_workers < 1:
            raise InvalidConfiguration("max_workers must be at least 1")
        return self

    def resolve_db_path(self, base_dir: Path | None = None) -> Path:
        if self.db_path.is_absolute() or base_dir is None:
            return self.db_path
        return base_dir / self.db_path


def build_embedder(config: AppConfig) -> Embedder:
    if config.embedding_provider == "hosted":
        return HostedEmbeddingClient(
            base_url=config.embedding_url,
            model=config.embedding_model or DEFAULT_HOSTED_MODEL,
            api_key=config.api_key,
            timeout=config.timeout,
        )
    if config.embedding_provider == "local":
        return LocalEmbeddingModel(
            EmbeddingConfig(model_name=config.embedding_model or DEFAULT_MODEL, timeout=config.timeout)
        )
    raise InvalidConfiguration(f"Unknown embedding provider: {config.embedding_provider}")


def build_generator(config: AppConfig) -> Generator:
    if config.generation_provider == "hosted":
        return HostedChatClient(
            base_url=config.generation_url or DEFAULT_CHAT_URL,
            model=config.generation_model or DEFAULT_CHAT_MODEL,
            api_key=config.api_key,
            timeout=config.timeout,
        )
    if config.generation_provider == "ollama":
        return OllamaClient(
            base_url=config.generation_url or DEFAULT_OLLAMA_URL,
            model=config.generation_model or DEFAULT_OLLAMA_MODEL,
            timeout=config.timeout,
        )
    raise InvalidConfiguration(f"Unknown generation provider: {config.generation_provider}")
