"""FastAPI application exposing ingestion, search and question answering."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, List

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from docrag.errors import (
    DimensionMismatch,
    DocRagError,
    DuplicateChunk,
    ExtractionFailed,
    IngestionAborted,
    InvalidConfiguration,
    ProviderError,
    ProviderUnavailable,
    RateLimited,
    UnsupportedFormat,
)
from docrag.models import ScoredChunk
from docrag.service import RagService

LOGGER = logging.getLogger(__name__)

MAX_TOP_K = 50

_STATUS_CODES: list[tuple[type[DocRagError], int]] = [
    (IngestionAborted, 502),
    (InvalidConfiguration, 400),
    (DimensionMismatch, 400),
    (UnsupportedFormat, 400),
    (ExtractionFailed, 422),
    (DuplicateChunk, 409),
    (RateLimited, 429),
    (ProviderUnavailable, 503),
    (ProviderError, 502),
]


class IngestPayload(BaseModel):
    source: str
    text: str


class QueryPayload(BaseModel):
    query: str
    top_k: int | None = Field(default=None, ge=1)


def status_for(exc: DocRagError) -> int:
    for error_type, status in _STATUS_CODES:
        if isinstance(exc, error_type):
            return status
    return 500


def _serialize(results: List[ScoredChunk]) -> List[dict[str, Any]]:
    return [
        {
            "id": item.chunk.id,
            "source": item.chunk.source,
            "chunk_index": item.chunk.chunk_index,
            "text": item.chunk.content,
            "score": item.score,
        }
        for item in results
    ]


def _clean_query(payload: QueryPayload) -> tuple[str, int | None]:
    query = payload.query.strip()
    if not query:
        raise HTTPException(status_code=400, detail="Empty query")
    top_k = min(payload.top_k, MAX_TOP_K) if payload.top_k is not None else None
    return query, top_k


def create_app(service: RagService) -> FastAPI:
    """Build the API around an existing service; the caller owns its lifecycle."""
    app = FastAPI(title="DocRAG API", version="0.1.0")
    app.state.rag = service

    @app.exception_handler(DocRagError)
    async def handle_docrag_error(request: Request, exc: DocRagError) -> JSONResponse:
        status = status_for(exc)
        body: dict[str, Any] = {"detail": str(exc)}
        if isinstance(exc, IngestionAborted):
            body["stored"] = exc.stored
            body["total"] = exc.total
        if isinstance(exc, RateLimited) and exc.retry_after is not None:
            body["retry_after"] = exc.retry_after
        LOGGER.error("%s %s failed with %s: %s", request.method, request.url.path, status, exc)
        return JSONResponse(status_code=status, content=body)

    @app.post("/ingest")
    async def ingest_document(payload: IngestPayload) -> dict[str, Any]:
        source = payload.source.strip()
        if not source:
            raise HTTPException(status_code=400, detail="Empty source")
        count = await asyncio.to_thread(service.ingest, source, payload.text)
        return {"status": "ok", "source": source, "chunks": count}

    @app.post("/search")
    async def search_documents(payload: QueryPayload) -> dict[str, Any]:
        query, top_k = _clean_query(payload)
        results = await asyncio.to_thread(service.search, query, top_k=top_k)
        return {"results": _serialize(results)}

    @app.post("/ask")
    async def ask_question(payload: QueryPayload) -> dict[str, Any]:
        query, top_k = _clean_query(payload)
        answer = await asyncio.to_thread(service.ask, query, top_k=top_k)
        return {"answer": answer.text, "sources": _serialize(answer.sources)}

    @app.get("/stats")
    async def get_stats() -> dict[str, Any]:
        return service.store.get_stats()

    return app
