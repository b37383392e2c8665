"""API router exposing indexing, similarity query and reference clipping."""
from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from layoutrag.config import Settings, get_settings
from layoutrag.errors import EmbeddingError, VectorStoreUnavailableError
from layoutrag.services.indexing import IndexingService, get_indexing_service
from layoutrag.services.references import ReferenceClipService, get_reference_service
from layoutrag.vectorstore import ChunkVectorStore, get_vector_store

router = APIRouter(tags=["layoutrag"])


class IndexRequest(BaseModel):
    """Request body carrying a layout-analysis result."""

    source: str = Field(..., min_length=1, description="Name of the analysed PDF, stored with every chunk.")
    layout: dict[str, Any] = Field(..., description="Layout-analysis JSON with `content` and `paragraphs`.")


class IndexResponse(BaseModel):
    source: str
    segment_count: int
    chunk_count: int
    embedded_count: int
    persisted_count: int
    duration_seconds: float


class QueryRequest(BaseModel):
    """Request body accepted by the query endpoint."""

    text: str = Field(..., min_length=1, description="Text to compare against the stored chunks.")
    limit: int = Field(5, ge=1, le=100, description="How many neighbours to return.")


class QueryMatch(BaseModel):
    similarity: float
    meta: dict[str, Any]


class QueryResponse(BaseModel):
    results: list[QueryMatch]


class ReferenceRequest(BaseModel):
    text: str = Field(..., min_length=1)
    limit: int | None = Field(None, ge=1, le=100)
    similarity_threshold: float | None = Field(None, ge=-1.0, le=1.0)


class ReferenceClip(BaseModel):
    page: int
    heading: str
    similarity: float
    path: str


class ReferenceFailure(BaseModel):
    page: int | None
    heading: str
    source: str
    error: str


class ReferenceResponse(BaseModel):
    clips: list[ReferenceClip]
    failures: list[ReferenceFailure]


def _to_http_error(exc: Exception) -> HTTPException:
    if isinstance(exc, VectorStoreUnavailableError):
        return HTTPException(status_code=503, detail=str(exc))
    return HTTPException(status_code=502, detail=str(exc))


@router.post("/documents/index", response_model=IndexResponse)
def index_document(
    request: IndexRequest,
    service: IndexingService = Depends(get_indexing_service),
) -> IndexResponse:
    """Segment, align, embed and store one analysed document."""

    try:
        result = service.index_layout(request.layout, request.source)
    except (VectorStoreUnavailableError, EmbeddingError) as exc:
        raise _to_http_error(exc) from exc
    return IndexResponse(**result.to_dict())


@router.post("/query", response_model=QueryResponse)
def query_chunks(
    request: QueryRequest,
    vector_store: ChunkVectorStore = Depends(get_vector_store),
) -> QueryResponse:
    """Return the stored chunks most similar to the query text."""

    if not request.text.strip():
        raise HTTPException(status_code=422, detail="Query text must not be empty")

    try:
        matches = vector_store.query(request.text, limit=request.limit)
    except (VectorStoreUnavailableError, EmbeddingError) as exc:
        raise _to_http_error(exc) from exc
    return QueryResponse(
        results=[QueryMatch(similarity=match.similarity, meta=match.meta) for match in matches]
    )


@router.post("/references", response_model=ReferenceResponse)
def clip_references(
    request: ReferenceRequest,
    service: ReferenceClipService = Depends(get_reference_service),
    settings: Settings = Depends(get_settings),
) -> ReferenceResponse:
    """Clip page images for every close match of the query text."""

    if not request.text.strip():
        raise HTTPException(status_code=422, detail="Query text must not be empty")

    try:
        result = service.clip_references(
            request.text,
            settings.clip_output_dir,
            limit=request.limit,
            similarity_threshold=request.similarity_threshold,
        )
    except (VectorStoreUnavailableError, EmbeddingError) as exc:
        raise _to_http_error(exc) from exc
    payload = result.to_dict()
    return ReferenceResponse(clips=payload["clips"], failures=payload["failures"])
