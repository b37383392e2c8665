"""Indexing orchestration: layout result to stored embeddings."""
from __future__ import annotations

import json
import logging
import time
from dataclasses import asdict, dataclass
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from layoutrag.config import Settings, get_settings
from layoutrag.embeddings import EmbeddingModelLike
from layoutrag.indexing.embedding_pipeline import embed_chunks
from layoutrag.layout.aligner import create_chunks_from_layout
from layoutrag.layout.headings import HeadingSegmenter, SegmenterConfig
from layoutrag.layout.models import LayoutDocument
from layoutrag.telemetry import emit_exception
from layoutrag.vectorstore import ChunkVectorStore, get_vector_store

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class IndexResult:
    """Summary of a single indexing run."""

    source: str
    segment_count: int
    chunk_count: int
    embedded_count: int
    persisted_count: int
    duration_seconds: float

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class IndexingService:
    """Segment, align, embed and persist one analysed document at a time."""

    def __init__(
        self,
        vector_store: ChunkVectorStore,
        *,
        embedding_model: Optional[EmbeddingModelLike] = None,
        segmenter: Optional[HeadingSegmenter] = None,
        max_workers: int = 1,
    ) -> None:
        self.vector_store = vector_store
        self.embedding_model = embedding_model or vector_store.embedding_model
        self.segmenter = segmenter or HeadingSegmenter()
        self.max_workers = max(1, max_workers)

    def index_layout(self, layout: LayoutDocument | Mapping[str, Any], source: str) -> IndexResult:
        """Index a layout-analysis result under *source* (usually the PDF file name)."""

        started = time.perf_counter()
        if not isinstance(layout, LayoutDocument):
            layout = LayoutDocument.from_dict(layout)

        segments = self.segmenter.segment(layout.content) if layout.content else []
        chunks = create_chunks_from_layout(layout, segments)
        embedded = embed_chunks(chunks, source, self.embedding_model, max_workers=self.max_workers)

        persisted = 0
        if embedded:
            try:
                persisted = self.vector_store.persist(embedded)
            except Exception as exc:
                emit_exception(
                    module=__name__,
                    error=exc,
                    source=source,
                    suggestion="Re-run indexing for this source once the vector store is writable",
                )
                raise

        result = IndexResult(
            source=source,
            segment_count=len(segments),
            chunk_count=len(chunks),
            embedded_count=len(embedded),
            persisted_count=persisted,
            duration_seconds=time.perf_counter() - started,
        )
        LOGGER.info(
            "Indexed %s: %s segments, %s chunks, %s embedded, %s persisted",
            source,
            result.segment_count,
            result.chunk_count,
            result.embedded_count,
            result.persisted_count,
        )
        return result

    def index_layout_file(self, path: str | Path, source: str | None = None) -> IndexResult:
        """Read a layout-analysis JSON file and index it.

        *source* defaults to the file name with a ``.pdf`` suffix.
        """

        path = Path(path)
        payload = json.loads(path.read_text(encoding="utf-8"))
        return self.index_layout(payload, source or f"{path.stem}.pdf")


def build_indexing_service(
    settings: Optional[Settings] = None,
    vector_store: Optional[ChunkVectorStore] = None,
) -> IndexingService:
    settings = settings or get_settings()
    vector_store = vector_store or get_vector_store()
    segmenter = HeadingSegmenter(SegmenterConfig(page_metadata_markers=settings.page_metadata_markers))
    return IndexingService(vector_store, segmenter=segmenter, max_workers=settings.embed_max_workers)


@lru_cache()
def get_indexing_service() -> IndexingService:
    """FastAPI dependency returning the shared :class:`IndexingService` instance."""

    return build_indexing_service()
