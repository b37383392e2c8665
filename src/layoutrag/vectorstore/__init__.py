"""Vector store helpers backed by pluggable backends."""

from __future__ import annotations

import logging
import time
from functools import lru_cache
from typing import Any, Dict, List, Optional, Protocol, Sequence, TYPE_CHECKING

from layoutrag.config import Settings, get_settings
from layoutrag.layout.models import EmbeddedChunk
from layoutrag.telemetry import emit_vectorstore_event

from .errors import VectorStoreUnavailableError, VectorStoreWriteError
from .mock_store import MockVectorStore
from .records import SimilarityMatch
from .sqlite_store import SQLiteVectorStore

if TYPE_CHECKING:  # pragma: no cover - import for type checking only
    from layoutrag.embeddings import EmbeddingModelLike

LOGGER = logging.getLogger(__name__)

DEFAULT_COLLECTION_NAME = "vec_items"


class VectorBackend(Protocol):
    """Operations every storage backend provides."""

    def create_collection(self, name: str, *, metadata: Optional[Dict[str, Any]] = None) -> Any:
        ...

    def count(self, name: str) -> int:
        ...

    def add(self, name: str, *, embeddings: Sequence[Sequence[float]], metadatas: Sequence[Dict[str, Any]]) -> int:
        ...

    def query(self, name: str, query_embedding: Sequence[float], k: int = 5) -> List[SimilarityMatch]:
        ...


class ChunkVectorStore:
    """Persist embedded chunks and answer cosine-similarity queries."""

    def __init__(
        self,
        backend: VectorBackend,
        embedding_model: "EmbeddingModelLike",
        *,
        collection_name: str = DEFAULT_COLLECTION_NAME,
        backend_name: str | None = None,
    ) -> None:
        self.embedding_model = embedding_model
        self.collection_name = collection_name
        self.backend_name = backend_name or type(backend).__name__
        self._store = backend
        try:
            self._store.create_collection(self.collection_name)
        except VectorStoreUnavailableError:
            raise
        except Exception as exc:
            raise VectorStoreUnavailableError(
                "Failed to initialise vector store collection",
                cause=exc,
            ) from exc

    def count(self) -> int:
        return self._store.count(self.collection_name)

    def persist(self, records: Sequence[EmbeddedChunk]) -> int:
        """Insert all records as one atomic batch and return how many were written."""

        if not records:
            return 0

        started = time.perf_counter()
        try:
            written = self._store.add(
                self.collection_name,
                embeddings=[record.embedding for record in records],
                metadatas=[record.to_record() for record in records],
            )
        except Exception as exc:
            emit_vectorstore_event(
                "vectorstore.persist",
                backend=self.backend_name,
                collection=self.collection_name,
                count=len(records),
                duration_ms=(time.perf_counter() - started) * 1000.0,
                error=exc,
            )
            if isinstance(exc, VectorStoreWriteError):
                raise
            raise VectorStoreWriteError(
                f"Failed to persist {len(records)} records; batch rolled back",
                count=len(records),
                cause=exc,
            ) from exc

        emit_vectorstore_event(
            "vectorstore.persist",
            backend=self.backend_name,
            collection=self.collection_name,
            count=written,
            duration_ms=(time.perf_counter() - started) * 1000.0,
        )
        return written

    def query(self, text: str, limit: int = 5) -> List[SimilarityMatch]:
        """Return the *limit* stored records most similar to *text*.

        The query is embedded with the same model used at indexing time.
        Threshold filtering is left to callers.
        """

        if limit <= 0 or not text.strip():
            return []

        started = time.perf_counter()
        query_embeddings = self.embedding_model.embed_texts([text])
        if not query_embeddings:
            return []

        try:
            matches = self._store.query(self.collection_name, query_embeddings[0], k=limit)
        except VectorStoreUnavailableError:
            raise
        except Exception as exc:
            raise VectorStoreUnavailableError("Vector store query failed", cause=exc) from exc

        emit_vectorstore_event(
            "vectorstore.query",
            backend=self.backend_name,
            collection=self.collection_name,
            count=len(matches),
            duration_ms=(time.perf_counter() - started) * 1000.0,
        )
        return matches


def build_vector_store(
    settings: Optional[Settings] = None,
    embedding_model: Optional["EmbeddingModelLike"] = None,
) -> ChunkVectorStore:
    """Create the backend selected by ``VECTOR_STORE`` wrapped in a facade."""

    settings = settings or get_settings()
    if embedding_model is None:
        from layoutrag.embeddings import get_embedding_model

        embedding_model = get_embedding_model()

    backend_name = settings.vector_store
    backend: VectorBackend
    if backend_name == "mock":
        backend = MockVectorStore()
    elif backend_name == "sqlite":
        backend = SQLiteVectorStore(settings.vector_db_path)
    elif backend_name == "chroma":
        from .chroma_store import ChromaStore

        backend = ChromaStore(settings.chroma_persist_dir)
    else:
        raise ValueError(f"Unsupported VECTOR_STORE backend: {backend_name!r}")

    LOGGER.info("Using %s vector store backend (collection %s)", backend_name, settings.collection_name)
    return ChunkVectorStore(
        backend,
        embedding_model,
        collection_name=settings.collection_name,
        backend_name=backend_name,
    )


@lru_cache()
def get_vector_store() -> ChunkVectorStore:
    """Return a lazily initialised vector store instance based on configuration."""

    return build_vector_store()


def reset_vector_store_cache() -> None:
    """Clear the cached vector store (primarily for testing)."""

    get_vector_store.cache_clear()  # type: ignore[attr-defined]


__all__ = [
    "ChunkVectorStore",
    "MockVectorStore",
    "SQLiteVectorStore",
    "SimilarityMatch",
    "VectorStoreUnavailableError",
    "VectorStoreWriteError",
    "build_vector_store",
    "get_vector_store",
    "reset_vector_store_cache",
]
