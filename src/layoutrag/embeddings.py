"""Embedding helpers backed by Sentence Transformers or the OpenAI API."""
from __future__ import annotations

import logging
import time
from functools import lru_cache
from typing import List, Optional, Protocol, Sequence

from layoutrag.config import Settings, get_settings
from layoutrag.errors import EmbeddingError
from layoutrag.telemetry import emit_embeddings_event

LOGGER = logging.getLogger(__name__)

DEFAULT_MODEL_NAME = "sentence-transformers/all-MiniLM-L6-v2"
DEFAULT_OPENAI_MODEL = "text-embedding-3-large"


class EmbeddingModelLike(Protocol):
    """Protocol describing the embedding interface used by the pipeline and stores."""

    def embed_texts(self, texts: Sequence[str]) -> List[List[float]]:
        ...


class _TimedEmbedder:
    """Shared timing and telemetry around a concrete ``_embed`` implementation."""

    model_name: str = "unknown"

    def embed_texts(self, texts: Sequence[str]) -> List[List[float]]:
        if not texts:
            return []
        started = time.perf_counter()
        try:
            embeddings = self._embed(list(texts))
        except Exception as error:
            emit_embeddings_event(
                model=self.model_name,
                count=len(texts),
                duration_ms=(time.perf_counter() - started) * 1000.0,
                errors=[str(error)],
            )
            if isinstance(error, EmbeddingError):
                raise
            raise EmbeddingError(f"Embedding with {self.model_name} failed: {error}", cause=error) from error

        emit_embeddings_event(
            model=self.model_name,
            count=len(texts),
            duration_ms=(time.perf_counter() - started) * 1000.0,
        )
        return embeddings

    def _embed(self, texts: List[str]) -> List[List[float]]:  # pragma: no cover - abstract
        raise NotImplementedError


class EmbeddingModel(_TimedEmbedder):
    """Wrapper around a local SentenceTransformer model."""

    def __init__(
        self,
        model_name_or_path: str | None = None,
        *,
        device: str | None = None,
    ) -> None:
        from sentence_transformers import SentenceTransformer

        self.model_name = model_name_or_path or DEFAULT_MODEL_NAME
        try:
            self._model = SentenceTransformer(self.model_name, device=device)
        except Exception as error:  # pragma: no cover - depends on model availability
            raise EmbeddingError(
                f"Failed to initialise sentence-transformers model '{self.model_name}'",
                cause=error,
            ) from error
        self._dimension = int(self._model.get_sentence_embedding_dimension())

    def _embed(self, texts: List[str]) -> List[List[float]]:
        embeddings = self._model.encode(
            texts,
            convert_to_numpy=True,
            show_progress_bar=False,
            normalize_embeddings=False,
        )
        return embeddings.tolist()

    @property
    def dimension(self) -> int:
        return self._dimension


class OpenAIEmbeddingModel(_TimedEmbedder):
    """Remote embeddings through the OpenAI embeddings endpoint."""

    def __init__(self, api_key: str | None = None, model: str = DEFAULT_OPENAI_MODEL, *, client=None) -> None:
        self.model_name = model
        if client is None:
            if not api_key:
                raise EmbeddingError("OPENAI_API_KEY is required for the openai embedding provider")
            from openai import OpenAI

            client = OpenAI(api_key=api_key)
        self._client = client

    def _embed(self, texts: List[str]) -> List[List[float]]:
        response = self._client.embeddings.create(model=self.model_name, input=texts)
        ordered = sorted(response.data, key=lambda item: item.index)
        return [list(item.embedding) for item in ordered]


def build_embedding_model(settings: Optional[Settings] = None) -> EmbeddingModelLike:
    """Instantiate the embedding provider selected by configuration."""

    settings = settings or get_settings()
    provider = settings.embedding_provider
    if provider == "mock":
        from layoutrag.providers.mock_embedding import MockEmbeddingProvider

        LOGGER.info("Using deterministic mock embeddings")
        return MockEmbeddingProvider()
    if provider == "openai":
        return OpenAIEmbeddingModel(settings.openai_api_key, settings.openai_embedding_model)
    if provider in {"sentence-transformers", "sentence_transformers", "local"}:
        return EmbeddingModel(settings.embedding_model_path, device=settings.embedding_device)
    raise ValueError(f"Unsupported EMBEDDING_PROVIDER: {provider!r}")


@lru_cache()
def get_embedding_model() -> EmbeddingModelLike:
    """Return a cached embedding model instance."""

    return build_embedding_model()


def reset_embedding_model_cache() -> None:
    """Clear the cached embedding model instance (primarily for testing)."""

    get_embedding_model.cache_clear()  # type: ignore[attr-defined]
