"""Provider exports for offline embeddings."""
from __future__ import annotations

from .mock_embedding import MockEmbeddingProvider

__all__ = ["MockEmbeddingProvider"]
