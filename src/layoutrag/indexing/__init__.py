"""Embedding of aligned chunks."""
from __future__ import annotations

from .embedding_pipeline import ChunkEmbeddingPipeline, embed_chunks

__all__ = ["ChunkEmbeddingPipeline", "embed_chunks"]
