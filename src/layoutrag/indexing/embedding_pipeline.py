"""Pipeline for computing embeddings of heading-scoped chunks."""
from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import List, Optional, Sequence

from layoutrag.embeddings import EmbeddingModelLike
from layoutrag.layout.models import Chunk, ChunkMetadata, EmbeddedChunk
from layoutrag.telemetry import emit_embedding_failure

LOGGER = logging.getLogger(__name__)


def _embed_one(chunk: Chunk, source: str, embedding_model: EmbeddingModelLike) -> Optional[EmbeddedChunk]:
    try:
        vectors = embedding_model.embed_texts([chunk.text])
        if len(vectors) != 1:
            raise ValueError(f"Expected one embedding, received {len(vectors)}")
        embedding = [float(value) for value in vectors[0]]
    except Exception as error:
        emit_embedding_failure(
            source=source,
            pages=chunk.pages,
            start_offset=chunk.start_offset,
            end_offset=chunk.end_offset,
            error=error,
        )
        return None

    metadata = ChunkMetadata(
        heading=chunk.heading,
        bounding_regions=list(chunk.bounding_regions),
        text_start_offset=chunk.start_offset,
        text_end_offset=chunk.end_offset,
        source=source,
    )
    return EmbeddedChunk(text=chunk.text, embedding=embedding, metadata=metadata)


def embed_chunks(
    chunks: Sequence[Chunk],
    source: str,
    embedding_model: EmbeddingModelLike,
    *,
    max_workers: int = 1,
) -> List[EmbeddedChunk]:
    """Embed every chunk, skipping (and logging) the ones whose call fails.

    Each chunk is embedded with its own call so a failure never affects its
    siblings. With ``max_workers > 1`` the calls run on a thread pool; the
    result still follows the input order.
    """

    if not chunks:
        return []

    if max_workers > 1 and len(chunks) > 1:
        with ThreadPoolExecutor(max_workers=min(max_workers, len(chunks))) as executor:
            outcomes = list(
                executor.map(lambda chunk: _embed_one(chunk, source, embedding_model), chunks)
            )
    else:
        outcomes = [_embed_one(chunk, source, embedding_model) for chunk in chunks]

    embedded = [item for item in outcomes if item is not None]
    skipped = len(chunks) - len(embedded)
    if skipped:
        LOGGER.warning("Skipped %s of %s chunks from %s after embedding failures", skipped, len(chunks), source)
    return embedded


class ChunkEmbeddingPipeline:
    """Binds an embedding model and worker count for repeated batches."""

    def __init__(self, embedding_model: EmbeddingModelLike, *, max_workers: int = 1) -> None:
        self.embedding_model = embedding_model
        self.max_workers = max(1, max_workers)

    def run(self, chunks: Sequence[Chunk], source: str) -> List[EmbeddedChunk]:
        return embed_chunks(chunks, source, self.embedding_model, max_workers=self.max_workers)
