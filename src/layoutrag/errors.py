"""Exception hierarchy shared by the chunking, storage and clipping stages."""
from __future__ import annotations

from typing import Sequence, Tuple


class LayoutRagError(RuntimeError):
    """Base error carrying the pipeline stage that failed."""

    stage = "layoutrag"

    def __init__(self, message: str, *, stage: str | None = None, cause: Exception | None = None) -> None:
        super().__init__(message)
        if stage is not None:
            self.stage = stage
        self.__cause__ = cause


class EmbeddingError(LayoutRagError):
    """Raised when the embedding function cannot produce a vector."""

    stage = "embeddings"


class VectorStoreUnavailableError(LayoutRagError):
    """Raised when the vector store backend cannot be initialised or queried."""

    stage = "vectorstore"


class VectorStoreWriteError(VectorStoreUnavailableError):
    """Raised when a batch insert failed and was rolled back."""

    stage = "vectorstore.persist"

    def __init__(self, message: str, *, count: int = 0, cause: Exception | None = None) -> None:
        super().__init__(message, cause=cause)
        self.count = count


class ClipOutOfBoundsError(LayoutRagError):
    """Raised when a clip rectangle is empty or leaves the rendered page."""

    stage = "clip"

    def __init__(
        self,
        message: str,
        *,
        page: int | None = None,
        rect: Sequence[int] | None = None,
        canvas_size: Tuple[int, int] | None = None,
    ) -> None:
        super().__init__(message)
        self.page = page
        self.rect = tuple(rect) if rect is not None else None
        self.canvas_size = canvas_size


__all__ = [
    "ClipOutOfBoundsError",
    "EmbeddingError",
    "LayoutRagError",
    "VectorStoreUnavailableError",
    "VectorStoreWriteError",
]
