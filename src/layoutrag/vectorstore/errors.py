"""Common exceptions for vector store integrations."""
from __future__ import annotations

from layoutrag.errors import VectorStoreUnavailableError, VectorStoreWriteError

__all__ = ["VectorStoreUnavailableError", "VectorStoreWriteError"]
