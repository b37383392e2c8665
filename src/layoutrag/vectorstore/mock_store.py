"""Simple in-memory vector store for tests and offline use."""
from __future__ import annotations

import copy
import threading
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Sequence

import numpy as np

from .errors import VectorStoreWriteError
from .records import SimilarityMatch
from .sqlite_store import cosine_similarities


@dataclass(slots=True)
class _MockStoredItem:
    """Internal representation of a stored vector."""

    embedding: List[float]
    meta: Dict[str, Any]


class MockVectorStore:
    """A minimal in-memory vector store with all-or-nothing batch inserts."""

    def __init__(self) -> None:
        self._collections: Dict[str, List[_MockStoredItem]] = {}
        self._lock = threading.Lock()

    def create_collection(self, name: str, *, metadata: Optional[Dict[str, Any]] = None) -> None:
        """Create a new collection if it does not exist yet."""

        with self._lock:
            self._collections.setdefault(name, [])

    def count(self, name: str) -> int:
        return len(self._collections.get(name, []))

    def add(
        self,
        name: str,
        *,
        embeddings: Iterable[Sequence[float]],
        metadatas: Iterable[Dict[str, Any]],
    ) -> int:
        """Add documents to a collection; a rejected batch leaves it unchanged."""

        if name not in self._collections:
            raise KeyError(f"Collection '{name}' does not exist")

        embedding_list = [list(map(float, embedding)) for embedding in embeddings]
        metadata_list = [copy.deepcopy(dict(metadata)) for metadata in metadatas]
        if len(embedding_list) != len(metadata_list):
            raise ValueError("All inputs must be of the same length")
        if not embedding_list:
            return 0

        with self._lock:
            collection = self._collections[name]
            expected = len(collection[0].embedding) if collection else len(embedding_list[0])
            if any(len(embedding) != expected for embedding in embedding_list):
                raise VectorStoreWriteError(
                    f"Collection {name!r} expects {expected}-dimensional vectors",
                    count=len(embedding_list),
                )
            collection.extend(
                _MockStoredItem(embedding=embedding, meta=metadata)
                for embedding, metadata in zip(embedding_list, metadata_list)
            )
        return len(embedding_list)

    def query(self, name: str, query_embedding: Sequence[float], k: int = 5) -> List[SimilarityMatch]:
        """Return the *k* most similar items by cosine similarity."""

        if k <= 0:
            return []
        if name not in self._collections:
            raise KeyError(f"Collection '{name}' does not exist")

        items = list(self._collections[name])
        if not items:
            return []

        matrix = np.asarray([item.embedding for item in items], dtype=np.float64)
        similarities = cosine_similarities(matrix, np.asarray(query_embedding, dtype=np.float64))
        order = np.argsort(-similarities, kind="stable")[:k]
        return [
            SimilarityMatch(similarity=float(similarities[index]), meta=copy.deepcopy(items[index].meta))
            for index in order
        ]


__all__ = ["MockVectorStore"]
