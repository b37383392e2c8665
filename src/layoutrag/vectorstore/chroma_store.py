"""Chroma vector store adapter."""
from __future__ import annotations

import json
from pathlib import Path
from typing import TYPE_CHECKING, Any, Dict, Iterable, List, Optional, Sequence
from uuid import uuid4

from .errors import VectorStoreUnavailableError, VectorStoreWriteError
from .records import SimilarityMatch

if TYPE_CHECKING:  # pragma: no cover - import for typing only
    from chromadb.api import ClientAPI
    from chromadb.api.models.Collection import Collection

COSINE_SPACE = {"hnsw:space": "cosine"}


class ChromaStore:
    """Adapter around a Chroma collection using cosine distance.

    Chroma metadata values must be scalars, so the metadata document is kept
    as a JSON string under the ``meta`` key; the chunk text is the Chroma
    document.
    """

    def __init__(
        self,
        persist_dir: str | Path,
        *,
        client: Optional["ClientAPI"] = None,
    ) -> None:
        self.persist_dir = Path(persist_dir)
        try:
            if client is None:
                import chromadb

                self.persist_dir.mkdir(parents=True, exist_ok=True)
                client = chromadb.PersistentClient(path=str(self.persist_dir))
        except Exception as exc:  # pragma: no cover - depends on chromadb runtime
            raise VectorStoreUnavailableError(
                "Failed to initialise Chroma persistent client",
                cause=exc,
            ) from exc
        self._client = client
        self._collections: Dict[str, "Collection"] = {}

    def create_collection(self, name: str, *, metadata: Optional[Dict[str, Any]] = None) -> "Collection":
        """Return an existing collection or create a new one."""

        collection = self._collections.get(name)
        if collection is None:
            collection = self._client.get_or_create_collection(
                name=name, metadata={**COSINE_SPACE, **(metadata or {})}
            )
            space = (getattr(collection, "metadata", None) or {}).get("hnsw:space", "l2")
            if space != COSINE_SPACE["hnsw:space"]:
                raise VectorStoreUnavailableError(
                    f"Chroma collection {name!r} uses {space!r} distance; cosine is required"
                )
            self._collections[name] = collection
        return collection

    def count(self, name: str) -> int:
        return int(self.create_collection(name).count())

    def add(
        self,
        name: str,
        *,
        embeddings: Iterable[Sequence[float]],
        metadatas: Iterable[Dict[str, Any]],
    ) -> int:
        """Add a batch with a single ``collection.add`` call."""

        collection = self.create_collection(name)
        embedding_list = [list(map(float, embedding)) for embedding in embeddings]
        metadata_list = [dict(metadata) for metadata in metadatas]
        if len(embedding_list) != len(metadata_list):
            raise ValueError("All inputs must be of the same length")
        if not embedding_list:
            return 0

        try:
            collection.add(
                ids=[uuid4().hex for _ in embedding_list],
                embeddings=embedding_list,
                documents=[str(metadata.get("text", "")) for metadata in metadata_list],
                metadatas=[
                    {"meta": json.dumps(metadata, ensure_ascii=False)} for metadata in metadata_list
                ],
            )
        except Exception as exc:
            raise VectorStoreWriteError(
                f"Failed to add {len(embedding_list)} records to Chroma collection {name!r}",
                count=len(embedding_list),
                cause=exc,
            ) from exc
        return len(embedding_list)

    def query(self, name: str, query_embedding: Sequence[float], k: int = 5) -> List[SimilarityMatch]:
        """Query the collection for the nearest neighbours by cosine distance."""

        if k <= 0:
            return []

        collection = self.create_collection(name)
        try:
            available = collection.count()
            if not available:
                return []
            result = collection.query(
                query_embeddings=[list(map(float, query_embedding))],
                n_results=min(k, available),
                include=["metadatas", "distances"],
            )
        except Exception as exc:
            raise VectorStoreUnavailableError("Chroma query failed", cause=exc) from exc

        metadatas = (result.get("metadatas") or [[]])[0]
        distances = (result.get("distances") or [[]])[0]

        matches: List[SimilarityMatch] = []
        for metadata, distance in zip(metadatas, distances):
            raw = (metadata or {}).get("meta") or "{}"
            matches.append(
                SimilarityMatch(
                    similarity=1.0 - float(distance if distance is not None else 1.0),
                    meta=json.loads(raw),
                )
            )
        matches.sort(key=lambda match: match.similarity, reverse=True)
        return matches


__all__ = ["ChromaStore"]
