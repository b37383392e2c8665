"""SQLite vector store: float32 blobs plus JSON metadata, exact cosine search."""
from __future__ import annotations

import json
import logging
import re
import sqlite3
import threading
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence

import numpy as np

from .errors import VectorStoreUnavailableError, VectorStoreWriteError
from .records import SimilarityMatch

LOGGER = logging.getLogger(__name__)

_COLLECTION_NAME_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def _validate_name(name: str) -> str:
    if not _COLLECTION_NAME_RE.match(name):
        raise ValueError(f"Invalid collection name: {name!r}")
    return name


def cosine_similarities(matrix: np.ndarray, query: np.ndarray) -> np.ndarray:
    """Return ``1 - cosine_distance`` of every row against *query*.

    Rows or queries with a zero norm get a similarity of ``0.0``.
    """

    row_norms = np.linalg.norm(matrix, axis=1)
    query_norm = float(np.linalg.norm(query))
    denominator = row_norms * query_norm
    dots = matrix @ query
    similarities = np.zeros(matrix.shape[0], dtype=np.float64)
    nonzero = denominator > 0
    similarities[nonzero] = dots[nonzero] / denominator[nonzero]
    return similarities


class SQLiteVectorStore:
    """Persist vectors in SQLite tables, one table per collection.

    Each row holds the embedding as a fixed-width float32 blob and the
    metadata as a JSON document. The vector dimension of a collection is
    fixed by its first insert.
    """

    def __init__(self, db_path: str | Path, *, connection: Optional[sqlite3.Connection] = None) -> None:
        self.db_path = Path(db_path)
        try:
            if connection is None:
                if str(db_path) != ":memory:":
                    self.db_path.parent.mkdir(parents=True, exist_ok=True)
                connection = sqlite3.connect(str(db_path), check_same_thread=False)
            self._conn = connection
            self._conn.execute("PRAGMA journal_mode=WAL;")
            with self._conn:
                self._conn.execute(
                    """
                    CREATE TABLE IF NOT EXISTS vector_collections (
                        name TEXT PRIMARY KEY,
                        dimension INTEGER
                    )
                    """
                )
        except sqlite3.Error as exc:
            raise VectorStoreUnavailableError(
                f"Failed to open SQLite vector store at {db_path}", cause=exc
            ) from exc
        self._lock = threading.Lock()

    def close(self) -> None:
        self._conn.close()

    def create_collection(self, name: str, *, metadata: Optional[Dict[str, Any]] = None) -> None:
        """Create the collection table if it does not exist yet."""

        table = _validate_name(name)
        with self._lock, self._conn:
            self._conn.execute(
                f"""
                CREATE TABLE IF NOT EXISTS "{table}" (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    embedding BLOB NOT NULL,
                    meta TEXT NOT NULL
                )
                """
            )
            self._conn.execute(
                "INSERT OR IGNORE INTO vector_collections (name, dimension) VALUES (?, NULL)",
                (table,),
            )

    def dimension(self, name: str) -> Optional[int]:
        with self._lock:
            return self._stored_dimension(name)

    def _stored_dimension(self, name: str) -> Optional[int]:
        row = self._conn.execute(
            "SELECT dimension FROM vector_collections WHERE name = ?", (name,)
        ).fetchone()
        return int(row[0]) if row and row[0] is not None else None

    def count(self, name: str) -> int:
        table = _validate_name(name)
        # Reads share the writer's connection, which sees its own uncommitted rows.
        with self._lock:
            return int(self._conn.execute(f'SELECT COUNT(*) FROM "{table}"').fetchone()[0])

    def add(
        self,
        name: str,
        *,
        embeddings: Iterable[Sequence[float]],
        metadatas: Iterable[Dict[str, Any]],
    ) -> int:
        """Insert all rows in one transaction; nothing is kept if any row fails."""

        table = _validate_name(name)
        vectors = [np.asarray(embedding, dtype=np.float32) for embedding in embeddings]
        documents = [json.dumps(metadata, ensure_ascii=False) for metadata in metadatas]
        if len(vectors) != len(documents):
            raise ValueError("All inputs must be of the same length")
        if not vectors:
            return 0

        dimensions = {vector.shape[0] for vector in vectors if vector.ndim == 1}
        if len(dimensions) != 1 or any(vector.ndim != 1 for vector in vectors):
            raise VectorStoreWriteError(
                "Embeddings in one batch must share a single dimension", count=len(vectors)
            )
        dimension = dimensions.pop()

        with self._lock:
            try:
                with self._conn:
                    stored = self._stored_dimension(table)
                    if stored is None:
                        self._conn.execute(
                            "UPDATE vector_collections SET dimension = ? WHERE name = ?",
                            (dimension, table),
                        )
                    elif stored != dimension:
                        raise VectorStoreWriteError(
                            f"Collection {table!r} stores {stored}-dimensional vectors, got {dimension}",
                            count=len(vectors),
                        )
                    self._conn.executemany(
                        f'INSERT INTO "{table}" (embedding, meta) VALUES (?, ?)',
                        [(vector.tobytes(), document) for vector, document in zip(vectors, documents)],
                    )
            except VectorStoreWriteError:
                raise
            except sqlite3.Error as exc:
                raise VectorStoreWriteError(
                    f"Failed to insert {len(vectors)} rows into {table!r}; batch rolled back",
                    count=len(vectors),
                    cause=exc,
                ) from exc
        return len(vectors)

    def query(self, name: str, query_embedding: Sequence[float], k: int = 5) -> List[SimilarityMatch]:
        """Return the *k* most similar rows ordered by descending similarity."""

        if k <= 0:
            return []
        table = _validate_name(name)
        try:
            with self._lock:
                rows = self._conn.execute(f'SELECT embedding, meta FROM "{table}"').fetchall()
        except sqlite3.Error as exc:
            raise VectorStoreUnavailableError(f"Vector store query on {table!r} failed", cause=exc) from exc
        if not rows:
            return []

        query = np.asarray(query_embedding, dtype=np.float32)
        matrix = np.vstack([np.frombuffer(row[0], dtype=np.float32) for row in rows])
        if matrix.shape[1] != query.shape[0]:
            raise VectorStoreUnavailableError(
                f"Query has {query.shape[0]} dimensions but {table!r} stores {matrix.shape[1]}"
            )

        similarities = cosine_similarities(matrix.astype(np.float64), query.astype(np.float64))
        order = np.argsort(-similarities, kind="stable")[:k]
        return [
            SimilarityMatch(similarity=float(similarities[index]), meta=json.loads(rows[index][1]))
            for index in order
        ]


__all__ = ["SQLiteVectorStore", "cosine_similarities"]
