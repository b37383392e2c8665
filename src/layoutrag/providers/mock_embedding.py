"""Offline embedding provider producing stable unit vectors."""
from __future__ import annotations

import hashlib
from typing import List, Sequence

import numpy as np


class MockEmbeddingProvider:
    """Map each text to a unit vector seeded by a hash of the text.

    Equal texts always get equal vectors, so indexing and querying agree
    without a model download or network access.
    """

    model_name = "mock"

    def __init__(self, dimension: int = 8, *, salt: str = "") -> None:
        if dimension <= 0:
            raise ValueError("dimension must be a positive integer")
        self.dimension = dimension
        self.salt = salt

    def _seed(self, text: str) -> int:
        digest = hashlib.blake2b(f"{self.salt}\x00{text}".encode("utf-8"), digest_size=8).digest()
        return int.from_bytes(digest, "big")

    def embed_texts(self, texts: Sequence[str]) -> List[List[float]]:
        vectors: List[List[float]] = []
        for text in texts:
            vector = np.random.default_rng(self._seed(text)).standard_normal(self.dimension)
            norm = float(np.linalg.norm(vector))
            vectors.append((vector / norm if norm else vector).tolist())
        return vectors
