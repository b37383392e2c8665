"""Result containers shared by the vector store backends."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict


@dataclass(frozen=True, slots=True)
class SimilarityMatch:
    """One ranked neighbour: cosine similarity plus the stored metadata."""

    similarity: float
    meta: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {"similarity": self.similarity, "meta": dict(self.meta)}
