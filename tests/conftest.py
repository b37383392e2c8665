"""Shared fixtures: deterministic embedders, sample layout results and cache resets."""
from __future__ import annotations

from typing import Dict, List, Sequence

import pytest

from layoutrag import config, embeddings, vectorstore
from layoutrag.services import indexing as indexing_service
from layoutrag.services import references as reference_service


class KeywordEmbedder:
    """Embeds texts as keyword counts so similarities are predictable."""

    model_name = "keywords"

    def __init__(self, vocabulary: Sequence[str] = ("heart", "valve", "kidney", "lung")) -> None:
        self.vocabulary = [word.lower() for word in vocabulary]
        self.calls: List[List[str]] = []

    def embed_texts(self, texts: Sequence[str]) -> List[List[float]]:
        self.calls.append(list(texts))
        vectors: List[List[float]] = []
        for text in texts:
            lowered = text.lower()
            vectors.append([float(lowered.count(word)) for word in self.vocabulary])
        return vectors


@pytest.fixture(autouse=True)
def _reset_caches():
    def _clear() -> None:
        config.reset_settings_cache()
        embeddings.reset_embedding_model_cache()
        vectorstore.reset_vector_store_cache()
        indexing_service.get_indexing_service.cache_clear()
        reference_service.get_reference_service.cache_clear()

    _clear()
    yield
    _clear()


@pytest.fixture
def keyword_embedder() -> KeywordEmbedder:
    return KeywordEmbedder()


@pytest.fixture
def sample_markdown() -> str:
    return (
        "# Cardiology\n"
        "Heart failure overview.\n"
        "## Valves\n"
        "Mitral valve disease.\n"
        "<!-- PageBreak -->"
    )


@pytest.fixture
def sample_layout(sample_markdown: str) -> Dict[str, object]:
    """Layout-analysis JSON for ``sample_markdown`` spread over two pages."""

    return {
        "content": sample_markdown,
        "paragraphs": [
            {
                "content": "Cardiology",
                "spans": [{"offset": 0, "length": 12}],
                "boundingRegions": [{"pageNumber": 1, "polygon": [1, 1, 3, 1, 3, 1.2, 1, 1.2]}],
            },
            {
                "content": "Heart failure overview.",
                "spans": [{"offset": 13, "length": 23}],
                "boundingRegions": [{"pageNumber": 1, "polygon": [1, 1.5, 5, 1.5, 5, 2, 1, 2]}],
            },
            {
                "content": "Valves",
                "spans": [{"offset": 37, "length": 9}],
                "boundingRegions": [{"pageNumber": 1, "polygon": [1, 3, 2, 3, 2, 3.3, 1, 3.3]}],
            },
            {
                "content": "Mitral valve disease.",
                "spans": [{"offset": 47, "length": 21}],
                "boundingRegions": [{"pageNumber": 2, "polygon": [0.5, 0.5, 4, 0.5, 4, 1, 0.5, 1]}],
            },
            {
                "content": "stray",
                "spans": [{"offset": 50, "length": 3}],
                "boundingRegions": [{"pageNumber": 2, "polygon": [9, 9, 9, 9]}],
            },
        ],
    }
