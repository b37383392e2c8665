"""Runtime configuration loaded from environment variables."""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Tuple

LOGGER = logging.getLogger(__name__)

DEFAULT_PAGE_METADATA_MARKERS: Tuple[str, ...] = ("PageBreak", "PageNumber", "PageHeader")


def _int_from_env(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    try:
        return int(value)
    except ValueError:
        LOGGER.warning("Invalid integer for %s: %s; using default %s", name, value, default)
        return default


def _float_from_env(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    try:
        return float(value)
    except ValueError:
        LOGGER.warning("Invalid float for %s: %s; using default %s", name, value, default)
        return default


def _markers_from_env(name: str, default: Tuple[str, ...]) -> Tuple[str, ...]:
    value = os.getenv(name)
    if value is None:
        return default
    markers = tuple(part.strip() for part in value.split(",") if part.strip())
    return markers or default


@dataclass(frozen=True)
class Settings:
    """Application settings loaded from environment variables.

    Attributes:
        vector_store: Backend name, one of ``sqlite``, ``chroma`` or ``mock``.
        vector_db_path: SQLite database file used by the ``sqlite`` backend.
        chroma_persist_dir: Persistence directory used by the ``chroma`` backend.
        collection_name: Table or collection holding the vectors.
        embedding_provider: ``sentence-transformers``, ``openai`` or ``mock``.
        embedding_model_path: Local sentence-transformers model name or path.
        embedding_device: Optional torch device for the local model.
        openai_api_key: API key for the ``openai`` provider.
        openai_embedding_model: Remote embedding model name.
        embed_max_workers: Concurrent per-chunk embedding calls.
        page_metadata_markers: Marker phrases of trailing page annotations.
        clip_scale: Render scale applied to page images.
        clip_dpi: Document points per inch.
        similarity_threshold: Minimum similarity for reference clipping.
        reference_limit: Neighbours fetched for reference clipping.
        pdf_dir: Directory where source PDFs are resolved by stem.
        clip_output_dir: Directory receiving reference images.
    """

    vector_store: str = "sqlite"
    vector_db_path: str = "db/vector_store.sqlite3"
    chroma_persist_dir: str = "chroma_db"
    collection_name: str = "vec_items"

    embedding_provider: str = "sentence-transformers"
    embedding_model_path: str = "sentence-transformers/all-MiniLM-L6-v2"
    embedding_device: str | None = None
    openai_api_key: str | None = None
    openai_embedding_model: str = "text-embedding-3-large"
    embed_max_workers: int = 1

    page_metadata_markers: Tuple[str, ...] = DEFAULT_PAGE_METADATA_MARKERS

    clip_scale: float = 2.0
    clip_dpi: float = 72.0
    similarity_threshold: float = 0.6
    reference_limit: int = 20
    pdf_dir: str = "public/pdf/chunk"
    clip_output_dir: str = "clips"

    @classmethod
    def from_env(cls) -> "Settings":
        """Create a Settings instance from environment variables."""

        return cls(
            vector_store=os.getenv("VECTOR_STORE", "sqlite").strip().lower(),
            vector_db_path=os.getenv("VECTOR_DB_PATH", "db/vector_store.sqlite3"),
            chroma_persist_dir=os.getenv("CHROMA_PERSIST_DIR", "chroma_db"),
            collection_name=os.getenv("VECTOR_COLLECTION", "vec_items"),
            embedding_provider=os.getenv("EMBEDDING_PROVIDER", "sentence-transformers").strip().lower(),
            embedding_model_path=os.getenv(
                "EMBEDDING_MODEL_PATH", "sentence-transformers/all-MiniLM-L6-v2"
            ),
            embedding_device=os.getenv("EMBEDDING_DEVICE") or None,
            openai_api_key=os.getenv("OPENAI_API_KEY") or None,
            openai_embedding_model=os.getenv("OPENAI_EMBEDDING_MODEL", "text-embedding-3-large"),
            embed_max_workers=max(1, _int_from_env("EMBED_MAX_WORKERS", 1)),
            page_metadata_markers=_markers_from_env(
                "PAGE_METADATA_MARKERS", DEFAULT_PAGE_METADATA_MARKERS
            ),
            clip_scale=_float_from_env("CLIP_SCALE", 2.0),
            clip_dpi=_float_from_env("CLIP_DPI", 72.0),
            similarity_threshold=_float_from_env("SIMILARITY_THRESHOLD", 0.6),
            reference_limit=_int_from_env("REFERENCE_LIMIT", 20),
            pdf_dir=os.getenv("PDF_DIR", "public/pdf/chunk"),
            clip_output_dir=os.getenv("CLIP_OUTPUT_DIR", "clips"),
        )


@lru_cache()
def get_settings() -> Settings:
    """Return the cached settings for the current process."""

    return Settings.from_env()


def reset_settings_cache() -> None:
    """Clear the cached settings (primarily for testing)."""

    get_settings.cache_clear()  # type: ignore[attr-defined]
