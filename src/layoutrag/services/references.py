"""Clip the page regions of the chunks most similar to a query."""
from __future__ import annotations

import logging
import re
from dataclasses import asdict, dataclass, field
from functools import lru_cache
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Set, Tuple

from PIL import Image

from layoutrag.clipping.clipper import PageRenderer, clip_region_to_file, render_page
from layoutrag.clipping.geometry import BoundingBox
from layoutrag.config import Settings, get_settings
from layoutrag.layout.models import PageRegion
from layoutrag.vectorstore import ChunkVectorStore, get_vector_store

LOGGER = logging.getLogger(__name__)

_UNSAFE_FILENAME_CHARS = re.compile(r"[^\w.\- ]+", re.UNICODE)


def sanitize_heading(heading: str, max_length: int = 80) -> str:
    """Make a heading usable inside a file name."""

    cleaned = _UNSAFE_FILENAME_CHARS.sub("_", heading).strip(" ._")
    return cleaned[:max_length] or "untitled"


def reference_filename(
    page: int,
    heading: str,
    source: str | None = None,
    start_offset: int | None = None,
) -> str:
    """Name of the PNG for one region; source stem and offset keep repeated headings apart."""

    parts = [f"reference_page{page}", sanitize_heading(heading)]
    if source:
        parts.append(sanitize_heading(Path(source).stem))
    if start_offset is not None:
        parts.append(str(start_offset))
    return "_".join(parts) + ".png"


def _unique_path(path: Path, taken: Set[Path]) -> Path:
    candidate = path
    counter = 2
    while candidate in taken:
        candidate = path.with_name(f"{path.stem}_{counter}{path.suffix}")
        counter += 1
    taken.add(candidate)
    return candidate


@dataclass(slots=True)
class ClipResult:
    page: int
    heading: str
    similarity: float
    path: str


@dataclass(slots=True)
class ClipFailure:
    page: Optional[int]
    heading: str
    source: str
    error: str


@dataclass(slots=True)
class ReferenceClipResult:
    """Images written for a query and the regions that could not be clipped."""

    query: str
    clips: List[ClipResult] = field(default_factory=list)
    failures: List[ClipFailure] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class PdfResolver:
    """Map a chunk's ``source`` to ``<pdf_dir>/<stem>.pdf``."""

    def __init__(self, pdf_dir: str | Path) -> None:
        self.pdf_dir = Path(pdf_dir)

    def __call__(self, source: str) -> Path:
        return self.pdf_dir / f"{Path(source).stem}.pdf"


class ReferenceClipService:
    """Query the store and clip every bounding region of each close match."""

    def __init__(
        self,
        vector_store: ChunkVectorStore,
        *,
        pdf_resolver: Callable[[str], Path],
        renderer: PageRenderer = render_page,
        scale: float = 2.0,
        dpi: float = 72.0,
        similarity_threshold: float = 0.6,
        limit: int = 20,
    ) -> None:
        self.vector_store = vector_store
        self.pdf_resolver = pdf_resolver
        self.renderer = renderer
        self.scale = scale
        self.dpi = dpi
        self.similarity_threshold = similarity_threshold
        self.limit = limit

    def clip_references(
        self,
        query: str,
        output_dir: str | Path,
        *,
        limit: Optional[int] = None,
        similarity_threshold: Optional[float] = None,
    ) -> ReferenceClipResult:
        limit = self.limit if limit is None else limit
        threshold = self.similarity_threshold if similarity_threshold is None else similarity_threshold

        matches = [
            match
            for match in self.vector_store.query(query, limit=limit)
            if match.similarity >= threshold
        ]
        result = ReferenceClipResult(query=query)
        if not matches:
            LOGGER.info("No stored chunk reached similarity %.3f for the query", threshold)
            return result

        output_dir = Path(output_dir)
        output_dir.mkdir(parents=True, exist_ok=True)
        taken: Set[Path] = set()
        rendered: Dict[Tuple[str, int], Image.Image] = {}

        def render_once(pdf_path, page, *, scale, dpi) -> Image.Image:
            key = (str(pdf_path), page)
            if key not in rendered:
                rendered[key] = self.renderer(pdf_path, page, scale=scale, dpi=dpi)
            return rendered[key]

        for match in matches:
            meta = match.meta
            heading = str(meta.get("heading", ""))
            source = str(meta.get("source", ""))
            start_offset = meta.get("textStartOffset")
            for raw_region in meta.get("boundingRegions") or []:
                page: Optional[int] = None
                try:
                    region = PageRegion.from_dict(raw_region)
                    page = region.page
                    output_path = clip_region_to_file(
                        self.pdf_resolver(source),
                        region.page,
                        BoundingBox.from_polygon(region.polygon),
                        _unique_path(
                            output_dir / reference_filename(region.page, heading, source, start_offset),
                            taken,
                        ),
                        scale=self.scale,
                        dpi=self.dpi,
                        renderer=render_once,
                    )
                except Exception as exc:
                    LOGGER.warning("Failed to clip page %s of %s (%s): %s", page, source, heading, exc)
                    result.failures.append(
                        ClipFailure(page=page, heading=heading, source=source, error=str(exc))
                    )
                    continue
                result.clips.append(
                    ClipResult(
                        page=region.page,
                        heading=heading,
                        similarity=match.similarity,
                        path=str(output_path),
                    )
                )
        return result


def build_reference_service(
    settings: Optional[Settings] = None,
    vector_store: Optional[ChunkVectorStore] = None,
) -> ReferenceClipService:
    settings = settings or get_settings()
    return ReferenceClipService(
        vector_store or get_vector_store(),
        pdf_resolver=PdfResolver(settings.pdf_dir),
        scale=settings.clip_scale,
        dpi=settings.clip_dpi,
        similarity_threshold=settings.similarity_threshold,
        limit=settings.reference_limit,
    )


@lru_cache()
def get_reference_service() -> ReferenceClipService:
    """FastAPI dependency returning the shared :class:`ReferenceClipService` instance."""

    return build_reference_service()
