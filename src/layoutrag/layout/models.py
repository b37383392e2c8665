"""Data models for layout-analysis results and the chunks derived from them."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence


def _to_float(value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return float("nan")


@dataclass(frozen=True, slots=True)
class Span:
    """Contiguous run of characters addressed by zero-based offset."""

    offset: int
    length: int

    @property
    def end(self) -> int:
        return self.offset + self.length


@dataclass(frozen=True, slots=True)
class LayoutRegion:
    """Raw page region of a paragraph: a page number and a quadrilateral."""

    page: int
    polygon: Sequence[float]


@dataclass(frozen=True, slots=True)
class LayoutParagraph:
    """Paragraph reported by the layout-analysis service."""

    content: str
    spans: Sequence[Span] = ()
    bounding_regions: Sequence[LayoutRegion] = ()

    @property
    def first_offset(self) -> Optional[int]:
        return self.spans[0].offset if self.spans else None

    @property
    def first_region(self) -> Optional[LayoutRegion]:
        return self.bounding_regions[0] if self.bounding_regions else None

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "LayoutParagraph":
        spans = [
            Span(offset=int(span["offset"]), length=int(span.get("length", 0)))
            for span in payload.get("spans") or []
            if isinstance(span, Mapping) and span.get("offset") is not None
        ]
        regions: List[LayoutRegion] = []
        for region in payload.get("boundingRegions") or payload.get("bounding_regions") or []:
            if not isinstance(region, Mapping):
                continue
            page = region.get("pageNumber", region.get("page"))
            if page is None:
                continue
            polygon = [_to_float(value) for value in region.get("polygon") or []]
            regions.append(LayoutRegion(page=int(page), polygon=polygon))
        return cls(
            content=str(payload.get("content") or ""),
            spans=tuple(spans),
            bounding_regions=tuple(regions),
        )


@dataclass(frozen=True, slots=True)
class LayoutDocument:
    """Markdown content plus paragraphs produced by layout analysis.

    Either attribute may be ``None`` when the analysis result omitted it;
    downstream stages treat that as an empty result rather than an error.
    """

    content: Optional[str]
    paragraphs: Optional[Sequence[LayoutParagraph]]

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "LayoutDocument":
        """Build a document from the analysis JSON (``content`` / ``paragraphs``)."""

        raw_paragraphs = payload.get("paragraphs")
        paragraphs = None
        if raw_paragraphs is not None:
            paragraphs = tuple(
                LayoutParagraph.from_dict(item) for item in raw_paragraphs if isinstance(item, Mapping)
            )
        content = payload.get("content")
        return cls(content=str(content) if content is not None else None, paragraphs=paragraphs)


@dataclass(frozen=True, slots=True)
class PageRegion:
    """Axis-aligned box ``[minX, minY, maxX, maxY]`` on a single page."""

    page: int
    polygon: List[float]

    def to_dict(self) -> Dict[str, Any]:
        return {"page": self.page, "polygon": list(self.polygon)}

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "PageRegion":
        return cls(page=int(payload["page"]), polygon=[float(value) for value in payload["polygon"]])


@dataclass(frozen=True, slots=True)
class Chunk:
    """Heading-scoped text plus the page geometry of the paragraphs it covers."""

    heading: str
    text: str
    start_offset: int
    end_offset: int
    bounding_regions: List[PageRegion] = field(default_factory=list)

    @property
    def pages(self) -> List[int]:
        return [region.page for region in self.bounding_regions]


@dataclass(slots=True)
class ChunkMetadata:
    """Metadata persisted next to each embedding."""

    heading: str
    bounding_regions: List[PageRegion]
    text_start_offset: int
    text_end_offset: int
    source: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "heading": self.heading,
            "boundingRegions": [region.to_dict() for region in self.bounding_regions],
            "textStartOffset": self.text_start_offset,
            "textEndOffset": self.text_end_offset,
            "source": self.source,
        }


@dataclass(slots=True)
class EmbeddedChunk:
    """Chunk text paired with its embedding vector and metadata."""

    text: str
    embedding: List[float]
    metadata: ChunkMetadata

    def to_record(self) -> Dict[str, Any]:
        """Serialisable document stored in the vector store ``meta`` column."""

        record = self.metadata.to_dict()
        record["text"] = self.text
        return record
