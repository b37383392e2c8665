"""Split layout markdown into heading-scoped segments with exact offsets.

The segmenter is a single pass over the lines of the document driven by a
stack of open headings. When a heading of level ``L`` appears, every open
heading of level ``>= L`` is closed and emitted, innermost first, before the
new heading is opened. Only levels 1-3 produce segments; level 4 and 5
headings are kept as content lines of the enclosing heading.

Offsets are character offsets into the original markdown so that paragraph
spans reported by the layout service can be matched against them.
"""
from __future__ import annotations

import logging
import re
import time
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Sequence

from layoutrag.config import DEFAULT_PAGE_METADATA_MARKERS
from layoutrag.telemetry import emit_segment_event

from .models import Span

LOGGER = logging.getLogger(__name__)

HEADING_RE = re.compile(r"^(#{1,5})\s+(.+)$")
MAX_SEGMENT_LEVEL = 3


@dataclass(frozen=True, slots=True)
class HeadingSegment:
    """A level 1-3 heading and the text it owns."""

    level: int
    heading_text: str
    content: str
    span: Span

    @property
    def heading_type(self) -> str:
        return f"H{self.level}"


@dataclass(slots=True)
class SegmenterConfig:
    page_metadata_markers: Sequence[str] = DEFAULT_PAGE_METADATA_MARKERS


@dataclass(slots=True)
class _OpenHeading:
    level: int
    text: str
    line_index: int
    content_lines: List[str] = field(default_factory=list)
    content_end_line_index: Optional[int] = None


def build_page_metadata_pattern(markers: Iterable[str]) -> Optional[re.Pattern[str]]:
    """Return a pattern matching trailing ``<!-- Marker... -->`` annotations."""

    alternatives = "|".join(re.escape(marker) for marker in markers if marker)
    if not alternatives:
        return None
    return re.compile(rf"(?:\n?\r?\n?<!--\s*(?:{alternatives}).*?-->\s*)+$")


class HeadingSegmenter:
    """Stack-based splitter turning markdown into :class:`HeadingSegment` objects."""

    def __init__(self, config: Optional[SegmenterConfig] = None) -> None:
        self.config = config or SegmenterConfig()
        self._metadata_re = build_page_metadata_pattern(self.config.page_metadata_markers)

    def segment(self, markdown: str) -> List[HeadingSegment]:
        """Return the segments of *markdown*, innermost heading first on closure."""

        if not markdown:
            return []

        started = time.perf_counter()
        lines = markdown.split("\n")
        offsets = self._line_offsets(lines)
        segments: List[HeadingSegment] = []
        stack: List[_OpenHeading] = []

        for index, line in enumerate(lines):
            match = HEADING_RE.match(line)
            if match is None or len(match.group(1)) > MAX_SEGMENT_LEVEL:
                # Plain lines and level 4-5 headings belong to the innermost open heading.
                if stack:
                    stack[-1].content_lines.append(line)
                    stack[-1].content_end_line_index = index
                continue

            level = len(match.group(1))
            while stack and stack[-1].level >= level:
                segments.append(self._close(stack.pop(), index - 1, lines, offsets))
            stack.append(_OpenHeading(level=level, text=match.group(2).strip(), line_index=index))

        while stack:
            segments.append(self._close(stack.pop(), len(lines) - 1, lines, offsets))

        emit_segment_event(
            lines=len(lines),
            segments=len(segments),
            duration_ms=(time.perf_counter() - started) * 1000.0,
        )
        return segments

    def strip_page_metadata(self, content: str) -> str:
        """Remove trailing page annotations and surrounding whitespace."""

        if self._metadata_re is None:
            return content.strip()
        return self._metadata_re.sub("", content, count=1).strip()

    @staticmethod
    def _line_offsets(lines: Sequence[str]) -> List[int]:
        offsets: List[int] = []
        position = 0
        for line in lines:
            offsets.append(position)
            position += len(line) + 1
        return offsets

    def _close(
        self,
        heading: _OpenHeading,
        default_end_line_index: int,
        lines: Sequence[str],
        offsets: Sequence[int],
    ) -> HeadingSegment:
        start = offsets[heading.line_index]
        end_line = heading.content_end_line_index
        if end_line is None:
            end_line = default_end_line_index

        if end_line < len(lines) - 1:
            # Stop at the start of the next line so the span never reaches the following heading.
            end = offsets[end_line + 1]
        else:
            end = offsets[end_line] + len(lines[end_line])

        original = "\n".join(heading.content_lines).strip()
        content = self.strip_page_metadata(original)
        length = (end - start) - (len(original) - len(content))

        LOGGER.debug(
            "Closed H%s %r at offset %s length %s",
            heading.level,
            heading.text,
            start,
            length,
        )
        return HeadingSegment(
            level=heading.level,
            heading_text=heading.text,
            content=content,
            span=Span(offset=start, length=length),
        )


def split_markdown_by_heading(
    markdown: str,
    *,
    page_metadata_markers: Sequence[str] | None = None,
) -> List[HeadingSegment]:
    """Convenience wrapper around :class:`HeadingSegmenter`."""

    config = SegmenterConfig()
    if page_metadata_markers is not None:
        config.page_metadata_markers = tuple(page_metadata_markers)
    return HeadingSegmenter(config).segment(markdown)
