"""Centralised helpers for structured lifecycle logging."""

from __future__ import annotations

import logging
import traceback
from typing import Any, Iterable, Optional, Sequence

LOGGER = logging.getLogger("layoutrag.telemetry")


def _format_exception(error: BaseException) -> str:
    return "".join(traceback.format_exception(error.__class__, error, error.__traceback__))


def describe_pages(pages: Iterable[int]) -> str:
    """Render page numbers the way failure messages report them."""

    page_list = list(pages)
    if not page_list:
        return "unknown page"
    return f"pages [{', '.join(str(page) for page in page_list)}]"


def log_event(
    logger: Optional[logging.Logger],
    step: str,
    *,
    level: str = "info",
    source: str | None = None,
    duration_ms: float | None = None,
    exc: BaseException | str | None = None,
    details: dict[str, Any] | None = None,
    **payload: Any,
) -> None:
    """Emit a structured log event with the agreed-upon schema."""

    logger = logger or LOGGER
    event: dict[str, Any] = {"step": step, "module": logger.name}
    if source:
        event["source"] = source
    if duration_ms is not None:
        event["duration_ms"] = round(duration_ms, 3)
    if details is not None:
        event["details"] = details
    event.update(payload)

    exc_info = None
    if exc is not None:
        if isinstance(exc, BaseException):
            event["exc"] = _format_exception(exc)
            exc_info = (exc.__class__, exc, exc.__traceback__)
        else:
            event["exc"] = str(exc)

    log_method = getattr(logger, level.lower(), logger.info)
    log_method(event, exc_info=exc_info)


def emit_segment_event(*, lines: int, segments: int, duration_ms: float) -> None:
    details = {"lines": lines, "segments": segments}
    log_event(LOGGER, "layout.segment", duration_ms=duration_ms, details=details)


def emit_align_event(
    *,
    segments: int,
    paragraphs: int,
    chunks: int,
    dropped: int,
    duration_ms: float,
) -> None:
    details = {
        "segments": segments,
        "paragraphs": paragraphs,
        "chunks": chunks,
        "dropped_empty": dropped,
    }
    log_event(LOGGER, "layout.align", duration_ms=duration_ms, details=details)


def emit_embeddings_event(
    *, model: str, count: int, duration_ms: float, errors: list[str] | None = None
) -> None:
    details = {
        "model": model,
        "count": count,
        "duration_ms": round(duration_ms, 3),
        "errors": errors or [],
        "per_item_ms": round(duration_ms / count, 3) if count else None,
    }
    log_event(LOGGER, "embeddings.compute", details=details)


def emit_embedding_failure(
    *,
    source: str,
    pages: Sequence[int],
    start_offset: int,
    end_offset: int,
    error: BaseException,
) -> None:
    details = {
        "pages": describe_pages(pages),
        "start_offset": start_offset,
        "end_offset": end_offset,
    }
    log_event(
        LOGGER,
        "embeddings.chunk_failed",
        level="error",
        source=source,
        details=details,
        exc=error,
    )


def emit_vectorstore_event(
    step: str,
    *,
    backend: str,
    collection: str,
    count: int,
    duration_ms: float | None = None,
    error: BaseException | None = None,
) -> None:
    details = {
        "backend": backend,
        "collection": collection,
        "count": count,
    }
    level = "error" if error else "info"
    log_event(LOGGER, step, level=level, duration_ms=duration_ms, details=details, exc=error)


def emit_clip_event(
    *,
    source: str,
    page: int,
    rect: Sequence[int],
    output_path: str | None,
    error: BaseException | None = None,
) -> None:
    details = {
        "page": page,
        "rect": list(rect),
        "output_path": output_path,
    }
    level = "error" if error else "info"
    log_event(LOGGER, "clip.region", level=level, source=source, details=details, exc=error)


def emit_exception(
    *,
    module: str,
    error: BaseException,
    source: str | None = None,
    suggestion: str | None = None,
) -> None:
    details = {"module": module}
    if suggestion:
        details["suggestion"] = suggestion
    log_event(
        LOGGER,
        "exception",
        level="error",
        source=source,
        details=details,
        exc=error,
    )
