"""Logging setup: one stderr handler, JSON lines by default."""

from __future__ import annotations

import json
import logging
import logging.config
import os
from datetime import datetime, timezone
from typing import Any

# Attributes every LogRecord carries; anything else was passed through ``extra``.
_STANDARD_ATTRS = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", None, None)).keys()
) | {"message", "asctime", "taskName"}


class MinimalJSONFormatter(logging.Formatter):
    """Render a record as a single JSON object.

    Dict messages (the structured events from :mod:`layoutrag.telemetry`) are
    merged into the top level; other messages land under ``message``.
    """

    def format(self, record: logging.LogRecord) -> str:  # noqa: D401 - inherited
        created = datetime.fromtimestamp(record.created, tz=timezone.utc)
        payload: dict[str, Any] = {
            "ts": created.isoformat(timespec="milliseconds").replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
        }

        if isinstance(record.msg, dict):
            payload.update(record.msg)
        else:
            payload["message"] = record.getMessage()

        if record.exc_info and "exc" not in payload:
            payload["exc_info"] = self.formatException(record.exc_info)

        payload.update(
            (key, value)
            for key, value in vars(record).items()
            if key not in _STANDARD_ATTRS and not key.startswith("_")
        )
        return json.dumps(payload, ensure_ascii=False, default=str)


def configure_logging(level: str | None = None, *, fmt: str | None = None) -> None:
    """Install a single stderr handler on the root logger.

    ``LOG_LEVEL`` and ``LOG_FORMAT`` (``json`` or ``plain``) are read from the
    environment when the arguments are omitted. No files are created.
    """

    level = (level or os.getenv("LOG_LEVEL", "INFO")).upper()
    fmt = (fmt or os.getenv("LOG_FORMAT", "json")).lower()
    formatters: dict[str, Any] = {
        "json": {"()": MinimalJSONFormatter},
        "plain": {"format": "%(asctime)s %(levelname)s %(name)s: %(message)s"},
    }

    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": formatters,
            "handlers": {
                "stderr": {
                    "class": "logging.StreamHandler",
                    "formatter": fmt if fmt in formatters else "json",
                },
            },
            "root": {"level": level, "handlers": ["stderr"]},
            "loggers": {
                "layoutrag.telemetry": {"level": level, "propagate": True},
            },
        }
    )
