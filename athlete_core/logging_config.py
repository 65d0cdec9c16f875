"""Structured JSON logging for the training core.

Services log through ``logging.getLogger(__name__)`` and attach per-item
context (source file, activity id, plan name) with :func:`log_context`, which
the formatter groups under ``"context"``.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import IO, Any

CONTEXT_PREFIX = "ctx_"
_QUIET_LOGGERS = ("pandas", "numexpr")


def log_context(**fields: Any) -> dict[str, Any]:
    """Build an ``extra=`` mapping whose keys the formatter reports as context."""
    return {f"{CONTEXT_PREFIX}{key}": value for key, value in fields.items()}


class JSONFormatter(logging.Formatter):
    """One JSON object per record, stamped with the record's creation time in UTC."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }
        if record.exc_info and record.exc_info[1] is not None:
            exc = record.exc_info[1]
            entry["exception"] = {"type": type(exc).__name__, "message": str(exc)}

        context = {
            key[len(CONTEXT_PREFIX):]: value
            for key, value in vars(record).items()
            if key.startswith(CONTEXT_PREFIX)
        }
        if context:
            entry["context"] = context
        return json.dumps(entry, default=str)


def setup_logging(level: str | None = None, stream: IO[str] | None = None) -> logging.Handler:
    """Install the JSON handler on the root logger once and return it.

    ``level`` defaults to the ``log_level`` of the active settings profile.
    """
    if level is None:
        from athlete_core.config import get_settings

        level = get_settings().log_level

    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    for handler in root.handlers:
        if isinstance(handler.formatter, JSONFormatter):
            return handler

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(JSONFormatter())
    root.addHandler(handler)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    return handler


def get_logger(name: str, **context: Any) -> logging.Logger | logging.LoggerAdapter:
    """Named logger; with keyword context, an adapter that tags every record with it."""
    logger = logging.getLogger(name)
    if not context:
        return logger
    return logging.LoggerAdapter(logger, log_context(**context))
