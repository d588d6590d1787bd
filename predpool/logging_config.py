"""JSON logs for the pool API.

One line per record on stdout. Services log snake_case event names
(``match_scored``, ``stage_locked``) and pass identifiers through
``extra=``; those keys land at the top level of the JSON object.
"""

from __future__ import annotations

import json
import logging
import os
import sys
from typing import Any, Iterator

from .utils.datetime_utils import now_utc

# Attributes every LogRecord carries; anything else arrived through ``extra=``.
_RESERVED_LOG_RECORD_KEYS = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", None, None)).keys()
) | {"message", "asctime", "taskName"}

# Third-party loggers that flood DEBUG output in development.
_QUIET_LOGGERS = ("sqlalchemy.engine", "aiosqlite", "asyncio")


def _extra_fields(record: logging.LogRecord) -> Iterator[tuple[str, Any]]:
    for key, value in record.__dict__.items():
        if key not in _RESERVED_LOG_RECORD_KEYS and not key.startswith("_"):
            yield key, value


class JSONFormatter(logging.Formatter):
    """Render a record as a flat JSON object tagged with service and environment."""

    def __init__(self, service: str, environment: str) -> None:
        super().__init__()
        self._static = {"service": service, "environment": environment}

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": now_utc().isoformat(),
            "level": record.levelname.lower(),
            "logger": record.name,
            "event": record.getMessage(),
            **self._static,
        }
        payload.update(_extra_fields(record))
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=str)


def resolve_log_level(level: str | None, environment: str) -> int:
    """Explicit level name, else INFO in production and DEBUG elsewhere."""
    name = level.strip().upper() if level else None
    if not name:
        name = "INFO" if environment.lower() == "production" else "DEBUG"
    resolved = logging.getLevelName(name)
    return resolved if isinstance(resolved, int) else logging.INFO


def configure_logging(service: str, environment: str, log_level: str | None = None) -> None:
    """Replace root handlers with a single JSON stdout handler."""
    level = resolve_log_level(log_level or os.getenv("LOG_LEVEL"), environment)
    handler = logging.StreamHandler(stream=sys.stdout)
    handler.setFormatter(JSONFormatter(service=service, environment=environment))

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(level)
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))
