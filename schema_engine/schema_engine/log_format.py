"""Logging setup for the engine and its command-line surface.

When ``SCHEMAGIT_STRUCTURED_LOGGING=true`` every record is emitted as a
single-line JSON object so log aggregators can index it without regex
parsing::

    {
        "timestamp": "2025-05-15T12:34:56.789012+00:00",
        "level": "INFO",
        "logger": "schema_engine.services.timeline",
        "message": "auto-committed snapshot",
        "project_id": "...",      // present when passed via ``extra``
        "exc_info": "Traceback ..."  // present only on exceptions
    }

Otherwise a plain text handler is installed.
"""

from __future__ import annotations

import json
import logging
import traceback
from datetime import UTC, datetime
from typing import Any

from schema_engine.config import Settings

# ``extra`` keys copied into the JSON payload when present on a record.
_CONTEXT_FIELDS: tuple[str, ...] = ("project_id", "branch", "target_branch", "commit")

_TEXT_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


class JSONFormatter(logging.Formatter):
    """Format log records as single-line JSON."""

    def format(self, record: logging.LogRecord) -> str:
        """Render *record* as a single JSON line."""
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        for field in _CONTEXT_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                payload[field] = value

        if record.exc_info and record.exc_info[0] is not None:
            payload["exc_info"] = "".join(traceback.format_exception(*record.exc_info))

        return json.dumps(payload, default=str, ensure_ascii=False)


def configure_logging(settings: Settings) -> None:
    """Replace the root handlers according to *settings*."""
    root_logger = logging.getLogger()
    root_logger.handlers.clear()

    handler = logging.StreamHandler()
    if settings.structured_logging:
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(_TEXT_FORMAT))
    root_logger.addHandler(handler)
    root_logger.setLevel(settings.log_level)
