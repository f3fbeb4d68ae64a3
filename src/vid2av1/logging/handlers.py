"""Custom logging handlers.

Provides JSONFormatter for structured log output.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any

# LogRecord attributes that never belong in the "context" object
_STANDARD_ATTRS: frozenset[str] = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", None, None)).keys()
) | {"message", "asctime", "taskName"}

# Fields added by ConversionContextFilter
_CONVERSION_ATTRS = ("input_path", "encoder")


class JSONFormatter(logging.Formatter):
    """Format log records as one JSON object per line.

    Each entry has ``timestamp`` (ISO-8601 UTC), ``level``, ``message``,
    ``logger`` (unless root), ``context`` built from ``extra=`` attributes and
    the conversion context, and ``exception`` when exc_info is set.
    """

    def format(self, record: logging.LogRecord) -> str:
        record_time = datetime.fromtimestamp(record.created, tz=timezone.utc)
        log_entry: dict[str, Any] = {
            "timestamp": record_time.isoformat(),
            "level": record.levelname,
            "message": record.getMessage(),
        }
        if record.name and record.name != "root":
            log_entry["logger"] = record.name

        context = {
            key: value
            for key, value in record.__dict__.items()
            if key not in _STANDARD_ATTRS
            and key not in _CONVERSION_ATTRS
            and key != "conversion_tag"
            and not key.startswith("_")
        }
        for field in _CONVERSION_ATTRS:
            value = getattr(record, field, None)
            if value:
                context[field] = value
        if context:
            log_entry["context"] = context

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_entry, default=str)
