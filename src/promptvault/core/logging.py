"""
Logging utilities for the prompt vault.

Log calls pass vault context through ``extra``: where the attribute lives
(trace, span, event, key) and what happened to it (vault uri, byte count,
backend). Both formatters render that context; the JSON one keeps all of
it, the human-readable one only the attribute address and uri.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Tuple


ADDRESS_FIELDS = ("trace_id", "span_id", "event_index", "attribute_key")
OBJECT_FIELDS = ("vault_uri", "content_bytes", "backend")


def record_context(record: logging.LogRecord, fields: Tuple[str, ...]) -> Dict[str, Any]:
    """Collect the vault context fields set on a record, skipping empty ones."""
    context = {}
    for name in fields:
        value = getattr(record, name, None)
        if value is None or value == "":
            continue
        context[name] = value
    return context


class StructuredFormatter(logging.Formatter):
    """Formatter that emits one JSON object per log line."""

    def __init__(self, include_timestamp: bool = True):
        super().__init__()
        self.include_timestamp = include_timestamp

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if self.include_timestamp:
            entry["timestamp"] = datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat()

        entry.update(record_context(record, ADDRESS_FIELDS + OBJECT_FIELDS))

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


class HumanReadableFormatter(logging.Formatter):
    """
    Formatter for terminals.

    Format: [TIMESTAMP - ]LOGGER - LEVEL - MESSAGE [trace_id=.. span_id=.. attribute_key=..]
    """

    def __init__(self, include_timestamp: bool = True):
        fmt = "%(name)s - %(levelname)s - %(message)s"
        if include_timestamp:
            fmt = "%(asctime)s - " + fmt
        super().__init__(fmt)

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        context = record_context(record, ADDRESS_FIELDS + ("vault_uri",))
        if not context:
            return line
        return line + " [" + " ".join(f"{k}={v}" for k, v in context.items()) + "]"


def configure_logging(
    level: int = logging.INFO,
    structured: bool = False,
    include_timestamp: bool = True,
) -> None:
    """
    Attach a single stderr handler to the ``promptvault`` logger.

    Repeated calls adjust the level but never add a second handler.
    """
    vault_logger = logging.getLogger("promptvault")
    vault_logger.setLevel(level)

    if vault_logger.handlers:
        return

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    if structured:
        handler.setFormatter(StructuredFormatter(include_timestamp=include_timestamp))
    else:
        handler.setFormatter(HumanReadableFormatter(include_timestamp=include_timestamp))
    vault_logger.addHandler(handler)
