"""Structured Logging — request-aware formatters and opt-in setup for the binder.

Invariants:
    - All logs include timestamp, level, logger name, and message
    - Request fields (trace_id, binder, controller, action) surfaced when present,
      in both JSON and text output
    - setup_logging() installs at most one binder handler per logger: calling it
      again replaces the previous one

Design Decisions:
    - stdlib logging is the collaborator every host app already configures;
      the binder only formats and tags records
    - log_fields() is the single place a RequestContext becomes log extras,
      so every module tags records the same way
    - setup_logging is opt-in: a library never touches a logger on import
"""

import json
import logging
from datetime import datetime, timezone
from typing import Any

EXTRA_FIELDS = (
    "trace_id", "binder", "controller", "action",
    "http_method", "path", "error_code",
)

_HANDLER_TAG = "_restbind_handler"


def log_fields(context: Any, **more: Any) -> dict[str, Any]:
    """Log extras for a request context (None-valued fields dropped)."""
    fields = {}
    if context is not None:
        fields = {
            "trace_id": getattr(context, "trace_id", None),
            "binder": getattr(getattr(context, "binder", None), "id", None),
            "controller": getattr(context, "controller_id", None),
            "action": getattr(context, "action_id", None),
        }
    fields.update(more)
    return {key: val for key, val in fields.items() if val is not None}


def record_extras(record: logging.LogRecord) -> dict[str, Any]:
    return {
        key: record.__dict__[key]
        for key in EXTRA_FIELDS
        if record.__dict__.get(key) is not None
    }


class JSONFormatter(logging.Formatter):
    """One JSON object per record, request fields at top level."""

    def format(self, record: logging.LogRecord) -> str:
        log = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **record_extras(record),
        }
        if record.exc_info:
            log["exception"] = self.formatException(record.exc_info)
        return json.dumps(log, ensure_ascii=False, default=str)


class TextFormatter(logging.Formatter):
    """Human-readable line with request fields appended as key=value."""

    def __init__(self):
        super().__init__("%(asctime)s %(levelname)s %(name)s: %(message)s")

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        extras = record_extras(record)
        if not extras:
            return line
        head, sep, tail = line.partition("\n")
        pairs = " ".join(f"{key}={val}" for key, val in extras.items())
        return f"{head} [{pairs}]{sep}{tail}"


def setup_logging(
    level: str = "INFO", fmt: str = "json",
    logger: logging.Logger | None = None,
) -> logging.Handler:
    """Install the binder handler on logger (root unless given)."""
    target = logger or logging.root
    for existing in list(target.handlers):
        if getattr(existing, _HANDLER_TAG, False):
            target.removeHandler(existing)
    handler = logging.StreamHandler()
    handler.setFormatter(JSONFormatter() if fmt == "json" else TextFormatter())
    setattr(handler, _HANDLER_TAG, True)
    target.addHandler(handler)
    target.setLevel(getattr(logging, level.upper(), logging.INFO))
    return handler
