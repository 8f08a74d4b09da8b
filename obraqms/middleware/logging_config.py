"""
Logging configuration.

Every record emitted while a request is active is tagged with the request
id and the acting user, so service-level lines (code issued, link added,
history written) can be traced back to who triggered them.

- Development / testing: one-line readable format
- Production: JSON lines for the log aggregator
- LOG_LEVEL env variable overrides the default level
"""

import json
import logging
import os
import sys
from datetime import datetime, timezone

from flask import g, has_request_context

# Attributes copied from ``extra=`` / the request filter into JSON output
CONTEXT_FIELDS = (
    "request_id",
    "user_id",
    "method",
    "path",
    "status",
    "duration_ms",
    "remote_addr",
    "project_id",
)


class RequestContextFilter(logging.Filter):
    """Attach request_id and user_id from ``flask.g`` when inside a request."""

    def filter(self, record: logging.LogRecord) -> bool:
        if has_request_context():
            if getattr(record, "request_id", None) is None:
                record.request_id = getattr(g, "request_id", None)
            if getattr(record, "user_id", None) is None:
                user = getattr(g, "acting_user", None)
                record.user_id = user.id if user else None
        return True


class JSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "ts": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        for key in CONTEXT_FIELDS:
            value = getattr(record, key, None)
            if value is not None:
                entry[key] = value
        if record.exc_info and record.exc_info[0] is not None:
            entry["exc"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False, default=str)


class ReadableFormatter(logging.Formatter):
    """``HH:MM:SS LEVEL logger [user] message (12ms)``"""

    def format(self, record: logging.LogRecord) -> str:
        ts = datetime.fromtimestamp(record.created).strftime("%H:%M:%S")
        user = getattr(record, "user_id", None)
        who = f" [{user}]" if user else ""
        duration = getattr(record, "duration_ms", None)
        took = f" ({duration:.0f}ms)" if duration is not None else ""
        line = f"{ts} {record.levelname:<7} {record.name}{who} {record.getMessage()}{took}"
        if record.exc_info and record.exc_info[0] is not None:
            line += "\n" + self.formatException(record.exc_info)
        return line


def configure_logging(app):
    """Install a single stderr handler on the root logger for *app*."""
    testing = app.config.get("TESTING", False)
    production = not app.config.get("DEBUG", False) and not testing

    level_name = os.getenv("LOG_LEVEL", "INFO" if production else "DEBUG").upper()
    level = getattr(logging, level_name, logging.INFO)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(JSONFormatter() if production else ReadableFormatter())
    handler.addFilter(RequestContextFilter())

    # Replaced, not appended: tests build the app more than once per process
    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)

    for noisy in ("werkzeug", "sqlalchemy.engine", "flask_limiter"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    app.logger.setLevel(level)
    if not testing:
        app.logger.info("Logging configured (%s, %s)", level_name, "json" if production else "readable")
