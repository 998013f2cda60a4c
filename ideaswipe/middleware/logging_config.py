"""
Logging configuration.

One stderr handler on the root logger:

    production   -> JSONFormatter, one object per line
    dev/testing  -> ReadableFormatter, colored, with idea/job tags

``LOG_LEVEL`` overrides the default level (INFO in production, DEBUG
elsewhere). Engine code logs through ``logging.getLogger(__name__)`` and
passes ``idea_id`` / ``job_name`` / request fields via ``extra=``.
"""

import json
import logging
import os
import sys
from datetime import datetime, timezone

# Attributes lifted from ``extra=`` into structured output
CONTEXT_FIELDS = (
    "request_id",
    "method",
    "path",
    "status",
    "duration_ms",
    "user_id",
    "idea_id",
    "job_name",
)


def _context(record: logging.LogRecord) -> dict:
    return {
        key: getattr(record, key)
        for key in CONTEXT_FIELDS
        if getattr(record, key, None) is not None
    }


class JSONFormatter(logging.Formatter):

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "ts": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
            "where": f"{record.module}:{record.lineno}",
        }
        payload.update(_context(record))
        if record.exc_info and record.exc_info[0] is not None:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=str)


class ReadableFormatter(logging.Formatter):

    LEVEL_COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        color = self.LEVEL_COLORS.get(record.levelname, "")
        clock = datetime.fromtimestamp(record.created).strftime("%H:%M:%S")
        tags = []
        for key in ("idea_id", "job_name"):
            value = getattr(record, key, None)
            if value:
                tags.append(f"{key.split('_')[0]}={str(value)[:8]}")
        elapsed = getattr(record, "duration_ms", None)
        if elapsed is not None:
            tags.append(f"{elapsed:.0f}ms")
        suffix = f" [{' '.join(tags)}]" if tags else ""
        text = f"{color}{clock} {record.levelname:<8}{self.RESET} {record.name}: {record.getMessage()}{suffix}"
        if record.exc_info and record.exc_info[0] is not None:
            text += "\n" + self.formatException(record.exc_info)
        return text


def configure_logging(app):
    testing = app.config.get("TESTING", False)
    structured = not app.config.get("DEBUG", False) and not testing

    level_name = os.getenv("LOG_LEVEL", "INFO" if structured else "DEBUG").upper()
    level = getattr(logging, level_name, logging.INFO)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(JSONFormatter() if structured else ReadableFormatter())
    handler.setLevel(level)

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)

    # Library chatter stays at WARNING regardless of LOG_LEVEL
    for name in ("werkzeug", "sqlalchemy.engine", "alembic", "flask_limiter"):
        logging.getLogger(name).setLevel(logging.WARNING)

    app.logger.setLevel(level)
    if not testing:
        app.logger.info("Logging ready (level=%s, %s output)",
                        level_name, "json" if structured else "readable")
