"""Structured Logging - conversion-aware JSON records for host processes.

Invariants:
    - Handlers attach to the "unitgraph" package logger, never to the root logger
    - Every record carries timestamp, level, logger name and message
    - Conversion context (from_unit, to_unit, schema, error_code) appears only when set

Design Decisions:
    - The engine is a library: the host owns the root logger and its handlers,
      records still propagate to them
    - One engine handler at a time: setup_logging replaces the one it installed
    - configure_logging reads level and format from Settings (UNITGRAPH_LOG_*)
"""

import json
import logging
from datetime import datetime, timezone

from unitgraph.config import Settings, get_settings

ENGINE_LOGGER = "unitgraph"
EXTRA_FIELDS = ("from_unit", "to_unit", "schema", "error_code", "cache_size")
TEXT_FORMAT = "%(asctime)s %(levelname)s %(name)s - %(message)s"

_handler: logging.Handler | None = None


class JSONFormatter(logging.Formatter):
    """One JSON object per record, conversion context included."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        payload.update({
            key: record.__dict__[key] for key in EXTRA_FIELDS
            if record.__dict__.get(key) is not None
        })
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False)


def setup_logging(level: str = "INFO", fmt: str = "json") -> logging.Handler:
    """Install the engine handler on the "unitgraph" logger and return it."""
    global _handler
    engine_logger = logging.getLogger(ENGINE_LOGGER)
    handler = logging.StreamHandler()
    handler.setFormatter(JSONFormatter() if fmt == "json" else logging.Formatter(TEXT_FORMAT))
    if _handler is not None:
        engine_logger.removeHandler(_handler)
    engine_logger.addHandler(handler)
    engine_logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    _handler = handler
    return handler


def configure_logging(settings: Settings | None = None) -> logging.Handler:
    settings = settings or get_settings()
    return setup_logging(settings.log_level, settings.log_format)
