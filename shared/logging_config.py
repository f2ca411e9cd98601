"""Structured JSON logging for the chat service."""

import json
import logging
import sys
from datetime import UTC, datetime
from typing import Any

from shared.config import get_settings

# Optional `extra=` keys copied into the JSON document when present
EXTRA_FIELDS = ("conversation_id", "client_id", "tool_name", "request_path")

# HTTP clients used by the OpenRouter and Tavily adapters log every request at INFO
NOISY_LOGGERS = ("httpx", "httpcore", "openai")


class JSONFormatter(logging.Formatter):
    """
    One JSON document per record:
    timestamp, level, logger, message, any EXTRA_FIELDS passed via extra,
    and source location plus traceback for errors.
    """

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        for field in EXTRA_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                entry[field] = value

        if record.levelno >= logging.ERROR:
            entry["source"] = f"{record.module}:{record.lineno}"
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, ensure_ascii=False, default=str)


def configure_logging() -> None:
    """Install the JSON formatter on stderr at LOG_LEVEL (default INFO)."""
    settings = get_settings()
    level = getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(JSONFormatter())

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))

    root.info(f"Logging configured | level={settings.LOG_LEVEL} | format=json")
