"""JSON log output for the ``stateable`` logger namespace."""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, TextIO

from stateable.core.config import get_config

LOGGER_NAME = "stateable"
_HANDLER_MARKER = "_stateable_handler"


class JsonFormatter(logging.Formatter):
    """One JSON object per record; ``event`` and ``context`` extras are lifted to the top level."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key in ("event", "context"):
            value = getattr(record, key, None)
            if value is not None:
                payload[key] = value
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=True, default=str)


def _install(logger: logging.Logger, handler: logging.Handler) -> None:
    handler.setFormatter(JsonFormatter())
    setattr(handler, _HANDLER_MARKER, True)
    logger.addHandler(handler)


def configure_logging(level: str | None = None, stream: TextIO | None = None) -> logging.Logger:
    """Attach JSON handlers to the ``stateable`` logger; repeated calls are no-ops."""
    config = get_config()
    logger = logging.getLogger(LOGGER_NAME)
    if any(getattr(handler, _HANDLER_MARKER, False) for handler in logger.handlers):
        return logger

    logger.setLevel((level or config.LOG_LEVEL).upper())
    _install(logger, logging.StreamHandler(stream or sys.stdout))
    if config.LOG_FILE:
        _install(logger, logging.FileHandler(config.LOG_FILE))

    if config.is_production:
        logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    return logger
