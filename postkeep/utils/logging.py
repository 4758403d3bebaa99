"""Logging helpers."""

from __future__ import annotations

import json
import logging
import sys
from typing import Any

PACKAGE_LOGGER = "postkeep"
_PLAIN_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

# Attributes every LogRecord carries; anything else came in through ``extra``.
_STANDARD_ATTRS = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", None, None)).keys()
) | {"message", "asctime", "taskName"}


class JsonFormatter(logging.Formatter):
    """Render log records as one JSON object per line."""

    default_time_format = "%Y-%m-%dT%H:%M:%S"
    default_msec_format = "%s.%03dZ"

    def format(self, record: logging.LogRecord) -> str:  # pragma: no cover - exercised indirectly
        payload: dict[str, Any] = {
            "timestamp": self.formatTime(record, self.default_time_format),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        payload.update(
            (key, value) for key, value in vars(record).items() if key not in _STANDARD_ATTRS
        )
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=str)


def configure_logging(
    *,
    level: int = logging.INFO,
    structured: bool | None = None,
    verbose: bool = False,
) -> None:
    """Attach a stderr handler to the root logger.

    ``structured=None`` keeps the formatter of an already configured root
    logger. ``verbose`` lowers the package logger to DEBUG.
    """
    root = logging.getLogger()
    root.setLevel(level)
    logging.getLogger(PACKAGE_LOGGER).setLevel(logging.DEBUG if verbose else level)

    formatter: logging.Formatter = (
        JsonFormatter() if structured else logging.Formatter(_PLAIN_FORMAT)
    )
    if root.handlers:
        if structured is None:
            return
        for handler in root.handlers:
            handler.setFormatter(formatter)
        return

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(formatter)
    root.addHandler(handler)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


__all__ = ["JsonFormatter", "configure_logging", "get_logger"]
