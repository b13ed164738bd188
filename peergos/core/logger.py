"""Logging bootstrap.

One stdout handler on the root logger, plain or JSON depending on
``settings.LOG_FORMAT``. The handler carries ``TRNRedactionFilter`` so full
tax registration numbers never reach a log sink; only the last four digits
survive. Audit lines arrive on the ``audit`` logger already JSON-encoded and
are passed through as the message.
"""
from __future__ import annotations

import json
import logging
import re
import sys
from typing import Any

from peergos.core.config import settings

_TRN_PATTERN = re.compile(r"(?<!\d)\d{11}(\d{4})(?!\d)")
_PLAIN_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


def redact_trn(text: str) -> str:
    return _TRN_PATTERN.sub(r"***********\1", text)


class TRNRedactionFilter(logging.Filter):
    """Masks 15-digit runs in the rendered message."""

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        redacted = redact_trn(message)
        if redacted != message:
            record.msg = redacted
            record.args = None
        return True


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:  # pragma: no cover - formatting logic
        payload: dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "app": settings.APP_NAME,
            "env": settings.ENV,
            "message": record.getMessage(),
        }
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


def _build_handler() -> logging.Handler:
    handler = logging.StreamHandler(sys.stdout)
    if settings.LOG_FORMAT.lower() == "json":
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(logging.Formatter(_PLAIN_FORMAT))
    handler.addFilter(TRNRedactionFilter())
    return handler


def init_logging(level: int | None = None) -> None:
    """Install the stdout handler once; later calls are no-ops."""
    root = logging.getLogger()
    if any(isinstance(f, TRNRedactionFilter) for h in root.handlers for f in h.filters):
        return
    root.setLevel(level or getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))
    root.addHandler(_build_handler())
