"""Structured logging for errorcloak (JSON or plain text)."""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, TextIO

# Payloads travel under this LogRecord attribute so keys such as "message"
# never collide with the record's own attributes.
PAYLOAD_ATTR = "context"

LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
    "critical": logging.CRITICAL,
}


class JSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:  # noqa: D401
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        payload = getattr(record, PAYLOAD_ATTR, None)
        if payload:
            entry[PAYLOAD_ATTR] = payload
        return json.dumps(entry, default=str)


class TextFormatter(logging.Formatter):
    def __init__(self) -> None:
        super().__init__("%(asctime)s %(levelname)s %(message)s")

    def format(self, record: logging.LogRecord) -> str:
        base = super().format(record)
        payload = getattr(record, PAYLOAD_ATTR, None)
        if payload:
            return f"{base} {json.dumps(payload, default=str, sort_keys=True)}"
        return base


class StructuredLogger:
    def __init__(
        self,
        name: str = "errorcloak",
        json_logging: bool = False,
        level: str = "INFO",
        stream: TextIO | None = None,
    ) -> None:
        self._logger = logging.getLogger(name)
        self._logger.setLevel(getattr(logging, level.upper(), logging.INFO))
        for h in list(self._logger.handlers):
            self._logger.removeHandler(h)
        handler = logging.StreamHandler(stream if stream is not None else sys.stderr)
        handler.setFormatter(JSONFormatter() if json_logging else TextFormatter())
        self._logger.addHandler(handler)
        self._logger.propagate = False

    def log(self, level: str, message: str, /, **payload: Any) -> None:
        """Emit ``message`` at the named ``level`` with a structured payload."""
        numeric = LEVELS.get(level.lower(), logging.INFO)
        self._logger.log(numeric, message, extra={PAYLOAD_ATTR: payload})

    def debug(self, message: str, /, **kw: Any) -> None:
        self.log("debug", message, **kw)

    def info(self, message: str, /, **kw: Any) -> None:
        self.log("info", message, **kw)

    def warning(self, message: str, /, **kw: Any) -> None:
        self.log("warning", message, **kw)

    def error(self, message: str, /, **kw: Any) -> None:  # noqa: D401
        self.log("error", message, **kw)


_GLOBAL: StructuredLogger | None = None


def get_logger() -> StructuredLogger:
    global _GLOBAL  # noqa: PLW0603
    if _GLOBAL is None:
        _GLOBAL = StructuredLogger()
    return _GLOBAL


def configure_logging(json_logging: bool = False, level: str = "INFO") -> StructuredLogger:
    global _GLOBAL  # noqa: PLW0603
    _GLOBAL = StructuredLogger(json_logging=json_logging, level=level)
    return _GLOBAL


__all__ = [
    "JSONFormatter",
    "StructuredLogger",
    "TextFormatter",
    "configure_logging",
    "get_logger",
]
