"""Structured JSON logging correlated with traces and the record being indexed."""

from __future__ import annotations

from datetime import datetime, timezone
import logging
from pathlib import Path
import sys
from typing import Any, TextIO

import orjson

from record_search.observability.context import SEARCH_CONTEXT_KEYS, get_trace_context


_STANDARD_ATTRIBUTES = frozenset(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {"message", "asctime"}
_PLAIN_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def _clip(value: str, limit: int) -> str:
    return value if len(value) <= limit else value[:limit] + "..."


def json_default(value: Any) -> Any:
    """Render values orjson cannot serialize natively."""
    if isinstance(value, (set, frozenset)):
        try:
            return sorted(value)
        except TypeError:
            return list(value)
    if isinstance(value, (bytes, bytearray)):
        return bytes(value).decode("utf-8", errors="replace")
    if isinstance(value, (Path, Exception)):
        return str(value)
    return repr(value)


class JsonFormatter(logging.Formatter):
    """One JSON object per record.

    Every object carries the trace ids, the search fields bound with
    ``bind_context`` (operation, entity type, record id) and any ``extra``
    values. Secret-looking extras are redacted and long strings clipped.
    """

    REDACT_KEYS = frozenset({"password", "token", "api_key", "secret", "authorization"})
    MAX_MESSAGE_LEN = 2000
    MAX_VALUE_LEN = 500

    def format(self, record: logging.LogRecord) -> str:
        ctx = get_trace_context()
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": _clip(record.getMessage(), self.MAX_MESSAGE_LEN),
            "trace_id": ctx.get("trace_id", ""),
            "span_id": ctx.get("span_id", ""),
        }

        package, _, component = record.name.rpartition(".")
        if package:
            payload["component"] = component

        payload.update((key, ctx[key]) for key in SEARCH_CONTEXT_KEYS if ctx.get(key) is not None)

        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)

        payload.update(
            (key, self._redact(key, value))
            for key, value in vars(record).items()
            if key not in _STANDARD_ATTRIBUTES and not key.startswith("_")
        )
        return orjson.dumps(payload, default=json_default).decode("utf-8")

    def _redact(self, key: str, value: Any) -> Any:
        if key.lower() in self.REDACT_KEYS:
            return "[REDACTED]"
        if isinstance(value, str):
            return _clip(value, self.MAX_VALUE_LEN)
        return value


def _resolve_level(name: str, default: int) -> int:
    level = logging.getLevelName(name.upper())
    return level if isinstance(level, int) else default


def configure_logging(
    level: str = "INFO",
    json_output: bool = True,
    *,
    logger_levels: dict[str, str] | None = None,
    stream: TextIO | None = None,
) -> logging.Handler:
    """Send every log record through a single handler on the root logger.

    Args:
        level: Root log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_output: Emit structured JSON logs when True, plain text otherwise
        logger_levels: Per-logger level overrides (logger name -> level string)
        stream: Destination stream (default: stdout)

    Returns:
        The installed handler
    """
    root = logging.getLogger()
    root.setLevel(_resolve_level(level, logging.INFO))
    for existing in root.handlers[:]:
        root.removeHandler(existing)

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(JsonFormatter() if json_output else logging.Formatter(_PLAIN_FORMAT))
    root.addHandler(handler)

    for logger_name, logger_level in (logger_levels or {}).items():
        logging.getLogger(logger_name).setLevel(_resolve_level(logger_level, logging.INFO))
    return handler
