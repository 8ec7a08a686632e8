"""
Logging helpers for the auth components.

Library code logs through standard ``logging`` loggers named
``firebase_auth_session.<component>``. ``configure_structured_logging``
switches the package to one-line JSON records with credentials masked; the
client turns it on when ``AuthConfig.json_logging`` is set.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

from .sanitization import SENSITIVE_KEYS, sanitize_text

PACKAGE_LOGGER = "firebase_auth_session"

_RECORD_ATTRS = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", (), None))
) | {"message", "asctime", "taskName"}


def _scrub(key: str, value: Any) -> Any:
    """Mask credential-valued extras and tokens embedded in strings."""
    if key in SENSITIVE_KEYS and value:
        return "[REDACTED]"
    if isinstance(value, str):
        return sanitize_text(value)
    try:
        json.dumps(value)
    except (TypeError, ValueError):
        return sanitize_text(str(value))
    return value


class StructuredJsonFormatter(logging.Formatter):
    """
    One JSON object per record.

    Fields: ``timestamp`` (UTC, ISO 8601), ``level``, ``logger``,
    ``component`` (the segment after ``firebase_auth_session.``), ``message``,
    ``exception`` when present, and any ``extra`` such as ``operation``.
    API keys, JWTs and credential extras never reach the output.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_obj: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": sanitize_text(record.getMessage()),
        }
        prefix = f"{PACKAGE_LOGGER}."
        if record.name.startswith(prefix):
            log_obj["component"] = record.name[len(prefix):].split(".")[0]

        if record.exc_info:
            log_obj["exception"] = sanitize_text(self.formatException(record.exc_info))

        for key, value in record.__dict__.items():
            if key not in _RECORD_ATTRS and not key.startswith("_"):
                log_obj[key] = _scrub(key, value)

        return json.dumps(log_obj)


def configure_structured_logging(
    level: int = logging.INFO,
    logger_name: str = PACKAGE_LOGGER,
) -> logging.Logger:
    """
    Send this package's logs to stdout as JSON.

    Calling it again replaces the handler installed by the previous call
    instead of adding a second one.

    Returns:
        The configured logger
    """
    logger = logging.getLogger(logger_name)

    for handler in list(logger.handlers):
        if isinstance(handler.formatter, StructuredJsonFormatter):
            logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(StructuredJsonFormatter())
    logger.addHandler(handler)
    logger.setLevel(level)
    return logger


def get_auth_logger(name: str) -> logging.Logger:
    """Logger for an auth component, e.g. ``get_auth_logger("linking")``."""
    return logging.getLogger(f"{PACKAGE_LOGGER}.{name}")


class AuthLoggerAdapter(logging.LoggerAdapter):
    """Adds ``operation`` (and any other adapter context) to every record."""

    def process(self, msg: str, kwargs: dict[str, Any]) -> tuple[str, dict[str, Any]]:
        extra = kwargs.get("extra", {})
        extra.update(self.extra)
        kwargs["extra"] = extra
        return msg, kwargs
