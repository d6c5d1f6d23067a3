"""
Logging for the shop API.

Every module logs through a child of the ``shopapi`` logger, so one level
and one set of handlers cover the whole package. Handlers carry a filter
that keeps credentials out of the output: bearer/JWT strings, refresh
tokens and password values are masked before a record is formatted.
"""
import logging
import logging.handlers
import os
import re
from typing import Any, Optional

from flask import Flask
from shopapi.config import DEFAULT_LOG_LEVEL, DEFAULT_LOG_FORMAT, DEFAULT_LOG_DATEFMT

ROOT_LOGGER = "shopapi"
MASK = "***"

_JWT = re.compile(r"\beyJ[\w-]+\.[\w-]+\.[\w-]+")
_SECRET_PAIR = re.compile(r"(?i)\b(password|refresh_token|token)(['\"]?\s*[=:]\s*)(['\"]?)[^\s,'\"}]+")

_configured = False


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """
    logger = get_logger(__name__)

    ``shopapi.services.orders`` and ``services.orders`` both map to the
    ``shopapi.services.orders`` logger; anything else hangs off ``shopapi``.
    """
    if not name or name == "__main__" or name == ROOT_LOGGER:
        return logging.getLogger(ROOT_LOGGER)
    if name.startswith(ROOT_LOGGER + "."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER}.{name}")


def redact(text: str) -> str:
    """Mask token and password values in a log line."""
    text = _JWT.sub(MASK, text)
    return _SECRET_PAIR.sub(lambda m: f"{m.group(1)}{m.group(2)}{m.group(3)}{MASK}", text)


def _redact_arg(value: Any) -> Any:
    if isinstance(value, bytes):
        value = value.decode("utf-8", errors="replace")
    if isinstance(value, str):
        return redact(value)
    return value


class RedactingFilter(logging.Filter):
    """Masks credentials in the message and its string args; decodes bytes."""

    def filter(self, record: logging.LogRecord) -> bool:
        if isinstance(record.msg, bytes):
            record.msg = record.msg.decode("utf-8", errors="replace")
        if isinstance(record.msg, str):
            record.msg = redact(record.msg)
        if isinstance(record.args, dict):
            record.args = {k: _redact_arg(v) for k, v in record.args.items()}
        elif isinstance(record.args, tuple):
            record.args = tuple(_redact_arg(v) for v in record.args)
        return True


def _level(app: Flask) -> int:
    if app.debug:
        return logging.DEBUG
    level_name = str(app.config.get("LOG_LEVEL", DEFAULT_LOG_LEVEL)).upper()
    return getattr(logging, level_name, logging.INFO)


def setup_logging(app: Flask) -> None:
    """
    Attach console (and optional rotating file) handlers for the app.
    Runs once per process; later apps, as in tests, reuse the handlers.
    """
    global _configured
    if _configured:
        return

    level = _level(app)
    formatter = logging.Formatter(
        app.config.get("LOG_FORMAT", DEFAULT_LOG_FORMAT),
        datefmt=app.config.get("LOG_DATEFMT", DEFAULT_LOG_DATEFMT),
    )
    redacting = RedactingFilter()

    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(level)

    console = logging.StreamHandler()
    console.setLevel(level)
    console.setFormatter(formatter)
    console.addFilter(redacting)
    root.addHandler(console)

    log_file = app.config.get("LOG_FILE")
    if log_file:
        os.makedirs(os.path.dirname(log_file) or ".", exist_ok=True)
        try:
            file_handler = logging.handlers.RotatingFileHandler(
                log_file,
                maxBytes=10 * 1024 * 1024,
                backupCount=7,
                encoding="utf-8",
            )
            file_handler.setLevel(level)
            file_handler.setFormatter(formatter)
            file_handler.addFilter(redacting)
            root.addHandler(file_handler)
        except OSError as exc:
            get_logger().warning("File logging disabled (%s): %s", log_file, exc)

    get_logger().setLevel(level)
    app.logger.handlers = root.handlers[:]
    app.logger.propagate = False
    app.logger.setLevel(level)

    get_logger().info("Logging initialized for %s, level=%s", app.name, logging.getLevelName(level))
    _configured = True
