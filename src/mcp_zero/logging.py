"""
Structured logging for the mcp-zero server framework.

Every mcp_zero module logs through a child of the "mcp_zero" logger and
attaches context with ``extra={...}``. setup_logging() installs a single
stdout handler on the package logger that renders each record either as one
JSON object per line (the default) or as plain text for local development.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from mcp_zero.config import LoggingConfig

ROOT_LOGGER_NAME = "mcp_zero"

PLAIN_LOG_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"

# Attributes present on every LogRecord; anything else came from ``extra``
_RESERVED_RECORD_KEYS = frozenset(
    {
        "name",
        "msg",
        "args",
        "created",
        "filename",
        "funcName",
        "levelname",
        "levelno",
        "lineno",
        "module",
        "msecs",
        "pathname",
        "process",
        "processName",
        "relativeCreated",
        "stack_info",
        "exc_info",
        "exc_text",
        "thread",
        "threadName",
        "taskName",
        "message",
    }
)


class JSONFormatter(logging.Formatter):
    """
    Render log records as single-line JSON objects.

    Output keys: timestamp (ISO 8601, UTC), level, logger, message, an
    optional exception traceback, and every non-None field passed through
    ``extra``. Values JSON cannot encode are rendered with str().
    """

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        for key, value in record.__dict__.items():
            if key in _RESERVED_RECORD_KEYS or value is None:
                continue
            entry[key] = value

        return json.dumps(entry, default=str)


def _build_handler(level: int, json_format: bool) -> logging.Handler:
    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    if json_format:
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(PLAIN_LOG_FORMAT))
    return handler


def setup_logging(
    config: LoggingConfig | None = None,
    *,
    level: str = "INFO",
    json_format: bool = True,
    log_to_stdout: bool = True,
) -> logging.Logger:
    """
    Configure the package logger.

    Calling this again replaces the handler installed by the previous call.
    The package logger stops propagating to the root logger so host
    applications do not see records twice.

    Args:
        config: Logging section of AppConfig; when given, its values are used
            instead of the keyword arguments.
        level: Level name; unknown names fall back to INFO.
        json_format: Emit JSON lines instead of plain text.
        log_to_stdout: Install the stdout handler at all.

    Returns:
        The "mcp_zero" logger.

    Example:
        >>> logger = setup_logging(level="debug", json_format=False)
        >>> logger.info("MCP server started", extra={"port": 3000})
    """
    if config is not None:
        level = config.level
        json_format = config.json_format
        log_to_stdout = config.log_to_stdout

    numeric_level = getattr(logging, level.upper(), logging.INFO)

    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(numeric_level)
    logger.handlers.clear()
    if log_to_stdout:
        logger.addHandler(_build_handler(numeric_level, json_format))
    logger.propagate = False

    return logger


def get_logger(name: str) -> logging.Logger:
    """Return a logger under the "mcp_zero" namespace for a module name."""
    if not name.startswith(ROOT_LOGGER_NAME):
        name = f"{ROOT_LOGGER_NAME}.{name}"
    return logging.getLogger(name)
