"""Logging setup for vuload.

Log calls on the request path attach context through ``extra=``; both
formatters below surface it so a failure line can be traced back to its
batch slot and URL.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import UTC, datetime
from typing import IO, Any

# Record attributes set through ``extra=`` by the executor and iteration runner.
CONTEXT_FIELDS = ("iteration", "request_index", "url", "error_kind", "check")


def _context(record: logging.LogRecord) -> dict[str, Any]:
    return {name: getattr(record, name) for name in CONTEXT_FIELDS if getattr(record, name, None) is not None}


class _JsonFormatter(logging.Formatter):
    """One JSON object per line.

    Keys: timestamp, level, logger, message, any context fields present
    on the record, and exception when one is attached.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        log_entry.update(_context(record))
        if record.exc_info and record.exc_info[1] is not None:
            log_entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_entry, default=str)


class _TextFormatter(logging.Formatter):
    """Human-readable lines with request context appended as ``key=value``."""

    def __init__(self) -> None:
        super().__init__(
            "%(asctime)s [%(levelname)-8s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

    def formatMessage(self, record: logging.LogRecord) -> str:  # noqa: N802
        line = super().formatMessage(record)
        context = _context(record)
        if not context:
            return line
        return line + " [" + " ".join(f"{key}={value}" for key, value in context.items()) + "]"


def setup_logging(
    level: int = logging.INFO,
    *,
    json_format: bool = False,
    stream: IO[str] | None = None,
) -> logging.Logger:
    """Configure and return the root vuload logger.

    Repeated calls only adjust the level of the handler installed by the
    first call.

    Args:
        level: Logging level (e.g., ``logging.DEBUG``). Defaults to INFO.
        json_format: If True, emit structured JSON logs. If False, emit
            human-readable logs.
        stream: Where to write. Defaults to ``sys.stderr``.

    Returns:
        The configured ``vuload`` root logger.
    """
    logger = logging.getLogger("vuload")
    logger.setLevel(level)

    if logger.handlers:
        for handler in logger.handlers:
            handler.setLevel(level)
        return logger

    handler = logging.StreamHandler(stream if stream is not None else sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(_JsonFormatter() if json_format else _TextFormatter())
    logger.addHandler(handler)
    logger.propagate = False

    return logger


def get_logger(name: str) -> logging.Logger:
    """Return a child logger under the ``vuload`` namespace.

    Args:
        name: Logger name, appended to ``vuload.`` prefix.
            Example: ``get_logger("batch.executor")`` returns
            ``logging.getLogger("vuload.batch.executor")``.
    """
    return logging.getLogger(f"vuload.{name}")
