"""
Structured logging for shelfcache.

Helpers that write error and operation logs with context attached
as ``extra`` fields, plus a console/JSON logger setup.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any

from rich.console import Console
from rich.logging import RichHandler
from rich.theme import Theme

from shelfcache.shared.errors import ErrorContext, ShelfCacheError


class StructuredFormatter(logging.Formatter):
    """
    Formatter that renders each record as one JSON object.
    """

    def format(self, record: logging.LogRecord) -> str:
        """
        Format a log record as JSON.

        Args:
            record: The log record

        Returns:
            JSON encoded log line
        """
        log_entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(
                record.created,
                tz=timezone.utc,
            ).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        for field in ("error_code", "context", "operation", "duration_ms", "result_info"):
            if hasattr(record, field):
                log_entry[field] = getattr(record, field)

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_entry, ensure_ascii=False, default=str)


def _create_rich_console() -> Console:
    """
    Create the rich Console used for log output.
    """
    custom_theme = Theme(
        {
            "logging.level.debug": "cyan",
            "logging.level.info": "green",
            "logging.level.warning": "yellow",
            "logging.level.error": "red bold",
            "logging.level.critical": "red bold reverse",
            "log.time": "dim cyan",
            "log.message": "white",
            "log.path": "dim blue",
        }
    )
    return Console(theme=custom_theme, stderr=True)


def setup_structured_logger(
    name: str = "shelfcache",
    level: str = "INFO",
    log_file: str | None = None,
    *,
    use_rich_console: bool = True,
) -> logging.Logger:
    """
    Configure the package logger.

    Args:
        name: Logger name (default: "shelfcache")
        level: Log level (default: "INFO")
        log_file: Optional path of a JSON lines log file
        use_rich_console: Use rich for console output instead of JSON lines

    Returns:
        The configured logger
    """
    logger = logging.getLogger(name)

    if logger.handlers:
        logger.handlers.clear()

    log_level = getattr(logging, level.upper())
    logger.setLevel(log_level)

    if use_rich_console:
        handler: logging.Handler = RichHandler(
            console=_create_rich_console(),
            show_time=True,
            show_level=True,
            show_path=False,
            markup=False,
            rich_tracebacks=True,
            tracebacks_show_locals=False,
            log_time_format="[%H:%M:%S]",
        )
    else:
        handler = logging.StreamHandler()
        handler.setFormatter(StructuredFormatter())
    handler.setLevel(log_level)
    logger.addHandler(handler)

    # File output is always JSON
    if log_file:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(StructuredFormatter())
        logger.addHandler(file_handler)

    logger.propagate = False

    return logger


def _merge_context(*contexts: dict[str, Any] | ErrorContext | None) -> dict[str, Any]:
    merged: dict[str, Any] = {}
    for context in contexts:
        if context is None:
            continue
        if isinstance(context, ErrorContext):
            merged.update(context.safe_dict())
        else:
            merged.update(context)
    return merged


def log_operation_error(
    logger: logging.Logger,
    error: ShelfCacheError,
    operation: str | None = None,
    additional_context: dict[str, Any] | ErrorContext | None = None,
) -> None:
    """
    Log a ShelfCacheError with its structured context.

    Args:
        logger: Logger instance
        error: The error to record
        operation: Operation name (falls back to the error context's)
        additional_context: Extra context merged over the error's own
    """
    context_dict = _merge_context(error.context, additional_context)

    logger.error(
        error.message,
        extra={
            "error_code": error.code.name,
            "context": context_dict,
            "operation": operation or error.context.operation,
        },
        exc_info=error.original_error is not None,
    )


def log_operation_success(
    logger: logging.Logger,
    operation: str,
    duration_ms: float,
    result_info: dict[str, Any] | None = None,
    context: dict[str, Any] | ErrorContext | None = None,
) -> None:
    """
    Log a completed operation at debug level.

    Args:
        logger: Logger instance
        operation: Operation name
        duration_ms: Elapsed time in milliseconds
        result_info: Result details
        context: Context details
    """
    logger.debug(
        "Operation '%s' completed successfully",
        operation,
        extra={
            "operation": operation,
            "duration_ms": duration_ms,
            "result_info": result_info or {},
            "context": _merge_context(context),
        },
    )


def log_operation_start(
    logger: logging.Logger,
    operation: str,
    context: dict[str, Any] | None = None,
) -> None:
    """
    Log the start of an operation at debug level.
    """
    logger.debug(
        "Starting operation '%s'",
        operation,
        extra={
            "operation": operation,
            "context": context or {},
        },
    )
