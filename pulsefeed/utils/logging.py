"""
PulseFeed Logging
=================

Logging setup for the API process and the CLI.

Console output is coloured and prefixed with the emitting component (and the
vertical or feed source when known). The rotating log file receives one JSON
object per record so poll cycles and sweeps can be analysed afterwards.
"""

import json
import logging
import logging.handlers
import sys
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

# LogRecord attributes that are not caller-supplied context
_RECORD_ATTRIBUTES = set(vars(logging.LogRecord("", 0, "", 0, "", None, None))) | {
    "message",
    "asctime",
}

# Context keys promoted to top-level JSON fields
CONTEXT_FIELDS = ("component", "vertical", "source", "item_id")


def _record_context(record: logging.LogRecord) -> Dict[str, Any]:
    return {k: v for k, v in vars(record).items() if k not in _RECORD_ATTRIBUTES}


class StructuredFormatter(logging.Formatter):
    """One JSON object per record."""

    def format(self, record: logging.LogRecord) -> str:
        context = _record_context(record)

        log_data: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key in CONTEXT_FIELDS:
            if key in context:
                log_data[key] = context.pop(key)

        if context:
            log_data["extra"] = context
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, ensure_ascii=False, default=str)


class ColoredConsoleFormatter(logging.Formatter):
    """Coloured single-line console output."""

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLORS.get(record.levelname, self.RESET)
        timestamp = datetime.fromtimestamp(record.created).strftime("%H:%M:%S")

        component = getattr(record, "component", record.name)
        tags = "".join(
            f"[{getattr(record, key)}]" for key in ("vertical", "source") if getattr(record, key, None)
        )

        formatted = (
            f"{color}[{timestamp}] {record.levelname:8}{self.RESET} "
            f"{component}{tags} - {record.getMessage()}"
        )
        if record.exc_info:
            formatted += "\n" + self.formatException(record.exc_info)
        return formatted


def setup_logger(
    name: str = "pulsefeed",
    level: str = "INFO",
    log_file: Optional[str] = None,
    console: bool = True,
    structured: bool = False,
    max_file_size_mb: int = 10,
    backup_count: int = 5,
) -> logging.Logger:
    """Set up logger with appropriate handlers and formatting.

    Args:
        name: Logger name
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Path to the rotating JSON log file (optional)
        console: Whether to log to stdout
        structured: Use JSON on the console as well
        max_file_size_mb: Size at which the log file rotates
        backup_count: Number of rotated files kept

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)
    logger.setLevel(getattr(logging, level.upper()))
    logger.handlers.clear()

    if console:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(StructuredFormatter() if structured else ColoredConsoleFormatter())
        logger.addHandler(console_handler)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.handlers.RotatingFileHandler(
            log_path,
            maxBytes=max_file_size_mb * 1024 * 1024,
            backupCount=backup_count,
            encoding="utf-8",
        )
        file_handler.setFormatter(StructuredFormatter())
        logger.addHandler(file_handler)

    return logger


class LoggerAdapter(logging.LoggerAdapter):
    """Adapter merging its fixed context into every record's ``extra``."""

    def process(self, msg: Any, kwargs: Dict[str, Any]) -> tuple:
        kwargs["extra"] = {**self.extra, **(kwargs.get("extra") or {})}
        return msg, kwargs


def get_logger_for_component(
    component_name: str,
    vertical: Optional[str] = None,
    item_id: Optional[int] = None,
    source: Optional[str] = None,
) -> LoggerAdapter:
    """Get a logger adapter with component-specific context.

    Args:
        component_name: Name of the component (e.g., 'feed_poller', 'duplicate_gate')
        vertical: Associated vertical (optional)
        item_id: Associated news item ID (optional)
        source: Associated feed source name (optional)

    Returns:
        Logger adapter named ``pulsefeed.<component_name>``
    """
    context: Dict[str, Any] = {"component": component_name}
    if vertical:
        context["vertical"] = vertical
    if item_id is not None:
        context["item_id"] = item_id
    if source:
        context["source"] = source

    return LoggerAdapter(logging.getLogger(f"pulsefeed.{component_name}"), context)


def configure_application_logging(
    log_level: str = "INFO",
    log_file: Optional[str] = "logs/pulsefeed.log",
    enable_console: bool = True,
    structured_logging: bool = False,
    max_file_size_mb: int = 10,
    backup_count: int = 5,
) -> None:
    """Configure the ``pulsefeed`` logger tree and quieten noisy libraries."""
    setup_logger(
        name="pulsefeed",
        level=log_level,
        log_file=log_file,
        console=enable_console,
        structured=structured_logging,
        max_file_size_mb=max_file_size_mb,
        backup_count=backup_count,
    )

    for library in ("aiohttp", "feedparser", "httpx", "groq", "redis", "uvicorn.access"):
        logging.getLogger(library).setLevel(logging.WARNING)


class PerformanceLogger:
    """Context manager logging the duration and outcome of an operation.

    Usage:
        with PerformanceLogger(logger, "poll cycle", sources=36):
            ...
    """

    def __init__(self, logger: logging.LoggerAdapter, operation: str, **context):
        self.logger = logger
        self.operation = operation
        self.context = context
        self._started: Optional[float] = None

    def __enter__(self) -> "PerformanceLogger":
        self._started = time.perf_counter()
        self.logger.debug(f"Starting {self.operation}", extra=dict(self.context))
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        if self._started is None:
            return

        duration = time.perf_counter() - self._started
        context = {**self.context, "duration_ms": round(duration * 1000, 1), "success": exc_type is None}

        if exc_type:
            self.logger.error(f"Failed {self.operation} in {duration:.3f}s", extra=context)
        else:
            self.logger.info(f"Completed {self.operation} in {duration:.3f}s", extra=context)
