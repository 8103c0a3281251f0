"""
PulseFeed Exceptions
====================

Error hierarchy shared by ingestion, storage, retrieval and the API.

Every error carries an ``ErrorCode``, a context dict for structured logs and
a short ``user_message`` safe to return to API clients. Subclasses only
declare their defaults and the keyword they fold into the context.
"""

import sqlite3
from enum import Enum
from typing import Any, Dict, Optional


class ErrorCode(str, Enum):
    """Error codes for categorizing exceptions."""

    # Configuration errors (C001-C099)
    CONFIG_INVALID = "C001"
    CONFIG_MISSING = "C002"

    # Database errors (D001-D099)
    DATABASE_CONNECTION = "D001"
    DATABASE_TRANSACTION = "D004"
    DATABASE_ERROR = "D006"

    # Feed ingestion errors (F001-F099)
    FEED_FETCH_TIMEOUT = "F002"
    FEED_PARSE_ERROR = "F003"
    FEED_NETWORK_ERROR = "F004"
    FEED_HTTP_ERROR = "F005"

    # Deduplication errors (K001-K099)
    DEDUP_STORE_UNAVAILABLE = "K001"
    DEDUP_STORE_ERROR = "K002"

    # Tier lookup errors (T001-T099)
    TIER_LOOKUP_FAILED = "T001"

    # Validation errors (V001-V099)
    VALIDATION_INVALID_FORMAT = "V002"

    # System errors (S001-S099)
    SYSTEM_PERMISSION_DENIED = "S002"


class PulseFeedError(Exception):
    """Base exception for all PulseFeed errors."""

    default_code: Optional[ErrorCode] = None
    default_user_message: Optional[str] = None
    default_recoverable: bool = False

    def __init__(
        self,
        message: str,
        error_code: Optional[ErrorCode] = None,
        context: Optional[Dict[str, Any]] = None,
        user_message: Optional[str] = None,
        recoverable: Optional[bool] = None,
    ):
        """Initialize PulseFeed error.

        Args:
            message: Technical error message for logging
            error_code: Categorized error code (default: the class default)
            context: Additional context information
            user_message: Client-safe message (default: the class default or ``message``)
            recoverable: Whether retrying later can succeed
        """
        super().__init__(message)
        self.error_code = error_code or self.default_code
        self.context = dict(context or {})
        self.user_message = user_message or self.default_user_message or message
        self.recoverable = self.default_recoverable if recoverable is None else recoverable

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/serialization."""
        return {
            "error_type": self.__class__.__name__,
            "error_code": self.error_code.value if self.error_code else None,
            "error_message": str(self),
            "user_message": self.user_message,
            "context": self.context,
            "recoverable": self.recoverable,
        }

    def __str__(self) -> str:
        if self.error_code:
            return f"[{self.error_code.value}] {super().__str__()}"
        return super().__str__()


class _ContextualError(PulseFeedError):
    """Error whose subject (feed URL, hash, user...) is stored under ``context_key``."""

    context_key = "subject"

    def __init__(self, message: str, subject: Optional[Any] = None, **kwargs):
        context = dict(kwargs.pop("context", None) or {})
        if subject is not None:
            context[self.context_key] = subject
        super().__init__(message, context=context, **kwargs)


class ConfigurationError(_ContextualError):
    """Invalid or missing configuration."""

    context_key = "config_key"
    default_code = ErrorCode.CONFIG_INVALID

    def __init__(self, message: str, config_key: Optional[str] = None, **kwargs):
        kwargs.setdefault("user_message", f"Configuration error: {message}")
        super().__init__(message, config_key, **kwargs)


class DatabaseError(_ContextualError):
    """News store read or write failure."""

    context_key = "query"
    default_code = ErrorCode.DATABASE_CONNECTION
    default_user_message = "Database operation failed"
    default_recoverable = True

    def __init__(self, message: str, query: Optional[str] = None, **kwargs):
        super().__init__(message, query, **kwargs)


class FeedError(_ContextualError):
    """Feed download or parse failure."""

    context_key = "feed_url"
    default_code = ErrorCode.FEED_FETCH_TIMEOUT
    default_recoverable = True

    def __init__(self, message: str, feed_url: Optional[str] = None, **kwargs):
        kwargs.setdefault("user_message", f"Feed processing failed: {message}")
        super().__init__(message, feed_url, **kwargs)


class FeedFetchError(FeedError):
    """RSS feed fetching errors."""


class DeduplicationError(_ContextualError):
    """Duplicate gate could not reach its durable store."""

    context_key = "hash"
    default_code = ErrorCode.DEDUP_STORE_UNAVAILABLE
    default_user_message = "Duplicate check unavailable"
    default_recoverable = True

    def __init__(self, message: str, content_hash: Optional[str] = None, **kwargs):
        super().__init__(message, content_hash, **kwargs)


class TierLookupError(_ContextualError):
    """Entitlement service lookup errors."""

    context_key = "user_id"
    default_code = ErrorCode.TIER_LOOKUP_FAILED
    default_user_message = "Subscription lookup failed"
    default_recoverable = True

    def __init__(self, message: str, user_id: Optional[str] = None, **kwargs):
        super().__init__(message, user_id, **kwargs)


class ValidationError(_ContextualError):
    """Malformed request input."""

    context_key = "field_name"
    default_code = ErrorCode.VALIDATION_INVALID_FORMAT

    def __init__(self, message: str, field_name: Optional[str] = None, **kwargs):
        kwargs.setdefault("user_message", f"Invalid {field_name or 'input'}: {message}")
        super().__init__(message, field_name, **kwargs)


def handle_exception(
    exception: Exception,
    logger,
    operation: str,
    context: Optional[Dict[str, Any]] = None,
) -> PulseFeedError:
    """Log ``exception`` and return it as a PulseFeed error.

    Args:
        exception: Original exception
        logger: Logger instance for error logging
        operation: Operation that was being performed
        context: Additional context information

    Returns:
        The original error if it already is one, otherwise a categorized wrapper
    """
    if isinstance(exception, PulseFeedError):
        logger.error(f"Operation '{operation}' failed", extra=exception.to_dict())
        return exception

    context = dict(context or {})
    context["operation"] = operation
    context["original_exception_type"] = type(exception).__name__

    if isinstance(exception, sqlite3.Error):
        error: PulseFeedError = DatabaseError(
            f"Database error during {operation}: {exception}",
            error_code=ErrorCode.DATABASE_ERROR,
            context=context,
        )
    elif isinstance(exception, (ConnectionError, TimeoutError)):
        error = PulseFeedError(
            f"Network error during {operation}: {exception}",
            error_code=ErrorCode.FEED_NETWORK_ERROR,
            context=context,
            user_message="Network connection failed",
            recoverable=True,
        )
    elif isinstance(exception, PermissionError):
        error = PulseFeedError(
            f"Permission denied during {operation}: {exception}",
            error_code=ErrorCode.SYSTEM_PERMISSION_DENIED,
            context=context,
            user_message="Access denied",
        )
    elif isinstance(exception, FileNotFoundError):
        error = ConfigurationError(
            f"Required file not found during {operation}: {exception}",
            error_code=ErrorCode.CONFIG_MISSING,
            context=context,
            user_message="Configuration file missing",
        )
    else:
        error = PulseFeedError(
            f"Unexpected error during {operation}: {exception}",
            context=context,
            user_message="An unexpected error occurred",
            recoverable=True,
        )

    logger.error(f"Operation '{operation}' failed", extra=error.to_dict())
    return error
