"""
LawWatch Exception System

Exception hierarchy with error codes and logging integration. Exceptions are
raised inside adapters and services, then normalized into ``Err`` results at
every public operation boundary (see ``lawwatch.core.result``).
"""

import uuid
from typing import Any, Dict, Optional, List
from enum import Enum

from lawwatch.core.logging_config import get_logger


# ======================== ERROR CODES ========================

class ErrorCode(str, Enum):
    """Standardized error codes for results and API responses."""

    # General errors
    INTERNAL_ERROR = "INTERNAL_ERROR"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    RATE_LIMIT_ERROR = "RATE_LIMIT_ERROR"

    # Store errors
    STORE_ERROR = "STORE_ERROR"
    ENTITY_NOT_FOUND = "ENTITY_NOT_FOUND"

    # Upstream errors
    UPSTREAM_FETCH_ERROR = "UPSTREAM_FETCH_ERROR"
    PARSING_ERROR = "PARSING_ERROR"

    # Change detection errors
    SCAN_ERROR = "SCAN_ERROR"
    CLASSIFICATION_ERROR = "CLASSIFICATION_ERROR"
    NOTIFICATION_ERROR = "NOTIFICATION_ERROR"


# ======================== BASE EXCEPTION ========================

class LawWatchError(Exception):
    """
    Base exception for all LawWatch errors.

    Carries an ``ErrorCode`` so a caught error can be returned as
    ``Err(e.message, e.error_code)``, and logs itself when constructed:
    ERROR for store and internal failures, INFO for caller mistakes,
    WARNING for everything else.
    """

    default_code: ErrorCode = ErrorCode.INTERNAL_ERROR

    def __init__(
        self,
        message: str,
        error_code: Optional[ErrorCode] = None,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None
    ):
        super().__init__(message)

        self.message = message
        self.error_code = error_code or self.default_code
        self.details = details or {}
        self.cause = cause
        self.error_id = uuid.uuid4().hex[:8]

        self.logger = get_logger(f"exception.{self.__class__.__name__.lower()}")
        self._log_error()

    def _log_error(self) -> None:
        log_data = {"error_id": self.error_id, "error_code": self.error_code.value, "details": self.details}
        if self.cause:
            log_data["cause"] = repr(self.cause)

        if self.error_code in (ErrorCode.INTERNAL_ERROR, ErrorCode.STORE_ERROR):
            self.logger.error(self.message, extra=log_data)
        elif self.error_code in (ErrorCode.VALIDATION_ERROR, ErrorCode.ENTITY_NOT_FOUND):
            self.logger.info(self.message, extra=log_data)
        else:
            self.logger.warning(self.message, extra=log_data)

    def __str__(self) -> str:
        return self.message

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, error_code={self.error_code.value})"


# ======================== VALIDATION EXCEPTIONS ========================

class ValidationError(LawWatchError):
    """Validation errors for user input and domain invariants."""

    default_code = ErrorCode.VALIDATION_ERROR

    def __init__(
        self,
        message: str,
        field_errors: Optional[Dict[str, List[str]]] = None,
        **kwargs
    ):
        kwargs.setdefault("details", {"field_errors": field_errors or {}})
        super().__init__(message=message, **kwargs)
        self.field_errors = field_errors or {}


# ======================== STORE EXCEPTIONS ========================

class StoreError(LawWatchError):
    """A persistence read or write failed."""

    default_code = ErrorCode.STORE_ERROR

    def __init__(self, operation: str, message: str, **kwargs):
        kwargs.setdefault("details", {"operation": operation})
        super().__init__(message=message, **kwargs)
        self.operation = operation


class NotFoundError(LawWatchError):
    """Record or upstream instrument not found."""

    default_code = ErrorCode.ENTITY_NOT_FOUND

    def __init__(self, entity_type: str, entity_id: Any, **kwargs):
        message = f"{entity_type} with ID '{entity_id}' not found"
        kwargs.setdefault("details", {"entity_type": entity_type, "entity_id": str(entity_id)})
        super().__init__(message=message, **kwargs)


# ======================== UPSTREAM EXCEPTIONS ========================

class UpstreamFetchError(LawWatchError):
    """The registry source reported failure or was unreachable."""

    default_code = ErrorCode.UPSTREAM_FETCH_ERROR

    def __init__(self, message: str, url: Optional[str] = None, status_code: Optional[int] = None, **kwargs):
        kwargs.setdefault("details", {"url": url, "status_code": status_code})
        super().__init__(message=message, **kwargs)
        self.status_code = status_code


class ParsingError(UpstreamFetchError):
    """Upstream payload could not be parsed."""

    default_code = ErrorCode.PARSING_ERROR

    def __init__(self, data_format: str, reason: str, **kwargs):
        super().__init__(message=f"Failed to parse {data_format} response: {reason}", **kwargs)


class RateLimitError(LawWatchError):
    """Outbound request denied by the rate limiter."""

    default_code = ErrorCode.RATE_LIMIT_ERROR

    def __init__(self, limit: int, window_ms: int, retry_after_ms: int, **kwargs):
        message = f"Rate limit exceeded: {limit} requests per {window_ms} ms"
        kwargs.setdefault("details", {
            "limit": limit,
            "window_ms": window_ms,
            "retry_after_ms": retry_after_ms
        })
        super().__init__(message=message, **kwargs)


# ======================== CHANGE DETECTION EXCEPTIONS ========================

class ScanError(LawWatchError):
    """A scan cycle failed."""

    default_code = ErrorCode.SCAN_ERROR


class ClassificationError(ScanError):
    """Change classification failed on malformed input."""

    default_code = ErrorCode.CLASSIFICATION_ERROR


class NotificationDispatchError(LawWatchError):
    """Notification delivery failed."""

    default_code = ErrorCode.NOTIFICATION_ERROR

    def __init__(self, message: str, channel: Optional[str] = None, **kwargs):
        kwargs.setdefault("details", {"channel": channel})
        super().__init__(message=message, **kwargs)


# ======================== EXPORTS ========================

__all__ = [
    "ErrorCode",
    "LawWatchError",
    "ValidationError",
    "StoreError",
    "NotFoundError",
    "UpstreamFetchError",
    "ParsingError",
    "RateLimitError",
    "ScanError",
    "ClassificationError",
    "NotificationDispatchError",
]
