"""
Error classification and handling for the Binding Lookup clients.

Every failure a client meets (transport errors, non-success statuses, malformed
payloads, and upstream soft failures encoded in normal-looking bodies) is
classified here, logged with context, and handed back to the client boundary
as an ErrorInfo so the caller only ever sees "no result".
"""

import json
import logging
from enum import Enum
from typing import Any, Dict, Optional, Tuple
from dataclasses import dataclass, field
from datetime import datetime

import httpx
import pydantic


class ErrorCategory(Enum):
    """Categories of errors that can occur while querying upstream services."""
    NETWORK = "network"
    API = "api"
    NOT_FOUND = "not_found"
    DATA = "data"
    UPSTREAM = "upstream"
    VALIDATION = "validation"
    CONFIGURATION = "configuration"
    UNKNOWN = "unknown"


class ErrorSeverity(Enum):
    """Severity levels for errors."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


@dataclass
class ErrorContext:
    """Contextual information about an error."""
    operation: str
    service: Optional[str] = None
    entity_id: Optional[str] = None
    request_url: Optional[str] = None
    response_status: Optional[int] = None
    timestamp: datetime = field(default_factory=datetime.now)
    additional_data: Dict[str, Any] = field(default_factory=dict)


@dataclass
class ErrorInfo:
    """Complete information about an error occurrence."""
    category: ErrorCategory
    severity: ErrorSeverity
    message: str
    original_exception: Exception
    context: ErrorContext


class BindingLookupError(Exception):
    """Base exception class for Binding Lookup errors."""

    def __init__(
        self,
        message: str,
        category: ErrorCategory = ErrorCategory.UNKNOWN,
        severity: ErrorSeverity = ErrorSeverity.MEDIUM,
        context: Optional[ErrorContext] = None,
        original_exception: Optional[Exception] = None
    ):
        super().__init__(message)
        self.message = message
        self.category = category
        self.severity = severity
        self.context = context
        self.original_exception = original_exception


class NetworkError(BindingLookupError):
    """Transport failures: timeouts, refused connections, broken streams."""

    def __init__(self, message: str, context: Optional[ErrorContext] = None, original_exception: Optional[Exception] = None):
        super().__init__(
            message=message,
            category=ErrorCategory.NETWORK,
            severity=ErrorSeverity.MEDIUM,
            context=context,
            original_exception=original_exception
        )


class APIError(BindingLookupError):
    """Non-success HTTP status from an upstream service."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        context: Optional[ErrorContext] = None,
        original_exception: Optional[Exception] = None
    ):
        super().__init__(
            message=message,
            category=ErrorCategory.API,
            severity=ErrorSeverity.MEDIUM,
            context=context,
            original_exception=original_exception
        )
        self.status_code = status_code


class NotFoundError(BindingLookupError):
    """The upstream service answered but holds nothing for the query."""

    def __init__(self, message: str, context: Optional[ErrorContext] = None, original_exception: Optional[Exception] = None):
        super().__init__(
            message=message,
            category=ErrorCategory.NOT_FOUND,
            severity=ErrorSeverity.LOW,
            context=context,
            original_exception=original_exception
        )


class DataError(BindingLookupError):
    """Malformed or schema-mismatched response payloads."""

    def __init__(self, message: str, context: Optional[ErrorContext] = None, original_exception: Optional[Exception] = None):
        super().__init__(
            message=message,
            category=ErrorCategory.DATA,
            severity=ErrorSeverity.HIGH,
            context=context,
            original_exception=original_exception
        )


class UpstreamSoftFailure(BindingLookupError):
    """Failure encoded as an ordinary-looking success body."""

    def __init__(self, message: str, context: Optional[ErrorContext] = None, original_exception: Optional[Exception] = None):
        super().__init__(
            message=message,
            category=ErrorCategory.UPSTREAM,
            severity=ErrorSeverity.MEDIUM,
            context=context,
            original_exception=original_exception
        )


class ValidationError(BindingLookupError):
    """Caller input rejected before any request was issued."""

    def __init__(self, message: str, context: Optional[ErrorContext] = None, original_exception: Optional[Exception] = None):
        super().__init__(
            message=message,
            category=ErrorCategory.VALIDATION,
            severity=ErrorSeverity.LOW,
            context=context,
            original_exception=original_exception
        )


class ConfigurationError(BindingLookupError):
    """Errors related to system configuration."""

    def __init__(self, message: str, context: Optional[ErrorContext] = None, original_exception: Optional[Exception] = None):
        super().__init__(
            message=message,
            category=ErrorCategory.CONFIGURATION,
            severity=ErrorSeverity.CRITICAL,
            context=context,
            original_exception=original_exception
        )


class ErrorHandler:
    """
    Classifies exceptions and logs them with contextual information.

    The logger is injectable so tests can assert on emitted diagnostics
    without capturing console output.
    """

    def __init__(self, logger: Optional[logging.Logger] = None):
        """
        Initialize error handler.

        Args:
            logger: Logger receiving diagnostics, module logger if not provided
        """
        self.logger = logger or logging.getLogger(f"{__name__}.{self.__class__.__name__}")
        self._error_counts: Dict[str, int] = {}

    def classify_error(self, exception: Exception, context: ErrorContext) -> ErrorInfo:
        """
        Classify an exception.

        Args:
            exception: The exception to classify
            context: Contextual information about the error

        Returns:
            ErrorInfo with category and severity
        """
        if isinstance(exception, BindingLookupError):
            if isinstance(exception, APIError) and context.response_status is None:
                context.response_status = exception.status_code
            return ErrorInfo(
                category=exception.category,
                severity=exception.severity,
                message=exception.message,
                original_exception=exception,
                context=context
            )

        category, severity = self._classify_standard_exception(exception)
        return ErrorInfo(
            category=category,
            severity=severity,
            message=str(exception),
            original_exception=exception,
            context=context
        )

    def _classify_standard_exception(self, exception: Exception) -> Tuple[ErrorCategory, ErrorSeverity]:
        """Classify third-party and built-in exceptions."""
        if isinstance(exception, (httpx.TransportError, ConnectionError, TimeoutError)):
            return ErrorCategory.NETWORK, ErrorSeverity.MEDIUM

        if isinstance(exception, httpx.HTTPStatusError):
            if exception.response.status_code == 404:
                return ErrorCategory.NOT_FOUND, ErrorSeverity.LOW
            return ErrorCategory.API, ErrorSeverity.MEDIUM

        if isinstance(exception, httpx.HTTPError):
            return ErrorCategory.NETWORK, ErrorSeverity.MEDIUM

        # JSONDecodeError and pydantic.ValidationError are both ValueErrors
        if isinstance(exception, (json.JSONDecodeError, pydantic.ValidationError,
                                  ValueError, KeyError, IndexError, TypeError, AttributeError)):
            return ErrorCategory.DATA, ErrorSeverity.HIGH

        return ErrorCategory.UNKNOWN, ErrorSeverity.MEDIUM

    def handle_error(self, exception: Exception, context: ErrorContext) -> ErrorInfo:
        """
        Classify, count and log an error.

        Args:
            exception: The exception to handle
            context: Contextual information about the error

        Returns:
            ErrorInfo with handling details
        """
        error_info = self.classify_error(exception, context)

        error_key = f"{error_info.category.value}:{error_info.context.operation}"
        self._error_counts[error_key] = self._error_counts.get(error_key, 0) + 1

        self._log_error(error_info)

        return error_info

    def _log_error(self, error_info: ErrorInfo) -> None:
        """Log error with contextual information."""
        log_data = {
            "error_category": error_info.category.value,
            "error_severity": error_info.severity.value,
            "operation": error_info.context.operation,
            "service": error_info.context.service,
            "entity_id": error_info.context.entity_id,
            "request_url": error_info.context.request_url,
            "response_status": error_info.context.response_status,
            "timestamp": error_info.context.timestamp.isoformat(),
            "exception_type": type(error_info.original_exception).__name__,
            "exception_message": str(error_info.original_exception),
        }

        if error_info.context.additional_data:
            log_data.update(error_info.context.additional_data)

        if error_info.severity == ErrorSeverity.CRITICAL:
            self.logger.critical("%s failed: %s", error_info.context.operation, error_info.message, extra=log_data)
        elif error_info.severity == ErrorSeverity.HIGH:
            self.logger.error("%s failed: %s", error_info.context.operation, error_info.message, extra=log_data)
        elif error_info.severity == ErrorSeverity.MEDIUM:
            self.logger.warning("%s failed: %s", error_info.context.operation, error_info.message, extra=log_data)
        else:
            self.logger.info("%s returned no result: %s", error_info.context.operation, error_info.message, extra=log_data)

    def get_error_statistics(self) -> Dict[str, int]:
        """Get error count statistics."""
        return self._error_counts.copy()

    def reset_error_statistics(self) -> None:
        """Reset error count statistics."""
        self._error_counts.clear()


# Global error handler instance
_error_handler: Optional[ErrorHandler] = None


def get_error_handler() -> ErrorHandler:
    """Get the global error handler instance."""
    global _error_handler
    if _error_handler is None:
        _error_handler = ErrorHandler()
    return _error_handler


def set_error_handler(handler: Optional[ErrorHandler]) -> None:
    """Set the global error handler instance."""
    global _error_handler
    _error_handler = handler


def create_error_context(
    operation: str,
    service: Optional[str] = None,
    entity_id: Optional[str] = None,
    request_url: Optional[str] = None,
    response_status: Optional[int] = None,
    **additional_data
) -> ErrorContext:
    """
    Convenience function to create error context.

    Args:
        operation: Name of the operation being performed
        service: Name of the upstream service
        entity_id: Identifier the operation was queried with
        request_url: URL of the request that failed
        response_status: HTTP response status code
        **additional_data: Additional contextual data

    Returns:
        ErrorContext instance
    """
    return ErrorContext(
        operation=operation,
        service=service,
        entity_id=entity_id,
        request_url=request_url,
        response_status=response_status,
        additional_data=additional_data
    )
