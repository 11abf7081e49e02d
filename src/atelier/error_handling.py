"""
Centralized error handling and classification for atelier application.

This module provides error classification, handling, and user-facing
message generation for all application components.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any

from .logging_config import get_logger, log_error, log_security_event

logger = get_logger(__name__)


class ErrorCategory(Enum):
    """Error categories for classification and handling."""

    AUTHENTICATION = "authentication"
    AUTHORIZATION = "authorization"
    VALIDATION = "validation"
    DUPLICATE = "duplicate"
    UPLOAD = "upload"
    IMAGE_PROCESSING = "image_processing"
    DATABASE = "database"
    STORAGE = "storage"
    GEOCODING = "geocoding"
    DELETION = "deletion"
    NETWORK = "network"
    UNKNOWN = "unknown"


class ErrorSeverity(Enum):
    """Error severity levels."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


@dataclass
class ErrorInfo:
    """Structured error information."""

    category: ErrorCategory
    severity: ErrorSeverity
    code: str
    message: str
    user_message: str
    details: dict[str, Any]
    timestamp: datetime
    recoverable: bool = True
    retry_suggested: bool = False

    def to_dict(self) -> dict[str, Any]:
        """Convert error info to dictionary."""
        return {
            "category": self.category.value,
            "severity": self.severity.value,
            "code": self.code,
            "message": self.message,
            "user_message": self.user_message,
            "details": self.details,
            "timestamp": self.timestamp.isoformat(),
            "recoverable": self.recoverable,
            "retry_suggested": self.retry_suggested,
        }


_USER_MESSAGES = {
    ErrorCategory.AUTHENTICATION: "Authentication failed. Please sign in again.",
    ErrorCategory.AUTHORIZATION: "You are not allowed to perform this action.",
    ErrorCategory.VALIDATION: "The submitted data is invalid.",
    ErrorCategory.DUPLICATE: "This photo already exists in the portfolio.",
    ErrorCategory.UPLOAD: "The upload failed. Please try again.",
    ErrorCategory.IMAGE_PROCESSING: "The image could not be read.",
    ErrorCategory.DATABASE: "The photo database is unavailable. Please try again.",
    ErrorCategory.STORAGE: "The image host request failed. Please try again.",
    ErrorCategory.GEOCODING: "The location lookup failed.",
    ErrorCategory.DELETION: "The photo could not be deleted.",
    ErrorCategory.NETWORK: "A network error occurred. Check your connection.",
    ErrorCategory.UNKNOWN: "An unexpected error occurred.",
}


class AtelierError(Exception):
    """Base exception class for atelier application."""

    def __init__(
        self,
        message: str,
        category: ErrorCategory = ErrorCategory.UNKNOWN,
        severity: ErrorSeverity = ErrorSeverity.MEDIUM,
        code: str | None = None,
        user_message: str | None = None,
        details: dict[str, Any] | None = None,
        recoverable: bool = True,
        retry_suggested: bool = False,
        original_exception: Exception | None = None,
    ):
        super().__init__(message)
        self.category = category
        self.severity = severity
        self.code = code or f"{category.value}_error"
        self.user_message = user_message or _USER_MESSAGES.get(category, "An error occurred.")
        self.details = details or {}
        self.recoverable = recoverable
        self.retry_suggested = retry_suggested
        self.original_exception = original_exception
        self.timestamp = datetime.now()

        self._log_error()

    def _log_error(self) -> None:
        """Log the error with appropriate level."""
        error_context = {
            "category": self.category.value,
            "severity": self.severity.value,
            "code": self.code,
            "recoverable": self.recoverable,
            **self.details,
        }

        if self.original_exception:
            error_context["original_exception"] = str(self.original_exception)

        # Expected outcomes (duplicates, rejected files, geocoder misses) are not failures
        if self.severity == ErrorSeverity.LOW:
            logger.info("error_handled", error_type=type(self).__name__, error_message=str(self), **error_context)
            return

        log_error(self, error_context)

        if self.category in [ErrorCategory.AUTHENTICATION, ErrorCategory.AUTHORIZATION]:
            log_security_event(self.category.value, context=error_context)

    def get_error_info(self) -> ErrorInfo:
        """Get structured error information."""
        return ErrorInfo(
            category=self.category,
            severity=self.severity,
            code=self.code,
            message=str(self),
            user_message=self.user_message,
            details=self.details,
            timestamp=self.timestamp,
            recoverable=self.recoverable,
            retry_suggested=self.retry_suggested,
        )


class AuthenticationError(AtelierError):
    """Missing, expired or rejected credentials."""

    def __init__(
        self,
        message: str,
        code: str | None = None,
        user_message: str | None = None,
        details: dict[str, Any] | None = None,
        original_exception: Exception | None = None,
    ):
        super().__init__(
            message=message,
            category=ErrorCategory.AUTHENTICATION,
            severity=ErrorSeverity.HIGH,
            code=code or "auth_failed",
            user_message=user_message,
            details=details,
            recoverable=True,
            retry_suggested=False,
            original_exception=original_exception,
        )


class AuthorizationError(AtelierError):
    """Authenticated, but not allowed."""

    def __init__(
        self,
        message: str,
        code: str | None = None,
        user_message: str | None = None,
        details: dict[str, Any] | None = None,
        original_exception: Exception | None = None,
    ):
        super().__init__(
            message=message,
            category=ErrorCategory.AUTHORIZATION,
            severity=ErrorSeverity.HIGH,
            code=code or "access_denied",
            user_message=user_message,
            details=details,
            recoverable=False,
            retry_suggested=False,
            original_exception=original_exception,
        )


class ValidationError(AtelierError):
    """Rejected input: missing identifiers, unsupported files, bad sizes."""

    def __init__(
        self,
        message: str,
        code: str | None = None,
        user_message: str | None = None,
        details: dict[str, Any] | None = None,
        original_exception: Exception | None = None,
    ):
        super().__init__(
            message=message,
            category=ErrorCategory.VALIDATION,
            severity=ErrorSeverity.LOW,
            code=code or "validation_failed",
            user_message=user_message,
            details=details,
            recoverable=True,
            retry_suggested=False,
            original_exception=original_exception,
        )


class DuplicatePhotoError(AtelierError):
    """A photo with the same content hash is already stored."""

    def __init__(
        self,
        message: str,
        existing_title: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        self.existing_title = existing_title
        super().__init__(
            message=message,
            category=ErrorCategory.DUPLICATE,
            severity=ErrorSeverity.LOW,
            code="duplicate_photo",
            user_message=message,
            details=details,
            recoverable=True,
            retry_suggested=False,
        )


class UploadError(AtelierError):
    """Upload-related errors."""

    def __init__(
        self,
        message: str,
        code: str | None = None,
        user_message: str | None = None,
        details: dict[str, Any] | None = None,
        original_exception: Exception | None = None,
    ):
        super().__init__(
            message=message,
            category=ErrorCategory.UPLOAD,
            severity=ErrorSeverity.MEDIUM,
            code=code or "upload_failed",
            user_message=user_message,
            details=details,
            recoverable=True,
            retry_suggested=False,
            original_exception=original_exception,
        )


class ImageProcessingError(AtelierError):
    """The image bytes could not be decoded."""

    def __init__(
        self,
        message: str,
        code: str | None = None,
        user_message: str | None = None,
        details: dict[str, Any] | None = None,
        original_exception: Exception | None = None,
    ):
        super().__init__(
            message=message,
            category=ErrorCategory.IMAGE_PROCESSING,
            severity=ErrorSeverity.MEDIUM,
            code=code or "image_processing_failed",
            user_message=user_message,
            details=details,
            recoverable=True,
            retry_suggested=False,
            original_exception=original_exception,
        )


class DatabaseError(AtelierError):
    """Relational store errors."""

    def __init__(
        self,
        message: str,
        code: str | None = None,
        user_message: str | None = None,
        details: dict[str, Any] | None = None,
        original_exception: Exception | None = None,
    ):
        super().__init__(
            message=message,
            category=ErrorCategory.DATABASE,
            severity=ErrorSeverity.HIGH,
            code=code or "database_error",
            user_message=user_message,
            details=details,
            recoverable=True,
            retry_suggested=False,
            original_exception=original_exception,
        )


class StorageError(AtelierError):
    """Image host errors."""

    def __init__(
        self,
        message: str,
        code: str | None = None,
        user_message: str | None = None,
        details: dict[str, Any] | None = None,
        original_exception: Exception | None = None,
    ):
        super().__init__(
            message=message,
            category=ErrorCategory.STORAGE,
            severity=ErrorSeverity.HIGH,
            code=code or "storage_error",
            user_message=user_message,
            details=details,
            recoverable=True,
            retry_suggested=False,
            original_exception=original_exception,
        )


class GeocodingError(AtelierError):
    """Reverse geocoding errors. Callers degrade these to a missing location."""

    def __init__(
        self,
        message: str,
        code: str | None = None,
        details: dict[str, Any] | None = None,
        original_exception: Exception | None = None,
    ):
        super().__init__(
            message=message,
            category=ErrorCategory.GEOCODING,
            severity=ErrorSeverity.LOW,
            code=code or "geocoding_failed",
            details=details,
            recoverable=True,
            retry_suggested=False,
            original_exception=original_exception,
        )


class DeletionError(AtelierError):
    """The deletion endpoint reported a failure."""

    def __init__(
        self,
        message: str,
        code: str | None = None,
        user_message: str | None = None,
        details: dict[str, Any] | None = None,
        original_exception: Exception | None = None,
    ):
        super().__init__(
            message=message,
            category=ErrorCategory.DELETION,
            severity=ErrorSeverity.MEDIUM,
            code=code or "delete_failed",
            user_message=user_message,
            details=details,
            recoverable=True,
            retry_suggested=False,
            original_exception=original_exception,
        )


class NetworkError(AtelierError):
    """Network-related errors."""

    def __init__(
        self,
        message: str,
        code: str | None = None,
        user_message: str | None = None,
        details: dict[str, Any] | None = None,
        original_exception: Exception | None = None,
    ):
        super().__init__(
            message=message,
            category=ErrorCategory.NETWORK,
            severity=ErrorSeverity.MEDIUM,
            code=code or "network_error",
            user_message=user_message,
            details=details,
            recoverable=True,
            retry_suggested=False,
            original_exception=original_exception,
        )


class ErrorHandler:
    """Centralized error handler for the application."""

    _KEYWORDS: list[tuple[tuple[str, ...], type[AtelierError]]] = [
        (("authentication", "unauthorized", "token", "login", "session"), AuthenticationError),
        (("permission", "forbidden", "access denied", "not allowed"), AuthorizationError),
        (("exif", "pillow", "cannot identify image", "jpeg", "heic"), ImageProcessingError),
        (("duckdb", "database", "sql", "constraint"), DatabaseError),
        (("cloudinary", "image host", "upload"), StorageError),
        (("geocod", "nominatim"), GeocodingError),
        (("invalid", "required", "missing"), ValidationError),
        (("network", "connection", "timeout", "unreachable"), NetworkError),
    ]

    def __init__(self) -> None:
        self.error_counts: dict[str, int] = {}
        self.logger = get_logger(__name__)

    def handle_error(
        self,
        error: Exception,
        context: dict[str, Any] | None = None,
    ) -> ErrorInfo:
        """
        Handle and classify errors.

        Args:
            error: Exception to handle
            context: Additional context information

        Returns:
            ErrorInfo: Structured error information
        """
        context = context or {}

        if isinstance(error, AtelierError):
            error_info = error.get_error_info()
        else:
            error_info = self._classify_error(error, context).get_error_info()

        self._track_error(error_info.code)
        return error_info

    def _classify_error(self, error: Exception, context: dict[str, Any]) -> AtelierError:
        """Classify an exception into the matching AtelierError subclass."""
        error_type = type(error).__name__
        error_message = str(error)
        lowered = error_message.lower()
        details = {"original_type": error_type, **context}

        for keywords, error_class in self._KEYWORDS:
            if any(keyword in lowered for keyword in keywords):
                return error_class(message=error_message, details=details, original_exception=error)

        return AtelierError(
            message=error_message,
            category=ErrorCategory.UNKNOWN,
            details=details,
            original_exception=error,
        )

    def _track_error(self, error_code: str) -> None:
        """Track error occurrence for monitoring."""
        self.error_counts[error_code] = self.error_counts.get(error_code, 0) + 1

        if self.error_counts[error_code] % 10 == 0:
            self.logger.warning("frequent_error_detected", error_code=error_code, count=self.error_counts[error_code])

    def get_error_statistics(self) -> dict[str, int]:
        """Get error occurrence statistics."""
        return self.error_counts.copy()

    def reset_statistics(self) -> None:
        """Reset error statistics."""
        self.error_counts.clear()


# Global error handler instance
error_handler = ErrorHandler()


def handle_error(error: Exception, context: dict[str, Any] | None = None) -> ErrorInfo:
    """Global error handling function."""
    return error_handler.handle_error(error, context)


def get_error_handler() -> ErrorHandler:
    """Get the global error handler instance."""
    return error_handler
