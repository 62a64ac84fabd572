"""
Custom exceptions for the market-history pipeline with structured error context.

Every exception carries a context dictionary so failures can be logged and
stored on the ingestion run without losing the details that matter for
debugging (date, item, HTTP status, batch index, ...).

Exception Hierarchy:
    PipelineError (base)
    ├── FetchError
    │   ├── NetworkError            (retryable)
    │   ├── RateLimitError          (retryable)
    │   ├── AuthenticationError     (non-retryable)
    │   ├── ResourceNotFoundError   (non-retryable)
    │   └── SchemaValidationError   (non-retryable)
    ├── NormalizationError
    ├── PersistenceError
    │   └── UpsertError
    ├── DuplicateContentError
    ├── PerItemAnalyticsError
    ├── UnknownRouteError
    └── RetryableError / NonRetryableError (mixins)
"""

from typing import Optional, Dict, Any
from datetime import datetime, timezone


class PipelineError(Exception):
    """
    Base exception for all pipeline errors.

    Attributes:
        message: Human-readable error message
        context: Additional context information (date, source, item, ...)
        original_exception: The original exception that was caught (if any)
    """

    def __init__(
        self,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        original_exception: Optional[Exception] = None
    ):
        self.message = message
        self.context = context or {}
        self.original_exception = original_exception
        self.timestamp = datetime.now(timezone.utc)

        self.context["error_timestamp"] = self.timestamp.isoformat()

        super().__init__(message)
        if original_exception:
            self.__cause__ = original_exception

    def __str__(self) -> str:
        """Format error message with context."""
        base_msg = f"{self.__class__.__name__}: {self.message}"

        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            base_msg += f" | Context: {context_str}"

        if self.original_exception:
            base_msg += f" | Caused by: {type(self.original_exception).__name__}: {str(self.original_exception)}"

        return base_msg

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/storage."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "context": self.context,
            "timestamp": self.timestamp.isoformat(),
            "original_error": str(self.original_exception) if self.original_exception else None
        }


# ============================================================================
# Retry Strategy Mixins
# ============================================================================

class RetryableError(PipelineError):
    """
    Mixin for errors the invoker may retry.

    Use this for transient errors like:
    - Network timeouts
    - Rate limiting (HTTP 429)
    - Service unavailable (HTTP 5xx)
    """
    pass


class NonRetryableError(PipelineError):
    """
    Mixin for errors that should NOT be retried.

    Use this for permanent errors like:
    - Authentication failures (HTTP 401, 403)
    - Missing snapshot (HTTP 404)
    - Payload schema violations
    """
    pass


# ============================================================================
# Fetch Errors
# ============================================================================

class FetchError(PipelineError):
    """
    Raised when the market-data provider cannot deliver a valid snapshot.

    Context should include:
        - url: The provider URL that failed
        - date: Target date of the snapshot
        - status_code: HTTP status code (if applicable)
        - retry_count: Number of attempts made
    """
    pass


class NetworkError(RetryableError, FetchError):
    """Network-related errors that should be retried."""
    pass


class RateLimitError(RetryableError, FetchError):
    """Rate limiting errors (HTTP 429) that should be retried with backoff."""

    def __init__(
        self,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        original_exception: Optional[Exception] = None,
        retry_after: Optional[float] = None
    ):
        super().__init__(message, context, original_exception)
        self.retry_after = retry_after
        if retry_after:
            self.context["retry_after"] = retry_after


class AuthenticationError(NonRetryableError, FetchError):
    """Authentication failures (HTTP 401, 403)."""
    pass


class ResourceNotFoundError(NonRetryableError, FetchError):
    """The provider has no snapshot for the requested date (HTTP 404)."""
    pass


class SchemaValidationError(NonRetryableError, FetchError):
    """
    The provider answered but the body is not a valid daily history.

    Context should include:
        - url: The provider URL
        - errors: Validation errors (truncated)
    """
    pass


# ============================================================================
# Transformation Errors
# ============================================================================

class NormalizationError(PipelineError):
    """
    Raised when a payload cannot be flattened into observation rows.

    Context should include:
        - date: Target date
        - payload_type: Type of the offending payload
    """
    pass


# ============================================================================
# Persistence Errors
# ============================================================================

class PersistenceError(PipelineError):
    """
    Raised when a storage operation fails.

    Context should include:
        - operation: INSERT, UPSERT, DELETE, SELECT
        - table_name: Name of the table
    """
    pass


class UpsertError(PersistenceError):
    """
    Raised when an upsert batch fails.

    Context should include:
        - table_name: Target table
        - batch_index: Index of the failing batch
        - batch_size: Rows in the failing batch
    """
    pass


# ============================================================================
# Flow-control Errors
# ============================================================================

class DuplicateContentError(PipelineError):
    """
    The exact content was already processed for this source and identifier.

    Never escapes an orchestrator: it is converted into the ``skipped``
    terminal state of the run.
    """
    pass


class PerItemAnalyticsError(PipelineError):
    """
    Factor calculation failed for a single item.

    Context should include:
        - item_name
        - mod_rank
    """
    pass


class UnknownRouteError(PipelineError):
    """A job name or event channel has no registered route."""
    pass
