"""
Custom exceptions for the Prime API runtime.

This module defines the error taxonomy surfaced by the request pipeline.
Every failure the calling tool layer sees is one of the classified API
errors below, tagged with an ErrorKind so callers can decide on messaging
and back-off without inspecting HTTP details.
"""

from enum import Enum
from typing import Any, Dict, Optional


class ErrorKind(str, Enum):
    """Classification tags for failed or anomalous API calls."""

    RATE_LIMITED = "rate_limited"
    UNAUTHORIZED = "unauthorized"
    FORBIDDEN = "forbidden"
    NOT_FOUND = "not_found"
    VALIDATION = "validation_error"
    SERVER_ERROR = "server_error"
    NETWORK_FAILURE = "network_failure"
    UNKNOWN = "unknown_error"


class PrimeRuntimeException(Exception):
    """
    Base exception class for the Prime API runtime.

    All custom exceptions should inherit from this class to ensure
    consistent error handling and logging.
    """

    def __init__(
        self,
        message: str,
        error_type: str = "runtime_error",
        status_code: int = 500,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.message = message
        self.error_type = error_type
        self.status_code = status_code
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """Structured form of the error for the calling layer."""
        result: Dict[str, Any] = {
            "error": True,
            "code": self.error_type,
            "message": self.message,
            "status_code": self.status_code,
        }
        if self.details:
            result["details"] = self.details
        return result


class ConfigurationError(PrimeRuntimeException):
    """Exception raised when configuration is invalid."""

    def __init__(self, message: str, **kwargs):
        super().__init__(
            message,
            error_type="configuration_error",
            status_code=500,
            **kwargs
        )


class AuthError(PrimeRuntimeException):
    """
    Exception raised when the token endpoint refuses or cannot be reached.

    ``transport`` is True when the request never produced an HTTP response
    (connection refused, DNS failure, timeout). Otherwise ``status_code`` and
    ``error_code`` carry what the OAuth provider returned.
    """

    def __init__(
        self,
        message: str = "Authentication failed",
        status_code: Optional[int] = None,
        error_code: Optional[str] = None,
        transport: bool = False,
        **kwargs
    ):
        super().__init__(
            message,
            error_type="auth_error",
            status_code=status_code or 401,
            **kwargs
        )
        self.provider_status = status_code
        self.error_code = error_code
        self.transport = transport
        if error_code:
            self.details["error_code"] = error_code
        if transport:
            self.details["transport"] = True


class SlotReleaseError(PrimeRuntimeException):
    """Raised in strict mode when a concurrency slot is released twice."""

    def __init__(self, message: str = "release_slot() called with no slot held", **kwargs):
        super().__init__(message, error_type="slot_release_error", status_code=500, **kwargs)


class PrimeApiError(PrimeRuntimeException):
    """Base class for classified API errors."""

    kind: ErrorKind = ErrorKind.UNKNOWN

    def __init__(self, message: str, status_code: int = 500, **kwargs):
        super().__init__(message, error_type=self.kind.value, status_code=status_code, **kwargs)


class RateLimitExceededError(PrimeApiError):
    """Exception raised when the remote service rejects a call with 429."""

    kind = ErrorKind.RATE_LIMITED

    def __init__(self, message: str = "Rate limit exceeded", retry_after: int = 60, **kwargs):
        super().__init__(message, status_code=429, **kwargs)
        self.retry_after = retry_after
        self.details["retry_after"] = retry_after


class QuotaExceededError(RateLimitExceededError):
    """
    Exception raised when the local quota ledger refuses admission.

    No network call has been made. Callers must back off for
    ``retry_after`` seconds.
    """

    def __init__(self, message: str = "Local request quota exhausted", retry_after: int = 60, **kwargs):
        super().__init__(message, retry_after=retry_after, **kwargs)
        self.details["local"] = True


class UnauthorizedError(PrimeApiError):
    """Exception raised when authentication fails."""

    kind = ErrorKind.UNAUTHORIZED

    def __init__(self, message: str = "Authentication failed. Check your OAuth credentials.", **kwargs):
        kwargs.setdefault("status_code", 401)
        super().__init__(message, **kwargs)


class ForbiddenError(PrimeApiError):
    """Exception raised when authorization fails."""

    kind = ErrorKind.FORBIDDEN

    def __init__(self, message: str = "Permission denied for this operation.", **kwargs):
        super().__init__(message, status_code=403, **kwargs)


class NotFoundError(PrimeApiError):
    """Exception raised when the requested resource does not exist."""

    kind = ErrorKind.NOT_FOUND

    def __init__(self, message: str = "Resource not found.", **kwargs):
        super().__init__(message, status_code=404, **kwargs)


class ValidationError(PrimeApiError):
    """
    Exception raised when the service rejects a request as invalid.

    Raised for HTTP 422, for other 4xx responses carrying a JSON:API error
    document, and for 2xx responses whose body is an error document.
    ``details["errors"]`` holds the JSON:API error objects when present.
    """

    kind = ErrorKind.VALIDATION

    def __init__(self, message: str, errors: Optional[list] = None, status_code: int = 422, **kwargs):
        super().__init__(message, status_code=status_code, **kwargs)
        self.errors = errors or []
        if errors:
            self.details["errors"] = errors


class ServerError(PrimeApiError):
    """Exception raised for 5xx responses."""

    kind = ErrorKind.SERVER_ERROR

    def __init__(self, message: str, status_code: int = 500, **kwargs):
        super().__init__(message, status_code=status_code, **kwargs)


class NetworkError(PrimeApiError):
    """Exception raised when the request never produced a response."""

    kind = ErrorKind.NETWORK_FAILURE

    def __init__(
        self,
        message: str = "Failed to connect to Prime API. Check your network connection.",
        **kwargs
    ):
        super().__init__(message, status_code=503, **kwargs)


class UnknownApiError(PrimeApiError):
    """Exception raised for responses that fit no other classification."""

    kind = ErrorKind.UNKNOWN

    def __init__(self, message: str, status_code: int = 500, **kwargs):
        super().__init__(message, status_code=status_code, **kwargs)
