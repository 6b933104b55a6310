"""
Core module for the Prime API runtime.

This module contains the foundational components: configuration, logging
and the error taxonomy.
"""

from .config import Settings, get_settings
from .exceptions import (
    PrimeRuntimeException,
    ConfigurationError,
    AuthError,
    SlotReleaseError,
    ErrorKind,
    PrimeApiError,
    RateLimitExceededError,
    QuotaExceededError,
    UnauthorizedError,
    ForbiddenError,
    NotFoundError,
    ValidationError,
    ServerError,
    NetworkError,
    UnknownApiError,
)
from .logging import setup_logging, setup_logging_from_settings, get_logger, LoggerMixin

__all__ = [
    # Configuration
    "Settings",
    "get_settings",
    # Exceptions
    "PrimeRuntimeException",
    "ConfigurationError",
    "AuthError",
    "SlotReleaseError",
    "ErrorKind",
    "PrimeApiError",
    "RateLimitExceededError",
    "QuotaExceededError",
    "UnauthorizedError",
    "ForbiddenError",
    "NotFoundError",
    "ValidationError",
    "ServerError",
    "NetworkError",
    "UnknownApiError",
    # Logging
    "setup_logging",
    "setup_logging_from_settings",
    "get_logger",
    "LoggerMixin",
]
