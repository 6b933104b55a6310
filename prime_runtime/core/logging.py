"""
Logging configuration for the Prime API runtime.

This module sets up structured logging with JSON formatting for production
and human-readable formatting for development. Records go to stderr because
stdout is reserved for the stdio tool transport.
"""

import logging
import logging.config
import sys

from .config import Settings


def setup_logging(log_level: str = "INFO", debug: bool = False, json_format: bool = False) -> None:
    """
    Configure application logging.

    Args:
        log_level: The log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        debug: Whether to include file and line information
        json_format: Whether to emit JSON records instead of plain text
    """
    if json_format:
        formatter = "json"
    elif debug:
        formatter = "detailed"
    else:
        formatter = "default"

    logging_config = {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "default": {
                "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
            },
            "detailed": {
                "format": (
                    "%(asctime)s - %(name)s - %(levelname)s - "
                    "[%(filename)s:%(lineno)d] - %(message)s"
                )
            },
            "json": {
                "()": "pythonjsonlogger.json.JsonFormatter",
                "format": (
                    "%(asctime)s %(name)s %(levelname)s %(filename)s "
                    "%(lineno)d %(message)s"
                )
            }
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "stream": sys.stderr,
                "formatter": formatter,
                "level": log_level
            }
        },
        "loggers": {
            "": {  # Root logger
                "level": log_level,
                "handlers": ["console"],
                "propagate": False
            },
            "prime_runtime": {
                "level": log_level,
                "handlers": ["console"],
                "propagate": False
            },
            "httpx": {
                "level": "WARNING",
                "handlers": ["console"],
                "propagate": False
            },
            "httpcore": {
                "level": "WARNING",
                "handlers": ["console"],
                "propagate": False
            }
        }
    }

    logging.config.dictConfig(logging_config)


def setup_logging_from_settings(settings: Settings) -> None:
    """Configure logging from the PRIME_LOG_LEVEL, PRIME_DEBUG and PRIME_LOG_JSON settings."""
    setup_logging(settings.LOG_LEVEL, debug=settings.DEBUG, json_format=settings.LOG_JSON)


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance with the specified name.

    Args:
        name: The logger name (typically __name__)

    Returns:
        A configured logger instance
    """
    return logging.getLogger(name)


class LoggerMixin:
    """
    Mixin class that provides a logger instance to any class.

    Usage:
        class MyClass(LoggerMixin):
            def some_method(self):
                self.logger.info("Hello, world!")
    """

    @property
    def logger(self) -> logging.Logger:
        """Get a logger instance for this class."""
        return logging.getLogger(self.__class__.__module__ + "." + self.__class__.__name__)
