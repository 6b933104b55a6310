"""
Tests for logging configuration.
"""

import logging

import pytest
from pythonjsonlogger.json import JsonFormatter

from prime_runtime.client.executor import RequestExecutor, create_executor
from prime_runtime.core.config import Settings
from prime_runtime.core.logging import LoggerMixin, get_logger, setup_logging, setup_logging_from_settings


@pytest.fixture(autouse=True)
def restore_logging():
    root = logging.getLogger()
    package = logging.getLogger("prime_runtime")
    saved = [(logger, logger.level, list(logger.handlers), logger.propagate) for logger in (root, package)]
    yield
    for logger, level, handlers, propagate in saved:
        logger.setLevel(level)
        logger.handlers = handlers
        logger.propagate = propagate


class TestSetupLogging:
    """Tests for setup_logging."""

    def test_plain_text_by_default(self):
        """Test that the package logger gets a plain text console handler."""
        setup_logging("DEBUG")

        logger = logging.getLogger("prime_runtime")
        assert logger.level == logging.DEBUG
        assert not isinstance(logger.handlers[0].formatter, JsonFormatter)
        assert logging.getLogger("httpx").level == logging.WARNING

    def test_json_format(self):
        """Test that json_format switches to JSON records."""
        setup_logging("INFO", json_format=True)

        handler = logging.getLogger("prime_runtime").handlers[0]
        assert isinstance(handler.formatter, JsonFormatter)

    def test_debug_format_includes_location(self):
        """Test that debug mode adds file and line to records."""
        setup_logging("INFO", debug=True)

        formatter = logging.getLogger("prime_runtime").handlers[0].formatter
        assert "%(lineno)d" in formatter._fmt

    def test_settings_drive_configuration(self):
        """Test that LOG_LEVEL and LOG_JSON settings reach the handlers."""
        setup_logging_from_settings(Settings(_env_file=None, LOG_LEVEL="WARNING", LOG_JSON=True))

        logger = logging.getLogger("prime_runtime")
        assert logger.level == logging.WARNING
        assert isinstance(logger.handlers[0].formatter, JsonFormatter)

    def test_environment_log_level(self, monkeypatch):
        """Test that PRIME_LOG_LEVEL takes effect through the settings."""
        monkeypatch.setenv("PRIME_LOG_LEVEL", "ERROR")

        setup_logging_from_settings(Settings(_env_file=None))

        assert logging.getLogger("prime_runtime").level == logging.ERROR

    @pytest.mark.asyncio
    async def test_create_executor_configures_logging(self):
        """Test that the factory can set up logging from its settings."""
        settings = Settings(
            _env_file=None,
            CLIENT_ID="id",
            CLIENT_SECRET="secret",
            USERNAME="user",
            PASSWORD="pw",
            LOG_LEVEL="DEBUG",
            DEBUG=True,
        )

        async with create_executor(settings, configure_logging=True):
            formatter = logging.getLogger("prime_runtime").handlers[0].formatter
            assert logging.getLogger("prime_runtime").level == logging.DEBUG
            assert "%(lineno)d" in formatter._fmt


class TestLoggerHelpers:
    """Tests for logger helpers."""

    def test_get_logger(self):
        """Test that get_logger returns the named logger."""
        assert get_logger("prime_runtime.client").name == "prime_runtime.client"

    def test_logger_mixin_uses_qualified_class_name(self):
        """Test the logger name derived by LoggerMixin."""
        assert issubclass(RequestExecutor, LoggerMixin)

        class Probe(LoggerMixin):
            pass

        assert Probe().logger.name == f"{__name__}.Probe"
