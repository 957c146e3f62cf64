"""Unit tests for logging configuration."""

import logging
import threading

from logging_config import (
    APP_LOGGER_NAME,
    ThreadContextFilter,
    get_logger,
    get_session_logger,
    setup_logging,
)


class TestLoggerFactories:
    """Test logger naming."""

    def test_module_logger_is_namespaced(self):
        assert get_logger("services.stock_service").name == "dispatch_console.services.stock_service"

    def test_namespaced_name_is_kept(self):
        assert get_logger("dispatch_console.app").name == "dispatch_console.app"

    def test_session_logger_uses_short_id(self):
        logger = get_session_logger("5f1c2a9e-1111-4222-8333-444455556666")
        assert logger.name == "dispatch_console.session.5f1c2a9e"


class TestThreadContextFilter:
    """Test thread context on records."""

    def test_adds_thread_fields(self):
        record = logging.LogRecord("x", logging.INFO, __file__, 1, "msg", None, None)

        assert ThreadContextFilter().filter(record) is True
        assert record.thread_name == threading.current_thread().name
        assert record.thread_id == threading.get_ident()


class TestSetupLogging:
    """Test handler setup."""

    def test_console_only(self):
        logger = setup_logging(log_level=logging.DEBUG, enable_file_logging=False)

        assert logger.name == APP_LOGGER_NAME
        assert len(logger.handlers) == 1
        assert logger.propagate is False

    def test_file_logging(self, tmp_path):
        logger = setup_logging(log_dir=tmp_path, enable_file_logging=True)

        assert len(logger.handlers) == 3
        assert (tmp_path / f"{APP_LOGGER_NAME}.log").exists()

        setup_logging(enable_file_logging=False)
