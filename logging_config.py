"""
Centralized logging configuration for the Dispatch Console.

Every record carries the name of the thread that produced it, so the stock
refresh thread and request handlers can be told apart in one log.

Features:
    - Thread name and ID on every record
    - Console output (always enabled)
    - Rotating file logs (optional, for production)
    - Separate error log for ERROR/CRITICAL messages
    - Per-session child loggers for dispatch submissions

Log Format:
    2026-03-02 09:41:07 [INFO    ] [MainThread] dispatch_console.app - Starting application
    2026-03-02 09:41:08 [INFO    ] [StockRefresh] dispatch_console.services.stock_service - Factory stock refreshed
    2026-03-02 09:41:55 [INFO    ] [Thread-7] dispatch_console.session.5f1c2a9e - Dispatch QJ0203260001 created

Usage:
    # At application startup
    from logging_config import setup_logging, get_logger

    setup_logging(log_level=logging.INFO, enable_file_logging=True)

    # In modules
    logger = get_logger(__name__)

    # For one operator's dispatch session
    session_logger = get_session_logger(session_id)
"""

import logging
import sys
import threading
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional


APP_LOGGER_NAME = "dispatch_console"

LOG_FORMAT = "%(asctime)s [%(levelname)-8s] [%(thread_name)s] %(name)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

MAX_LOG_BYTES = 10 * 1024 * 1024  # 10 MB per file
LOG_BACKUP_COUNT = 5


# =============================================================================
# THREAD CONTEXT FILTER
# =============================================================================

class ThreadContextFilter(logging.Filter):
    """
    Logging filter that adds thread context to all log records.

    Adds thread_name and thread_id attributes, used by LOG_FORMAT.
    Never drops a record.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        current_thread = threading.current_thread()
        record.thread_name = current_thread.name
        record.thread_id = threading.get_ident()
        return True


# =============================================================================
# LOGGING SETUP
# =============================================================================

def _rotating_handler(path: Path, level: int, formatter, thread_filter) -> RotatingFileHandler:
    handler = RotatingFileHandler(
        filename=path,
        maxBytes=MAX_LOG_BYTES,
        backupCount=LOG_BACKUP_COUNT,
        encoding="utf-8",
    )
    handler.setLevel(level)
    handler.setFormatter(formatter)
    handler.addFilter(thread_filter)
    return handler


def setup_logging(
    app_name: str = APP_LOGGER_NAME,
    log_level: int = logging.INFO,
    log_dir: Optional[Path] = None,
    enable_file_logging: bool = True,
) -> logging.Logger:
    """
    Configure application logging with thread context.

    This sets up:
    1. Console handler (always enabled)
    2. Rotating file handler (optional)
    3. Error file handler (optional) - ERROR/CRITICAL only
    4. Thread context filter on every handler

    Safe to call again: existing handlers are replaced.

    Args:
        app_name: Name of the application logger
        log_level: Minimum log level (default: INFO)
        log_dir: Directory for log files (default: ./logs next to this file)
        enable_file_logging: Whether to write to log files

    Returns:
        Configured application logger
    """
    logger = logging.getLogger(app_name)
    logger.setLevel(log_level)
    logger.propagate = False  # Prevent duplicate logs to root logger
    logger.handlers.clear()

    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT)
    thread_filter = ThreadContextFilter()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(log_level)
    console_handler.setFormatter(formatter)
    console_handler.addFilter(thread_filter)
    logger.addHandler(console_handler)

    if enable_file_logging:
        if log_dir is None:
            log_dir = Path(__file__).parent / "logs"
        log_dir.mkdir(parents=True, exist_ok=True)

        app_log_file = log_dir / f"{app_name}.log"
        logger.addHandler(_rotating_handler(app_log_file, log_level, formatter, thread_filter))

        error_log_file = log_dir / f"{app_name}_error.log"
        logger.addHandler(_rotating_handler(error_log_file, logging.ERROR, formatter, thread_filter))

        logger.info(f"File logging enabled: {app_log_file}")

    logger.info(f"Logging configured at level {logging.getLevelName(log_level)}")
    return logger


# =============================================================================
# LOGGER FACTORY FUNCTIONS
# =============================================================================

def get_logger(name: str) -> logging.Logger:
    """
    Get a child logger under the application namespace.

    Args:
        name: Module name (typically __name__)

    Returns:
        Logger named e.g. "dispatch_console.services.stock_service"
    """
    if not name.startswith(APP_LOGGER_NAME):
        name = f"{APP_LOGGER_NAME}.{name}"
    return logging.getLogger(name)


def get_session_logger(session_id: str) -> logging.Logger:
    """
    Get a logger for one operator's dispatch session.

    Only the first 8 characters of the id are used, which is enough to
    grep one session's scans, imports and submissions out of the log.

    Args:
        session_id: Dispatch session id (UUID string)

    Returns:
        Logger named "dispatch_console.session.<first 8 chars>"
    """
    short_id = session_id[:8]
    return logging.getLogger(f"{APP_LOGGER_NAME}.session.{short_id}")


def set_thread_name(name: str) -> None:
    """
    Set the name of the current thread (shown in the [thread_name] field).

    Example:
        set_thread_name("StockRefresh")
    """
    threading.current_thread().name = name
