"""
Centralized logging configuration for the webtoon reader backend.
"""

import logging
import logging.handlers
import os
import sys
from pathlib import Path
from typing import Optional

# Get the logs directory from config
try:
    from utils.config import Config
    LOGS_DIR = Config.LOGS_DIR
except ImportError:
    LOGS_DIR = Path(os.environ.get('WEBTOON_LOGS_DIR', Path.cwd() / "logs"))

ROOT_LOGGER_NAME = 'webtoon_reader'
LOG_FILE_NAME = 'webtoon_reader.log'


class ColoredFormatter(logging.Formatter):
    """Custom formatter with colors for console output."""

    COLORS = {
        'DEBUG': '\033[36m',    # Cyan
        'INFO': '\033[32m',     # Green
        'WARNING': '\033[33m',  # Yellow
        'ERROR': '\033[31m',    # Red
        'CRITICAL': '\033[35m', # Magenta
        'RESET': '\033[0m'      # Reset
    }

    def format(self, record):
        log_color = self.COLORS.get(record.levelname, self.COLORS['RESET'])
        reset_color = self.COLORS['RESET']

        # Color a copy so file handlers sharing the record keep the plain level name
        record = logging.makeLogRecord(record.__dict__)
        record.levelname = f"{log_color}{record.levelname}{reset_color}"

        return super().format(record)


def setup_logging(
    name: Optional[str] = None,
    level: int = logging.INFO,
    log_to_file: bool = True,
    log_to_console: bool = True,
    max_file_size: int = 10 * 1024 * 1024,  # 10MB
    backup_count: int = 5
) -> logging.Logger:
    """
    Set up centralized logging configuration.

    Args:
        name: Logger name (defaults to the calling module)
        level: Logging level
        log_to_file: Whether to log to file
        log_to_console: Whether to log to console
        max_file_size: Maximum log file size before rotation
        backup_count: Number of backup files to keep

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name or __name__)

    # Avoid duplicate handlers
    if logger.handlers:
        return logger

    logger.setLevel(level)

    # Create formatters
    file_formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(filename)s:%(lineno)d - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    console_formatter = ColoredFormatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%H:%M:%S'
    )

    # File handler with rotation
    if log_to_file:
        LOGS_DIR.mkdir(parents=True, exist_ok=True)
        log_file = LOGS_DIR / LOG_FILE_NAME
        file_handler = logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=max_file_size,
            backupCount=backup_count,
            encoding='utf-8'
        )
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(file_formatter)
        logger.addHandler(file_handler)

    # Console handler
    if log_to_console:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(level)
        console_handler.setFormatter(console_formatter)
        logger.addHandler(console_handler)

    # Module loggers hand their records to the application root logger
    logger.propagate = False

    return logger


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """
    Get a logger instance for a module.

    Module loggers are children of the application root logger, so they share
    its handlers instead of opening the log file once per module.

    Args:
        name: Logger name (defaults to the calling module)

    Returns:
        Logger instance
    """
    if not name:
        # Get the calling module's name
        frame = sys._getframe(1)
        name = frame.f_globals.get('__name__', ROOT_LOGGER_NAME)

    if name != ROOT_LOGGER_NAME and not name.startswith(ROOT_LOGGER_NAME + '.'):
        name = f"{ROOT_LOGGER_NAME}.{name}"

    return logging.getLogger(name)


def configure_root_logger(level: int = logging.INFO, **kwargs) -> logging.Logger:
    """Configure the root logger for the entire application."""
    root_logger = logging.getLogger(ROOT_LOGGER_NAME)

    if not root_logger.handlers:
        setup_logging(ROOT_LOGGER_NAME, level=level, **kwargs)

    return root_logger


# Custom exception classes for better error handling
class ScrapingError(Exception):
    """Base exception for scraping-related errors."""
    pass


class NetworkError(ScrapingError):
    """Exception for network-related errors."""
    pass


class ParsingError(ScrapingError):
    """Exception for HTML parsing errors.

    ``field`` names the piece of data that was being extracted, so a broken
    scraper can be traced back to the part of the page whose markup changed.
    """

    def __init__(self, field: str, message: str = ""):
        self.field = field
        super().__init__(f"{field}: {message}" if message else f"{field}: not found")


class NotFoundError(ScrapingError):
    """Exception for webtoons or episodes that do not exist."""
    pass


class CacheMissError(ScrapingError):
    """Exception for missing or unreadable cache records."""
    pass


class TimeOverflowError(ScrapingError):
    """Exception for expiry timestamps that cannot be represented."""
    pass


class DatabaseError(ScrapingError):
    """Exception for database-related errors."""
    pass


class ValidationError(ScrapingError):
    """Exception for data validation errors."""
    pass


def log_exception(logger: logging.Logger, e: Exception, context: str = "") -> None:
    """
    Log an exception with context information.

    Args:
        logger: Logger instance
        e: Exception to log
        context: Additional context information
    """
    if context:
        logger.error(f"{context}: {type(e).__name__}: {e}", exc_info=True)
    else:
        logger.error(f"{type(e).__name__}: {e}", exc_info=True)
