"""
Logging setup for Lishka Upload Service.

Upload, stream and classification messages are tagged (``[UPLOAD]``,
``[STREAM]``) so a single session can be followed through the console.
"""

import copy
import logging
import logging.handlers
import sys
from pathlib import Path
from typing import List, Optional
from .config import get_settings

# Transport libraries log every chunk of a streaming upload at INFO
QUIET_LOGGERS = ("uvicorn.access", "httpx", "httpcore", "hpack", "postgrest")

_installed_handlers: List[logging.Handler] = []


class ColoredFormatter(logging.Formatter):
    """Console formatter that colours the level name."""

    COLORS = {
        'DEBUG': '\033[36m',     # Cyan
        'INFO': '\033[32m',      # Green
        'WARNING': '\033[33m',   # Yellow
        'ERROR': '\033[31m',     # Red
        'CRITICAL': '\033[35m',  # Magenta
    }
    RESET = '\033[0m'

    def format(self, record):
        # Copy so the file handler still sees the plain level name
        record = copy.copy(record)
        record.levelname = f"{self.COLORS.get(record.levelname, '')}{record.levelname}{self.RESET}"
        return super().format(record)


def _console_handler(level: int, format_string: str) -> logging.Handler:
    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(ColoredFormatter(format_string))
    return handler


def _file_handler(path: str, level: int, format_string: str) -> logging.Handler:
    Path(path).parent.mkdir(parents=True, exist_ok=True)
    handler = logging.handlers.RotatingFileHandler(
        path,
        maxBytes=10 * 1024 * 1024,  # 10MB
        backupCount=5
    )
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(format_string))
    return handler


def setup_logging(
    log_level: Optional[str] = None,
    log_file: Optional[str] = None,
    log_format: Optional[str] = None
) -> None:
    """
    Configure the root logger for the service.

    Safe to call more than once: handlers from an earlier call are replaced,
    handlers installed by anything else are left alone.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional file path for log output
        log_format: Custom log format string
    """
    settings = get_settings()

    level_name = log_level or settings.log_level
    level = getattr(logging, level_name)
    format_string = log_format or settings.log_format
    file_path = log_file or settings.log_file

    root_logger = logging.getLogger()
    while _installed_handlers:
        root_logger.removeHandler(_installed_handlers.pop())

    _installed_handlers.append(_console_handler(level, format_string))
    if file_path:
        _installed_handlers.append(_file_handler(file_path, level, format_string))

    for handler in _installed_handlers:
        root_logger.addHandler(handler)
    root_logger.setLevel(level)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logging.getLogger(__name__).info(
        f"Logging configured - Level: {level_name}, File: {file_path or 'Console only'}"
    )


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance.

    Args:
        name: Logger name (usually __name__)

    Returns:
        Logger instance
    """
    return logging.getLogger(name)


class LoggerMixin:
    """Mixin class to add logging capabilities to any class."""

    @property
    def logger(self) -> logging.Logger:
        """Get logger instance for the class."""
        return get_logger(f"{self.__class__.__module__}.{self.__class__.__name__}")
