"""
Logging Configuration Module.

Every module logs under the ``school_billing`` namespace, so configuring
that one logger configures the whole package. Console records go to
stderr (stdout is reserved for command output) with the level name
colored by colorama; an optional rotating file receives plain records.

Usage:
    from school_billing.utils.logger import setup_logger_from_config, get_logger

    setup_logger_from_config()
    logger = get_logger(__name__)
    logger.info("Resolving student...")
"""

import logging
import logging.handlers
import sys
from pathlib import Path
from typing import Optional

import colorama
from colorama import Fore, Style

colorama.init()

ROOT_LOGGER_NAME = "school_billing"

DEFAULT_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
DEFAULT_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class ColoredFormatter(logging.Formatter):
    """Colors the level name: debug cyan, info green, warning yellow, errors red."""

    LEVEL_COLORS = {
        logging.DEBUG: Fore.CYAN,
        logging.INFO: Fore.GREEN,
        logging.WARNING: Fore.YELLOW,
        logging.ERROR: Fore.RED,
        logging.CRITICAL: Fore.RED + Style.BRIGHT,
    }

    def format(self, record: logging.LogRecord) -> str:
        color = self.LEVEL_COLORS.get(record.levelno)
        if color is None:
            return super().format(record)

        plain = record.levelname
        record.levelname = f"{color}{plain:<8}{Style.RESET_ALL}"
        try:
            return super().format(record)
        finally:
            record.levelname = plain


def _console_handler(formatter: logging.Formatter) -> logging.Handler:
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(formatter)
    return handler


def _file_handler(log_file: str, max_bytes: int, backup_count: int,
                  formatter: logging.Formatter) -> logging.Handler:
    path = Path(log_file)
    path.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.handlers.RotatingFileHandler(
        path, maxBytes=max_bytes, backupCount=backup_count, encoding='utf-8'
    )
    handler.setFormatter(formatter)
    return handler


def setup_logger(
    level: str = "INFO",
    log_format: Optional[str] = None,
    date_format: Optional[str] = None,
    log_file: Optional[str] = None,
    max_bytes: int = 5 * 1024 * 1024,
    backup_count: int = 3,
    colorize: bool = True
) -> logging.Logger:
    """
    Configure the ``school_billing`` logger.

    Safe to call repeatedly: existing handlers are replaced.

    Args:
        level: Level name (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        log_format: Record format; defaults to time | level | logger | message.
        date_format: strftime format for ``%(asctime)s``.
        log_file: Rotating log file path, or None for console only.
        max_bytes: Size at which the log file rotates.
        backup_count: Rotated files kept.
        colorize: Color level names on the console.

    Returns:
        The configured package logger.
    """
    log_format = log_format or DEFAULT_FORMAT
    date_format = date_format or DEFAULT_DATE_FORMAT

    app_logger = logging.getLogger(ROOT_LOGGER_NAME)
    app_logger.setLevel(getattr(logging, str(level).upper(), logging.INFO))
    app_logger.propagate = False

    for handler in list(app_logger.handlers):
        app_logger.removeHandler(handler)
        handler.close()

    console_formatter = (ColoredFormatter if colorize else logging.Formatter)(log_format, date_format)
    app_logger.addHandler(_console_handler(console_formatter))

    if log_file:
        app_logger.addHandler(_file_handler(
            log_file, max_bytes, backup_count, logging.Formatter(log_format, date_format)
        ))

    app_logger.debug("Logging initialized")
    return app_logger


def get_logger(name: str) -> logging.Logger:
    """
    Logger for a module, placed under the package namespace.

    Args:
        name: Usually ``__name__``; names outside the package are prefixed.
    """
    if name == ROOT_LOGGER_NAME or name.startswith(ROOT_LOGGER_NAME + "."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")


def setup_logger_from_config(level: Optional[str] = None) -> logging.Logger:
    """
    Configure logging from the ``logging`` section of settings.yaml.

    Args:
        level: Overrides ``logging.level`` (the CLI passes DEBUG for --debug).
    """
    from config import get_config

    log_file = get_config("logging.file.path") if get_config("logging.file.enabled", False) else None

    return setup_logger(
        level=level or get_config("logging.level", "INFO"),
        log_format=get_config("logging.format"),
        date_format=get_config("logging.date_format"),
        log_file=log_file,
        max_bytes=get_config("logging.file.max_bytes", 5 * 1024 * 1024),
        backup_count=get_config("logging.file.backup_count", 3),
        colorize=get_config("logging.console.colorize", True)
    )
