"""
Logging setup for the statement parser.
The CLI and the API call setup_logging once at start-up; library modules
only ask for a named logger.
"""

import logging
import sys
from typing import Optional
from .config import config

# Third-party loggers that are chatty at INFO
QUIET_LOGGERS = ('fitz', 'multipart', 'uvicorn.access')


def _attach(root: logging.Logger, handler: logging.Handler, level: int, formatter: logging.Formatter):
    handler.setLevel(level)
    handler.setFormatter(formatter)
    root.addHandler(handler)


def setup_logging(
    log_level: Optional[str] = None,
    log_file: Optional[str] = None,
    console_output: bool = True
) -> logging.Logger:
    """
    Configure the root logger.

    Args:
        log_level: Level name, defaults to LOG_LEVEL from config
        log_file: File name inside LOG_DIR, or None for no file output
        console_output: Log to stderr, keeping stdout free for JSON output

    Returns:
        The root logger
    """
    level = getattr(logging, (log_level or config.LOG_LEVEL).upper())

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    # Repeated calls replace handlers instead of duplicating output
    root_logger.handlers.clear()

    formatter = logging.Formatter(fmt=config.LOG_FORMAT, datefmt=config.LOG_DATE_FORMAT)

    if console_output:
        _attach(root_logger, logging.StreamHandler(sys.stderr), level, formatter)

    if log_file:
        log_path = config.get_log_path(log_file)
        _attach(root_logger, logging.FileHandler(log_path, mode='a', encoding='utf-8'), level, formatter)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    return root_logger


def get_logger(name: str) -> logging.Logger:
    """Named logger for a module (pass __name__)."""
    return logging.getLogger(name)
